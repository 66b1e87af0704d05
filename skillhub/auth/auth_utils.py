# skillhub/auth/auth_utils.py
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException
from jose import JWTError, jwt

from skillhub import config


@dataclass
class SessionUser:
    id: str
    email: Optional[str] = None
    access_token: Optional[str] = None


def decode_session_token(token: str) -> dict:
    """Decode a session JWT issued by the hosted auth service"""
    if not config.SESSION_JWT_SECRET:
        raise HTTPException(status_code=500, detail="Session secret not configured")
    try:
        return jwt.decode(
            token,
            config.SESSION_JWT_SECRET,
            algorithms=[config.SESSION_JWT_ALGORITHM],
            audience=config.SESSION_JWT_AUDIENCE
        )
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")


def verify_session_token(authorization: str = Header(None)) -> SessionUser:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization.split(" ", 1)[1]
    payload = decode_session_token(token)

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token has no subject")

    return SessionUser(id=user_id, email=payload.get("email"), access_token=token)
