"""
HTTP client for the two payment functions, used the way the checkout client uses them.

Transport problems and timeouts are kept apart from remote rejections:
* ServiceTimeout      - no answer within REMOTE_CALL_TIMEOUT_SECONDS
* RemoteCallError     - connection failure, 5xx, or an unreadable body
* RemoteRejection     - the function answered {success: false} with a 4xx
"""

import logging
from typing import Any, Dict, Optional

import httpx

from skillhub import config
from skillhub.errors import ServiceTimeout

logger = logging.getLogger(__name__)


class RemoteCallError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class RemoteRejection(RemoteCallError):
    def __init__(self, message: str, status_code: int, code: Optional[str] = None):
        super().__init__(message, status_code)
        self.code = code


class RemoteFunctions:
    def __init__(
        self,
        base_url: str,
        timeout: float = config.REMOTE_CALL_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def invoke(self, name: str, payload: Dict[str, Any], access_token: Optional[str] = None) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}/{name}", json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"❌ {name} timed out after {self.timeout}s")
            raise ServiceTimeout()
        except httpx.HTTPError as e:
            logger.error(f"❌ {name} request failed: {e}")
            raise RemoteCallError(f"Could not reach {name}")

        try:
            data = response.json()
        except ValueError:
            raise RemoteCallError(f"{name} returned an unreadable response", response.status_code)

        if not isinstance(data, dict):
            raise RemoteCallError(f"{name} returned an unexpected response", response.status_code)

        if response.status_code >= 500:
            raise RemoteCallError(data.get("message") or f"{name} failed", response.status_code)

        if response.status_code >= 400 or not data.get("success"):
            raise RemoteRejection(
                data.get("message") or f"{name} was rejected",
                response.status_code,
                data.get("code")
            )

        return data

    async def create_order(self, payload: Dict[str, Any], access_token: Optional[str] = None) -> Dict[str, Any]:
        return await self.invoke("create-razorpay-order", payload, access_token)

    async def verify_payment(self, payload: Dict[str, Any], access_token: Optional[str] = None) -> Dict[str, Any]:
        return await self.invoke("verify-payment", payload, access_token)
