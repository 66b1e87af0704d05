"""
Razorpay remote functions
File: skillhub/payments/payment_router.py

POST /create-razorpay-order  -> creates a gateway order for a skill purchase
POST /verify-payment         -> verifies signature + capture, marks the purchase verified

Both answer in the {success, message, ...} envelope the checkout client expects,
with permissive CORS headers on every response (including the OPTIONS preflight).

Mounted in main.py:
app.include_router(payment_router, prefix=config.FUNCTIONS_PREFIX)
"""

import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from skillhub import config
from skillhub.dependencies import get_store
from skillhub.errors import (
    ConfigurationError, ConflictError, SkillhubError, ValidationError, VerificationFailed
)
from skillhub.payments.gateway import GatewayUnavailable, RazorpayGateway, get_gateway
from skillhub.payments.verification import verify_and_record_payment
from skillhub.store.records import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payment"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": config.CORS_ALLOW_ORIGIN,
    "Access-Control-Allow-Headers": config.CORS_ALLOW_HEADERS,
}


# ==================== HELPER FUNCTIONS ====================

def _respond(content: Dict[str, Any], status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


def _preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", status_code=200, headers=CORS_HEADERS)


async def _read_json(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Request body must be JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _require(body: Dict[str, Any], *fields: str):
    missing = [field for field in fields if body.get(field) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def validate_amount(amount: Any) -> int:
    """Amount must be a positive whole number of paise, at most MAX_ORDER_AMOUNT_PAISE"""
    if isinstance(amount, bool):
        raise ValidationError("Amount must be an integer number of paise")
    if isinstance(amount, float) and amount.is_integer():
        amount = int(amount)
    if not isinstance(amount, int):
        raise ValidationError("Amount must be an integer number of paise")
    if amount <= 0 or amount > config.MAX_ORDER_AMOUNT_PAISE:
        raise ValidationError(
            f"Amount must be between 1 and {config.MAX_ORDER_AMOUNT_PAISE} paise"
        )
    return amount


def build_receipt(skill_id: str, user_id: str) -> str:
    receipt = f"skill_{skill_id}_user_{user_id}_{int(time.time() * 1000)}"
    return receipt[:config.RECEIPT_MAX_LENGTH]


# ==================== ORDER SERVICE ====================

@router.options("/create-razorpay-order")
async def create_order_preflight():
    return _preflight()


@router.post("/create-razorpay-order")
async def create_razorpay_order(
    request: Request,
    gateway: Optional[RazorpayGateway] = Depends(get_gateway)
):
    """Create a Razorpay order for a skill purchase (amount in paise)"""
    try:
        body = await _read_json(request)
        _require(body, "amount", "currency", "skill_id", "user_id")

        amount = validate_amount(body["amount"])
        currency = str(body["currency"]).upper()
        if currency != config.ORDER_CURRENCY:
            raise ValidationError(f"Unsupported currency: {body['currency']}")

        if gateway is None:
            raise ConfigurationError()

        skill_id = str(body["skill_id"])
        user_id = str(body["user_id"])

        order_data = {
            "amount": amount,
            "currency": currency,
            "receipt": build_receipt(skill_id, user_id),
            "notes": {
                "skill_id": skill_id,
                "user_id": user_id,
                "skill_name": body.get("skill_name") or ""
            }
        }

        order = await gateway.create_order(order_data)
        logger.info(f"✅ Razorpay order {order.get('id')} created for skill {skill_id}")

        return _respond({
            "success": True,
            "order": order,
            "key": gateway.key_id
        })

    except SkillhubError as e:
        logger.warning(f"⚠️  Order creation failed: {e.message}")
        return _respond(e.to_dict(), e.status_code)
    except GatewayUnavailable:
        return _respond({"success": False, "message": "Failed to create Razorpay order"}, 502)
    except Exception as e:
        logger.error(f"❌ Error creating Razorpay order: {e}", exc_info=True)
        return _respond({"success": False, "message": "Internal server error"}, 500)


# ==================== VERIFICATION SERVICE ====================

@router.options("/verify-payment")
async def verify_payment_preflight():
    return _preflight()


@router.post("/verify-payment")
async def verify_payment(
    request: Request,
    store: RecordStore = Depends(get_store),
    gateway: Optional[RazorpayGateway] = Depends(get_gateway)
):
    """
    Verify a completed checkout and mark its purchase success/verified.
    Rejections answer 400; configuration, store and transport problems answer 500.
    """
    try:
        body = await _read_json(request)
        _require(body, "razorpay_order_id", "razorpay_payment_id", "razorpay_signature")

        if gateway is None or not config.RAZORPAY_KEY_SECRET:
            raise ConfigurationError()

        result = await verify_and_record_payment(
            store,
            gateway,
            config.RAZORPAY_KEY_SECRET,
            order_id=str(body["razorpay_order_id"]),
            payment_id=str(body["razorpay_payment_id"]),
            signature=str(body["razorpay_signature"]),
            skill_id=body.get("skill_id"),
            user_id=body.get("user_id"),
            purchase_id=body.get("purchase_id")
        )
        return _respond(result)

    except (ValidationError, VerificationFailed, ConflictError) as e:
        return _respond(e.to_dict(), 400)
    except SkillhubError as e:
        logger.error(f"❌ Verification could not complete: {e.message}")
        return _respond(e.to_dict(), 500)
    except GatewayUnavailable:
        return _respond(
            {"success": False, "code": "gateway_unavailable", "message": "Could not reach Razorpay"},
            500
        )
    except Exception as e:
        logger.error(f"❌ Error in verify-payment: {e}", exc_info=True)
        return _respond({"success": False, "message": "Internal Server Error"}, 500)
