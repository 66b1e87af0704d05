"""
Payment verification: the only writer allowed to mark a purchase verified.

Checks, in order:
1. HMAC signature over "<order_id>|<payment_id>"
2. The payment is captured at Razorpay
3. The payment belongs to the order, with the purchase's amount and currency
4. The pending purchase belongs to the caller's user and skill

Only then is the purchase moved pending -> success/verified, conditionally, so
two concurrent verifications cannot both win.
"""

import logging
from typing import Any, Dict, Optional

from skillhub.enrollment.models import PurchaseStatus
from skillhub.errors import (
    InvalidSignature, OrderMismatch, PaymentNotCaptured, ValidationError, VerificationFailed
)
from skillhub.payments.gateway import RazorpayGateway
from skillhub.payments.signature import verify_razorpay_signature
from skillhub.store.records import RecordStore, utcnow

logger = logging.getLogger(__name__)

VERIFIED_PAYMENT_FIELDS = ("id", "order_id", "amount", "currency", "status", "method", "email", "contact")


def _verified_payment_data(payment: Dict[str, Any]) -> Dict[str, Any]:
    return {field: payment.get(field) for field in VERIFIED_PAYMENT_FIELDS if field in payment}


async def _find_purchase(store: RecordStore, order_id: str, purchase_id: Optional[str]) -> dict:
    if purchase_id:
        purchase = await store.select_one("purchases", {"purchase_id": purchase_id})
        if purchase and purchase["razorpay_order_id"] != order_id:
            raise OrderMismatch("Purchase does not belong to this order")
    else:
        purchase = await store.select_one("purchases", {"razorpay_order_id": order_id})

    if not purchase:
        raise ValidationError("No purchase found for this order")
    return purchase


def _is_same_verified_payment(purchase: dict, payment_id: str) -> bool:
    return (
        purchase.get("status") == PurchaseStatus.SUCCESS.value
        and purchase.get("verified") is True
        and purchase.get("razorpay_payment_id") == payment_id
    )


async def verify_and_record_payment(
    store: RecordStore,
    gateway: RazorpayGateway,
    key_secret: str,
    order_id: str,
    payment_id: str,
    signature: str,
    skill_id: Optional[str] = None,
    user_id: Optional[str] = None,
    purchase_id: Optional[str] = None
) -> Dict[str, Any]:

    if not verify_razorpay_signature(key_secret, order_id, payment_id, signature):
        logger.warning(f"⚠️  Invalid signature for order {order_id}")
        raise InvalidSignature()

    payment = await gateway.fetch_payment(payment_id)

    if payment.get("status") != "captured":
        logger.warning(f"⚠️  Payment {payment_id} not captured (status: {payment.get('status')})")
        raise PaymentNotCaptured()

    if payment.get("order_id") != order_id:
        logger.warning(f"⚠️  Payment {payment_id} belongs to order {payment.get('order_id')}, not {order_id}")
        raise OrderMismatch("Payment order_id mismatch")

    purchase = await _find_purchase(store, order_id, purchase_id)

    if user_id and purchase["user_id"] != user_id:
        raise OrderMismatch("Purchase belongs to a different user")
    if skill_id and purchase["skill_id"] != skill_id:
        raise OrderMismatch("Purchase belongs to a different skill")

    if payment.get("amount") != purchase["amount"]:
        raise OrderMismatch(
            f"Payment amount mismatch. Expected {purchase['amount']}, got {payment.get('amount')}"
        )
    if payment.get("currency") != purchase["currency"]:
        raise OrderMismatch(f"Invalid currency: {payment.get('currency')}")

    payment_data = _verified_payment_data(payment)

    # Idempotent: a repeated verification of the same payment is a success
    if _is_same_verified_payment(purchase, payment_id):
        logger.info(f"✅ Payment {payment_id} already verified")
        return {
            "success": True,
            "message": "Payment already verified",
            "purchase_id": purchase["purchase_id"],
            "already_verified": True,
            "payment": payment_data
        }

    if purchase.get("status") != PurchaseStatus.PENDING.value:
        raise VerificationFailed(f"Purchase already {purchase.get('status')}")

    recorded_payment_id = purchase.get("razorpay_payment_id")
    if recorded_payment_id and recorded_payment_id != payment_id:
        raise OrderMismatch("Payment does not match the recorded payment")

    updated = await store.update(
        "purchases",
        {
            "purchase_id": purchase["purchase_id"],
            "status": PurchaseStatus.PENDING.value
        },
        {
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
            "status": PurchaseStatus.SUCCESS.value,
            "verified": True,
            "verified_at": utcnow()
        }
    )

    if not updated:
        # Lost a race: accept only if the winner recorded this same payment
        current = await store.select_one("purchases", {"purchase_id": purchase["purchase_id"]})
        if current and _is_same_verified_payment(current, payment_id):
            return {
                "success": True,
                "message": "Payment already verified",
                "purchase_id": purchase["purchase_id"],
                "already_verified": True,
                "payment": payment_data
            }
        raise VerificationFailed("Purchase is no longer pending")

    logger.info(f"✅ Payment {payment_id} verified for purchase {purchase['purchase_id']}")

    return {
        "success": True,
        "message": "Payment verified & stored",
        "purchase_id": purchase["purchase_id"],
        "already_verified": False,
        "payment": payment_data
    }
