import hashlib
import hmac


def compute_razorpay_signature(secret: str, order_id: str, payment_id: str) -> str:
    """Hex HMAC-SHA256 of "<order_id>|<payment_id>" keyed with the gateway secret"""
    message = f"{order_id}|{payment_id}"
    return hmac.new(
        secret.encode(),
        message.encode(),
        hashlib.sha256
    ).hexdigest()


def verify_razorpay_signature(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    """Case-sensitive, constant-time comparison against the supplied signature"""
    if not signature:
        return False
    generated_signature = compute_razorpay_signature(secret, order_id, payment_id)
    return hmac.compare_digest(generated_signature.encode(), signature.encode())
