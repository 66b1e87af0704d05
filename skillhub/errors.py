"""
Error taxonomy for enrollment, payments and the record store.

Every error carries a stable ``code`` (returned to clients), the HTTP status
the routers answer with, and a message that is safe to show to a learner.
"""

from typing import Optional


class SkillhubError(Exception):
    code = "error"
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "code": self.code, "message": self.message}


class ValidationError(SkillhubError):
    code = "validation_error"
    status_code = 400
    default_message = "Missing required fields"


class NotFound(SkillhubError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class ConfigurationError(SkillhubError):
    code = "configuration_error"
    status_code = 500
    default_message = "Razorpay configuration missing"


class StoreUnavailable(SkillhubError):
    code = "store_unavailable"
    status_code = 503
    default_message = "Record store is unavailable. Please try again."


class ConflictError(SkillhubError):
    code = "conflict"
    status_code = 409
    default_message = "Record already exists"


class OrderServiceError(SkillhubError):
    code = "order_service_error"
    status_code = 502
    default_message = "Failed to create Razorpay order"


class ServiceTimeout(SkillhubError, TimeoutError):
    code = "timeout"
    status_code = 504
    default_message = "The payment service did not respond in time"


class VerificationFailed(SkillhubError):
    """Umbrella for every rejection reported by the verification service."""

    code = "verification_failed"
    status_code = 400
    default_message = "Payment verification failed"


class InvalidSignature(VerificationFailed):
    code = "invalid_signature"
    default_message = "Invalid signature"


class PaymentNotCaptured(VerificationFailed):
    code = "payment_not_captured"
    default_message = "Payment not captured"


class OrderMismatch(VerificationFailed):
    code = "order_mismatch"
    default_message = "Payment does not belong to this order"


class PaymentFailed(SkillhubError):
    code = "payment_failed"
    status_code = 402
    default_message = "Payment failed"


class PaymentCancelled(SkillhubError):
    code = "payment_cancelled"
    status_code = 400
    default_message = "Payment cancelled"
