from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from skillhub.auth.auth_utils import SessionUser
from skillhub.store.records import RecordStore

# ==================== ENUMS ====================

class PurchaseStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = {PurchaseStatus.SUCCESS.value, PurchaseStatus.FAILED.value, PurchaseStatus.CANCELLED.value}


class EnrollmentState(str, Enum):
    NOT_ENROLLED = "NotEnrolled"
    AWAITING_PAYMENT = "AwaitingPayment"
    ENROLLED = "Enrolled"
    AWAITING_RECONCILIATION = "AwaitingReconciliation"
    VERIFICATION_FAILED = "VerificationFailed"
    PAYMENT_FAILED = "PaymentFailed"
    PAYMENT_CANCELLED = "PaymentCancelled"


class EnrollmentSource(str, Enum):
    FREE = "free"
    PURCHASE = "purchase"
    RECONCILIATION = "reconciliation"

# ==================== RECORDS ====================

class Skill(BaseModel):
    model_config = ConfigDict(extra="ignore")

    skill_id: str
    slug: str
    name: str
    description: Optional[str] = None
    price: Optional[Union[int, float, str]] = None
    image_url: Optional[str] = None


class Purchase(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    purchase_id: str
    user_id: str
    skill_id: str
    amount: int  # paise
    currency: str
    razorpay_order_id: str
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    status: PurchaseStatus = PurchaseStatus.PENDING
    verified: bool = False
    metadata: Dict[str, Any] = {}
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None

# ==================== CHECKOUT ====================

class Order(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    amount: int
    currency: str
    key: Optional[str] = None


class Checkout(BaseModel):
    """Everything the payment widget needs, plus the pending purchase it settles"""

    order: Order
    purchase_id: str
    skill_id: str
    skill_name: str
    prefill: Dict[str, Optional[str]] = {}

# ==================== WIDGET OUTCOMES ====================

class PaymentCompletion(BaseModel):
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class PaymentDismissal(BaseModel):
    reason: Optional[str] = None


class PaymentFailure(BaseModel):
    description: str = "Payment failed"
    code: Optional[str] = None


WidgetOutcome = Union[PaymentCompletion, PaymentDismissal, PaymentFailure]

# ==================== RESULTS ====================

class EnrollmentResult(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    state: EnrollmentState
    message: str
    skill_id: str
    purchase_id: Optional[str] = None
    order_id: Optional[str] = None
    already_enrolled: bool = False
    error_code: Optional[str] = None
    errors: List[str] = []

    @property
    def enrolled(self) -> bool:
        return self.state == EnrollmentState.ENROLLED.value


class AccessStatus(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    skill_id: str
    is_free: bool
    state: EnrollmentState
    reconciled: bool = False
    purchase_id: Optional[str] = None

    @property
    def enrolled(self) -> bool:
        return self.state == EnrollmentState.ENROLLED.value

# ==================== CONTEXT ====================

@dataclass
class EnrollmentContext:
    """Per-request context: who is acting, with which token, against which store"""

    user: SessionUser
    store: RecordStore
    access_token: Optional[str] = None
