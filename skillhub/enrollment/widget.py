"""
Payment widget boundary.

The checkout widget is event driven: it reports completion, dismissal or a
gateway failure through callbacks. ``CallbackPaymentWidget`` turns that into
one awaitable outcome; the first callback wins and later ones are ignored.
"""

import asyncio
from typing import Optional, Protocol

from skillhub.enrollment.models import (
    Checkout, PaymentCompletion, PaymentDismissal, PaymentFailure, WidgetOutcome
)


class PaymentWidget(Protocol):
    async def open(self, checkout: Checkout) -> WidgetOutcome:
        ...


class CallbackPaymentWidget:
    def __init__(self):
        self._outcome: Optional[asyncio.Future] = None
        self.checkout: Optional[Checkout] = None
        self.opened = asyncio.Event()

    async def open(self, checkout: Checkout) -> WidgetOutcome:
        if self._outcome is not None:
            raise RuntimeError("Payment widget already opened")
        self.checkout = checkout
        self._outcome = asyncio.get_running_loop().create_future()
        self.opened.set()
        return await self._outcome

    def _resolve(self, outcome: WidgetOutcome) -> bool:
        if self._outcome is None or self._outcome.done():
            return False
        self._outcome.set_result(outcome)
        return True

    def on_payment_success(self, razorpay_payment_id: str, razorpay_signature: str) -> bool:
        return self._resolve(PaymentCompletion(
            razorpay_payment_id=razorpay_payment_id,
            razorpay_signature=razorpay_signature
        ))

    def on_dismiss(self, reason: Optional[str] = None) -> bool:
        return self._resolve(PaymentDismissal(reason=reason))

    def on_payment_failed(self, description: str, code: Optional[str] = None) -> bool:
        return self._resolve(PaymentFailure(description=description, code=code))
