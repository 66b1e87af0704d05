"""
Enrollment Manager
File: skillhub/enrollment/manager.py

Per (user, skill):
    NotEnrolled -> (free) -> Enrolled
    NotEnrolled -> [order created, pending purchase] -> AwaitingPayment -> [verifying] -> Enrolled
                                                                 +-> VerificationFailed | PaymentFailed | PaymentCancelled
                                                                 +-> AwaitingReconciliation (verified, enrollment insert failed)

Ordering on the paid path is fixed: order created -> pending purchase stored ->
widget opened. Purchase rows only ever move out of ``pending`` through
conditional updates, so a terminal status is written at most once. The
verification function is the only writer of success/verified; this side
writes payment details, ``failed`` and ``cancelled``.

Nothing is retried. A new attempt creates a new order and a new purchase row;
earlier rows stay as an audit trail.
"""

import logging
from typing import List, Optional, Tuple

from skillhub import config
from skillhub.enrollment.functions_client import RemoteCallError, RemoteFunctions, RemoteRejection
from skillhub.enrollment.models import (
    AccessStatus, Checkout, EnrollmentContext, EnrollmentResult, EnrollmentSource,
    EnrollmentState, Order, PaymentCompletion, PaymentDismissal, PaymentFailure,
    Purchase, PurchaseStatus, Skill, TERMINAL_STATUSES, WidgetOutcome
)
from skillhub.enrollment.pricing import is_free, price_to_paise
from skillhub.enrollment.widget import PaymentWidget
from skillhub.errors import (
    ConflictError, NotFound, OrderServiceError, PaymentCancelled, PaymentFailed,
    ServiceTimeout, SkillhubError, StoreUnavailable, VerificationFailed
)
from skillhub.store.records import utcnow

logger = logging.getLogger(__name__)

GENERIC_VERIFICATION_MESSAGE = (
    "We could not verify your payment. If you were charged, contact support with your order ID."
)


class EnrollmentManager:
    def __init__(self, functions: RemoteFunctions):
        self.functions = functions

    # ==================== QUERIES ====================

    @staticmethod
    def is_free(skill: Skill) -> bool:
        return is_free(skill.price)

    async def is_enrolled(self, ctx: EnrollmentContext, skill_id: str) -> bool:
        row = await ctx.store.select_one("user_skills", {
            "user_id": ctx.user.id,
            "skill_id": skill_id
        })
        return row is not None

    async def check_existing_access(self, ctx: EnrollmentContext, skill: Skill) -> AccessStatus:
        """
        Run on every view of a skill. Heals a verified purchase whose
        enrollment insert was lost (e.g. a store error right after payment).
        """
        free = self.is_free(skill)

        if await self.is_enrolled(ctx, skill.skill_id):
            return AccessStatus(skill_id=skill.skill_id, is_free=free, state=EnrollmentState.ENROLLED)

        if free:
            return AccessStatus(skill_id=skill.skill_id, is_free=True, state=EnrollmentState.NOT_ENROLLED)

        purchase = await ctx.store.select_one("purchases", {
            "user_id": ctx.user.id,
            "skill_id": skill.skill_id,
            "status": PurchaseStatus.SUCCESS.value,
            "verified": True
        })
        if not purchase:
            return AccessStatus(skill_id=skill.skill_id, is_free=False, state=EnrollmentState.NOT_ENROLLED)

        created = await self._record_enrollment(ctx, skill, EnrollmentSource.RECONCILIATION)
        if created:
            logger.info(
                f"✅ Reconciled enrollment for user {ctx.user.id} in skill {skill.skill_id} "
                f"from purchase {purchase['purchase_id']}"
            )

        return AccessStatus(
            skill_id=skill.skill_id,
            is_free=False,
            state=EnrollmentState.ENROLLED,
            reconciled=created,
            purchase_id=purchase["purchase_id"]
        )

    # ==================== FREE PATH ====================

    async def enroll_free(self, ctx: EnrollmentContext, skill: Skill) -> dict:
        """Insert the enrollment row. ConflictError means the user is already enrolled."""
        row = await ctx.store.insert("user_skills", {
            "user_id": ctx.user.id,
            "skill_id": skill.skill_id,
            "enrolled_at": utcnow(),
            "source": EnrollmentSource.FREE.value
        })
        logger.info(f"✅ User {ctx.user.id} enrolled in free skill {skill.skill_id}")
        return row

    async def _record_enrollment(self, ctx: EnrollmentContext, skill: Skill, source: EnrollmentSource) -> bool:
        """Returns False when the enrollment already existed"""
        try:
            await ctx.store.insert("user_skills", {
                "user_id": ctx.user.id,
                "skill_id": skill.skill_id,
                "enrolled_at": utcnow(),
                "source": source.value
            })
        except ConflictError:
            return False
        return True

    # ==================== PAID PATH ====================

    async def create_order(self, ctx: EnrollmentContext, skill: Skill) -> Order:
        try:
            amount = price_to_paise(skill.price)
        except ValueError:
            raise OrderServiceError("This skill does not have a valid price")

        payload = {
            "amount": amount,
            "currency": config.ORDER_CURRENCY,
            "skill_id": skill.skill_id,
            "user_id": ctx.user.id,
            "skill_name": skill.name
        }

        try:
            data = await self.functions.create_order(payload, ctx.access_token)
        except RemoteCallError as e:
            raise OrderServiceError(e.message)

        order = data.get("order") or {}
        if not order.get("id"):
            raise OrderServiceError("Order service returned no order")

        return Order(
            id=order["id"],
            amount=order.get("amount", amount),
            currency=order.get("currency", config.ORDER_CURRENCY),
            key=data.get("key")
        )

    async def _prefill(self, ctx: EnrollmentContext) -> dict:
        profile = await ctx.store.select_one("profiles", {"id": ctx.user.id}) or {}
        forms = await ctx.store.select(
            "user_forms",
            {"user_id": ctx.user.id},
            order_by=[("created_at", 1)],
            limit=1
        )
        form = forms[0] if forms else {}
        return {
            "name": form.get("name") or profile.get("username"),
            "email": ctx.user.email or profile.get("email"),
            "contact": form.get("phone")
        }

    async def begin_checkout(self, ctx: EnrollmentContext, skill: Skill) -> Checkout:
        """Create the order and persist its pending purchase. Only then may the widget open."""
        order = await self.create_order(ctx, skill)

        purchase = await ctx.store.insert("purchases", {
            "user_id": ctx.user.id,
            "skill_id": skill.skill_id,
            "amount": order.amount,
            "currency": order.currency,
            "razorpay_order_id": order.id,
            "status": PurchaseStatus.PENDING.value,
            "verified": False,
            "metadata": {"skill_name": skill.name}
        })
        logger.info(f"✅ Purchase {purchase['purchase_id']} pending for order {order.id}")

        return Checkout(
            order=order,
            purchase_id=purchase["purchase_id"],
            skill_id=skill.skill_id,
            skill_name=skill.name,
            prefill=await self._prefill(ctx)
        )

    async def resume_checkout(self, ctx: EnrollmentContext, purchase_id: str) -> Tuple[Skill, Checkout]:
        """
        Rebuild the checkout of one of the user's purchases (widget callbacks arrive over HTTP).
        A purchase that already reached a terminal status cannot be settled again.
        """
        row = await ctx.store.select_one("purchases", {
            "purchase_id": purchase_id,
            "user_id": ctx.user.id
        })
        if not row:
            raise NotFound("Purchase not found")
        purchase = Purchase(**row)

        if purchase.status in TERMINAL_STATUSES:
            raise ConflictError("This payment attempt has already been settled")

        skill_row = await ctx.store.select_one("skills", {"skill_id": purchase.skill_id})
        if not skill_row:
            raise NotFound("Skill not found")
        skill = Skill(**skill_row)

        checkout = Checkout(
            order=Order(
                id=purchase.razorpay_order_id,
                amount=purchase.amount,
                currency=purchase.currency
            ),
            purchase_id=purchase.purchase_id,
            skill_id=skill.skill_id,
            skill_name=skill.name
        )
        return skill, checkout

    async def open_payment_widget(
        self,
        ctx: EnrollmentContext,
        skill: Skill,
        checkout: Checkout,
        widget: PaymentWidget
    ) -> EnrollmentResult:
        outcome = await widget.open(checkout)
        return await self.settle(ctx, skill, checkout, outcome)

    async def settle(
        self,
        ctx: EnrollmentContext,
        skill: Skill,
        checkout: Checkout,
        outcome: WidgetOutcome
    ) -> EnrollmentResult:
        """Apply the widget's outcome. A purchase accepts exactly one."""
        # Only a purchase with no recorded payment is still waiting on the widget
        waiting = {
            "purchase_id": checkout.purchase_id,
            "user_id": ctx.user.id,
            "status": PurchaseStatus.PENDING.value,
            "razorpay_payment_id": {"$exists": False}
        }

        if isinstance(outcome, PaymentCompletion):
            recorded = await ctx.store.update("purchases", waiting, {
                "razorpay_payment_id": outcome.razorpay_payment_id,
                "razorpay_signature": outcome.razorpay_signature
            })
            if not recorded:
                raise ConflictError("This payment attempt has already been settled")
            return await self.verify_payment(
                ctx, skill, checkout, outcome.razorpay_payment_id, outcome.razorpay_signature
            )

        if isinstance(outcome, PaymentDismissal):
            closed = await ctx.store.update("purchases", waiting, {
                "status": PurchaseStatus.CANCELLED.value,
                "verified": False
            })
            if not closed:
                raise ConflictError("This payment attempt has already been settled")
            logger.info(f"⚠️  Purchase {checkout.purchase_id} cancelled by user")
            return self._result(
                EnrollmentState.PAYMENT_CANCELLED, skill, checkout,
                PaymentCancelled.default_message, error_code=PaymentCancelled.code
            )

        if isinstance(outcome, PaymentFailure):
            closed = await ctx.store.update("purchases", waiting, {
                "status": PurchaseStatus.FAILED.value,
                "verified": False,
                "failure_reason": outcome.description
            })
            if not closed:
                raise ConflictError("This payment attempt has already been settled")
            logger.info(f"❌ Purchase {checkout.purchase_id} failed at gateway: {outcome.description}")
            return self._result(
                EnrollmentState.PAYMENT_FAILED, skill, checkout,
                outcome.description or PaymentFailed.default_message, error_code=PaymentFailed.code
            )

        raise TypeError(f"Unknown widget outcome: {outcome!r}")

    async def verify_payment(
        self,
        ctx: EnrollmentContext,
        skill: Skill,
        checkout: Checkout,
        payment_id: str,
        signature: str
    ) -> EnrollmentResult:
        payload = {
            "razorpay_order_id": checkout.order.id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
            "skill_id": skill.skill_id,
            "user_id": ctx.user.id,
            "purchase_id": checkout.purchase_id
        }

        try:
            await self.functions.verify_payment(payload, ctx.access_token)
        except RemoteRejection as e:
            logger.warning(f"⚠️  Verification rejected for purchase {checkout.purchase_id}: {e.message}")
            errors = await self._mark_failed(ctx, checkout, e.message)
            return self._result(
                EnrollmentState.VERIFICATION_FAILED, skill, checkout, e.message,
                error_code=e.code or VerificationFailed.code, errors=errors
            )
        except Exception as e:
            logger.error(f"❌ Verification call failed for purchase {checkout.purchase_id}: {e}", exc_info=True)
            errors = [getattr(e, "message", None) or str(e) or type(e).__name__]
            errors += await self._mark_failed(ctx, checkout, "Verification could not complete")
            code = ServiceTimeout.code if isinstance(e, ServiceTimeout) else VerificationFailed.code
            return self._result(
                EnrollmentState.VERIFICATION_FAILED, skill, checkout, GENERIC_VERIFICATION_MESSAGE,
                error_code=code, errors=errors
            )

        try:
            created = await self._record_enrollment(ctx, skill, EnrollmentSource.PURCHASE)
        except StoreUnavailable as e:
            logger.error(f"❌ Payment verified but enrollment insert failed for purchase {checkout.purchase_id}")
            return self._result(
                EnrollmentState.AWAITING_RECONCILIATION, skill, checkout,
                "Payment verified. Your access will be restored on your next visit.",
                error_code=e.code, errors=[e.message]
            )

        logger.info(f"✅ User {ctx.user.id} enrolled in skill {skill.skill_id} via purchase {checkout.purchase_id}")
        return self._result(
            EnrollmentState.ENROLLED, skill, checkout,
            "Payment successful! You are now enrolled.",
            already_enrolled=not created
        )

    async def _mark_failed(self, ctx: EnrollmentContext, checkout: Checkout, reason: str) -> List[str]:
        """Best effort pending -> failed. Returns the errors it ran into, if any."""
        try:
            updated = await ctx.store.update(
                "purchases",
                {
                    "purchase_id": checkout.purchase_id,
                    "status": PurchaseStatus.PENDING.value
                },
                {
                    "status": PurchaseStatus.FAILED.value,
                    "verified": False,
                    "failure_reason": reason
                }
            )
        except SkillhubError as e:
            logger.error(f"❌ Could not mark purchase {checkout.purchase_id} failed: {e.message}")
            return [f"Could not record the failed payment: {e.message}"]

        if not updated:
            logger.warning(f"⚠️  Purchase {checkout.purchase_id} was no longer pending when marking failed")
        return []

    # ==================== FULL FLOW ====================

    async def enroll(self, ctx: EnrollmentContext, skill: Skill, widget: PaymentWidget) -> EnrollmentResult:
        """
        Free skills enroll directly; paid skills run order -> pending purchase ->
        widget -> verification. Every failure comes back as a result, never raised.
        """
        checkout: Optional[Checkout] = None
        try:
            if self.is_free(skill):
                try:
                    await self.enroll_free(ctx, skill)
                except ConflictError:
                    return self._result(
                        EnrollmentState.ENROLLED, skill, None,
                        "Already enrolled in this skill", already_enrolled=True
                    )
                return self._result(EnrollmentState.ENROLLED, skill, None, "Enrolled successfully")

            if await self.is_enrolled(ctx, skill.skill_id):
                return self._result(
                    EnrollmentState.ENROLLED, skill, None,
                    "Already enrolled in this skill", already_enrolled=True
                )

            checkout = await self.begin_checkout(ctx, skill)
            return await self.open_payment_widget(ctx, skill, checkout, widget)

        except SkillhubError as e:
            logger.warning(f"⚠️  Enrollment in {skill.skill_id} did not complete: {e.message}")
            return self._result(
                EnrollmentState.NOT_ENROLLED, skill, checkout, e.message, error_code=e.code
            )
        except Exception as e:
            logger.error(f"❌ Unexpected enrollment error for skill {skill.skill_id}: {e}", exc_info=True)
            errors = [str(e) or type(e).__name__]
            if checkout is not None:
                errors += await self._mark_failed(ctx, checkout, "Checkout interrupted")
            return self._result(
                EnrollmentState.PAYMENT_FAILED, skill, checkout,
                "Payment could not be completed", error_code=PaymentFailed.code, errors=errors
            )

    @staticmethod
    def _result(
        state: EnrollmentState,
        skill: Skill,
        checkout: Optional[Checkout],
        message: str,
        already_enrolled: bool = False,
        error_code: Optional[str] = None,
        errors: Optional[List[str]] = None
    ) -> EnrollmentResult:
        return EnrollmentResult(
            state=state,
            message=message,
            skill_id=skill.skill_id,
            purchase_id=checkout.purchase_id if checkout else None,
            order_id=checkout.order.id if checkout else None,
            already_enrolled=already_enrolled,
            error_code=error_code,
            errors=errors or []
        )
