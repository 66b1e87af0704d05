"""
ENROLLMENT ROUTER
File: skillhub/enrollment/enrollment_router.py

Free skills enroll in one call. Paid skills return a checkout for the payment
widget; the widget's outcome comes back on /purchases/{purchase_id}/...
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from skillhub.dependencies import get_enrollment_context, get_enrollment_manager
from skillhub.enrollment.manager import EnrollmentManager
from skillhub.enrollment.models import (
    EnrollmentContext, EnrollmentResult, EnrollmentState, PaymentCompletion, PaymentDismissal,
    PaymentFailure, WidgetOutcome
)
from skillhub.errors import ConflictError, SkillhubError
from skillhub.learning.service import get_skill_by_slug

router = APIRouter(tags=["Enrollments"])


def _http_error(e: SkillhubError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail={"code": e.code, "message": e.message})


def _result_response(result: EnrollmentResult) -> dict:
    return {"success": result.enrolled, **result.model_dump()}


@router.get("/skills/{slug}/access")
async def check_access_endpoint(
    slug: str,
    ctx: EnrollmentContext = Depends(get_enrollment_context),
    manager: EnrollmentManager = Depends(get_enrollment_manager)
):
    """Enrollment state for the current user; heals verified purchases missing their enrollment"""
    try:
        skill = await get_skill_by_slug(ctx.store, slug)
        access = await manager.check_existing_access(ctx, skill)
        return {**access.model_dump(), "is_enrolled": access.enrolled}
    except SkillhubError as e:
        raise _http_error(e)


@router.post("/skills/{slug}/enroll")
async def enroll_endpoint(
    slug: str,
    ctx: EnrollmentContext = Depends(get_enrollment_context),
    manager: EnrollmentManager = Depends(get_enrollment_manager)
):
    """
    Free skill: enroll now.
    Paid skill: create the order and its pending purchase, return the checkout.
    """
    try:
        skill = await get_skill_by_slug(ctx.store, slug)

        if manager.is_free(skill):
            try:
                await manager.enroll_free(ctx, skill)
            except ConflictError:
                return {
                    "success": True,
                    "state": EnrollmentState.ENROLLED.value,
                    "skill_id": skill.skill_id,
                    "message": "Already enrolled in this skill",
                    "already_enrolled": True
                }
            return {
                "success": True,
                "state": EnrollmentState.ENROLLED.value,
                "skill_id": skill.skill_id,
                "message": "Enrolled successfully",
                "already_enrolled": False
            }

        access = await manager.check_existing_access(ctx, skill)
        if access.enrolled:
            return {
                "success": True,
                "state": EnrollmentState.ENROLLED.value,
                "skill_id": skill.skill_id,
                "message": "Already enrolled in this skill",
                "already_enrolled": True
            }

        checkout = await manager.begin_checkout(ctx, skill)
        return {
            "success": True,
            "state": EnrollmentState.AWAITING_PAYMENT.value,
            "skill_id": skill.skill_id,
            "message": "Complete the payment to enroll",
            "checkout": checkout.model_dump()
        }

    except SkillhubError as e:
        raise _http_error(e)


async def _settle(
    purchase_id: str,
    outcome: WidgetOutcome,
    ctx: EnrollmentContext,
    manager: EnrollmentManager
) -> dict:
    try:
        skill, checkout = await manager.resume_checkout(ctx, purchase_id)
        result = await manager.settle(ctx, skill, checkout, outcome)
        return _result_response(result)
    except SkillhubError as e:
        raise _http_error(e)


@router.post("/purchases/{purchase_id}/complete")
async def complete_purchase_endpoint(
    purchase_id: str,
    data: PaymentCompletion,
    ctx: EnrollmentContext = Depends(get_enrollment_context),
    manager: EnrollmentManager = Depends(get_enrollment_manager)
):
    """Widget completion callback: record the payment, verify it, enroll"""
    return await _settle(purchase_id, data, ctx, manager)


@router.post("/purchases/{purchase_id}/dismiss")
async def dismiss_purchase_endpoint(
    purchase_id: str,
    data: Optional[PaymentDismissal] = None,
    ctx: EnrollmentContext = Depends(get_enrollment_context),
    manager: EnrollmentManager = Depends(get_enrollment_manager)
):
    """Widget closed without paying"""
    return await _settle(purchase_id, data or PaymentDismissal(), ctx, manager)


@router.post("/purchases/{purchase_id}/fail")
async def fail_purchase_endpoint(
    purchase_id: str,
    data: PaymentFailure,
    ctx: EnrollmentContext = Depends(get_enrollment_context),
    manager: EnrollmentManager = Depends(get_enrollment_manager)
):
    """Gateway reported the payment failed"""
    return await _settle(purchase_id, data, ctx, manager)
