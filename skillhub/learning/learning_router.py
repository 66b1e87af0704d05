from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from skillhub.dependencies import get_current_user, get_enrollment_context, get_enrollment_manager, get_store
from skillhub.auth.auth_utils import SessionUser
from skillhub.enrollment.manager import EnrollmentManager
from skillhub.enrollment.models import EnrollmentContext, Skill
from skillhub.errors import SkillhubError
from skillhub.learning import service
from skillhub.store.records import RecordStore

router = APIRouter(tags=["Learning"])


class ProgressUpdate(BaseModel):
    progress: int


def _http_error(e: SkillhubError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail={"code": e.code, "message": e.message})


def _skill_summary(skill: Skill) -> dict:
    return {**skill.model_dump(), "is_free": EnrollmentManager.is_free(skill)}


async def require_access(ctx: EnrollmentContext, manager: EnrollmentManager, skill: Skill):
    """Content is reachable only once enrolled. 402 when the skill still has to be bought."""
    access = await manager.check_existing_access(ctx, skill)
    if access.enrolled:
        return access
    if access.is_free:
        raise HTTPException(
            status_code=403,
            detail={"message": "Not enrolled in this skill. Please enroll first.", "skill_id": skill.skill_id}
        )
    raise HTTPException(
        status_code=402,
        detail={
            "message": "Payment required to access this skill",
            "skill_id": skill.skill_id,
            "requires_payment": True
        }
    )


async def _content_with_access(content_id: str, ctx: EnrollmentContext, manager: EnrollmentManager) -> dict:
    content = await service.get_content(ctx.store, content_id)
    skill = await service.get_skill_for_content(ctx.store, content)
    await require_access(ctx, manager, skill)
    return content


# ==================== CATALOG ====================

@router.get("/skills")
async def list_skills_endpoint(
    store: RecordStore = Depends(get_store),
    user: SessionUser = Depends(get_current_user)
):
    skills = await service.list_skills(store)
    return {
        "skills": [_skill_summary(skill) for skill in skills],
        "count": len(skills)
    }


@router.get("/skills/{slug}")
async def get_skill_endpoint(
    slug: str,
    store: RecordStore = Depends(get_store),
    user: SessionUser = Depends(get_current_user)
):
    try:
        skill = await service.get_skill_by_slug(store, slug)
    except SkillhubError as e:
        raise _http_error(e)
    return _skill_summary(skill)


@router.get("/skills/{slug}/content")
async def get_skill_content_endpoint(
    slug: str,
    ctx: EnrollmentContext = Depends(get_enrollment_context),
    manager: EnrollmentManager = Depends(get_enrollment_manager)
):
    """Subskills with their contents, the learner's progress and completion stats"""
    try:
        skill = await service.get_skill_by_slug(ctx.store, slug)
        await require_access(ctx, manager, skill)

        subskills = await service.list_subskills(ctx.store, skill.skill_id)
        contents = await service.list_contents(ctx.store, [s["subskill_id"] for s in subskills])
        content_ids = [c["content_id"] for group in contents.values() for c in group]
        progress = await service.get_progress_map(ctx.store, ctx.user.id, content_ids)
    except SkillhubError as e:
        raise _http_error(e)

    return {
        "skill": _skill_summary(skill),
        "subskills": [
            {
                **subskill,
                "contents": contents.get(subskill["subskill_id"], []),
                "progress": service.subskill_progress(contents.get(subskill["subskill_id"], []), progress)
            }
            for subskill in subskills
        ],
        "progress": progress,
        "stats": service.completion_stats(contents, progress)
    }

# ==================== PROGRESS ====================

@router.post("/contents/{content_id}/open")
async def open_content_endpoint(
    content_id: str,
    ctx: EnrollmentContext = Depends(get_enrollment_context),
    manager: EnrollmentManager = Depends(get_enrollment_manager)
):
    try:
        content = await _content_with_access(content_id, ctx, manager)
        progress = await service.open_content(ctx.store, ctx.user.id, content_id)
    except SkillhubError as e:
        raise _http_error(e)
    return {"content": content, "progress": progress}


@router.post("/contents/{content_id}/toggle-complete")
async def toggle_complete_endpoint(
    content_id: str,
    ctx: EnrollmentContext = Depends(get_enrollment_context),
    manager: EnrollmentManager = Depends(get_enrollment_manager)
):
    try:
        await _content_with_access(content_id, ctx, manager)
        progress = await service.toggle_complete(ctx.store, ctx.user.id, content_id)
    except SkillhubError as e:
        raise _http_error(e)
    return {"content_id": content_id, "progress": progress}


@router.put("/contents/{content_id}/progress")
async def set_progress_endpoint(
    content_id: str,
    data: ProgressUpdate,
    ctx: EnrollmentContext = Depends(get_enrollment_context),
    manager: EnrollmentManager = Depends(get_enrollment_manager)
):
    try:
        await _content_with_access(content_id, ctx, manager)
        row = await service.set_progress(ctx.store, ctx.user.id, content_id, data.progress)
    except SkillhubError as e:
        raise _http_error(e)
    return {"content_id": content_id, "progress": row["progress"]}
