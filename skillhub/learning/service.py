from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from skillhub import config
from skillhub.enrollment.models import Skill
from skillhub.errors import NotFound, ValidationError
from skillhub.store.records import RecordStore

# ==================== CATALOG ====================

async def list_skills(store: RecordStore) -> List[Skill]:
    rows = await store.select("skills", order_by=[("name", 1)])
    return [Skill(**row) for row in rows]


async def get_skill_by_slug(store: RecordStore, slug: str) -> Skill:
    row = await store.select_one("skills", {"slug": slug})
    if not row:
        raise NotFound("Skill not found")
    return Skill(**row)


async def get_skill(store: RecordStore, skill_id: str) -> Skill:
    row = await store.select_one("skills", {"skill_id": skill_id})
    if not row:
        raise NotFound("Skill not found")
    return Skill(**row)


async def list_subskills(store: RecordStore, skill_id: str) -> List[dict]:
    return await store.select("subskills", {"skill_id": skill_id}, order_by=[("created_at", 1)])


async def list_contents(store: RecordStore, subskill_ids: Iterable[str]) -> Dict[str, List[dict]]:
    """Contents grouped by subskill, oldest first"""
    subskill_ids = [subskill_id for subskill_id in subskill_ids if subskill_id]
    if not subskill_ids:
        return {}

    rows = await store.select(
        "contents",
        {"subskill_id": {"$in": subskill_ids}},
        order_by=[("created_at", 1)]
    )

    grouped = defaultdict(list)
    for row in rows:
        grouped[row["subskill_id"]].append(row)
    return dict(grouped)


async def get_content(store: RecordStore, content_id: str) -> dict:
    row = await store.select_one("contents", {"content_id": content_id})
    if not row:
        raise NotFound("Content not found")
    return row


async def get_skill_for_content(store: RecordStore, content: dict) -> Skill:
    subskill = await store.select_one("subskills", {"subskill_id": content["subskill_id"]})
    if not subskill:
        raise NotFound("Subskill not found")
    return await get_skill(store, subskill["skill_id"])

# ==================== PROGRESS ====================

async def get_progress_map(
    store: RecordStore,
    user_id: str,
    content_ids: Optional[Iterable[str]] = None
) -> Dict[str, int]:
    filters = {"user_id": user_id}
    if content_ids is not None:
        filters["content_id"] = {"$in": list(content_ids)}
    rows = await store.select("user_progress", filters)
    return {row["content_id"]: row["progress"] for row in rows}


async def set_progress(store: RecordStore, user_id: str, content_id: str, progress: int) -> dict:
    if isinstance(progress, bool) or progress not in config.PROGRESS_STEPS:
        raise ValidationError(f"Progress must be one of {list(config.PROGRESS_STEPS)}")
    return await store.upsert(
        "user_progress",
        {"user_id": user_id, "content_id": content_id},
        {"progress": progress}
    )


async def open_content(store: RecordStore, user_id: str, content_id: str) -> int:
    """Opening content marks it started (25%) unless it already has progress"""
    current = (await get_progress_map(store, user_id, [content_id])).get(content_id, 0)
    if current:
        return current
    row = await set_progress(store, user_id, content_id, 25)
    return row["progress"]


async def toggle_complete(store: RecordStore, user_id: str, content_id: str) -> int:
    current = (await get_progress_map(store, user_id, [content_id])).get(content_id, 0)
    new_progress = 0 if current == 100 else 100
    row = await set_progress(store, user_id, content_id, new_progress)
    return row["progress"]

# ==================== STATS ====================

def completion_stats(contents: Dict[str, List[dict]], progress: Dict[str, int]) -> dict:
    total = 0
    completed = 0
    for subskill_contents in contents.values():
        for content in subskill_contents:
            total += 1
            if progress.get(content["content_id"]) == 100:
                completed += 1
    return {"completed": completed, "total": total}


def subskill_progress(subskill_contents: List[dict], progress: Dict[str, int]) -> int:
    """Percent of a subskill's contents that are complete"""
    if not subskill_contents:
        return 0
    completed = sum(1 for content in subskill_contents if progress.get(content["content_id"]) == 100)
    total = len(subskill_contents)
    # Halves round up
    return (completed * 200 + total) // (2 * total)
