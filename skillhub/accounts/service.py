from typing import Optional

from skillhub.auth.auth_utils import SessionUser
from skillhub.errors import ValidationError
from skillhub.store.records import RecordStore


async def get_profile(store: RecordStore, user_id: str) -> Optional[dict]:
    return await store.select_one("profiles", {"id": user_id})


async def get_user_form(store: RecordStore, user_id: str) -> Optional[dict]:
    """The learner's first submitted details form, if any"""
    forms = await store.select(
        "user_forms",
        {"user_id": user_id},
        order_by=[("created_at", 1)],
        limit=1
    )
    return forms[0] if forms else None


async def has_filled_form(store: RecordStore, user_id: str) -> bool:
    return await store.count("user_forms", {"user_id": user_id}) > 0


async def submit_user_form(
    store: RecordStore,
    user_id: str,
    name: str,
    phone: Optional[str] = None,
    address: Optional[str] = None
) -> dict:
    if not name or not name.strip():
        raise ValidationError("Name is required")
    return await store.insert("user_forms", {
        "user_id": user_id,
        "name": name.strip(),
        "phone": phone,
        "address": address
    })


async def get_dashboard(store: RecordStore, user: SessionUser) -> dict:
    form = await get_user_form(store, user.id)
    return {
        "user": {"id": user.id, "email": user.email},
        "profile": await get_profile(store, user.id),
        "form": form,
        "has_filled_form": form is not None
    }
