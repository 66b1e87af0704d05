from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from skillhub.accounts import service
from skillhub.auth.auth_utils import SessionUser
from skillhub.dependencies import get_current_user, get_store
from skillhub.errors import SkillhubError
from skillhub.store.records import RecordStore

router = APIRouter(prefix="/me", tags=["Accounts"])


class UserFormCreate(BaseModel):
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None


@router.get("/dashboard")
async def dashboard_endpoint(
    user: SessionUser = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    return await service.get_dashboard(store, user)


@router.post("/form")
async def submit_form_endpoint(
    data: UserFormCreate,
    user: SessionUser = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    try:
        form = await service.submit_user_form(store, user.id, data.name, data.phone, data.address)
    except SkillhubError as e:
        raise HTTPException(status_code=e.status_code, detail={"code": e.code, "message": e.message})
    return {"success": True, "form": form}
