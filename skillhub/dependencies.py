from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhub import config
from skillhub.auth.auth_utils import SessionUser, verify_session_token
from skillhub.enrollment.functions_client import RemoteFunctions
from skillhub.enrollment.manager import EnrollmentManager
from skillhub.enrollment.models import EnrollmentContext
from skillhub.store.records import RecordStore


def get_db_instance() -> AsyncIOMotorDatabase:
    """Get database from main module"""
    from skillhub.main import db
    return db

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return get_db_instance()


async def get_store(db: AsyncIOMotorDatabase = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


async def get_current_user(user: SessionUser = Depends(verify_session_token)) -> SessionUser:
    return user


async def get_enrollment_context(
    user: SessionUser = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
) -> EnrollmentContext:
    return EnrollmentContext(user=user, store=store, access_token=user.access_token)


def get_enrollment_manager() -> EnrollmentManager:
    return EnrollmentManager(RemoteFunctions(config.FUNCTIONS_BASE_URL))
