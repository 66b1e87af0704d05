from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from skillhub import config
from skillhub.dependencies import get_store
from skillhub.errors import StoreUnavailable
from skillhub.store.records import RecordStore

router = APIRouter(tags=["System"])


@router.get("/health")
async def health_endpoint(store: RecordStore = Depends(get_store)):
    """Liveness of the record store and presence of the payment configuration"""
    record = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": {}
    }

    try:
        await store.ping()
        record["status"]["record_store"] = "UP"
    except StoreUnavailable:
        record["status"]["record_store"] = "DOWN"

    payments_configured = bool(config.RAZORPAY_KEY_ID and config.RAZORPAY_KEY_SECRET)
    record["status"]["payments"] = "CONFIGURED" if payments_configured else "MISSING_CREDENTIALS"

    record["healthy"] = record["status"]["record_store"] == "UP"
    return record
