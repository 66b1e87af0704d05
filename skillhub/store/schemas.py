import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


# ==================== INDEXES ====================

INDEXES = {
    "profiles": [
        {"keys": [("id", 1)], "unique": True}
    ],

    "user_forms": [
        {"keys": [("form_id", 1)], "unique": True},
        {"keys": [("user_id", 1), ("created_at", 1)]}
    ],

    "skills": [
        {"keys": [("skill_id", 1)], "unique": True},
        {"keys": [("slug", 1)], "unique": True}
    ],

    "subskills": [
        {"keys": [("subskill_id", 1)], "unique": True},
        {"keys": [("skill_id", 1), ("created_at", 1)]}
    ],

    "contents": [
        {"keys": [("content_id", 1)], "unique": True},
        {"keys": [("subskill_id", 1), ("created_at", 1)]}
    ],

    "user_progress": [
        {"keys": [("progress_id", 1)], "unique": True},
        {"keys": [("user_id", 1), ("content_id", 1)], "unique": True}
    ],

    # 🔒 One enrollment per (user, skill), whatever the number of tabs or clicks
    "user_skills": [
        {"keys": [("user_id", 1), ("skill_id", 1)], "unique": True}
    ],

    "purchases": [
        {"keys": [("purchase_id", 1)], "unique": True},
        {"keys": [("razorpay_order_id", 1)], "unique": True},
        # Payment id is omitted (not null) until the widget completes
        {"keys": [("razorpay_payment_id", 1)], "unique": True, "sparse": True},
        {"keys": [("user_id", 1), ("skill_id", 1), ("status", 1)]}
    ]
}


async def create_all_indexes(db: AsyncIOMotorDatabase):
    """Create all indexes. Unique indexes carry the uniqueness guarantees, so their failure is fatal."""

    for collection_name, indexes in INDEXES.items():
        collection = db[collection_name]
        for index in indexes:
            try:
                await collection.create_index(
                    index["keys"],
                    unique=index.get("unique", False),
                    sparse=index.get("sparse", False)
                )
                logger.info(f"✅ Created index on {collection_name}: {index['keys']}")
            except Exception as e:
                if index.get("unique"):
                    logger.error(f"❌ Unique index creation failed for {collection_name}: {e}")
                    raise
                logger.warning(f"⚠️  Index creation failed for {collection_name}: {e}")
