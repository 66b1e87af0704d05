"""
Record store over MongoDB (motor).

Rows are plain dicts keyed by the table's primary key; Mongo's ``_id`` never
leaves this module. Driver errors are translated into the service taxonomy:
duplicate keys become ``ConflictError``, everything else ``StoreUnavailable``.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from skillhub.errors import ConflictError, StoreUnavailable

logger = logging.getLogger(__name__)

PRIMARY_KEYS = {
    "profiles": "id",
    "user_forms": "form_id",
    "skills": "skill_id",
    "subskills": "subskill_id",
    "contents": "content_id",
    "user_progress": "progress_id",
    "purchases": "purchase_id",
}

# Tables whose rows have no generated identifier
COMPOSITE_KEYS = {
    "user_skills": ("user_id", "skill_id"),
}

TABLES = tuple(PRIMARY_KEYS) + tuple(COMPOSITE_KEYS)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def serialize_row(doc: Optional[dict]) -> Optional[dict]:
    """Strip Mongo's _id from a document"""
    if doc is None:
        return None
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


class RecordStore:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    def _collection(self, table: str):
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")
        return self.db[table]

    @contextmanager
    def _translate_errors(self, table: str, action: str):
        try:
            yield
        except DuplicateKeyError as e:
            raise ConflictError(f"Duplicate {table} row") from e
        except PyMongoError as e:
            logger.error(f"❌ Store {action} on {table} failed: {e}")
            raise StoreUnavailable() from e

    async def insert(self, table: str, row: Dict[str, Any]) -> dict:
        """Insert one row, assigning its identifier and timestamps. Returns the stored row."""
        collection = self._collection(table)
        doc = {key: value for key, value in row.items() if value is not None}

        primary_key = PRIMARY_KEYS.get(table)
        if primary_key and not doc.get(primary_key):
            doc[primary_key] = uuid.uuid4().hex
        doc.setdefault("created_at", utcnow())

        with self._translate_errors(table, "insert"):
            await collection.insert_one(doc)
        return serialize_row(doc)

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Sequence[Tuple[str, int]]] = None,
        limit: Optional[int] = None
    ) -> List[dict]:
        collection = self._collection(table)
        cursor = collection.find(filters or {})
        if order_by:
            cursor = cursor.sort(list(order_by))
        if limit:
            cursor = cursor.limit(limit)

        with self._translate_errors(table, "select"):
            docs = await cursor.to_list(length=None)
        return [serialize_row(doc) for doc in docs]

    async def select_one(self, table: str, filters: Dict[str, Any]) -> Optional[dict]:
        collection = self._collection(table)
        with self._translate_errors(table, "select"):
            doc = await collection.find_one(filters)
        return serialize_row(doc)

    async def update(self, table: str, filters: Dict[str, Any], changes: Dict[str, Any]) -> int:
        """
        Conditional update of every row matching ``filters``.
        Returns the number of rows changed; 0 means the condition no longer held.
        """
        collection = self._collection(table)
        changes = {**changes, "updated_at": utcnow()}
        with self._translate_errors(table, "update"):
            result = await collection.update_many(filters, {"$set": changes})
        return result.modified_count

    async def upsert(self, table: str, filters: Dict[str, Any], changes: Dict[str, Any]) -> dict:
        """Atomically update the row matching ``filters`` or insert it."""
        collection = self._collection(table)
        now = utcnow()
        on_insert = {"created_at": now}
        primary_key = PRIMARY_KEYS.get(table)
        if primary_key and primary_key not in filters:
            on_insert[primary_key] = uuid.uuid4().hex

        with self._translate_errors(table, "upsert"):
            doc = await collection.find_one_and_update(
                filters,
                {"$set": {**changes, "updated_at": now}, "$setOnInsert": on_insert},
                upsert=True,
                return_document=ReturnDocument.AFTER
            )
        return serialize_row(doc)

    async def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        collection = self._collection(table)
        with self._translate_errors(table, "count"):
            return await collection.count_documents(filters or {})

    async def ping(self) -> bool:
        with self._translate_errors("admin", "ping"):
            await self.db.command("ping")
        return True
