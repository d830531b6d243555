"""MongoDB-backed EntityStore."""

from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence
import logging
import re
from uuid import uuid4

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DeleteOne, ReplaceOne, UpdateOne
from pymongo.errors import PyMongoError

from interview_catalog.services.entity_store import (
    DELETE_FIELD,
    EntityStore,
    FieldFilter,
    Record,
    WriteOperation,
    validate_query,
)
from interview_catalog.utils.config import Settings, get_settings
from interview_catalog.utils.errors import ConfigurationError, StoreError

logger = logging.getLogger(__name__)

_MONGO_OPS = {"<": "$lt", "<=": "$lte", ">": "$gt", ">=": "$gte"}


def _to_record(doc: Dict[str, Any]) -> Record:
    record = dict(doc)
    record["id"] = str(record.pop("_id"))
    return record


def _to_document(data: Record) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k != "id" and v is not DELETE_FIELD}


def build_query(filters: Sequence[FieldFilter]) -> Dict[str, Any]:
    """Translate field filters into a MongoDB query document."""
    query: Dict[str, Any] = {}
    for f in filters:
        name = "_id" if f.field == "id" else f.field
        if f.op == "==":
            query[name] = f.value
        else:
            clause = query.setdefault(name, {})
            clause[_MONGO_OPS[f.op]] = f.value
    return query


def build_update(partial: Record) -> Dict[str, Any]:
    """Split a partial update into $set and $unset sections."""
    update: Dict[str, Any] = {}
    to_set = {k: v for k, v in partial.items() if k != "id" and v is not DELETE_FIELD}
    to_unset = {k: "" for k, v in partial.items() if v is DELETE_FIELD}
    if to_set:
        update["$set"] = to_set
    if to_unset:
        update["$unset"] = to_unset
    return update


class MongoEntityStore(EntityStore):
    """Service class for catalog collections stored in MongoDB."""

    supports_text_search = True

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.client: Optional[AsyncIOMotorClient] = None
        self.db = None

    async def connect(self):
        """Connect to MongoDB."""
        if not self.settings.mongodb_uri:
            raise ConfigurationError("MONGODB_URI is required for the mongo store backend")
        try:
            self.client = AsyncIOMotorClient(
                self.settings.mongodb_uri,
                serverSelectionTimeoutMS=self.settings.mongo_timeout_ms,
                tz_aware=True,
            )
            self.db = self.client[self.settings.mongo_dbname]
            # Test the connection
            await self.client.admin.command("ping")
            logger.info("Successfully connected to MongoDB")
        except PyMongoError as e:
            logger.error("Failed to connect to MongoDB: %s", e)
            # Drop the half-open client
            if self.client:
                self.client.close()
            self.client = None
            self.db = None
            raise StoreError(f"Failed to connect to MongoDB: {e}") from e

    def disconnect(self):
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")
        self.client = None
        self.db = None

    async def ensure_connected(self):
        """Ensure there is a healthy connection; recreate it after a failed ping."""
        if self.client is None:
            await self.connect()
            return
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            logger.warning("Reinitializing MongoDB client after ping failure: %s", e)
            self.disconnect()
            await self.connect()

    def _collection(self, name: str):
        return self.db[name]

    async def get(self, collection: str, record_id: str) -> Optional[Record]:
        await self.ensure_connected()
        try:
            doc = await self._collection(collection).find_one({"_id": record_id})
        except PyMongoError as e:
            logger.error("Error fetching %s/%s: %s", collection, record_id, e)
            raise StoreError(f"Failed to fetch {collection}/{record_id}: {e}") from e
        return _to_record(doc) if doc else None

    async def list(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        validate_query(filters, order_by)
        await self.ensure_connected()
        try:
            cursor = self._collection(collection).find(build_query(filters))
            if order_by is not None:
                cursor = cursor.sort(order_by, ASCENDING)
            if limit is not None:
                cursor = cursor.limit(limit)
            docs = await cursor.to_list(length=limit)
        except PyMongoError as e:
            logger.error("Error listing %s: %s", collection, e)
            raise StoreError(f"Failed to list {collection}: {e}") from e
        return [_to_record(doc) for doc in docs]

    async def insert(
        self, collection: str, data: Record, record_id: Optional[str] = None
    ) -> str:
        await self.ensure_connected()
        new_id = record_id or uuid4().hex
        doc = _to_document(data)
        doc["_id"] = new_id
        try:
            await self._collection(collection).replace_one(
                {"_id": new_id}, doc, upsert=True
            )
        except PyMongoError as e:
            logger.error("Error inserting into %s: %s", collection, e)
            raise StoreError(f"Failed to insert into {collection}: {e}") from e
        return new_id

    async def update(self, collection: str, record_id: str, partial: Record) -> None:
        update = build_update(partial)
        if not update:
            return
        await self.ensure_connected()
        try:
            result = await self._collection(collection).update_one(
                {"_id": record_id}, update
            )
        except PyMongoError as e:
            logger.error("Error updating %s/%s: %s", collection, record_id, e)
            raise StoreError(f"Failed to update {collection}/{record_id}: {e}") from e
        if result.matched_count == 0:
            raise StoreError(f"No record '{record_id}' in '{collection}' to update")

    async def delete(self, collection: str, record_id: str) -> None:
        await self.ensure_connected()
        try:
            await self._collection(collection).delete_one({"_id": record_id})
        except PyMongoError as e:
            logger.error("Error deleting %s/%s: %s", collection, record_id, e)
            raise StoreError(f"Failed to delete {collection}/{record_id}: {e}") from e

    async def search_text(self, collection: str, field_name: str, term: str) -> List[Record]:
        await self.ensure_connected()
        query = {field_name: {"$regex": re.escape(term), "$options": "i"}}
        try:
            docs = await self._collection(collection).find(query).to_list(length=None)
        except PyMongoError as e:
            logger.error("Text search on %s.%s failed: %s", collection, field_name, e)
            raise StoreError(f"Text search on {collection} failed: {e}") from e
        return [_to_record(doc) for doc in docs]

    async def batch_write(self, operations: Sequence[WriteOperation]) -> None:
        """Apply writes inside one transaction, grouped into a bulk write per collection."""
        grouped: Dict[str, list] = defaultdict(list)
        for op in operations:
            if op.kind == "insert":
                record_id = op.record_id or uuid4().hex
                doc = _to_document(op.data)
                doc["_id"] = record_id
                grouped[op.collection].append(
                    ReplaceOne({"_id": record_id}, doc, upsert=True)
                )
            elif op.kind == "update":
                update = build_update(op.data)
                if update:
                    grouped[op.collection].append(UpdateOne({"_id": op.record_id}, update))
            elif op.kind == "delete":
                grouped[op.collection].append(DeleteOne({"_id": op.record_id}))
            else:
                raise StoreError(f"Unknown write kind: {op.kind}")
        if not grouped:
            return

        await self.ensure_connected()
        try:
            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    for collection, requests in grouped.items():
                        await self._collection(collection).bulk_write(
                            requests, ordered=True, session=session
                        )
        except PyMongoError as e:
            logger.error("Batch write failed: %s", e)
            raise StoreError(f"Batch write failed: {e}") from e
        logger.debug("Applied batch of %d writes", len(operations))
