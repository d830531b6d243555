"""In-process EntityStore backed by dictionaries, used for local runs and tests."""

import copy
import logging
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

from interview_catalog.services.entity_store import (
    DELETE_FIELD,
    EntityStore,
    FieldFilter,
    Record,
    WriteOperation,
    validate_query,
)
from interview_catalog.utils.errors import StoreError

logger = logging.getLogger(__name__)


def _apply_partial(record: Record, partial: Record) -> None:
    for key, value in partial.items():
        if value is DELETE_FIELD:
            record.pop(key, None)
        else:
            record[key] = copy.deepcopy(value)


class InMemoryEntityStore(EntityStore):
    """Dictionary-backed store; every read and write copies records."""

    def __init__(self, seed: Optional[Dict[str, List[Record]]] = None):
        self._collections: Dict[str, Dict[str, Record]] = {}
        self.read_count = 0
        for collection, records in (seed or {}).items():
            for record in records:
                data = dict(record)
                record_id = data.pop("id", None) or uuid4().hex
                self._table(collection)[record_id] = copy.deepcopy(data)

    def _table(self, collection: str) -> Dict[str, Record]:
        return self._collections.setdefault(collection, {})

    @staticmethod
    def _with_id(record_id: str, data: Record) -> Record:
        record = copy.deepcopy(data)
        record["id"] = record_id
        return record

    async def get(self, collection: str, record_id: str) -> Optional[Record]:
        self.read_count += 1
        data = self._table(collection).get(record_id)
        return self._with_id(record_id, data) if data is not None else None

    async def list(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        validate_query(filters, order_by)
        self.read_count += 1
        records = [
            self._with_id(record_id, data)
            for record_id, data in self._table(collection).items()
        ]
        records = [r for r in records if all(f.matches(r) for f in filters)]
        if order_by is not None:
            # Records without the field sort after every record that has it
            records.sort(
                key=lambda r: (r.get(order_by) is None, r.get(order_by))
            )
        if limit is not None:
            records = records[:limit]
        return records

    async def insert(
        self, collection: str, data: Record, record_id: Optional[str] = None
    ) -> str:
        new_id = record_id or uuid4().hex
        clean = {k: v for k, v in data.items() if k != "id" and v is not DELETE_FIELD}
        self._table(collection)[new_id] = copy.deepcopy(clean)
        return new_id

    async def update(self, collection: str, record_id: str, partial: Record) -> None:
        record = self._table(collection).get(record_id)
        if record is None:
            raise StoreError(f"No record '{record_id}' in '{collection}' to update")
        _apply_partial(record, partial)

    async def delete(self, collection: str, record_id: str) -> None:
        self._table(collection).pop(record_id, None)

    async def batch_write(self, operations: Sequence[WriteOperation]) -> None:
        # Stage against a copy so a failing operation leaves nothing applied
        staged = copy.deepcopy(self._collections)
        for op in operations:
            table = staged.setdefault(op.collection, {})
            if op.kind == "insert":
                table[op.record_id or uuid4().hex] = copy.deepcopy(
                    {k: v for k, v in op.data.items() if k != "id"}
                )
            elif op.kind == "update":
                if op.record_id not in table:
                    raise StoreError(
                        f"No record '{op.record_id}' in '{op.collection}' to update"
                    )
                _apply_partial(table[op.record_id], op.data)
            elif op.kind == "delete":
                table.pop(op.record_id, None)
            else:
                raise StoreError(f"Unknown write kind: {op.kind}")
        self._collections = staged
        logger.debug("Applied batch of %d writes", len(operations))
