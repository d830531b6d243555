"""
Abstract contract for the document store behind the catalog.

Focused, minimal surface shared by every backend:
- EntityStore: get/list/insert/update/delete/batch_write over named collections
- FieldFilter / WriteOperation: plain values describing queries and writes
- DELETE_FIELD: marker that removes an optional field in an update
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence

from interview_catalog.utils.errors import InvalidQueryError

Record = Dict[str, Any]

COMPANIES = "companies"
PROBLEMS = "problems"
BOOKMARKS = "bookmarks"
PROBLEM_STATUSES = "problemStatuses"
EDUCATION = "educationHistory"
WORK = "workExperience"
ADMINS = "admins"
STRATEGY_TODOS = "strategyTodoLists"
USERS = "users"

EQUALITY_OP = "=="
INEQUALITY_OPS = frozenset({"<", "<=", ">", ">="})

# Highest-sorting code point used for prefix range scans
MAX_SENTINEL = "\uf8ff"


class _DeleteField:
    """Singleton marker; an update value of DELETE_FIELD removes the field."""

    _instance: Optional["_DeleteField"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE_FIELD"

    def __copy__(self) -> "_DeleteField":
        return self

    def __deepcopy__(self, memo) -> "_DeleteField":
        return self


DELETE_FIELD = _DeleteField()


@dataclass(frozen=True)
class FieldFilter:
    """A single comparison on one field."""

    field: str
    op: str
    value: Any

    def matches(self, record: Record) -> bool:
        """Evaluate the filter against an in-memory record."""
        if self.field not in record or record[self.field] is None:
            return False
        current = record[self.field]
        if self.op == "==":
            return current == self.value
        try:
            if self.op == "<":
                return current < self.value
            if self.op == "<=":
                return current <= self.value
            if self.op == ">":
                return current > self.value
            if self.op == ">=":
                return current >= self.value
        except TypeError:
            return False
        raise InvalidQueryError(f"Unsupported filter operator: {self.op}")


@dataclass(frozen=True)
class WriteOperation:
    """One write inside an atomic batch."""

    kind: Literal["insert", "update", "delete"]
    collection: str
    record_id: Optional[str] = None
    data: Record = field(default_factory=dict)


def prefix_range(field_name: str, prefix: str) -> List[FieldFilter]:
    """Filters selecting values in [prefix, prefix + MAX_SENTINEL]."""
    return [
        FieldFilter(field_name, ">=", prefix),
        FieldFilter(field_name, "<=", prefix + MAX_SENTINEL),
    ]


def validate_query(filters: Sequence[FieldFilter], order_by: Optional[str]) -> None:
    """
    Reject query shapes a document store cannot serve from one index.

    Inequality filters must all target the same field, and when an order is
    requested alongside them it must be on that same field.
    """
    for f in filters:
        if f.op != EQUALITY_OP and f.op not in INEQUALITY_OPS:
            raise InvalidQueryError(f"Unsupported filter operator: {f.op}")

    range_fields = {f.field for f in filters if f.op in INEQUALITY_OPS}
    if len(range_fields) > 1:
        raise InvalidQueryError(
            f"Inequality filters on multiple fields are not supported: {sorted(range_fields)}"
        )
    if range_fields and order_by is not None:
        (range_field,) = range_fields
        if order_by != range_field:
            raise InvalidQueryError(
                f"Inequality filter on '{range_field}' requires ordering by "
                f"'{range_field}', not '{order_by}'"
            )


class EntityStore(ABC):
    """Interface for reading and writing catalog collections."""

    supports_text_search: bool = False

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> Optional[Record]:
        """Fetch one record by id (the id is included in the returned dict)."""

    @abstractmethod
    async def list(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        """List records matching every filter, ascending on order_by."""

    @abstractmethod
    async def insert(
        self, collection: str, data: Record, record_id: Optional[str] = None
    ) -> str:
        """Insert a record (replacing any record with the same id) and return its id."""

    @abstractmethod
    async def update(self, collection: str, record_id: str, partial: Record) -> None:
        """Apply a partial update; DELETE_FIELD values remove fields."""

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> None:
        """Delete a record if present."""

    async def search_text(self, collection: str, field_name: str, term: str) -> List[Record]:
        """Records whose field_name contains term, case-insensitively."""
        raise NotImplementedError(f"{type(self).__name__} has no text search")

    @abstractmethod
    async def batch_write(self, operations: Sequence[WriteOperation]) -> None:
        """Apply a group of writes atomically."""

    async def connect(self) -> None:
        """Open connections; no-op for in-process stores."""

    def disconnect(self) -> None:
        """Release connections; no-op for in-process stores."""
