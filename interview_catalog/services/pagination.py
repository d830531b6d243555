"""Page-number and cursor pagination."""

import math
from dataclasses import dataclass
from typing import Any, Generic, List, Optional, Sequence, Tuple, TypeVar

from interview_catalog.services.entity_store import EntityStore, FieldFilter, Record
from interview_catalog.utils.errors import ValidationError

T = TypeVar("T")

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 50


@dataclass
class PageSlice(Generic[T]):
    """One page of a materialized list."""

    items: List[T]
    total_items: int
    total_pages: int
    current_page: int


@dataclass
class CursorSlice:
    """One cursor page of store records."""

    items: List[Record]
    has_more: bool
    next_cursor: Optional[str]


def clamp_page_size(page_size: Any, default: int, max_page_size: int = MAX_PAGE_SIZE) -> int:
    """Coerce a requested page size into [1, max_page_size]."""
    try:
        size = int(page_size)
    except (TypeError, ValueError):
        return default
    return max(MIN_PAGE_SIZE, min(size, max_page_size))


def paginate_page(
    items: Sequence[T], page: Any, page_size: int
) -> PageSlice[T]:
    """
    Slice an ordered list by page number.

    totalPages is at least 1 and the requested page is clamped into
    [1, totalPages]; the input order is kept as-is.
    """
    size = max(MIN_PAGE_SIZE, page_size)
    total_items = len(items)
    total_pages = max(1, math.ceil(total_items / size))
    try:
        current = int(page)
    except (TypeError, ValueError):
        current = 1
    current = max(1, min(current, total_pages))
    start = (current - 1) * size
    return PageSlice(
        items=list(items[start:start + size]),
        total_items=total_items,
        total_pages=total_pages,
        current_page=current,
    )


def validate_cursor_request(
    cursor: Any, page_size: Any, max_page_size: int = MAX_PAGE_SIZE
) -> Tuple[Optional[str], int]:
    """Reject non-string cursors and page sizes outside [1, max_page_size]."""
    if cursor is not None and not isinstance(cursor, str):
        raise ValidationError("Invalid cursor format")
    if (
        isinstance(page_size, bool)
        or not isinstance(page_size, int)
        or not MIN_PAGE_SIZE <= page_size <= max_page_size
    ):
        raise ValidationError(
            f"Invalid pageSize. Must be between {MIN_PAGE_SIZE} and {max_page_size}"
        )
    return (cursor or None), page_size


async def cursor_page(
    store: EntityStore,
    collection: str,
    key_field: str,
    cursor: Optional[str],
    page_size: int,
    filters: Sequence[FieldFilter] = (),
) -> CursorSlice:
    """
    Fetch up to page_size records with key_field strictly after cursor.

    One extra record is requested to learn whether another page exists.
    Records inserted before the cursor are never returned again, and records
    inserted after it are picked up by a later page.
    """
    query = list(filters)
    if cursor is not None:
        query.append(FieldFilter(key_field, ">", cursor))
    records = await store.list(
        collection, filters=query, order_by=key_field, limit=page_size + 1
    )
    has_more = len(records) > page_size
    items = records[:page_size]
    next_cursor = items[-1].get(key_field) if items else None
    return CursorSlice(items=items, has_more=has_more, next_cursor=next_cursor)
