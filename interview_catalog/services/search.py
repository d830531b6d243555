"""Company prefix search and in-memory problem filtering/sorting."""

from typing import Iterable, List, Optional, Sequence

from interview_catalog.models.problem_models import Problem, ProblemListFilters, ProblemStatus
from interview_catalog.services.entity_store import EntityStore, Record, prefix_range
from interview_catalog.utils.text import normalize_key

_DIFFICULTY_ORDER = {"Easy": 1, "Medium": 2, "Hard": 3}
_LAST_ASKED_ORDER = {
    "last_30_days": 1,
    "within_3_months": 2,
    "within_6_months": 3,
    "older_than_6_months": 4,
}
_UNRANKED = 1_000_000


def normalize_term(term: Optional[str]) -> str:
    return normalize_key(term)


async def prefix_search(
    store: EntityStore,
    collection: str,
    key_field: str,
    term: str,
    limit: Optional[int] = None,
) -> List[Record]:
    """Records whose key_field starts with term, ascending on key_field."""
    return await store.list(
        collection,
        filters=prefix_range(key_field, term),
        order_by=key_field,
        limit=limit,
    )


def description_matches(
    records: Iterable[Record], term: str, exclude_ids: Iterable[str] = ()
) -> List[Record]:
    """
    Records whose description contains term, case-insensitively.

    Records already matched by name (exclude_ids) are not checked again.
    """
    excluded = set(exclude_ids)
    return [
        r
        for r in records
        if r.get("id") not in excluded
        and term in (r.get("description") or "").lower()
    ]


def merge_sorted(
    primary: Sequence[Record], secondary: Sequence[Record], key_field: str
) -> List[Record]:
    """Union of both lists by id, ordered by key_field then id."""
    seen = {}
    for record in list(primary) + list(secondary):
        seen.setdefault(record.get("id"), record)
    return sorted(
        seen.values(), key=lambda r: (r.get(key_field) or "", r.get("id") or "")
    )


async def search_companies(
    store: EntityStore,
    collection: str,
    term: Optional[str],
    all_records: Sequence[Record],
) -> List[Record]:
    """
    Companies matching a search term.

    Name-prefix matches come from a range scan on normalizedName. Description
    containment comes from the store's text search when it has one, otherwise
    from an in-memory pass over all_records. Blank terms return all_records.
    """
    needle = normalize_term(term)
    if not needle:
        return list(all_records)
    by_name = await prefix_search(store, collection, "normalizedName", needle)
    name_ids = {r["id"] for r in by_name}
    if store.supports_text_search:
        by_text = await store.search_text(collection, "description", needle)
        by_description = [r for r in by_text if r.get("id") not in name_ids]
    else:
        by_description = description_matches(all_records, needle, exclude_ids=name_ids)
    return merge_sorted(by_name, by_description, "normalizedName")


def filter_problems(problems: Iterable[Problem], filters: ProblemListFilters) -> List[Problem]:
    """Apply difficulty, recency, status and text filters."""
    result = list(problems)
    if filters.difficultyFilter != "all":
        result = [p for p in result if p.difficulty.value == filters.difficultyFilter]
    if filters.lastAskedFilter != "all":
        result = [
            p
            for p in result
            if p.lastAskedPeriod is not None
            and p.lastAskedPeriod.value == filters.lastAskedFilter
        ]
    if filters.statusFilter != "all":
        wanted = ProblemStatus(filters.statusFilter)
        result = [p for p in result if (p.currentStatus or ProblemStatus.NONE) == wanted]
    needle = normalize_term(filters.searchTerm)
    if needle:
        result = [
            p
            for p in result
            if needle in p.title.lower() or any(needle in t.lower() for t in p.tags)
        ]
    return result


def sort_problems(problems: Iterable[Problem], sort_key: str) -> List[Problem]:
    """Stable ordering; ties fall back to title then id."""
    if sort_key == "difficulty":
        def key(p: Problem):
            return (_DIFFICULTY_ORDER.get(p.difficulty.value, _UNRANKED), p.title.lower(), p.id)
    elif sort_key == "lastAsked":
        def key(p: Problem):
            rank = (
                _LAST_ASKED_ORDER.get(p.lastAskedPeriod.value, _UNRANKED)
                if p.lastAskedPeriod
                else _UNRANKED
            )
            return (rank, p.title.lower(), p.id)
    else:
        def key(p: Problem):
            return (p.title.lower(), p.id)
    return sorted(problems, key=key)
