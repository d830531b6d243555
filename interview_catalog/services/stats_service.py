"""Recalculate the denormalized problem statistics stored on each company."""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from interview_catalog.models.bulk_models import StatsSweepError, StatsSweepResult
from interview_catalog.models.company_models import LastAskedPeriod
from interview_catalog.services import cache_tags
from interview_catalog.services.entity_store import (
    COMPANIES,
    PROBLEMS,
    EntityStore,
    FieldFilter,
    Record,
    WriteOperation,
)
from interview_catalog.services.query_cache import QueryCache
from interview_catalog.utils.errors import CatalogError, NotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_aggregates(problems: Iterable[Record], top_k: int = 7) -> Dict[str, Any]:
    """
    Difficulty counts, recency counts, top tags and total for a problem set.

    Problems without a recency bucket are left out of recencyCounts. Tags are
    ranked by count, ties keep the order in which the tag first appeared.
    """
    difficulty = {"Easy": 0, "Medium": 0, "Hard": 0}
    recency = {p.value: 0 for p in LastAskedPeriod}
    tag_counts: Counter = Counter()
    total = 0
    for problem in problems:
        total += 1
        level = problem.get("difficulty")
        if level in difficulty:
            difficulty[level] += 1
        period = problem.get("lastAskedPeriod")
        if period in recency:
            recency[period] += 1
        # Counter keeps insertion order, which is first-seen order here
        tag_counts.update(problem.get("tags") or [])

    ranked = sorted(tag_counts.items(), key=lambda item: -item[1])
    return {
        "difficultyCounts": difficulty,
        "recencyCounts": recency,
        "commonTags": [{"tag": tag, "count": count} for tag, count in ranked[:top_k]],
        "problemCount": total,
    }


class StatsRecalculator:
    """Recompute and persist company aggregates straight from the store."""

    def __init__(
        self,
        store: EntityStore,
        cache: QueryCache,
        top_k: int = 7,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.cache = cache
        self.top_k = top_k
        self._now = now

    async def _recalculate(self, company: Record) -> Dict[str, Any]:
        problems = await self.store.list(
            PROBLEMS,
            filters=[FieldFilter("companyId", "==", company["id"])],
            order_by="normalizedTitle",
        )
        aggregates = compute_aggregates(problems, self.top_k)
        aggregates["statsLastUpdatedAt"] = self._now()
        # One write so the four aggregates never disagree with each other
        await self.store.batch_write(
            [WriteOperation("update", COMPANIES, company["id"], aggregates)]
        )
        return aggregates

    async def recalculate_company(self, company_id: str) -> Dict[str, Any]:
        """Recalculate one company and drop its cached views."""
        company = await self.store.get(COMPANIES, company_id)
        if company is None:
            raise NotFoundError(f"Company with ID {company_id} not found.")
        aggregates = await self._recalculate(company)
        self.cache.invalidate_many(
            cache_tags.company_write_tags(company_id, [company.get("slug")])
        )
        return aggregates

    async def recalculate_all(self) -> StatsSweepResult:
        """Recalculate every company; one company's failure does not stop the sweep."""
        companies = await self.store.list(COMPANIES)
        if not companies:
            return StatsSweepResult(message="No companies found to update.")

        logger.info("Found %d companies. Processing stats...", len(companies))
        result = StatsSweepResult()
        tags: List[str] = []
        for company in companies:
            try:
                await self._recalculate(company)
            except CatalogError as e:
                logger.warning(
                    "Error updating stats for company %s (ID: %s): %s",
                    company.get("name"),
                    company["id"],
                    e,
                )
                result.errors.append(
                    StatsSweepError(
                        companyId=company["id"],
                        companyName=company.get("name") or "",
                        error=str(e),
                    )
                )
                continue
            result.updatedCount += 1
            tags.extend(cache_tags.company_write_tags(company["id"], [company.get("slug")]))

        if tags:
            self.cache.invalidate_many(tags)
        result.message = f"Successfully updated stats for {result.updatedCount} companies."
        if result.errors:
            result.message += f" {len(result.errors)} companies failed."
        logger.info(result.message)
        return result


def summarize(result: StatsSweepResult) -> Optional[str]:
    """Short one-line summary for CLI output."""
    if not result.errors:
        return result.message
    failed = ", ".join(e.companyName or e.companyId for e in result.errors)
    return f"{result.message} Failed: {failed}"
