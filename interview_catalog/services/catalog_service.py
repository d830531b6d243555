"""
Catalog data access for companies and problems.

- CachedCatalogReader: every read goes through the QueryCache
- CatalogWriter: single-entity writes that invalidate the tags they touch
- CatalogService: facade over the reader, writer, bulk reconciliation,
  stats recalculation and user data
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from interview_catalog.models.bulk_models import (
    BulkKind,
    BulkReconcileResult,
    OperationResult,
    StatsSweepResult,
)
from interview_catalog.models.company_models import (
    Company,
    CompanyCreate,
    CompanyCursorPage,
    CompanyPage,
    CompanySuggestion,
)
from interview_catalog.models.problem_models import (
    Problem,
    ProblemCreate,
    ProblemListFilters,
    ProblemPage,
    ProblemStatus,
    ProblemWithCompany,
)
from interview_catalog.services import cache_tags
from interview_catalog.services.entity_store import (
    COMPANIES,
    PROBLEMS,
    EntityStore,
    FieldFilter,
    Record,
    prefix_range,
)
from interview_catalog.services.memory_store import InMemoryEntityStore
from interview_catalog.services.mongo_store import MongoEntityStore
from interview_catalog.services.pagination import (
    MAX_PAGE_SIZE,
    clamp_page_size,
    cursor_page,
    paginate_page,
    validate_cursor_request,
)
from interview_catalog.services.query_cache import QueryCache
from interview_catalog.services.reconciliation import (
    ReconciliationEngine,
    empty_company_stats,
)
from interview_catalog.services.search import (
    filter_problems,
    normalize_term,
    prefix_search,
    search_companies,
    sort_problems,
)
from interview_catalog.services.stats_service import StatsRecalculator
from interview_catalog.services.user_data_service import UserDataService
from interview_catalog.utils.config import Settings, get_settings
from interview_catalog.utils.errors import CatalogError, NotFoundError, ValidationError
from interview_catalog.utils.text import (
    ensure_scheme,
    is_absolute_http_url,
    normalize_key,
    slugify,
)

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 5


class CachedCatalogReader:
    """Read operations over companies and problems, memoized by tag."""

    def __init__(
        self,
        store: EntityStore,
        cache: QueryCache,
        ttl: Optional[float] = None,
        default_page_size: int = 9,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.store = store
        self.cache = cache
        self.ttl = ttl
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def _cached(
        self, operation: str, args: Dict[str, Any], fn: Callable[[], Awaitable[Any]]
    ) -> Any:
        return await self.cache.cached_read(
            cache_tags.cache_key(operation, args),
            cache_tags.tags_for(operation, args),
            self.ttl,
            fn,
        )

    async def _all_companies(self) -> List[Record]:
        return await self._cached(
            "list_companies",
            {"searchTerm": ""},
            lambda: self.store.list(COMPANIES, order_by="normalizedName"),
        )

    async def search_company_records(self, search_term: Optional[str]) -> List[Record]:
        """All companies matching the term, ordered by normalized name."""
        term = normalize_term(search_term)
        if not term:
            return await self._all_companies()

        async def load() -> List[Record]:
            # Snapshot taken inside the load so an invalidation after scheduling is seen
            all_records = await self._all_companies()
            return await search_companies(self.store, COMPANIES, term, all_records)

        return await self._cached("list_companies", {"searchTerm": term}, load)

    async def list_companies(
        self, page: Any = 1, page_size: Any = None, search_term: Optional[str] = None
    ) -> CompanyPage:
        size = clamp_page_size(
            page_size if page_size is not None else self.default_page_size,
            self.default_page_size,
            self.max_page_size,
        )
        records = await self.search_company_records(search_term)
        page_slice = paginate_page(records, page, size)
        return CompanyPage(
            items=[Company.model_validate(r) for r in page_slice.items],
            totalItems=page_slice.total_items,
            totalPages=page_slice.total_pages,
            currentPage=page_slice.current_page,
        )

    async def list_companies_cursor(
        self, cursor: Any = None, page_size: Any = 9, search_term: Optional[str] = None
    ) -> CompanyCursorPage:
        """Infinite-scroll page keyed on normalizedName."""
        cursor, size = validate_cursor_request(cursor, page_size, self.max_page_size)
        term = normalize_term(search_term)
        filters = prefix_range("normalizedName", term) if term else []
        args = {"cursor": cursor, "pageSize": size, "searchTerm": term}

        async def load() -> CompanyCursorPage:
            page = await cursor_page(
                self.store, COMPANIES, "normalizedName", cursor, size, filters
            )
            return CompanyCursorPage(
                items=[Company.model_validate(r) for r in page.items],
                hasMore=page.has_more,
                nextCursor=page.next_cursor,
            )

        return await self._cached("list_companies_cursor", args, load)

    async def suggest_companies(
        self, search_term: Optional[str], limit: int = SUGGESTION_LIMIT
    ) -> List[CompanySuggestion]:
        term = normalize_term(search_term)
        if not term:
            return []

        async def load() -> List[CompanySuggestion]:
            records = await prefix_search(self.store, COMPANIES, "normalizedName", term, limit)
            return [CompanySuggestion.model_validate(r) for r in records]

        return await self._cached("suggest_companies", {"searchTerm": term, "limit": limit}, load)

    async def get_company(self, company_id: str) -> Optional[Company]:
        async def load() -> Optional[Company]:
            record = await self.store.get(COMPANIES, company_id)
            return Company.model_validate(record) if record else None

        return await self._cached("get_company", {"company_id": company_id}, load)

    async def get_company_by_slug(self, slug: str) -> Optional[Company]:
        async def load() -> Optional[Company]:
            records = await self.store.list(
                COMPANIES, filters=[FieldFilter("slug", "==", slug)], limit=1
            )
            return Company.model_validate(records[0]) if records else None

        return await self._cached("get_company_by_slug", {"slug": slug}, load)

    async def all_company_slugs(self) -> List[str]:
        records = await self._all_companies()
        return [r["slug"] for r in records if r.get("slug")]

    async def _problems_for_company(self, company_id: str) -> List[Problem]:
        async def load() -> List[Problem]:
            records = await self.store.list(
                PROBLEMS,
                filters=[FieldFilter("companyId", "==", company_id)],
                order_by="normalizedTitle",
            )
            return [Problem.model_validate(r) for r in records]

        return await self._cached(
            "list_problems_for_company", {"company_id": company_id}, load
        )

    async def list_problems_for_company(
        self,
        company_id: str,
        page: Any = 1,
        page_size: Any = 10,
        filters: Optional[ProblemListFilters] = None,
        user_id: Optional[str] = None,
        user_data: Optional[UserDataService] = None,
    ) -> ProblemPage:
        """
        Filter, sort and paginate a company's problems.

        With a user, each problem carries isBookmarked and currentStatus, and
        the status filter applies to that user's statuses.
        """
        filters = filters or ProblemListFilters()
        size = clamp_page_size(page_size, self.default_page_size, self.max_page_size)
        problems = await self._problems_for_company(company_id)
        if user_id and user_data is not None:
            problems = await augment_problems(problems, user_id, user_data)
        selected = sort_problems(filter_problems(problems, filters), filters.sortKey)
        page_slice = paginate_page(selected, page, size)
        return ProblemPage(
            items=page_slice.items,
            totalItems=page_slice.total_items,
            totalPages=page_slice.total_pages,
            currentPage=page_slice.current_page,
        )

    async def get_problem(self, problem_id: str) -> Optional[Problem]:
        async def load() -> Optional[Problem]:
            record = await self.store.get(PROBLEMS, problem_id)
            return Problem.model_validate(record) if record else None

        return await self._cached("get_problem", {"problem_id": problem_id}, load)

    async def get_problem_details_batch(self, problem_ids: List[str]) -> List[Problem]:
        """Problems for the given ids in input order; unknown ids are dropped."""
        if not problem_ids:
            return []
        problems = await asyncio.gather(*(self.get_problem(pid) for pid in problem_ids))
        return [p for p in problems if p is not None]

    async def get_problem_by_slugs(
        self, company_slug: str, problem_slug: str
    ) -> ProblemWithCompany:
        company = await self.get_company_by_slug(company_slug)
        if company is None:
            return ProblemWithCompany()

        async def load() -> Optional[Problem]:
            records = await self.store.list(
                PROBLEMS,
                filters=[
                    FieldFilter("companyId", "==", company.id),
                    FieldFilter("slug", "==", problem_slug),
                ],
                limit=1,
            )
            return Problem.model_validate(records[0]) if records else None

        problem = await self._cached(
            "get_problem_by_slugs",
            {"company_slug": company_slug, "problem_slug": problem_slug},
            load,
        )
        return ProblemWithCompany(company=company, problem=problem)


async def augment_problems(
    problems: List[Problem], user_id: str, user_data: UserDataService
) -> List[Problem]:
    """Copies of problems carrying the user's bookmark flag and status."""
    bookmarks = {b.problemId for b in await user_data.get_bookmarks(user_id)}
    statuses = await user_data.get_statuses(user_id)
    return [
        p.model_copy(
            update={
                "isBookmarked": p.id in bookmarks,
                "currentStatus": statuses[p.id].status if p.id in statuses else ProblemStatus.NONE,
            }
        )
        for p in problems
    ]


class CatalogWriter:
    """Single-entity writes; failures come back as OperationResult."""

    def __init__(self, store: EntityStore, cache: QueryCache):
        self.store = store
        self.cache = cache

    async def add_company(self, company: CompanyCreate) -> OperationResult:
        """Add a company unless its slug is already taken."""
        try:
            name = company.name.strip()
            if not name:
                raise ValidationError("Company name is required.")
            slug = slugify(name)
            if not slug:
                raise ValidationError(f'Company name "{name}" has no letters or digits.')
            website = ensure_scheme((company.website or "").strip())
            logo = ensure_scheme((company.logo or "").strip())
            if website and not is_absolute_http_url(website):
                raise ValidationError(
                    f"Invalid website URL: {website}. Ensure it includes http:// or https://."
                )
            if logo and not is_absolute_http_url(logo):
                raise ValidationError(
                    f"Invalid logo URL: {logo}. Ensure it includes http:// or https://."
                )

            clash = await self.store.list(
                COMPANIES, filters=[FieldFilter("slug", "==", slug)], limit=1
            )
            if clash:
                return OperationResult(
                    success=False,
                    error=f'Company with name "{name}" (slug: {slug}) already exists.',
                    alreadyExists=True,
                )

            record: Record = {
                "name": name,
                "normalizedName": normalize_key(name),
                "slug": slug,
                **empty_company_stats(),
            }
            description = (company.description or "").strip()
            for key, value in (("logo", logo), ("description", description), ("website", website)):
                if value:
                    record[key] = value
            new_id = await self.store.insert(COMPANIES, record)
        except CatalogError as e:
            logger.error("Error adding company %r: %s", company.name, e)
            return OperationResult(success=False, error=str(e))

        self.cache.invalidate_many(cache_tags.company_write_tags(new_id, [slug]))
        logger.info("Added company %s (%s)", name, new_id)
        return OperationResult(success=True, data=Company.model_validate({**record, "id": new_id}))

    async def add_problem(self, problem: ProblemCreate) -> OperationResult:
        """
        Add a problem under an existing company.

        A title already present under that company (case-insensitively)
        updates the existing record's recency bucket instead.
        """
        try:
            title = problem.title.strip()
            if not title:
                raise ValidationError("Problem title is required.")
            link = problem.link.strip()
            if not link.lower().startswith(("http://", "https://")) or not is_absolute_http_url(link):
                raise ValidationError(
                    "Invalid problem link format. Must start with http:// or https://."
                )
            company = await self.store.get(COMPANIES, problem.companyId)
            if company is None:
                raise NotFoundError(f"Company with ID {problem.companyId} not found.")

            normalized = normalize_key(title)
            existing = await self.store.list(
                PROBLEMS,
                filters=[
                    FieldFilter("companyId", "==", problem.companyId),
                    FieldFilter("normalizedTitle", "==", normalized),
                ],
                limit=1,
            )
            period = problem.lastAskedPeriod.value if problem.lastAskedPeriod else None
            if existing:
                record = existing[0]
                problem_id = record["id"]
                updated = bool(period) and record.get("lastAskedPeriod") != period
                if not updated:
                    return OperationResult(
                        success=True,
                        data=Problem.model_validate(record),
                        updated=False,
                        alreadyExists=True,
                    )
                await self.store.update(PROBLEMS, problem_id, {"lastAskedPeriod": period})
                record["lastAskedPeriod"] = period
            else:
                updated = False
                record = {
                    "title": title,
                    "normalizedTitle": normalized,
                    "slug": slugify(title),
                    "difficulty": problem.difficulty.value,
                    "link": link,
                    "tags": [t.strip() for t in problem.tags if t.strip()],
                    "companyId": problem.companyId,
                    "companySlug": company["slug"],
                }
                if period:
                    record["lastAskedPeriod"] = period
                problem_id = await self.store.insert(PROBLEMS, record)
        except NotFoundError as e:
            logger.warning("Error adding problem %r: %s", problem.title, e)
            return OperationResult(success=False, error=str(e), notFound=True)
        except CatalogError as e:
            logger.error("Error adding problem %r: %s", problem.title, e)
            return OperationResult(success=False, error=str(e))

        tags = cache_tags.problem_write_tags(problem.companyId, company["slug"])
        tags.append(cache_tags.problem_detail_tag(problem_id))
        self.cache.invalidate_many(tags)
        return OperationResult(
            success=True,
            data=Problem.model_validate({**record, "id": problem_id}),
            updated=updated,
        )

    def revalidate(self, tag: str) -> int:
        """Manually invalidate one cache tag."""
        removed = self.cache.invalidate(tag)
        logger.info("Revalidated tag %s (%d entries dropped)", tag, removed)
        return removed


class CatalogService:
    """Facade composing catalog reads, writes, bulk import, stats and user data."""

    def __init__(
        self,
        store: EntityStore,
        cache: Optional[QueryCache] = None,
        settings: Optional[Settings] = None,
    ):
        ttl = settings.cache_ttl_seconds if settings else None
        self.store = store
        self.cache = cache or QueryCache(default_ttl=ttl or 3600.0)
        self.reader = CachedCatalogReader(
            store,
            self.cache,
            ttl=ttl,
            default_page_size=settings.default_page_size if settings else 9,
            max_page_size=settings.max_page_size if settings else MAX_PAGE_SIZE,
        )
        self.writer = CatalogWriter(store, self.cache)
        self.reconciler = ReconciliationEngine(store, self.cache)
        self.stats = StatsRecalculator(
            store, self.cache, top_k=settings.top_tag_count if settings else 7
        )
        self.user_data = UserDataService(store, self.cache, ttl=ttl)

    async def connect(self) -> None:
        await self.store.connect()

    def disconnect(self) -> None:
        self.store.disconnect()

    # Reads

    async def list_companies(
        self, page: Any = 1, page_size: Any = None, search_term: Optional[str] = None
    ) -> CompanyPage:
        return await self.reader.list_companies(page, page_size, search_term)

    async def list_companies_cursor(
        self, cursor: Any = None, page_size: Any = 9, search_term: Optional[str] = None
    ) -> CompanyCursorPage:
        return await self.reader.list_companies_cursor(cursor, page_size, search_term)

    async def suggest_companies(self, search_term: Optional[str]) -> List[CompanySuggestion]:
        return await self.reader.suggest_companies(search_term)

    async def get_company(self, company_id: str) -> Optional[Company]:
        return await self.reader.get_company(company_id)

    async def get_company_by_slug(self, slug: str) -> Optional[Company]:
        return await self.reader.get_company_by_slug(slug)

    async def all_company_slugs(self) -> List[str]:
        return await self.reader.all_company_slugs()

    async def list_problems_for_company(
        self,
        company_id: str,
        page: Any = 1,
        page_size: Any = 10,
        filters: Optional[ProblemListFilters] = None,
        user_id: Optional[str] = None,
    ) -> ProblemPage:
        return await self.reader.list_problems_for_company(
            company_id, page, page_size, filters, user_id, self.user_data
        )

    async def get_problem(self, problem_id: str) -> Optional[Problem]:
        return await self.reader.get_problem(problem_id)

    async def get_problem_details_batch(self, problem_ids: List[str]) -> List[Problem]:
        return await self.reader.get_problem_details_batch(problem_ids)

    async def get_problem_by_slugs(self, company_slug: str, problem_slug: str) -> ProblemWithCompany:
        return await self.reader.get_problem_by_slugs(company_slug, problem_slug)

    # Writes

    async def add_company(self, company: CompanyCreate) -> OperationResult:
        return await self.writer.add_company(company)

    async def add_problem(self, problem: ProblemCreate) -> OperationResult:
        return await self.writer.add_problem(problem)

    async def bulk_reconcile(self, kind: BulkKind, rows: List[Dict[str, Any]]) -> BulkReconcileResult:
        return await self.reconciler.reconcile(kind, rows)

    async def recalculate_all_aggregates(self) -> StatsSweepResult:
        return await self.stats.recalculate_all()

    def revalidate(self, tag: str) -> int:
        return self.writer.revalidate(tag)


def build_store(settings: Settings) -> EntityStore:
    """Store backend named by STORE_BACKEND."""
    if settings.store_backend == "memory":
        return InMemoryEntityStore()
    return MongoEntityStore(settings)


_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create the process-wide catalog service."""
    global _catalog_service
    if _catalog_service is None:
        settings = get_settings()
        _catalog_service = CatalogService(build_store(settings), settings=settings)
    return _catalog_service
