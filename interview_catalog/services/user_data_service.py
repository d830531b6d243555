"""Per-user bookmarks, problem statuses, strategy lists, profile and background entries."""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from interview_catalog.models.bulk_models import OperationResult
from interview_catalog.models.problem_models import ProblemStatus
from interview_catalog.models.user_models import (
    BookmarkInfo,
    BookmarkToggleResponse,
    EducationExperience,
    ProblemStatusInfo,
    SavedStrategyTodoList,
    StatusUpdate,
    StrategySave,
    UserProfile,
    WorkExperience,
)
from interview_catalog.services import cache_tags
from interview_catalog.services.entity_store import (
    ADMINS,
    BOOKMARKS,
    EDUCATION,
    PROBLEM_STATUSES,
    STRATEGY_TODOS,
    USERS,
    WORK,
    EntityStore,
    FieldFilter,
)
from interview_catalog.services.query_cache import QueryCache
from interview_catalog.utils.errors import CatalogError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def user_record_id(user_id: str, problem_id: str) -> str:
    """Composite id of a user's record about one problem."""
    return f"{user_id}#{problem_id}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserDataService:
    """Reads are cached per user; every write drops that user's tags."""

    def __init__(
        self,
        store: EntityStore,
        cache: QueryCache,
        ttl: Optional[float] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.cache = cache
        self.ttl = ttl
        self._now = now

    async def _cached(self, operation: str, user_id: str, fn, **extra):
        args = {"user_id": user_id, **extra}
        return await self.cache.cached_read(
            cache_tags.cache_key(operation, args),
            cache_tags.tags_for(operation, args),
            self.ttl,
            fn,
        )

    @staticmethod
    def _require_user(user_id: str) -> None:
        if not user_id:
            raise ValidationError("User not authenticated.")

    # Bookmarks

    async def toggle_bookmark(
        self, user_id: str, problem_id: str, company_slug: str, problem_slug: str
    ) -> BookmarkToggleResponse:
        """Add the bookmark if absent, remove it otherwise."""
        try:
            self._require_user(user_id)
            record_id = user_record_id(user_id, problem_id)
            existing = await self.store.get(BOOKMARKS, record_id)
            if existing is not None:
                await self.store.delete(BOOKMARKS, record_id)
                bookmarked = False
            else:
                await self.store.insert(
                    BOOKMARKS,
                    {
                        "userId": user_id,
                        "problemId": problem_id,
                        "companySlug": company_slug,
                        "problemSlug": problem_slug,
                        "bookmarkedAt": self._now(),
                    },
                    record_id=record_id,
                )
                bookmarked = True
        except CatalogError as e:
            logger.error("Error toggling bookmark %s for %s: %s", problem_id, user_id, e)
            return BookmarkToggleResponse(success=False, error=str(e))
        self.cache.invalidate_many(
            [cache_tags.user_bookmarks_tag(user_id), cache_tags.user_profile_tag(user_id)]
        )
        return BookmarkToggleResponse(success=True, isBookmarked=bookmarked)

    async def get_bookmarks(self, user_id: str) -> List[BookmarkInfo]:
        """Bookmarks, newest first."""

        async def load() -> List[BookmarkInfo]:
            records = await self.store.list(
                BOOKMARKS, filters=[FieldFilter("userId", "==", user_id)]
            )
            items = [BookmarkInfo.model_validate(r) for r in records]
            return sorted(
                items,
                key=lambda b: b.bookmarkedAt or datetime.min.replace(tzinfo=timezone.utc),
                reverse=True,
            )

        return await self._cached("user_bookmarks", user_id, load)

    # Statuses

    async def set_status(
        self, user_id: str, problem_id: str, update: StatusUpdate
    ) -> OperationResult:
        """Store a status; NONE removes the stored record."""
        try:
            self._require_user(user_id)
            record_id = user_record_id(user_id, problem_id)
            if update.status == ProblemStatus.NONE:
                await self.store.delete(PROBLEM_STATUSES, record_id)
            else:
                await self.store.insert(
                    PROBLEM_STATUSES,
                    {
                        "userId": user_id,
                        "problemId": problem_id,
                        "status": update.status.value,
                        "companySlug": update.companySlug,
                        "problemSlug": update.problemSlug,
                        "updatedAt": self._now(),
                    },
                    record_id=record_id,
                )
        except CatalogError as e:
            logger.error("Error setting status of %s for %s: %s", problem_id, user_id, e)
            return OperationResult(success=False, error=str(e))
        self.cache.invalidate_many(
            [cache_tags.user_statuses_tag(user_id), cache_tags.user_profile_tag(user_id)]
        )
        return OperationResult(success=True, data={"problemId": problem_id, "status": update.status})

    async def get_statuses(self, user_id: str) -> Dict[str, ProblemStatusInfo]:
        """Stored statuses keyed by problem id; absent means none."""

        async def load() -> Dict[str, ProblemStatusInfo]:
            records = await self.store.list(
                PROBLEM_STATUSES, filters=[FieldFilter("userId", "==", user_id)]
            )
            return {r["problemId"]: ProblemStatusInfo.model_validate(r) for r in records}

        return await self._cached("user_statuses", user_id, load)

    # Education and work history

    async def add_education(self, user_id: str, entry: EducationExperience) -> OperationResult:
        return await self._add_profile_entry(EDUCATION, user_id, entry)

    async def add_work(self, user_id: str, entry: WorkExperience) -> OperationResult:
        return await self._add_profile_entry(WORK, user_id, entry)

    async def _add_profile_entry(self, collection: str, user_id: str, entry) -> OperationResult:
        try:
            self._require_user(user_id)
            data = entry.model_dump(exclude={"id", "createdAt"})
            data.update({"userId": user_id, "createdAt": self._now()})
            new_id = await self.store.insert(collection, data)
        except CatalogError as e:
            logger.error("Error adding %s entry for %s: %s", collection, user_id, e)
            return OperationResult(success=False, error=str(e))
        self.cache.invalidate(cache_tags.user_profile_tag(user_id))
        saved = entry.model_copy(update={"id": new_id, "createdAt": data["createdAt"]})
        return OperationResult(success=True, data=saved)

    async def get_education(self, user_id: str) -> List[EducationExperience]:
        return await self._cached(
            "user_education", user_id,
            lambda: self._list_profile(EDUCATION, user_id, EducationExperience),
        )

    async def get_work(self, user_id: str) -> List[WorkExperience]:
        return await self._cached(
            "user_work", user_id,
            lambda: self._list_profile(WORK, user_id, WorkExperience),
        )

    async def _list_profile(self, collection: str, user_id: str, model):
        records = await self.store.list(collection, filters=[FieldFilter("userId", "==", user_id)])
        items = [model.model_validate(r) for r in records]
        return sorted(
            items,
            key=lambda e: e.createdAt or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )

    # Strategy to-do lists, one per (user, company)

    def _drop_strategy_tags(self, user_id: str, company_id: str) -> None:
        self.cache.invalidate_many(
            [
                cache_tags.user_profile_tag(user_id),
                cache_tags.user_strategy_lists_tag(user_id),
                cache_tags.user_company_strategy_tag(company_id, user_id),
            ]
        )

    async def save_strategy(
        self, user_id: str, company_id: str, strategy: StrategySave
    ) -> OperationResult:
        """Replace the user's saved strategy for the company."""
        try:
            self._require_user(user_id)
            if not company_id:
                raise ValidationError("Company ID is required.")
            saved = SavedStrategyTodoList(
                companyId=company_id,
                companyName=strategy.companyName,
                savedAt=self._now(),
                preparationStrategy=strategy.preparationStrategy,
                focusTopics=strategy.focusTopics,
                items=strategy.todoItems,
            )
            data = saved.model_dump()
            data["userId"] = user_id
            await self.store.insert(
                STRATEGY_TODOS, data, record_id=user_record_id(user_id, company_id)
            )
        except CatalogError as e:
            logger.error("Error saving strategy for %s, company %s: %s", user_id, company_id, e)
            return OperationResult(success=False, error=str(e))
        self._drop_strategy_tags(user_id, company_id)
        return OperationResult(success=True, data=saved)

    async def get_strategy_lists(self, user_id: str) -> List[SavedStrategyTodoList]:
        """Saved strategies ordered by company name."""

        async def load() -> List[SavedStrategyTodoList]:
            records = await self.store.list(
                STRATEGY_TODOS, filters=[FieldFilter("userId", "==", user_id)]
            )
            items = [SavedStrategyTodoList.model_validate(r) for r in records]
            return sorted(items, key=lambda s: s.companyName)

        return await self._cached("user_strategy_lists", user_id, load)

    async def get_strategy_for_company(
        self, user_id: str, company_id: str
    ) -> Optional[SavedStrategyTodoList]:
        async def load() -> Optional[SavedStrategyTodoList]:
            record = await self.store.get(STRATEGY_TODOS, user_record_id(user_id, company_id))
            return SavedStrategyTodoList.model_validate(record) if record else None

        return await self._cached(
            "user_company_strategy", user_id, load, company_id=company_id
        )

    async def set_todo_item_completed(
        self, user_id: str, company_id: str, item_index: int, is_completed: bool
    ) -> OperationResult:
        """Mark one to-do item of a saved list done or not done."""
        try:
            self._require_user(user_id)
            if not company_id:
                raise ValidationError("Company ID is required.")
            if item_index < 0:
                raise ValidationError("Invalid item index.")
            record_id = user_record_id(user_id, company_id)
            record = await self.store.get(STRATEGY_TODOS, record_id)
            if record is None:
                raise NotFoundError("Todo list not found.")
            items = list(record.get("items") or [])
            if item_index >= len(items):
                raise ValidationError("Item index out of bounds.")
            items[item_index] = dict(items[item_index], isCompleted=is_completed)
            await self.store.update(
                STRATEGY_TODOS, record_id, {"items": items, "savedAt": self._now()}
            )
        except NotFoundError as e:
            logger.warning("No strategy list for %s, company %s", user_id, company_id)
            return OperationResult(success=False, error=str(e), notFound=True)
        except CatalogError as e:
            logger.error("Error updating todo item for %s, company %s: %s", user_id, company_id, e)
            return OperationResult(success=False, error=str(e))
        self._drop_strategy_tags(user_id, company_id)
        return OperationResult(
            success=True, data={"itemIndex": item_index, "isCompleted": is_completed}
        )

    # Profile record

    async def sync_profile(
        self, user_id: str, email: Optional[str], display_name: Optional[str]
    ) -> OperationResult:
        """
        Mirror the identity provider's email and display name into users/{user_id}.

        Creates the record on first sign-in; afterwards only changed fields
        are written, and nothing at all when both already match.
        """
        try:
            self._require_user(user_id)
            record = await self.store.get(USERS, user_id)
            if record is None:
                profile = UserProfile(
                    uid=user_id, email=email, displayName=display_name, createdAt=self._now()
                )
                await self.store.insert(USERS, profile.model_dump(), record_id=user_id)
            else:
                updates = {}
                if record.get("displayName") != display_name:
                    updates["displayName"] = display_name
                if record.get("email") != email:
                    updates["email"] = email
                if not updates:
                    return OperationResult(success=True, data=UserProfile.model_validate(record))
                await self.store.update(USERS, user_id, updates)
                profile = UserProfile.model_validate(dict(record, **updates))
        except CatalogError as e:
            logger.error("Error syncing profile of %s: %s", user_id, e)
            return OperationResult(success=False, error=str(e))
        self.cache.invalidate(cache_tags.user_profile_tag(user_id))
        return OperationResult(success=True, data=profile)

    async def update_display_name(self, user_id: str, display_name: str) -> OperationResult:
        try:
            self._require_user(user_id)
            name = (display_name or "").strip()
            if len(name) < 2:
                raise ValidationError("Display name must be at least 2 characters.")
            if await self.store.get(USERS, user_id) is None:
                raise NotFoundError("User profile not found.")
            await self.store.update(USERS, user_id, {"displayName": name})
        except NotFoundError as e:
            logger.warning("Display name update for unknown profile %s", user_id)
            return OperationResult(success=False, error=str(e), notFound=True)
        except CatalogError as e:
            logger.error("Error updating display name of %s: %s", user_id, e)
            return OperationResult(success=False, error=str(e))
        self.cache.invalidate(cache_tags.user_profile_tag(user_id))
        return OperationResult(success=True, data={"displayName": name})

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        async def load() -> Optional[UserProfile]:
            record = await self.store.get(USERS, user_id)
            return UserProfile.model_validate(record) if record else None

        return await self._cached("user_profile", user_id, load)

    # Admins

    async def is_admin(self, user_id: Optional[str]) -> bool:
        """True only when admins/{user_id} has isAdmin set to true."""
        if not user_id:
            return False
        record = await self.store.get(ADMINS, user_id)
        return bool(record) and record.get("isAdmin") is True
