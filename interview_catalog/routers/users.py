"""API router for the signed-in user's bookmarks, progress, strategies, profile and background."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from interview_catalog.models.bulk_models import OperationResult
from interview_catalog.models.user_models import (
    BookmarkInfo,
    BookmarkRequest,
    BookmarkToggleResponse,
    DisplayNameUpdate,
    EducationExperience,
    ProblemStatusInfo,
    ProfileSync,
    SavedStrategyTodoList,
    StatusUpdate,
    StrategySave,
    TodoItemUpdate,
    UserProfile,
    WorkExperience,
)
from interview_catalog.routers.auth import get_current_user
from interview_catalog.routers.common import http_error, result_status
from interview_catalog.services.catalog_service import CatalogService, get_catalog_service
from interview_catalog.utils.errors import CatalogError

logger = logging.getLogger(__name__)
router = APIRouter()


def _json(result: OperationResult, created: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=result_status(result, created=created),
        content=result.model_dump(mode="json"),
    )


@router.get("/me/bookmarks", response_model=List[BookmarkInfo])
async def get_bookmarks(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> List[BookmarkInfo]:
    try:
        return await service.user_data.get_bookmarks(current_user["user_id"])
    except CatalogError as e:
        raise http_error(e) from e


@router.post("/me/bookmarks/{problem_id}", response_model=BookmarkToggleResponse)
async def toggle_bookmark(
    problem_id: str,
    request: BookmarkRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    """Bookmark the problem, or remove the bookmark if it exists."""
    result = await service.user_data.toggle_bookmark(
        current_user["user_id"], problem_id, request.companySlug, request.problemSlug
    )
    return JSONResponse(
        status_code=200 if result.success else 400,
        content=result.model_dump(mode="json"),
    )


@router.get("/me/statuses", response_model=Dict[str, ProblemStatusInfo])
async def get_statuses(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> Dict[str, ProblemStatusInfo]:
    try:
        return await service.user_data.get_statuses(current_user["user_id"])
    except CatalogError as e:
        raise http_error(e) from e


@router.put("/me/statuses/{problem_id}", response_model=OperationResult)
async def set_status(
    problem_id: str,
    update: StatusUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    """Set todo/attempted/solved; 'none' clears the stored status."""
    result = await service.user_data.set_status(current_user["user_id"], problem_id, update)
    return _json(result)


@router.get("/me/education", response_model=List[EducationExperience])
async def get_education(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> List[EducationExperience]:
    try:
        return await service.user_data.get_education(current_user["user_id"])
    except CatalogError as e:
        raise http_error(e) from e


@router.post("/me/education", response_model=OperationResult)
async def add_education(
    entry: EducationExperience,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    result = await service.user_data.add_education(current_user["user_id"], entry)
    return _json(result, created=True)


@router.get("/me/work", response_model=List[WorkExperience])
async def get_work(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> List[WorkExperience]:
    try:
        return await service.user_data.get_work(current_user["user_id"])
    except CatalogError as e:
        raise http_error(e) from e


@router.post("/me/work", response_model=OperationResult)
async def add_work(
    entry: WorkExperience,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    result = await service.user_data.add_work(current_user["user_id"], entry)
    return _json(result, created=True)


@router.get("/me/strategies", response_model=List[SavedStrategyTodoList])
async def get_strategy_lists(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> List[SavedStrategyTodoList]:
    try:
        return await service.user_data.get_strategy_lists(current_user["user_id"])
    except CatalogError as e:
        raise http_error(e) from e


@router.get("/me/strategies/{company_id}", response_model=Optional[SavedStrategyTodoList])
async def get_strategy_for_company(
    company_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> Optional[SavedStrategyTodoList]:
    """The saved strategy for the company, or null when none was saved."""
    try:
        return await service.user_data.get_strategy_for_company(
            current_user["user_id"], company_id
        )
    except CatalogError as e:
        raise http_error(e) from e


@router.put("/me/strategies/{company_id}", response_model=OperationResult)
async def save_strategy(
    company_id: str,
    strategy: StrategySave,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    result = await service.user_data.save_strategy(current_user["user_id"], company_id, strategy)
    return _json(result)


@router.patch("/me/strategies/{company_id}/items/{item_index}", response_model=OperationResult)
async def set_todo_item_completed(
    company_id: str,
    item_index: int,
    update: TodoItemUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    result = await service.user_data.set_todo_item_completed(
        current_user["user_id"], company_id, item_index, update.isCompleted
    )
    return _json(result)


@router.get("/me/profile", response_model=Optional[UserProfile])
async def get_profile(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> Optional[UserProfile]:
    try:
        return await service.user_data.get_profile(current_user["user_id"])
    except CatalogError as e:
        raise http_error(e) from e


@router.post("/me/profile/sync", response_model=OperationResult)
async def sync_profile(
    identity: ProfileSync,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    """Create or refresh the profile record from the sign-in provider's fields."""
    result = await service.user_data.sync_profile(
        current_user["user_id"], identity.email, identity.displayName
    )
    return _json(result)


@router.put("/me/profile/display-name", response_model=OperationResult)
async def update_display_name(
    update: DisplayNameUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    result = await service.user_data.update_display_name(
        current_user["user_id"], update.displayName
    )
    return _json(result)
