"""API router for company listings and company problem lists."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from interview_catalog.models.bulk_models import OperationResult
from interview_catalog.models.company_models import (
    Company,
    CompanyCreate,
    CompanyCursorPage,
    CompanyPage,
    CompanySuggestion,
    CursorRequest,
)
from interview_catalog.models.problem_models import ProblemListFilters, ProblemPage
from interview_catalog.routers.auth import get_current_user, get_optional_user
from interview_catalog.routers.common import http_error, result_status
from interview_catalog.services.catalog_service import CatalogService, get_catalog_service
from interview_catalog.utils.errors import CatalogError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/companies", response_model=CompanyPage)
async def list_companies(
    page: int = Query(1, description="1-based page number; clamped to the last page"),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1, le=50),
    search_term: Optional[str] = Query(None, alias="searchTerm"),
    service: CatalogService = Depends(get_catalog_service),
) -> CompanyPage:
    """
    Page through companies ordered by name.

    searchTerm matches a name prefix or any part of the description.
    """
    try:
        return await service.list_companies(page, page_size, search_term)
    except CatalogError as e:
        raise http_error(e) from e


@router.post("/companies/cursor", response_model=CompanyCursorPage)
async def list_companies_cursor(
    request: CursorRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> CompanyCursorPage:
    """Infinite-scroll page; pass the previous nextCursor to continue."""
    try:
        return await service.list_companies_cursor(
            request.cursor, request.pageSize, request.searchTerm
        )
    except CatalogError as e:
        raise http_error(e) from e


@router.get("/companies/suggestions", response_model=List[CompanySuggestion])
async def suggest_companies(
    q: str = Query("", description="Name prefix"),
    service: CatalogService = Depends(get_catalog_service),
) -> List[CompanySuggestion]:
    try:
        return await service.suggest_companies(q)
    except CatalogError as e:
        raise http_error(e) from e


@router.get("/companies/slugs", response_model=List[str])
async def all_company_slugs(
    service: CatalogService = Depends(get_catalog_service),
) -> List[str]:
    try:
        return await service.all_company_slugs()
    except CatalogError as e:
        raise http_error(e) from e


@router.get("/companies/slug/{slug}", response_model=Company)
async def get_company_by_slug(
    slug: str, service: CatalogService = Depends(get_catalog_service)
) -> Company:
    try:
        company = await service.get_company_by_slug(slug)
    except CatalogError as e:
        raise http_error(e) from e
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Company with slug '{slug}' not found",
        )
    return company


@router.get("/companies/{company_id}", response_model=Company)
async def get_company(
    company_id: str, service: CatalogService = Depends(get_catalog_service)
) -> Company:
    try:
        company = await service.get_company(company_id)
    except CatalogError as e:
        raise http_error(e) from e
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Company with ID '{company_id}' not found",
        )
    return company


@router.post("/companies", response_model=OperationResult)
async def add_company(
    company: CompanyCreate,
    _current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    """Add a single company; a taken slug is reported with alreadyExists."""
    result = await service.add_company(company)
    return JSONResponse(
        status_code=result_status(result, created=True),
        content=result.model_dump(mode="json"),
    )


@router.get("/companies/{company_id}/problems", response_model=ProblemPage)
async def list_problems_for_company(
    company_id: str,
    page: int = Query(1),
    page_size: int = Query(10, alias="pageSize", ge=1, le=50),
    filters: ProblemListFilters = Depends(),
    current_user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    service: CatalogService = Depends(get_catalog_service),
) -> ProblemPage:
    """
    A company's problems, filtered, sorted and paginated.

    Signed-in users also get isBookmarked and currentStatus on each problem,
    and may filter by status.
    """
    try:
        if await service.get_company(company_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Company with ID '{company_id}' not found",
            )
        return await service.list_problems_for_company(
            company_id,
            page,
            page_size,
            filters,
            user_id=current_user["user_id"] if current_user else None,
        )
    except CatalogError as e:
        raise http_error(e) from e
