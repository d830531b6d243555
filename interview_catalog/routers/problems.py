"""API router for problem-related endpoints."""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from interview_catalog.models.bulk_models import OperationResult
from interview_catalog.models.problem_models import (
    Problem,
    ProblemBatchRequest,
    ProblemCreate,
    ProblemInsights,
    ProblemWithCompany,
)
from interview_catalog.routers.auth import get_current_user
from interview_catalog.routers.common import http_error, result_status
from interview_catalog.services.ai_insights import AIInsightsService, get_ai_insights_service
from interview_catalog.services.catalog_service import CatalogService, get_catalog_service
from interview_catalog.utils.errors import CatalogError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/problems", response_model=OperationResult)
async def add_problem(
    problem: ProblemCreate,
    _current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    """
    Submit a problem for a company.

    Re-submitting a title the company already has updates that problem's
    last-asked period and reports updated=true; an unchanged resubmission
    reports alreadyExists=true and writes nothing.
    """
    result = await service.add_problem(problem)
    return JSONResponse(
        status_code=result_status(result, created=not (result.updated or result.alreadyExists)),
        content=result.model_dump(mode="json"),
    )


@router.post("/problems/batch", response_model=List[Problem])
async def get_problem_details_batch(
    request: ProblemBatchRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> List[Problem]:
    """Full records for a list of problem ids; ids with no problem are left out."""
    try:
        return await service.get_problem_details_batch(request.problemIds)
    except CatalogError as e:
        raise http_error(e) from e


@router.get("/problems/by-slug/{company_slug}/{problem_slug}", response_model=ProblemWithCompany)
async def get_problem_by_slugs(
    company_slug: str,
    problem_slug: str,
    service: CatalogService = Depends(get_catalog_service),
) -> ProblemWithCompany:
    try:
        found = await service.get_problem_by_slugs(company_slug, problem_slug)
    except CatalogError as e:
        raise http_error(e) from e
    if found.company is None or found.problem is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Problem '{problem_slug}' not found for company '{company_slug}'",
        )
    return found


@router.get("/problems/{problem_id}", response_model=Problem)
async def get_problem(
    problem_id: str, service: CatalogService = Depends(get_catalog_service)
) -> Problem:
    try:
        problem = await service.get_problem(problem_id)
    except CatalogError as e:
        raise http_error(e) from e
    if problem is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Problem with ID '{problem_id}' not found",
        )
    return problem


@router.post("/problems/{problem_id}/insights", response_model=ProblemInsights)
async def generate_problem_insights(
    problem_id: str,
    description: str = Body("", embed=True, max_length=4000),
    _current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
    ai_service: AIInsightsService = Depends(get_ai_insights_service),
) -> ProblemInsights:
    """Key concepts, data structures, algorithms and a hint for a problem."""
    try:
        problem = await service.get_problem(problem_id)
    except CatalogError as e:
        raise http_error(e) from e
    if problem is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Problem with ID '{problem_id}' not found",
        )
    return await ai_service.generate_insights(problem, description)
