"""API router for admin-only bulk import, stats and cache maintenance."""

import hmac
import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from interview_catalog.models.bulk_models import (
    BulkReconcileRequest,
    BulkReconcileResult,
    RevalidateRequest,
    StatsSweepResult,
)
from interview_catalog.routers.auth import require_admin
from interview_catalog.routers.common import http_error
from interview_catalog.services.catalog_service import CatalogService, get_catalog_service
from interview_catalog.utils.config import Settings, get_settings
from interview_catalog.utils.errors import CatalogError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/admin/bulk/companies", response_model=BulkReconcileResult)
async def bulk_reconcile_companies(
    request: BulkReconcileRequest,
    _admin: Dict[str, Any] = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
) -> BulkReconcileResult:
    """
    Add or update companies from decoded spreadsheet rows.

    Each row has name plus optional logo, description and website. The
    response lists every row with its status and message.
    """
    try:
        return await service.bulk_reconcile("company", request.rows)
    except CatalogError as e:
        raise http_error(e) from e


@router.post("/admin/bulk/problems", response_model=BulkReconcileResult)
async def bulk_reconcile_problems(
    request: BulkReconcileRequest,
    _admin: Dict[str, Any] = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
) -> BulkReconcileResult:
    """Add or update problems; rows carry title, difficulty, link, tags, companyName, lastAskedPeriod."""
    try:
        return await service.bulk_reconcile("problem", request.rows)
    except CatalogError as e:
        raise http_error(e) from e


@router.post("/admin/stats/recalculate", response_model=StatsSweepResult)
async def recalculate_all_aggregates(
    _admin: Dict[str, Any] = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
) -> StatsSweepResult:
    """Recompute problem statistics for every company."""
    try:
        return await service.recalculate_all_aggregates()
    except CatalogError as e:
        raise http_error(e) from e


@router.post("/admin/stats/{company_id}/recalculate")
async def recalculate_company(
    company_id: str,
    _admin: Dict[str, Any] = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
) -> Dict[str, Any]:
    try:
        return await service.stats.recalculate_company(company_id)
    except CatalogError as e:
        raise http_error(e) from e


@router.post("/admin/revalidate")
async def revalidate(
    request: RevalidateRequest,
    service: CatalogService = Depends(get_catalog_service),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Drop every cached read carrying a tag; requires REVALIDATION_TOKEN."""
    expected = settings.revalidation_token
    if not expected or not request.token or not hmac.compare_digest(request.token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
    removed = service.revalidate(request.tag)
    return {"revalidated": True, "tag": request.tag, "entries": removed, "now": int(time.time() * 1000)}
