"""Shared helpers for turning catalog errors into HTTP responses."""

import logging

from fastapi import HTTPException, status

from interview_catalog.models.bulk_models import OperationResult
from interview_catalog.utils.errors import (
    CatalogError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def http_error(e: CatalogError) -> HTTPException:
    """Map a catalog error onto an HTTPException."""
    if isinstance(e, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(e, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(e, ConfigurationError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(e, StoreError):
        logger.error("Store failure: %s", e)
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(e))


def result_status(result: OperationResult, created: bool = False) -> int:
    """Status code for a single-write result."""
    if result.success:
        return status.HTTP_201_CREATED if created else status.HTTP_200_OK
    if result.notFound:
        return status.HTTP_404_NOT_FOUND
    if result.alreadyExists:
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST
