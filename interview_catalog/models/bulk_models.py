"""Models for bulk reconciliation, stats sweeps and single-write results."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class RowStatus(str, Enum):
    """Outcome of reconciling one bulk row."""

    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"


class BulkRowResult(BaseModel):
    """One line of the bulk audit table."""

    rowIndex: int
    name: str
    status: RowStatus
    message: str


class BulkReconcileResult(BaseModel):
    """Aggregate counts plus the ordered per-row report."""

    addedCount: int = 0
    updatedCount: int = 0
    skippedCount: int = 0
    errorCount: int = 0
    detailedResults: List[BulkRowResult] = Field(default_factory=list)


class BulkReconcileRequest(BaseModel):
    """Decoded spreadsheet rows to reconcile."""

    rows: List[Dict[str, Any]] = Field(..., max_length=5000)


BulkKind = Literal["company", "problem"]


class StatsSweepError(BaseModel):
    """A company whose aggregate recalculation failed."""

    companyId: str
    companyName: str
    error: str


class StatsSweepResult(BaseModel):
    """Result of recalculating aggregates for every company."""

    updatedCount: int = 0
    errors: List[StatsSweepError] = Field(default_factory=list)
    message: str = ""


class OperationResult(BaseModel):
    """Outcome of a single-entity write, rendered directly by the UI."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    updated: Optional[bool] = None
    alreadyExists: Optional[bool] = None
    notFound: Optional[bool] = None


class RevalidateRequest(BaseModel):
    """Manual cache revalidation of one tag."""

    tag: str = Field(..., min_length=1)
    token: Optional[str] = None
