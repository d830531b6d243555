"""Models for company data and company listings."""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class Difficulty(str, Enum):
    """Problem difficulty buckets."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class LastAskedPeriod(str, Enum):
    """When a problem was reportedly last asked."""

    LAST_30_DAYS = "last_30_days"
    WITHIN_3_MONTHS = "within_3_months"
    WITHIN_6_MONTHS = "within_6_months"
    OLDER_THAN_6_MONTHS = "older_than_6_months"


class DifficultyCounts(BaseModel):
    """Denormalized problem counts per difficulty."""

    Easy: int = 0
    Medium: int = 0
    Hard: int = 0


class RecencyCounts(BaseModel):
    """Denormalized problem counts per last-asked period."""

    last_30_days: int = 0
    within_3_months: int = 0
    within_6_months: int = 0
    older_than_6_months: int = 0


class TagCount(BaseModel):
    """A tag and how many of a company's problems carry it."""

    tag: str
    count: int = Field(ge=0)


class Company(BaseModel):
    """Company record as stored in the companies collection."""

    id: str
    name: str
    normalizedName: str
    slug: str
    logo: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    problemCount: int = 0
    difficultyCounts: Optional[DifficultyCounts] = None
    recencyCounts: Optional[RecencyCounts] = None
    commonTags: List[TagCount] = Field(default_factory=list)
    statsLastUpdatedAt: Optional[datetime] = None


class CompanyCreate(BaseModel):
    """Request model for adding a single company."""

    name: str = Field(..., min_length=1, max_length=200)
    logo: Optional[str] = None
    description: Optional[str] = Field(None, max_length=2000)
    website: Optional[str] = None


class CompanySuggestion(BaseModel):
    """Lightweight company entry for search-as-you-type."""

    id: str
    name: str
    slug: str
    logo: Optional[str] = None


class CompanyPage(BaseModel):
    """Page-number listing of companies."""

    items: List[Company]
    totalItems: int
    totalPages: int
    currentPage: int


class CompanyCursorPage(BaseModel):
    """Cursor listing of companies for infinite scroll."""

    items: List[Company]
    hasMore: bool
    nextCursor: Optional[str] = None


class CursorRequest(BaseModel):
    """Body of a cursor page request; the cursor type is checked by the service."""

    cursor: Any = None
    pageSize: Any = 9
    searchTerm: Optional[str] = None
