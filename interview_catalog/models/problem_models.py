"""Models for problem data and per-company problem listings."""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from interview_catalog.models.company_models import Company, Difficulty, LastAskedPeriod


class ProblemStatus(str, Enum):
    """A user's progress on a problem. NONE means no status stored."""

    NONE = "none"
    TODO = "todo"
    ATTEMPTED = "attempted"
    SOLVED = "solved"


class Problem(BaseModel):
    """Problem record as stored in the problems collection."""

    id: str
    title: str
    normalizedTitle: str
    slug: str
    difficulty: Difficulty
    link: str
    tags: List[str] = Field(default_factory=list)
    lastAskedPeriod: Optional[LastAskedPeriod] = None
    companyId: str
    companySlug: str
    # Augmented per request when a user is known
    isBookmarked: Optional[bool] = None
    currentStatus: Optional[ProblemStatus] = None


class ProblemCreate(BaseModel):
    """Request model for submitting a single problem."""

    title: str = Field(..., min_length=1, max_length=300)
    difficulty: Difficulty
    link: str
    tags: List[str] = Field(default_factory=list)
    companyId: str = Field(..., min_length=1)
    lastAskedPeriod: Optional[LastAskedPeriod] = None


SortKey = Literal["title", "difficulty", "lastAsked"]


class ProblemListFilters(BaseModel):
    """Filters and ordering for a company's problem list."""

    difficultyFilter: Literal["all", "Easy", "Medium", "Hard"] = "all"
    lastAskedFilter: Literal[
        "all",
        "last_30_days",
        "within_3_months",
        "within_6_months",
        "older_than_6_months",
    ] = "all"
    statusFilter: Literal["all", "none", "todo", "attempted", "solved"] = "all"
    searchTerm: str = ""
    sortKey: SortKey = "title"


class ProblemPage(BaseModel):
    """Page-number listing of a company's problems."""

    items: List[Problem]
    totalItems: int
    totalPages: int
    currentPage: int


class ProblemWithCompany(BaseModel):
    """A problem resolved through its company and problem slugs."""

    company: Optional[Company] = None
    problem: Optional[Problem] = None


class ProblemBatchRequest(BaseModel):
    """Ids of problems to load at once, e.g. a user's bookmarks."""

    problemIds: List[str] = Field(..., max_length=500)


class ProblemInsights(BaseModel):
    """AI-generated study insights for a problem."""

    keyConcepts: List[str] = Field(..., min_length=1, max_length=4)
    commonDataStructures: List[str] = Field(..., min_length=1, max_length=3)
    commonAlgorithms: List[str] = Field(..., min_length=1, max_length=3)
    highLevelHint: str = Field(..., min_length=1)
    generatedBy: Literal["ai", "fallback"] = "ai"
