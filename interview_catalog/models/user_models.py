"""Models for user-scoped records: bookmarks, progress and background."""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from interview_catalog.models.problem_models import ProblemStatus

_YEAR = re.compile(r"^\d{4}$")


class BookmarkRequest(BaseModel):
    """Slugs stored with a bookmark so links can be rebuilt without a lookup."""

    companySlug: str = Field(..., min_length=1)
    problemSlug: str = Field(..., min_length=1)


class BookmarkInfo(BaseModel):
    """A bookmarked problem."""

    problemId: str
    companySlug: str
    problemSlug: str
    bookmarkedAt: Optional[datetime] = None


class BookmarkToggleResponse(BaseModel):
    """New bookmark state after a toggle."""

    success: bool
    isBookmarked: Optional[bool] = None
    error: Optional[str] = None


class StatusUpdate(BaseModel):
    """Request model for setting or clearing a problem status."""

    status: ProblemStatus
    companySlug: str = Field(..., min_length=1)
    problemSlug: str = Field(..., min_length=1)


class ProblemStatusInfo(BaseModel):
    """A user's stored status for one problem."""

    problemId: str
    status: ProblemStatus
    companySlug: str
    problemSlug: str
    updatedAt: Optional[datetime] = None


class EducationExperience(BaseModel):
    """An education history entry."""

    id: Optional[str] = None
    degree: str = Field(..., min_length=2, description="Degree is required.")
    major: str = Field(..., min_length=2, description="Major is required.")
    school: str = Field(..., min_length=2, description="School name is required.")
    graduationYear: Optional[str] = ""
    gpa: Optional[str] = ""
    createdAt: Optional[datetime] = None

    @field_validator("graduationYear")
    @classmethod
    def check_year(cls, value: Optional[str]) -> Optional[str]:
        """Accept YYYY or an empty value."""
        if value and not _YEAR.match(value):
            raise ValueError("Invalid year format (YYYY).")
        return value


class WorkExperience(BaseModel):
    """A work history entry."""

    id: Optional[str] = None
    jobTitle: str = Field(..., min_length=2, description="Job title is required.")
    companyName: str = Field(..., min_length=2, description="Company name is required.")
    startDate: str = Field(..., min_length=4, description="YYYY or MM/YYYY")
    endDate: Optional[str] = ""
    responsibilities: Optional[str] = ""
    createdAt: Optional[datetime] = None

    @field_validator("responsibilities")
    @classmethod
    def check_responsibilities(cls, value: Optional[str]) -> Optional[str]:
        """Either empty or a meaningful description."""
        if value and len(value) < 10:
            raise ValueError("Please describe some responsibilities.")
        return value


class FocusTopic(BaseModel):
    """A topic worth studying for a company, with the reason."""

    topic: str
    reason: str = ""


class StrategyTodoItem(BaseModel):
    text: str = Field(..., min_length=1)
    isCompleted: bool = False


class StrategySave(BaseModel):
    """Request model for saving a generated preparation strategy."""

    companyName: str = Field(..., min_length=1)
    preparationStrategy: str = Field(..., min_length=1)
    focusTopics: List[FocusTopic]
    todoItems: List[StrategyTodoItem]


class SavedStrategyTodoList(BaseModel):
    """A user's saved strategy and to-do list for one company."""

    companyId: str
    companyName: str = "Unknown Company"
    savedAt: Optional[datetime] = None
    preparationStrategy: str = ""
    focusTopics: List[FocusTopic] = []
    items: List[StrategyTodoItem] = []


class TodoItemUpdate(BaseModel):
    isCompleted: bool


class ProfileSync(BaseModel):
    """Identity fields reported by the authentication provider."""

    email: Optional[str] = None
    displayName: Optional[str] = None


class DisplayNameUpdate(BaseModel):
    displayName: str


class UserProfile(BaseModel):
    """The user's own profile record."""

    uid: str
    email: Optional[str] = None
    displayName: Optional[str] = None
    createdAt: Optional[datetime] = None
