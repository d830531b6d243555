import pytest
from pydantic import ValidationError

from interview_catalog.models.bulk_models import BulkReconcileRequest, OperationResult, RevalidateRequest
from interview_catalog.models.company_models import Company, CompanyCreate, CursorRequest, Difficulty
from interview_catalog.models.problem_models import (
    ProblemCreate,
    ProblemInsights,
    ProblemListFilters,
    ProblemStatus,
)
from interview_catalog.models.user_models import StatusUpdate


def test_company_defaults():
    """Test a stored company without aggregates"""
    company = Company(id="c1", name="Acme", normalizedName="acme", slug="acme")
    assert company.problemCount == 0
    assert company.commonTags == []
    assert company.difficultyCounts is None


def test_company_create_requires_name():
    with pytest.raises(ValidationError):
        CompanyCreate(name="")


def test_problem_create_validation():
    """Test difficulty and last-asked period are closed sets"""
    problem = ProblemCreate(
        title="Two Sum", difficulty="Easy", link="https://x.io", companyId="c1"
    )
    assert problem.difficulty == Difficulty.EASY
    assert problem.tags == []

    with pytest.raises(ValidationError):
        ProblemCreate(title="Two Sum", difficulty="easy", link="https://x.io", companyId="c1")
    with pytest.raises(ValidationError):
        ProblemCreate(
            title="Two Sum",
            difficulty="Easy",
            link="https://x.io",
            companyId="c1",
            lastAskedPeriod="last_week",
        )


def test_problem_list_filters():
    filters = ProblemListFilters()
    assert (filters.difficultyFilter, filters.statusFilter, filters.sortKey) == ("all", "all", "title")
    with pytest.raises(ValidationError):
        ProblemListFilters(sortKey="popularity")


def test_status_update():
    update = StatusUpdate(status="solved", companySlug="acme", problemSlug="two-sum")
    assert update.status == ProblemStatus.SOLVED
    with pytest.raises(ValidationError):
        StatusUpdate(status="done", companySlug="acme", problemSlug="two-sum")


def test_insights_list_bounds():
    with pytest.raises(ValidationError):
        ProblemInsights(
            keyConcepts=[],
            commonDataStructures=["Array"],
            commonAlgorithms=["Scan"],
            highLevelHint="Think.",
        )
    with pytest.raises(ValidationError):
        ProblemInsights(
            keyConcepts=["a", "b", "c", "d", "e"],
            commonDataStructures=["Array"],
            commonAlgorithms=["Scan"],
            highLevelHint="Think.",
        )


def test_cursor_request_accepts_any_cursor_type():
    """Test cursor type checks are left to the service so they surface as 400s"""
    request = CursorRequest(cursor=5, pageSize="ten")
    assert request.cursor == 5
    assert CursorRequest().pageSize == 9


def test_bulk_and_result_models():
    assert BulkReconcileRequest(rows=[]).rows == []
    assert OperationResult(success=False, error="nope").model_dump(exclude_none=True) == {
        "success": False,
        "error": "nope",
    }
    with pytest.raises(ValidationError):
        RevalidateRequest(tag="")
