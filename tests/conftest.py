import asyncio
import os

# Settings are read at import time by the app module
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-unit-tests")
os.environ["STORE_BACKEND"] = "memory"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["REVALIDATION_TOKEN"] = "test-revalidation-token"

import pytest
from fastapi.testclient import TestClient

from interview_catalog.services.auth_service import AuthService
from interview_catalog.services.catalog_service import CatalogService, get_catalog_service
from interview_catalog.services.entity_store import ADMINS
from interview_catalog.services.memory_store import InMemoryEntityStore
from interview_catalog.services.query_cache import QueryCache
from interview_catalog.utils.config import get_settings

get_settings.cache_clear()


class FakeClock:
    """Manually advanced clock, callable like time.monotonic / time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


COMPANY_ROWS = [
    {"name": "Acme", "description": "Rockets and anvils", "website": "acme.com"},
    {"name": "Beta Labs", "description": "An Acme partner"},
    {"name": "Gamma", "logo": "https://gamma.io/logo.png"},
]

PROBLEM_ROWS = [
    {
        "title": "Two Sum",
        "companyName": "Acme",
        "difficulty": "easy",
        "link": "https://leetcode.com/problems/two-sum",
        "tags": "Array, Hash Table",
        "lastAskedPeriod": "last_30_days",
    },
    {
        "title": "LRU Cache",
        "companyName": "Acme",
        "difficulty": "Medium",
        "link": "https://leetcode.com/problems/lru-cache",
        "tags": ["Design", "Hash Table", "Linked List"],
        "lastAskedPeriod": "within_6_months",
    },
    {
        "title": "Median of Two Sorted Arrays",
        "companyName": "Acme",
        "difficulty": "HARD",
        "link": "https://leetcode.com/problems/median-of-two-sorted-arrays",
        "tags": "Array, Binary Search",
    },
    {
        "title": "Valid Parentheses",
        "companyName": "Gamma",
        "difficulty": "Easy",
        "link": "https://leetcode.com/problems/valid-parentheses",
        "tags": "Stack, String",
        "lastAskedPeriod": "within_3_months",
    },
]


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def cache(clock):
    return QueryCache(clock=clock)


@pytest.fixture
def service(store, cache):
    return CatalogService(store, cache=cache)


@pytest.fixture
def seeded_service(service):
    """Catalog with three companies and four problems."""
    run(service.bulk_reconcile("company", COMPANY_ROWS))
    run(service.bulk_reconcile("problem", PROBLEM_ROWS))
    return service


def company_id(service: CatalogService, name: str) -> str:
    page = run(service.list_companies(1, 50))
    return next(c.id for c in page.items if c.name == name)


@pytest.fixture
def auth_service():
    return AuthService(get_settings())


@pytest.fixture
def user_headers(auth_service):
    token = auth_service.create_access_token({"user_id": "user-1"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(store, auth_service):
    run(store.insert(ADMINS, {"isAdmin": True}, record_id="admin-1"))
    token = auth_service.create_access_token({"user_id": "admin-1"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(service):
    from interview_catalog.main import app

    app.dependency_overrides[get_catalog_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
