from types import SimpleNamespace

import pytest

from conftest import COMPANY_ROWS, PROBLEM_ROWS, company_id, run
from interview_catalog.services.ai_insights import AIInsightsService, get_ai_insights_service
from interview_catalog.utils.config import get_settings

API = "/api/v1"


@pytest.fixture
def seeded_client(client, seeded_service):
    return client


class FakeCompletions:
    """Stands in for client.chat.completions."""

    def __init__(self, content):
        self.content = content
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _ai_service(content):
    completions = FakeCompletions(content)
    fake_client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return AIInsightsService(get_settings(), client=fake_client), completions


def test_root_and_health(client):
    """Test the root and health endpoints"""
    assert client.get("/").json()["message"] == "Interview Catalog API"
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestCompanyEndpoints:
    def test_list_companies(self, seeded_client):
        response = seeded_client.get(f"{API}/companies", params={"pageSize": 2})
        assert response.status_code == 200
        data = response.json()
        assert [c["name"] for c in data["items"]] == ["Acme", "Beta Labs"]
        assert data["totalPages"] == 2

    def test_list_companies_search(self, seeded_client):
        response = seeded_client.get(f"{API}/companies", params={"searchTerm": "gam"})
        assert [c["slug"] for c in response.json()["items"]] == ["gamma"]

    def test_page_size_bounds(self, seeded_client):
        assert seeded_client.get(f"{API}/companies", params={"pageSize": 51}).status_code == 422

    def test_cursor_walk(self, seeded_client):
        first = seeded_client.post(f"{API}/companies/cursor", json={"pageSize": 2}).json()
        assert first["hasMore"] is True
        second = seeded_client.post(
            f"{API}/companies/cursor", json={"cursor": first["nextCursor"], "pageSize": 2}
        ).json()
        assert [c["name"] for c in second["items"]] == ["Gamma"]
        assert second["hasMore"] is False

    @pytest.mark.parametrize(
        "body,detail",
        [
            ({"cursor": 5, "pageSize": 2}, "Invalid cursor format"),
            ({"pageSize": 0}, "Invalid pageSize. Must be between 1 and 50"),
            ({"pageSize": "ten"}, "Invalid pageSize. Must be between 1 and 50"),
        ],
    )
    def test_cursor_bad_input(self, seeded_client, body, detail):
        response = seeded_client.post(f"{API}/companies/cursor", json=body)
        assert response.status_code == 400
        assert response.json()["detail"] == detail

    def test_lookup_by_id_and_slug(self, seeded_client, seeded_service):
        acme = company_id(seeded_service, "Acme")
        assert seeded_client.get(f"{API}/companies/{acme}").json()["slug"] == "acme"
        assert seeded_client.get(f"{API}/companies/slug/gamma").json()["name"] == "Gamma"
        assert seeded_client.get(f"{API}/companies/missing").status_code == 404
        assert seeded_client.get(f"{API}/companies/slug/missing").status_code == 404

    def test_suggestions_and_slugs(self, seeded_client):
        suggestions = seeded_client.get(f"{API}/companies/suggestions", params={"q": "be"}).json()
        assert [s["name"] for s in suggestions] == ["Beta Labs"]
        slugs = seeded_client.get(f"{API}/companies/slugs").json()
        assert slugs == ["acme", "beta-labs", "gamma"]

    def test_add_company_requires_auth(self, client):
        assert client.post(f"{API}/companies", json={"name": "Initech"}).status_code in (401, 403)

    def test_add_company(self, client, user_headers):
        response = client.post(f"{API}/companies", json={"name": "Initech"}, headers=user_headers)
        assert response.status_code == 201
        assert response.json()["data"]["slug"] == "initech"

        again = client.post(f"{API}/companies", json={"name": "initech"}, headers=user_headers)
        assert again.status_code == 409
        assert again.json()["alreadyExists"] is True

    def test_company_problems(self, seeded_client, seeded_service):
        acme = company_id(seeded_service, "Acme")
        response = seeded_client.get(
            f"{API}/companies/{acme}/problems",
            params={"sortKey": "lastAsked", "pageSize": 2},
        )
        assert response.status_code == 200
        data = response.json()
        assert [p["title"] for p in data["items"]] == ["Two Sum", "LRU Cache"]
        assert data["totalItems"] == 3
        assert data["totalPages"] == 2

    def test_company_problems_unknown_company(self, seeded_client):
        assert seeded_client.get(f"{API}/companies/ghost/problems").status_code == 404


class TestProblemEndpoints:
    def test_add_and_fetch_problem(self, seeded_client, seeded_service, user_headers):
        acme = company_id(seeded_service, "Acme")
        body = {
            "title": "Merge Intervals",
            "difficulty": "Medium",
            "link": "https://leetcode.com/problems/merge-intervals",
            "tags": ["Array", "Sorting"],
            "companyId": acme,
        }
        created = seeded_client.post(f"{API}/problems", json=body, headers=user_headers)
        assert created.status_code == 201
        problem_id = created.json()["data"]["id"]

        updated = seeded_client.post(
            f"{API}/problems",
            json=dict(body, lastAskedPeriod="last_30_days"),
            headers=user_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["updated"] is True

        fetched = seeded_client.get(f"{API}/problems/{problem_id}").json()
        assert fetched["lastAskedPeriod"] == "last_30_days"

        by_slug = seeded_client.get(f"{API}/problems/by-slug/acme/merge-intervals").json()
        assert by_slug["problem"]["id"] == problem_id

    def test_add_problem_bad_link(self, seeded_client, seeded_service, user_headers):
        body = {
            "title": "Bad",
            "difficulty": "Easy",
            "link": "ftp://example.com",
            "companyId": company_id(seeded_service, "Acme"),
        }
        response = seeded_client.post(f"{API}/problems", json=body, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_add_problem_status_codes(self, seeded_client, seeded_service, user_headers):
        body = {
            "title": "two sum",
            "difficulty": "Easy",
            "link": "https://leetcode.com/problems/two-sum",
            "companyId": company_id(seeded_service, "Acme"),
        }
        unchanged = seeded_client.post(f"{API}/problems", json=body, headers=user_headers)
        assert unchanged.status_code == 200
        assert unchanged.json()["alreadyExists"] is True
        assert unchanged.json()["updated"] is False

        missing = seeded_client.post(
            f"{API}/problems", json=dict(body, companyId="ghost"), headers=user_headers
        )
        assert missing.status_code == 404
        assert missing.json()["error"] == "Company with ID ghost not found."

    def test_problem_batch(self, seeded_client, seeded_service):
        ids = [_problem_id(seeded_service, "Two Sum"), "nope"]
        response = seeded_client.post(f"{API}/problems/batch", json={"problemIds": ids})
        assert response.status_code == 200
        assert [p["title"] for p in response.json()] == ["Two Sum"]
        assert seeded_client.post(f"{API}/problems/batch", json={}).status_code == 422

    def test_missing_problem(self, client):
        assert client.get(f"{API}/problems/nope").status_code == 404
        assert client.get(f"{API}/problems/by-slug/acme/nope").status_code == 404

    def test_insights_from_model(self, seeded_client, seeded_service, user_headers):
        from interview_catalog.main import app

        service, completions = _ai_service(
            '{"keyConcepts": ["Hashing", "Complements"], "commonDataStructures": ["Hash Map"],'
            ' "commonAlgorithms": ["One-pass lookup"], "highLevelHint": "Store what you have seen."}'
        )
        app.dependency_overrides[get_ai_insights_service] = lambda: service
        problem = _problem_id(seeded_service, "Two Sum")

        response = seeded_client.post(
            f"{API}/problems/{problem}/insights", json={"description": ""}, headers=user_headers
        )
        assert response.status_code == 200
        assert response.json()["generatedBy"] == "ai"
        assert response.json()["keyConcepts"] == ["Hashing", "Complements"]
        assert completions.requests[0]["response_format"] == {"type": "json_object"}

    def test_insights_fallback_on_bad_json(self, seeded_client, seeded_service, user_headers):
        from interview_catalog.main import app

        service, _ = _ai_service("not json at all")
        app.dependency_overrides[get_ai_insights_service] = lambda: service
        problem = _problem_id(seeded_service, "Two Sum")

        response = seeded_client.post(
            f"{API}/problems/{problem}/insights", json={}, headers=user_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["generatedBy"] == "fallback"
        assert "Hash Map" in data["commonDataStructures"]


def _problem_id(service, title):
    acme = company_id(service, "Acme")
    page = run(service.list_problems_for_company(acme, 1, 50))
    return next(p.id for p in page.items if p.title == title)


class TestUserEndpoints:
    def test_requires_auth(self, client):
        assert client.get(f"{API}/me/bookmarks").status_code in (401, 403)

    def test_bad_token(self, client):
        response = client.get(
            f"{API}/me/bookmarks", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401

    def test_bookmark_toggle(self, client, user_headers):
        body = {"companySlug": "acme", "problemSlug": "two-sum"}
        first = client.post(f"{API}/me/bookmarks/p1", json=body, headers=user_headers)
        assert first.json() == {"success": True, "isBookmarked": True, "error": None}
        assert [b["problemId"] for b in client.get(f"{API}/me/bookmarks", headers=user_headers).json()] == ["p1"]

        client.post(f"{API}/me/bookmarks/p1", json=body, headers=user_headers)
        assert client.get(f"{API}/me/bookmarks", headers=user_headers).json() == []

    def test_statuses(self, client, user_headers):
        body = {"status": "todo", "companySlug": "acme", "problemSlug": "two-sum"}
        assert client.put(f"{API}/me/statuses/p1", json=body, headers=user_headers).status_code == 200
        statuses = client.get(f"{API}/me/statuses", headers=user_headers).json()
        assert statuses["p1"]["status"] == "todo"

        client.put(f"{API}/me/statuses/p1", json=dict(body, status="none"), headers=user_headers)
        assert client.get(f"{API}/me/statuses", headers=user_headers).json() == {}

    def test_status_filter_with_token(self, seeded_client, seeded_service, user_headers):
        acme = company_id(seeded_service, "Acme")
        problem = _problem_id(seeded_service, "LRU Cache")
        seeded_client.put(
            f"{API}/me/statuses/{problem}",
            json={"status": "attempted", "companySlug": "acme", "problemSlug": "lru-cache"},
            headers=user_headers,
        )
        response = seeded_client.get(
            f"{API}/companies/{acme}/problems",
            params={"statusFilter": "attempted"},
            headers=user_headers,
        )
        items = response.json()["items"]
        assert [p["title"] for p in items] == ["LRU Cache"]
        assert items[0]["currentStatus"] == "attempted"

    def test_education_and_work(self, client, user_headers):
        education = {"degree": "BSc", "major": "Physics", "school": "Oxford", "graduationYear": "2019"}
        created = client.post(f"{API}/me/education", json=education, headers=user_headers)
        assert created.status_code == 201
        assert created.json()["data"]["id"]
        assert client.post(
            f"{API}/me/education", json=dict(education, graduationYear="19"), headers=user_headers
        ).status_code == 422
        assert len(client.get(f"{API}/me/education", headers=user_headers).json()) == 1

        work = {"jobTitle": "Analyst", "companyName": "Initech", "startDate": "2020"}
        assert client.post(f"{API}/me/work", json=work, headers=user_headers).status_code == 201
        assert client.get(f"{API}/me/work", headers=user_headers).json()[0]["jobTitle"] == "Analyst"

    def test_strategy_lists(self, client, user_headers):
        strategy = {
            "companyName": "Acme",
            "preparationStrategy": "Drill dynamic programming.",
            "focusTopics": [{"topic": "DP", "reason": "Most Acme problems use it."}],
            "todoItems": [{"text": "Solve 10 DP problems"}, {"text": "Review LRU Cache"}],
        }
        saved = client.put(f"{API}/me/strategies/c1", json=strategy, headers=user_headers)
        assert saved.status_code == 200
        assert client.get(f"{API}/me/strategies/c2", headers=user_headers).json() is None

        done = client.patch(
            f"{API}/me/strategies/c1/items/1", json={"isCompleted": True}, headers=user_headers
        )
        assert done.status_code == 200
        lists = client.get(f"{API}/me/strategies", headers=user_headers).json()
        assert [i["isCompleted"] for i in lists[0]["items"]] == [False, True]

        missing = client.patch(
            f"{API}/me/strategies/c2/items/0", json={"isCompleted": True}, headers=user_headers
        )
        assert missing.status_code == 404
        out_of_range = client.patch(
            f"{API}/me/strategies/c1/items/9", json={"isCompleted": True}, headers=user_headers
        )
        assert out_of_range.status_code == 400

    def test_profile(self, client, user_headers):
        assert client.get(f"{API}/me/profile", headers=user_headers).json() is None
        renamed = client.put(
            f"{API}/me/profile/display-name", json={"displayName": "Ada"}, headers=user_headers
        )
        assert renamed.status_code == 404

        synced = client.post(
            f"{API}/me/profile/sync",
            json={"email": "ada@example.com", "displayName": "Ada"},
            headers=user_headers,
        )
        assert synced.status_code == 200
        assert client.put(
            f"{API}/me/profile/display-name", json={"displayName": "A"}, headers=user_headers
        ).status_code == 400
        client.put(
            f"{API}/me/profile/display-name", json={"displayName": "Ada L."}, headers=user_headers
        )
        profile = client.get(f"{API}/me/profile", headers=user_headers).json()
        assert (profile["uid"], profile["displayName"]) == ("user-1", "Ada L.")

    def test_auth_me(self, client, user_headers, admin_headers):
        assert client.get(f"{API}/auth/me", headers=user_headers).json() == {
            "userId": "user-1",
            "isAdmin": False,
        }
        assert client.get(f"{API}/auth/me", headers=admin_headers).json()["isAdmin"] is True


class TestAdminEndpoints:
    def test_non_admin_is_forbidden(self, client, user_headers):
        response = client.post(
            f"{API}/admin/bulk/companies", json={"rows": COMPANY_ROWS}, headers=user_headers
        )
        assert response.status_code == 403

    def test_bulk_import_and_stats(self, client, admin_headers):
        companies = client.post(
            f"{API}/admin/bulk/companies", json={"rows": COMPANY_ROWS}, headers=admin_headers
        ).json()
        assert companies["addedCount"] == 3

        problems = client.post(
            f"{API}/admin/bulk/problems", json={"rows": PROBLEM_ROWS}, headers=admin_headers
        ).json()
        assert problems["addedCount"] == 4
        assert [r["status"] for r in problems["detailedResults"]] == ["added"] * 4

        sweep = client.post(f"{API}/admin/stats/recalculate", headers=admin_headers).json()
        assert sweep["updatedCount"] == 3
        acme = client.get(f"{API}/companies/slug/acme").json()
        assert acme["problemCount"] == 3
        assert acme["difficultyCounts"] == {"Easy": 1, "Medium": 1, "Hard": 1}

    def test_single_company_recalculation(self, seeded_client, seeded_service, admin_headers):
        gamma = company_id(seeded_service, "Gamma")
        response = seeded_client.post(
            f"{API}/admin/stats/{gamma}/recalculate", headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["problemCount"] == 1
        missing = seeded_client.post(f"{API}/admin/stats/ghost/recalculate", headers=admin_headers)
        assert missing.status_code == 404

    def test_revalidate_token(self, client):
        rejected = client.post(f"{API}/admin/revalidate", json={"tag": "x", "token": "wrong"})
        assert rejected.status_code == 401
        assert rejected.json()["detail"] == "Invalid token"

        accepted = client.post(
            f"{API}/admin/revalidate",
            json={"tag": "companies-collection-broad", "token": "test-revalidation-token"},
        )
        assert accepted.status_code == 200
        assert accepted.json()["revalidated"] is True
