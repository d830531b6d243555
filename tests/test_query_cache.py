import asyncio

import pytest

from conftest import FakeClock, run
from interview_catalog.services import cache_tags
from interview_catalog.services.query_cache import QueryCache, TagRegistry


class Loader:
    """Counts executions and returns the running count."""

    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.calls


class TestCachedRead:
    def test_repeated_read_is_memoized(self):
        """Test a second read returns the stored value without re-executing"""
        cache = QueryCache(clock=FakeClock())
        load = Loader()

        async def scenario():
            first = await cache.cached_read("k", ["t"], 60, load)
            second = await cache.cached_read("k", ["t"], 60, load)
            return first, second

        assert run(scenario()) == (1, 1)
        assert load.calls == 1
        assert cache.hits == 1
        assert cache.misses == 1
        assert len(cache) == 1

    def test_entry_expires_after_ttl(self):
        """Test the TTL bounds staleness"""
        clock = FakeClock()
        cache = QueryCache(clock=clock)
        load = Loader()

        assert run(cache.cached_read("k", ["t"], 10, load)) == 1
        clock.advance(9.9)
        assert run(cache.cached_read("k", ["t"], 10, load)) == 1
        clock.advance(0.2)
        assert run(cache.cached_read("k", ["t"], 10, load)) == 2

    def test_default_ttl_used_when_none(self):
        clock = FakeClock()
        cache = QueryCache(clock=clock, default_ttl=5)
        load = Loader()

        run(cache.cached_read("k", [], None, load))
        clock.advance(6)
        assert run(cache.cached_read("k", [], None, load)) == 2

    def test_failed_load_is_not_memoized(self):
        """Test errors propagate and the next call retries"""
        cache = QueryCache(clock=FakeClock())
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("store down")
            return "ok"

        with pytest.raises(RuntimeError, match="store down"):
            run(cache.cached_read("k", ["t"], 60, flaky))
        assert len(cache) == 0
        assert run(cache.cached_read("k", ["t"], 60, flaky)) == "ok"
        assert len(attempts) == 2

    def test_concurrent_misses_share_one_load(self):
        """Test single-flight: concurrent callers await the same computation"""
        cache = QueryCache(clock=FakeClock())
        calls = []

        async def slow():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "value"

        async def scenario():
            return await asyncio.gather(
                *(cache.cached_read("k", ["t"], 60, slow) for _ in range(5))
            )

        assert run(scenario()) == ["value"] * 5
        assert len(calls) == 1

    def test_concurrent_failure_reaches_every_waiter(self):
        cache = QueryCache(clock=FakeClock())

        async def broken():
            await asyncio.sleep(0.01)
            raise ValueError("boom")

        async def scenario():
            return await asyncio.gather(
                cache.cached_read("k", ["t"], 60, broken),
                cache.cached_read("k", ["t"], 60, broken),
                return_exceptions=True,
            )

        results = run(scenario())
        assert all(isinstance(r, ValueError) for r in results)
        assert len(cache) == 0


class TestInvalidation:
    def test_invalidate_drops_tagged_entries(self):
        """Test the next read after invalidation re-executes"""
        cache = QueryCache(clock=FakeClock())
        load = Loader()

        run(cache.cached_read("a", ["companies", "company-1"], 60, load))
        run(cache.cached_read("b", ["companies"], 60, load))
        run(cache.cached_read("c", ["problems"], 60, load))

        assert cache.invalidate("companies") == 2
        assert len(cache) == 1
        assert run(cache.cached_read("a", ["companies", "company-1"], 60, load)) == 4
        assert run(cache.cached_read("c", ["problems"], 60, load)) == 3

    def test_invalidate_unknown_tag_is_noop(self):
        cache = QueryCache(clock=FakeClock())
        run(cache.cached_read("a", ["x"], 60, Loader()))
        assert cache.invalidate("never-used") == 0
        assert len(cache) == 1

    def test_invalidate_many_deduplicates(self):
        registry = TagRegistry()
        cache = QueryCache(registry=registry, clock=FakeClock())
        run(cache.cached_read("a", ["x", "y"], 60, Loader()))

        assert cache.invalidate_many(["x", "y", "x"]) == 1
        assert registry.version("x") == 1
        assert registry.version("y") == 1

    def test_load_in_flight_during_invalidation_is_not_stored(self):
        """Test a computation started before an invalidation is never memoized"""
        cache = QueryCache(clock=FakeClock())
        release = None
        calls = []

        async def load():
            calls.append(1)
            if len(calls) == 1:
                await release.wait()
                return "stale"
            return "fresh"

        async def scenario():
            nonlocal release
            release = asyncio.Event()
            pending = asyncio.ensure_future(cache.cached_read("k", ["t"], 60, load))
            await asyncio.sleep(0)
            cache.invalidate("t")
            # A reader arriving now must not join the stale load
            fresh = await cache.cached_read("k", ["t"], 60, load)
            release.set()
            stale = await pending
            again = await cache.cached_read("k", ["t"], 60, load)
            return stale, fresh, again

        assert run(scenario()) == ("stale", "fresh", "fresh")
        assert len(calls) == 2

    def test_clear_forgets_everything(self):
        cache = QueryCache(clock=FakeClock())
        load = Loader()
        run(cache.cached_read("a", ["x"], 60, load))
        cache.clear()
        assert len(cache) == 0
        assert run(cache.cached_read("a", ["x"], 60, load)) == 2


class TestCacheTags:
    def test_tags_for_detail_reads(self):
        tags = cache_tags.tags_for("get_company", {"company_id": "c1"})
        assert tags == ["company-detail-c1", cache_tags.COMPANIES_COLLECTION_TAG]

    def test_tags_for_slug_lookup_covers_both_collections(self):
        tags = cache_tags.tags_for(
            "get_problem_by_slugs", {"company_slug": "acme", "problem_slug": "two-sum"}
        )
        assert "company-slug-acme" in tags
        assert "problem-slug-two-sum" in tags
        assert cache_tags.PROBLEMS_COLLECTION_TAG in tags

    def test_tags_for_user_strategy_reads(self):
        args = {"user_id": "u1", "company_id": "c1"}
        assert cache_tags.tags_for("user_strategy_lists", args) == ["user-strategy-todo-lists-u1"]
        assert cache_tags.tags_for("user_company_strategy", args) == [
            "user-strategy-for-company-c1-u1"
        ]
        assert cache_tags.tags_for("user_profile", args) == ["user-profile-u1"]

    def test_unknown_operation_raises(self):
        with pytest.raises(KeyError):
            cache_tags.tags_for("list_everything", {})

    def test_cache_key_is_order_independent(self):
        assert cache_tags.cache_key("op", {"a": 1, "b": 2}) == cache_tags.cache_key(
            "op", {"b": 2, "a": 1}
        )
        assert cache_tags.cache_key("op", {"a": 1}) != cache_tags.cache_key("op", {"a": 2})

    def test_problem_write_tags_include_company_views(self):
        tags = cache_tags.problem_write_tags("c1", "acme")
        assert "problems-for-company-c1" in tags
        assert "company-detail-c1" in tags
        assert "company-slug-acme" in tags
