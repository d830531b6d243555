import pytest

from conftest import run
from interview_catalog.services.entity_store import COMPANIES
from interview_catalog.services.memory_store import InMemoryEntityStore
from interview_catalog.services.pagination import (
    clamp_page_size,
    cursor_page,
    paginate_page,
    validate_cursor_request,
)
from interview_catalog.utils.errors import ValidationError


def _companies(*names):
    return InMemoryEntityStore(
        {COMPANIES: [{"name": n, "normalizedName": n.lower()} for n in names]}
    )


class TestPageNumberMode:
    def test_slices_in_order(self):
        items = list(range(25))
        page = paginate_page(items, 2, 10)
        assert page.items == list(range(10, 20))
        assert page.total_items == 25
        assert page.total_pages == 3
        assert page.current_page == 2

    def test_last_page_is_partial(self):
        page = paginate_page(list(range(25)), 3, 10)
        assert page.items == [20, 21, 22, 23, 24]

    def test_out_of_range_page_is_clamped(self):
        assert paginate_page(list(range(25)), 99, 10).current_page == 3
        assert paginate_page(list(range(25)), 0, 10).current_page == 1
        assert paginate_page(list(range(25)), -4, 10).current_page == 1
        assert paginate_page(list(range(25)), "two", 10).current_page == 1

    def test_empty_list_has_one_page(self):
        page = paginate_page([], 1, 10)
        assert page.items == []
        assert page.total_pages == 1
        assert page.current_page == 1

    def test_every_item_lands_on_exactly_one_page(self):
        items = list(range(23))
        seen = []
        for number in range(1, paginate_page(items, 1, 4).total_pages + 1):
            seen.extend(paginate_page(items, number, 4).items)
        assert seen == items

    @pytest.mark.parametrize(
        "requested,expected", [(0, 1), (-3, 1), (7, 7), (50, 50), (500, 50), ("x", 9), (None, 9)]
    )
    def test_clamp_page_size(self, requested, expected):
        assert clamp_page_size(requested, default=9) == expected


class TestCursorMode:
    def test_validate_accepts_null_cursor(self):
        assert validate_cursor_request(None, 9) == (None, 9)
        assert validate_cursor_request("", 9) == (None, 9)

    @pytest.mark.parametrize("cursor", [123, ["a"], {"k": "v"}])
    def test_validate_rejects_non_string_cursor(self, cursor):
        with pytest.raises(ValidationError, match="Invalid cursor format"):
            validate_cursor_request(cursor, 9)

    @pytest.mark.parametrize("page_size", [0, 51, -1, True, "5", 2.5])
    def test_validate_rejects_bad_page_size(self, page_size):
        with pytest.raises(ValidationError, match="Invalid pageSize. Must be between 1 and 50"):
            validate_cursor_request("abc", page_size)

    def test_three_records_two_per_page(self):
        """Test the [A, B, C] walk: two items then one"""
        store = _companies("C", "A", "B")

        first = run(cursor_page(store, COMPANIES, "normalizedName", None, 2))
        assert [r["name"] for r in first.items] == ["A", "B"]
        assert first.has_more is True
        assert first.next_cursor == "b"

        second = run(cursor_page(store, COMPANIES, "normalizedName", first.next_cursor, 2))
        assert [r["name"] for r in second.items] == ["C"]
        assert second.has_more is False
        assert second.next_cursor == "c"

    def test_empty_page_has_no_cursor(self):
        store = _companies("A")
        page = run(cursor_page(store, COMPANIES, "normalizedName", "a", 5))
        assert page.items == []
        assert page.has_more is False
        assert page.next_cursor is None

    def test_inserts_during_traversal(self):
        """Test records inserted before the cursor are not repeated, after are not skipped"""
        store = _companies("B", "D", "F", "H")
        first = run(cursor_page(store, COMPANIES, "normalizedName", None, 2))
        assert [r["name"] for r in first.items] == ["B", "D"]

        run(store.insert(COMPANIES, {"name": "A", "normalizedName": "a"}))
        run(store.insert(COMPANIES, {"name": "E", "normalizedName": "e"}))

        seen = [r["name"] for r in first.items]
        cursor = first.next_cursor
        while True:
            page = run(cursor_page(store, COMPANIES, "normalizedName", cursor, 2))
            seen.extend(r["name"] for r in page.items)
            if not page.has_more:
                break
            cursor = page.next_cursor

        assert seen == ["B", "D", "E", "F", "H"]
