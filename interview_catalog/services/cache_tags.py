"""
Invalidation tags and cache keys for catalog reads.

Every cached read is tagged through tags_for(); writers invalidate the same
tag names, so the mapping between operations and tags lives in one place.
"""

import json
from typing import Any, Dict, List, Mapping

COMPANIES_COLLECTION_TAG = "companies-collection-broad"
PROBLEMS_COLLECTION_TAG = "problems-collection-broad"


def company_detail_tag(company_id: str) -> str:
    return f"company-detail-{company_id}"


def company_slug_tag(slug: str) -> str:
    return f"company-slug-{slug}"


def problems_for_company_tag(company_id: str) -> str:
    return f"problems-for-company-{company_id}"


def problem_detail_tag(problem_id: str) -> str:
    return f"problem-detail-{problem_id}"


def problem_slug_tag(slug: str) -> str:
    return f"problem-slug-{slug}"


def user_bookmarks_tag(user_id: str) -> str:
    return f"user-bookmarks-{user_id}"


def user_statuses_tag(user_id: str) -> str:
    return f"user-problem-statuses-{user_id}"


def user_profile_tag(user_id: str) -> str:
    return f"user-profile-{user_id}"


def user_strategy_lists_tag(user_id: str) -> str:
    return f"user-strategy-todo-lists-{user_id}"


def user_company_strategy_tag(company_id: str, user_id: str) -> str:
    return f"user-strategy-for-company-{company_id}-{user_id}"


def tags_for(operation: str, args: Mapping[str, Any]) -> List[str]:
    """
    Return the invalidation tags for a cached read.

    Pure function of the operation name and its arguments. Raises KeyError
    for an unknown operation so a new read cannot be cached untagged.
    """
    if operation in (
        "list_companies",
        "list_companies_cursor",
        "suggest_companies",
        "all_company_slugs",
    ):
        return [COMPANIES_COLLECTION_TAG]
    if operation == "get_company":
        return [company_detail_tag(args["company_id"]), COMPANIES_COLLECTION_TAG]
    if operation == "get_company_by_slug":
        return [company_slug_tag(args["slug"]), COMPANIES_COLLECTION_TAG]
    if operation == "list_problems_for_company":
        return [
            problems_for_company_tag(args["company_id"]),
            PROBLEMS_COLLECTION_TAG,
        ]
    if operation == "get_problem":
        return [problem_detail_tag(args["problem_id"]), PROBLEMS_COLLECTION_TAG]
    if operation == "get_problem_by_slugs":
        return [
            company_slug_tag(args["company_slug"]),
            problem_slug_tag(args["problem_slug"]),
            COMPANIES_COLLECTION_TAG,
            PROBLEMS_COLLECTION_TAG,
        ]
    if operation == "user_bookmarks":
        return [user_bookmarks_tag(args["user_id"])]
    if operation == "user_statuses":
        return [user_statuses_tag(args["user_id"])]
    if operation == "user_strategy_lists":
        return [user_strategy_lists_tag(args["user_id"])]
    if operation == "user_company_strategy":
        return [user_company_strategy_tag(args["company_id"], args["user_id"])]
    if operation in ("user_education", "user_work", "user_profile"):
        return [user_profile_tag(args["user_id"])]
    raise KeyError(f"No cache tags defined for operation '{operation}'")


def cache_key(operation: str, params: Dict[str, Any]) -> str:
    """Deterministic signature of (operation, parameters)."""
    return f"{operation}:{json.dumps(params, sort_keys=True, default=str)}"


def company_write_tags(company_id: str, slugs: List[str]) -> List[str]:
    """Tags to drop after a company record changes."""
    tags = [COMPANIES_COLLECTION_TAG, company_detail_tag(company_id)]
    tags.extend(company_slug_tag(slug) for slug in slugs if slug)
    return tags


def problem_write_tags(company_id: str, company_slug: str) -> List[str]:
    """Tags to drop after a problem under the given company changes."""
    return [
        PROBLEMS_COLLECTION_TAG,
        problems_for_company_tag(company_id),
    ] + company_write_tags(company_id, [company_slug])
