"""
Bulk reconciliation of spreadsheet rows against stored companies and problems.

Each row is validated, matched against existing records through maps built
once per batch, and classified as added, updated, skipped or error. A row's
failure never stops the batch. Rows naming the same record are applied in
input order, so the last one wins.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from interview_catalog.models.bulk_models import (
    BulkKind,
    BulkReconcileResult,
    BulkRowResult,
    RowStatus,
)
from interview_catalog.models.company_models import LastAskedPeriod
from interview_catalog.services import cache_tags
from interview_catalog.services.entity_store import (
    COMPANIES,
    DELETE_FIELD,
    PROBLEMS,
    EntityStore,
    Record,
)
from interview_catalog.services.query_cache import QueryCache
from interview_catalog.utils.errors import StoreError, ValidationError
from interview_catalog.utils.text import (
    clean_cell,
    ensure_scheme,
    is_absolute_http_url,
    normalize_key,
    slugify,
    split_tags,
)

logger = logging.getLogger(__name__)

NOT_AN_OBJECT = "Row is not an object."

_DIFFICULTIES = {"easy": "Easy", "medium": "Medium", "hard": "Hard"}
_PERIODS = [p.value for p in LastAskedPeriod]
_OPTIONAL_COMPANY_FIELDS = ("logo", "description", "website")


def empty_company_stats() -> Dict[str, Any]:
    """Aggregate fields every new company starts with."""
    return {
        "problemCount": 0,
        "difficultyCounts": {"Easy": 0, "Medium": 0, "Hard": 0},
        "recencyCounts": {p: 0 for p in _PERIODS},
        "commonTags": [],
    }


@dataclass
class _Report:
    """Running counts and rows for one batch."""

    result: BulkReconcileResult = field(default_factory=BulkReconcileResult)
    tags: List[str] = field(default_factory=list)

    def add(self, index: int, name: str, status: RowStatus, message: str) -> None:
        if status == RowStatus.ADDED:
            self.result.addedCount += 1
        elif status == RowStatus.UPDATED:
            self.result.updatedCount += 1
        elif status == RowStatus.SKIPPED:
            self.result.skippedCount += 1
        else:
            self.result.errorCount += 1
            logger.warning("Bulk row %d (%s) failed: %s", index, name, message)
        self.result.detailedResults.append(
            BulkRowResult(rowIndex=index, name=name, status=status, message=message)
        )


def parse_company_row(raw: Mapping[str, Any]) -> Dict[str, str]:
    """Trim and validate a company row; raises ValidationError."""
    name = clean_cell(raw.get("name"))
    if not name:
        raise ValidationError("Missing company name.")
    row = {
        "name": name,
        "logo": ensure_scheme(clean_cell(raw.get("logo"))),
        "description": clean_cell(raw.get("description")),
        "website": ensure_scheme(clean_cell(raw.get("website"))),
    }
    if row["website"] and not is_absolute_http_url(row["website"]):
        raise ValidationError(f"Invalid Website URL: {row['website']}.")
    if row["logo"] and not is_absolute_http_url(row["logo"]):
        raise ValidationError(f"Invalid Logo URL: {row['logo']}.")
    if not slugify(name):
        raise ValidationError(f'Company name "{name}" has no letters or digits to build a slug from.')
    return row


def diff_company(existing: Record, row: Mapping[str, str]) -> Dict[str, Any]:
    """Changed fields only; emptied optional fields become DELETE_FIELD."""
    payload: Dict[str, Any] = {}
    slug = slugify(row["name"])
    if row["name"] != existing.get("name") or slug != existing.get("slug"):
        payload["name"] = row["name"]
        payload["normalizedName"] = normalize_key(row["name"])
        payload["slug"] = slug
    for key in _OPTIONAL_COMPANY_FIELDS:
        value = row[key]
        if not value:
            if existing.get(key):
                payload[key] = DELETE_FIELD
        elif value != existing.get(key):
            payload[key] = value
    return payload


def parse_problem_row(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Trim and validate a problem row (company lookup happens separately)."""
    title = clean_cell(raw.get("title"))
    if not title:
        raise ValidationError("Missing problem title.")
    company_name = clean_cell(raw.get("companyName"))
    if not company_name:
        raise ValidationError("Missing company name.")
    difficulty = _DIFFICULTIES.get(clean_cell(raw.get("difficulty")).lower())
    if difficulty is None:
        raise ValidationError(
            f'Invalid or missing difficulty: "{clean_cell(raw.get("difficulty"))}". '
            "Must be Easy, Medium, or Hard."
        )
    link = clean_cell(raw.get("link"))
    if not link.lower().startswith(("http://", "https://")):
        raise ValidationError("Invalid problem link. Must start with http:// or https://.")
    if not is_absolute_http_url(link):
        raise ValidationError(f"Malformed problem link: {link}")
    period = clean_cell(raw.get("lastAskedPeriod"))
    if period and period not in _PERIODS:
        raise ValidationError(
            f'Invalid Last Asked Period: "{period}". Valid options: {", ".join(_PERIODS)}.'
        )
    return {
        "title": title,
        "companyName": company_name,
        "difficulty": difficulty,
        "link": link,
        "tags": split_tags(raw.get("tags")),
        "lastAskedPeriod": period or None,
    }


def diff_problem(existing: Record, row: Mapping[str, Any], company_slug: str) -> Dict[str, Any]:
    """Changed problem fields; a cleared recency bucket becomes DELETE_FIELD."""
    payload: Dict[str, Any] = {}
    wanted = {
        "title": row["title"],
        "slug": slugify(row["title"]),
        "difficulty": row["difficulty"],
        "link": row["link"],
        "tags": row["tags"],
        "companySlug": company_slug,
    }
    for key, value in wanted.items():
        if existing.get(key) != value:
            payload[key] = value
    period = row["lastAskedPeriod"]
    if period is None:
        if existing.get("lastAskedPeriod"):
            payload["lastAskedPeriod"] = DELETE_FIELD
    elif period != existing.get("lastAskedPeriod"):
        payload["lastAskedPeriod"] = period
    return payload


def _apply(record: Record, payload: Mapping[str, Any]) -> None:
    for key, value in payload.items():
        if value is DELETE_FIELD:
            record.pop(key, None)
        else:
            record[key] = value


class ReconciliationEngine:
    """Classify and persist bulk company and problem rows."""

    def __init__(self, store: EntityStore, cache: QueryCache):
        self.store = store
        self.cache = cache

    async def reconcile(self, kind: BulkKind, rows: Sequence[Mapping[str, Any]]) -> BulkReconcileResult:
        if kind == "company":
            return await self.reconcile_companies(rows)
        if kind == "problem":
            return await self.reconcile_problems(rows)
        raise ValidationError(f"Unknown bulk kind: {kind}")

    async def reconcile_companies(self, rows: Sequence[Mapping[str, Any]]) -> BulkReconcileResult:
        """Add or update companies matched case-insensitively by name."""
        existing = await self.store.list(COMPANIES)
        by_name: Dict[str, Record] = {normalize_key(c.get("name")): c for c in existing}
        by_name.update({c["normalizedName"]: c for c in existing if c.get("normalizedName")})
        slug_owner: Dict[str, str] = {c["slug"]: c["id"] for c in existing if c.get("slug")}
        report = _Report()

        for index, raw in enumerate(rows):
            if not isinstance(raw, Mapping):
                report.add(index, "(No Name)", RowStatus.ERROR, NOT_AN_OBJECT)
                continue
            label = clean_cell(raw.get("name")) or "(No Name)"
            try:
                row = parse_company_row(raw)
            except ValidationError as e:
                report.add(index, label, RowStatus.ERROR, str(e))
                continue

            name = row["name"]
            slug = slugify(name)
            current = by_name.get(normalize_key(name))
            owner = slug_owner.get(slug)
            if owner is not None and (current is None or owner != current["id"]):
                report.add(
                    index, name, RowStatus.ERROR,
                    f'Slug "{slug}" is already used by another company.',
                )
                continue

            if current is not None:
                payload = diff_company(current, row)
                if not payload:
                    report.add(index, name, RowStatus.SKIPPED, "No changes needed.")
                    continue
                try:
                    await self.store.update(COMPANIES, current["id"], payload)
                except StoreError as e:
                    report.add(index, name, RowStatus.ERROR, f"Update failed: {e}")
                    continue
                old_slug = current.get("slug")
                _apply(current, payload)
                if old_slug != current.get("slug"):
                    slug_owner.pop(old_slug, None)
                    slug_owner[current["slug"]] = current["id"]
                report.tags.extend(
                    cache_tags.company_write_tags(current["id"], [old_slug, current["slug"]])
                )
                report.add(index, name, RowStatus.UPDATED, "Updated existing company.")
            else:
                record = {
                    "name": name,
                    "normalizedName": normalize_key(name),
                    "slug": slug,
                    **{k: row[k] for k in _OPTIONAL_COMPANY_FIELDS if row[k]},
                    **empty_company_stats(),
                }
                try:
                    new_id = await self.store.insert(COMPANIES, record)
                except StoreError as e:
                    report.add(index, name, RowStatus.ERROR, f"Insert failed: {e}")
                    continue
                record["id"] = new_id
                by_name[record["normalizedName"]] = record
                slug_owner[slug] = new_id
                report.tags.extend(cache_tags.company_write_tags(new_id, [slug]))
                report.add(index, name, RowStatus.ADDED, "Added new company.")

        return self._finish("company", report)

    async def reconcile_problems(self, rows: Sequence[Mapping[str, Any]]) -> BulkReconcileResult:
        """Add or update problems matched by (company, case-insensitive title)."""
        companies = await self.store.list(COMPANIES)
        company_by_name: Dict[str, Record] = {
            c.get("normalizedName") or normalize_key(c.get("name")): c for c in companies
        }
        problems = await self.store.list(PROBLEMS)
        by_key: Dict[Tuple[str, str], Record] = {
            (p.get("companyId"), p.get("normalizedTitle") or normalize_key(p.get("title"))): p
            for p in problems
        }
        report = _Report()

        for index, raw in enumerate(rows):
            if not isinstance(raw, Mapping):
                report.add(index, "(No Title)", RowStatus.ERROR, NOT_AN_OBJECT)
                continue
            label = clean_cell(raw.get("title")) or "(No Title)"
            try:
                row = parse_problem_row(raw)
            except ValidationError as e:
                report.add(index, label, RowStatus.ERROR, str(e))
                continue

            title = row["title"]
            company = company_by_name.get(normalize_key(row["companyName"]))
            if company is None or not company.get("slug"):
                report.add(
                    index, title, RowStatus.ERROR,
                    f'Company "{row["companyName"]}" not found in database.',
                )
                continue
            company_id, company_slug = company["id"], company["slug"]
            key = (company_id, normalize_key(title))
            current = by_key.get(key)

            if current is not None:
                payload = diff_problem(current, row, company_slug)
                if not payload:
                    report.add(index, title, RowStatus.SKIPPED, "No changes needed.")
                    continue
                try:
                    await self.store.update(PROBLEMS, current["id"], payload)
                except StoreError as e:
                    report.add(index, title, RowStatus.ERROR, f"Update failed: {e}")
                    continue
                old_slug = current.get("slug")
                _apply(current, payload)
                report.tags.extend(cache_tags.problem_write_tags(company_id, company_slug))
                report.tags.append(cache_tags.problem_detail_tag(current["id"]))
                report.tags.extend(
                    cache_tags.problem_slug_tag(s) for s in {old_slug, current["slug"]} if s
                )
                report.add(index, title, RowStatus.UPDATED, "Updated existing problem.")
            else:
                record = {
                    "title": title,
                    "normalizedTitle": normalize_key(title),
                    "slug": slugify(title),
                    "difficulty": row["difficulty"],
                    "link": row["link"],
                    "tags": row["tags"],
                    "companyId": company_id,
                    "companySlug": company_slug,
                }
                if row["lastAskedPeriod"]:
                    record["lastAskedPeriod"] = row["lastAskedPeriod"]
                try:
                    new_id = await self.store.insert(PROBLEMS, record)
                except StoreError as e:
                    report.add(index, title, RowStatus.ERROR, f"Insert failed: {e}")
                    continue
                record["id"] = new_id
                by_key[key] = record
                report.tags.extend(cache_tags.problem_write_tags(company_id, company_slug))
                report.tags.append(cache_tags.problem_slug_tag(record["slug"]))
                report.add(index, title, RowStatus.ADDED, "Added new problem.")

        return self._finish("problem", report)

    def _finish(self, kind: str, report: _Report) -> BulkReconcileResult:
        result = report.result
        if result.addedCount or result.updatedCount:
            # One invalidation per distinct tag, after every row is written
            self.cache.invalidate_many(report.tags)
        logger.info(
            "Bulk %s reconcile: %d added, %d updated, %d skipped, %d errors",
            kind,
            result.addedCount,
            result.updatedCount,
            result.skippedCount,
            result.errorCount,
        )
        return result
