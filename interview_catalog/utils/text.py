"""String helpers for normalized keys, slugs and URLs."""

import re
from typing import Any, Optional
from urllib.parse import urlparse

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s-]")
_SLUG_SEPARATORS = re.compile(r"[\s_-]+")


def normalize_key(value: Optional[str]) -> str:
    """Lowercased, trimmed form of a display field."""
    return (value or "").strip().lower()


def slugify(value: str) -> str:
    """
    Build a URL-safe slug.

    "Hello, World!" -> "hello-world"; strings with no usable characters
    produce an empty slug.
    """
    slug = _NON_SLUG_CHARS.sub("", value.strip().lower())
    slug = _SLUG_SEPARATORS.sub("-", slug)
    return slug.strip("-")


def clean_cell(value: Any) -> str:
    """Coerce a decoded spreadsheet cell to a trimmed string."""
    if value is None:
        return ""
    return str(value).strip()


def ensure_scheme(url: str) -> str:
    """Prepend https:// to a non-empty URL given without a scheme."""
    if url and not url.lower().startswith(("http://", "https://")):
        return f"https://{url}"
    return url


def is_absolute_http_url(url: str) -> bool:
    """True when url parses as an absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc) and " " not in url


def split_tags(raw: Any) -> list[str]:
    """Accept a comma-separated string or a list and return trimmed tags."""
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        parts = [clean_cell(t) for t in raw]
    else:
        parts = [t.strip() for t in str(raw).split(",")]
    return [t for t in parts if t]
