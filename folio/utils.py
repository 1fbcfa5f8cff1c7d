"""Utility functions for Folio.

String processing, path classification, date parsing, and directory handling
shared by the content store, the renderer, and the site assembler.

Key functions:
    slugify: Convert filenames and terms to URL slugs.
    extract_date_from_name: Extract date from a YYYY-MM-DD filename prefix.
    parse_date: Normalize a front-matter date value.
    normalize_terms: Normalize categories/tags to a tuple of strings.
    first_paragraph: Plain-text first paragraph of a markup body.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from datetime import date, datetime
from pathlib import Path

DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-")
DATE_NAME_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:-|$)")

# Accepted string forms for a front-matter date, most specific first.
DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
)

CONTENT_SUFFIXES = (".md", ".markdown", ".html")


def strip_date_prefix(name: str) -> str:
    """Remove a leading YYYY-MM-DD- prefix from a filename stem."""
    return DATE_PREFIX_RE.sub("", name, count=1)


def slugify(name: str) -> str:
    """Convert a filename stem or term to a slug, dropping any date prefix.

    Args:
        name: Filename stem, category, or tag.

    Returns:
        URL-friendly slug.
    """
    cleaned = strip_date_prefix(name)
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with YYYY-MM-DD prefix.

    Args:
        name: Filename stem (without extension).

    Returns:
        datetime at midnight if a valid date prefix is found, None otherwise.
    """
    match = DATE_NAME_RE.match(name)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def parse_date(value: object) -> datetime:
    """Normalize a front-matter date to a naive datetime.

    YAML may already have produced a date or datetime; strings are parsed
    against DATE_FORMATS. A UTC offset is dropped, keeping wall-clock time,
    so that the permalink day matches what the author wrote.

    Raises:
        ValueError: If the value is not a recognizable date.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).replace(tzinfo=None)
            except ValueError:
                continue
        try:
            return datetime.fromisoformat(text).replace(tzinfo=None)
        except ValueError:
            pass
    raise ValueError(f"Unrecognized date: {value!r}")


def normalize_terms(value: object) -> tuple[str, ...]:
    """Normalize a categories/tags value to an ordered, de-duplicated tuple.

    Accepts a list of terms or a whitespace-separated string.

    Raises:
        ValueError: If the value is neither a string nor a list.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split()
    elif isinstance(value, (list, tuple)):
        items = [str(item).strip() for item in value if item is not None]
    else:
        raise ValueError(f"Expected a list or string of terms, got {value!r}")
    seen: list[str] = []
    for item in items:
        if item and item not in seen:
            seen.append(item)
    return tuple(seen)


def first_paragraph(text: str, limit: int | None = None) -> str:
    """Extract the first prose paragraph from a markup body as plain text.

    Headings, images, code fences, and horizontal rules are skipped. HTML tags
    and inline emphasis markers are removed and whitespace is collapsed.

    Args:
        text: Markdown or HTML body.
        limit: Optional maximum length of the result.

    Returns:
        The cleaned paragraph, or an empty string.
    """
    in_fence = False
    for para in (p.strip() for p in text.split("\n\n")):
        if not para:
            continue
        fence_count = sum(
            1 for line in para.splitlines() if line.strip().startswith(("```", "~~~"))
        )
        if in_fence or fence_count:
            in_fence = in_fence ^ (fence_count % 2 == 1)
            continue
        if para.startswith(("#", "![", "---", "<pre")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"[*_`]", "", para)
        collapsed = " ".join(para.split())
        if not collapsed:
            continue
        return collapsed[:limit] if limit else collapsed
    return ""


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file."""
    return path.suffix.lower() in (".md", ".markdown")


def is_html(path: Path) -> bool:
    """Check if a path is a plain HTML content file."""
    return path.suffix.lower() == ".html"


def is_content_file(path: Path) -> bool:
    """Check if a path is a document source rather than a static file."""
    return path.suffix.lower() in CONTENT_SUFFIXES
