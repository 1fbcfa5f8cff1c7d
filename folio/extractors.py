"""Metadata extractors for Folio.

Each extractor pulls one kind of metadata out of a document source. The
composite runs the front-matter extractor first and hands the parsed mapping
and the remaining body to every other extractor.

Key classes:
- FrontmatterExtractor: Splits the YAML front matter from the body.
- TitleExtractor / LayoutExtractor: Plain string fields.
- DateExtractor: Front-matter date, falling back to the filename prefix.
- TermExtractor: Categories or tags, accepting list or string forms.
- ExcerptExtractor: First prose paragraph of the body.
- CompositeMetadataExtractor: Runs all of the above and merges results.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .errors import MarkupError
from .utils import extract_date_from_name, first_paragraph, normalize_terms, parse_date

FRONTMATTER_DELIMITER = "---"


def extract_frontmatter(
    text: str, path: Path | None = None
) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from the body.

    Args:
        text: Raw file content.
        path: Source path, used for error context.

    Returns:
        Tuple of (front matter mapping, remaining body). Text without a
        leading delimiter has empty front matter.

    Raises:
        MarkupError: If the block is unterminated, is not valid YAML, or is
            not a mapping.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONTMATTER_DELIMITER:
        return {}, text
    for index in range(1, len(lines)):
        if lines[index].rstrip() == FRONTMATTER_DELIMITER:
            block = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            break
    else:
        raise MarkupError(None, "Unterminated front matter block", source_path=path)

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise MarkupError(
            None, f"Invalid front matter: {exc}", exc, source_path=path
        ) from exc
    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise MarkupError(
            None,
            f"Front matter must be a mapping, got {type(data).__name__}",
            source_path=path,
        )
    return data, body


class FrontmatterExtractor:
    """Extracts YAML front matter and the body that follows it."""

    def extract(
        self, content: str, path: Path, frontmatter: dict[str, Any]
    ) -> dict[str, Any]:
        data, body = extract_frontmatter(content, path)
        return {"frontmatter": data, "body": body}


class TitleExtractor:
    """Reads the title from front matter."""

    def extract(
        self, content: str, path: Path, frontmatter: dict[str, Any]
    ) -> dict[str, Any]:
        title = frontmatter.get("title")
        if title is None or not str(title).strip():
            return {}
        return {"title": str(title).strip()}


class LayoutExtractor:
    """Reads the layout name from front matter."""

    def extract(
        self, content: str, path: Path, frontmatter: dict[str, Any]
    ) -> dict[str, Any]:
        layout = frontmatter.get("layout")
        if layout is None or not str(layout).strip():
            return {}
        return {"layout": str(layout).strip()}


class DateExtractor:
    """Extracts the publication date.

    Front matter wins over a YYYY-MM-DD filename prefix. Unlike a file's
    mtime, both are stable across checkouts, so no other fallback is used.
    """

    def extract(
        self, content: str, path: Path, frontmatter: dict[str, Any]
    ) -> dict[str, Any]:
        if frontmatter.get("date") is not None:
            try:
                return {"date": parse_date(frontmatter["date"])}
            except ValueError as exc:
                raise MarkupError(None, str(exc), exc, source_path=path) from exc
        date = extract_date_from_name(path.stem.lstrip("_"))
        return {"date": date} if date is not None else {}


class TermExtractor:
    """Extracts a list of terms (categories or tags).

    Attributes:
        field: Output key and plural front-matter key.
        alias: Singular front-matter key also accepted.
    """

    def __init__(self, field: str, alias: str):
        self.field = field
        self.alias = alias

    def extract(
        self, content: str, path: Path, frontmatter: dict[str, Any]
    ) -> dict[str, Any]:
        terms: tuple[str, ...] = ()
        for key in (self.field, self.alias):
            if key not in frontmatter:
                continue
            try:
                terms += normalize_terms(frontmatter[key])
            except ValueError as exc:
                raise MarkupError(
                    None, f"Invalid {key}: {exc}", exc, source_path=path
                ) from exc
        return {self.field: tuple(dict.fromkeys(terms))}


class ExcerptExtractor:
    """Uses an explicit front-matter excerpt, else the first paragraph."""

    def extract(
        self, content: str, path: Path, frontmatter: dict[str, Any]
    ) -> dict[str, Any]:
        explicit = frontmatter.get("excerpt")
        if explicit:
            return {"excerpt": " ".join(str(explicit).split())}
        return {"excerpt": first_paragraph(content)}


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    The FrontmatterExtractor always runs first; the rest see the parsed
    front matter and the body with the front matter removed. Later
    extractors override earlier ones on key collisions.
    """

    def __init__(self, extractors: list | None = None):
        self._frontmatter = FrontmatterExtractor()
        if extractors is None:
            self._extractors = [
                TitleExtractor(),
                LayoutExtractor(),
                DateExtractor(),
                TermExtractor("categories", "category"),
                TermExtractor("tags", "tag"),
                ExcerptExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        self._extractors.append(extractor)

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        """Extract all metadata from a document source.

        Args:
            content: Raw file content.
            path: Path to the source file.

        Returns:
            Dictionary with 'frontmatter', 'body', and every extracted field.
        """
        result = self._frontmatter.extract(content, path, {})
        for extractor in self._extractors:
            result.update(extractor.extract(result["body"], path, result["frontmatter"]))
        return result


default_metadata_extractor = CompositeMetadataExtractor()
