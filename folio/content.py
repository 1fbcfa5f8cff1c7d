"""Content store for Folio.

This module discovers document sources under the content root, parses
their front matter, and builds immutable Document objects.

Key classes:
- Document: Frozen dataclass for one published document.
- FileContentLoader: Discovers document source files.
- PermalinkDeriver: Expands the permalink pattern for a document.
- DocumentBuilder: Builds and validates a Document from a source file.
- ContentStore: Lists documents and fetches one by identifier.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .collections import DocumentCollection, sort_documents
from .errors import (
    BuildError,
    DuplicateDocumentError,
    FilesystemError,
    MarkupError,
    MissingMetadataError,
    NotFoundError,
)
from .extractors import CompositeMetadataExtractor, default_metadata_extractor
from .renderers import RendererRegistry, default_renderer_registry
from .utils import extract_date_from_name, is_content_file, slugify

logger = logging.getLogger(__name__)

DEFAULT_PERMALINK = "/:categories/:year/:month/:day/:slug/"
DEFAULT_REQUIRED_FIELDS = ("layout", "title")

_PERMALINK_TOKEN_RE = re.compile(r":(categories|year|month|day|slug|title)\b")


@dataclass(frozen=True)
class Document:
    """A published document with its metadata and raw body.

    Attributes:
        identifier: Unique id, "YYYY-MM-DD-slug".
        title: Human-readable title.
        date: Publication date (naive, wall-clock).
        categories: Categories in front-matter order.
        tags: Tags in front-matter order.
        layout: Name of the layout that wraps the body.
        body: Markup body with the front matter removed.
        slug: URL-friendly slug.
        url: Permalink path.
        excerpt: First prose paragraph as plain text.
        source_type: "markdown" or "html".
        draft: Whether the source file name starts with an underscore.
        path: Path to the source file.
        frontmatter: Full parsed front matter, for custom layout keys.
    """

    identifier: str
    title: str
    date: datetime
    categories: tuple[str, ...]
    tags: tuple[str, ...]
    layout: str
    body: str
    slug: str
    url: str
    excerpt: str
    source_type: str
    draft: bool
    path: Path
    frontmatter: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def output_path(self) -> str:
        """Output file path relative to the output directory."""
        return url_to_output_path(self.url)


def url_to_output_path(url: str) -> str:
    """Map a URL path to the file it is served from.

    Directory-style URLs ("/a/b/") are written as "a/b/index.html"; URLs
    with a file extension are written as-is.
    """
    path = url.strip("/")
    if url.endswith("/") or not path:
        return f"{path}/index.html" if path else "index.html"
    return path


class FileContentLoader:
    """Discovers document source files under the content root.

    Files inside directories starting with "_" (layouts, partials) are never
    documents. Files whose own name starts with "_" are drafts.

    Attributes:
        site_dir: Content root.
    """

    def __init__(self, site_dir: Path):
        self.site_dir = site_dir

    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        """Return document source paths in a stable order.

        Args:
            include_drafts: Whether to include draft files.

        Returns:
            Sorted list of paths to document sources.
        """
        files: list[Path] = []
        for path in sorted(self.site_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.site_dir)
            if any(part.startswith(("_", ".")) for part in rel.parts[:-1]):
                continue
            if rel.name.startswith("."):
                continue
            if rel.name.startswith("_") and not include_drafts:
                continue
            if is_content_file(path):
                files.append(path)
        return files


class PermalinkDeriver:
    """Expands a permalink pattern for a document.

    Placeholders: :categories, :year, :month, :day, :slug (alias :title).
    Empty segments are collapsed, so a document without categories lands
    one level higher.
    """

    def __init__(self, pattern: str = DEFAULT_PERMALINK):
        self.pattern = pattern

    def derive(
        self,
        slug: str,
        date: datetime,
        categories: Sequence[str],
        pattern: str | None = None,
    ) -> str:
        values = {
            "categories": "/".join(slugify(c) for c in categories),
            "year": f"{date.year:04d}",
            "month": f"{date.month:02d}",
            "day": f"{date.day:02d}",
            "slug": slug,
            "title": slug,
        }
        expanded = _PERMALINK_TOKEN_RE.sub(
            lambda m: values[m.group(1)], pattern or self.pattern
        )
        segments = [s for s in expanded.split("/") if s]
        url = "/" + "/".join(segments)
        if expanded.endswith("/") and segments:
            url += "/"
        return url


class DocumentBuilder:
    """Builds Document objects from source files.

    Attributes:
        site_dir: Content root.
        required_fields: Front-matter fields every document must define.
        renderer_registry: Used to classify the body's source type.
        metadata_extractor: Composite metadata extractor.
        permalink_deriver: Permalink expansion.
    """

    def __init__(
        self,
        site_dir: Path,
        required_fields: Sequence[str] = DEFAULT_REQUIRED_FIELDS,
        permalink: str = DEFAULT_PERMALINK,
        renderer_registry: RendererRegistry | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.site_dir = site_dir
        self.required_fields = tuple(required_fields)
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.metadata_extractor = metadata_extractor or default_metadata_extractor
        self.permalink_deriver = PermalinkDeriver(permalink)

    def provisional_identifier(self, path: Path) -> str:
        """Identifier guessed from the filename, before front matter is read.

        Used for error context and for lookups of documents that fail to
        build.
        """
        stem = path.stem.lstrip("_")
        date = extract_date_from_name(stem)
        slug = slugify(stem)
        return f"{date:%Y-%m-%d}-{slug}" if date else slug

    def build(self, path: Path, draft: bool = False) -> Document:
        """Build a Document from a source file.

        Raises:
            FilesystemError: If the file cannot be read.
            MarkupError: If the front matter is malformed.
            MissingMetadataError: If a required field or the date is absent.
        """
        provisional = self.provisional_identifier(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FilesystemError(
                provisional, f"Could not read source: {exc}", exc, path
            ) from exc

        try:
            metadata = self.metadata_extractor.extract(raw, path)
        except MarkupError as exc:
            raise MarkupError(
                provisional, exc.message, exc.original_error, path
            ) from exc

        frontmatter = metadata["frontmatter"]
        missing = [
            name
            for name in self.required_fields
            if metadata.get(name) in (None, "") and frontmatter.get(name) in (None, "")
        ]
        if "date" not in metadata:
            missing.append("date")
        if missing:
            raise MissingMetadataError(provisional, missing, source_path=path)

        renderer = self.renderer_registry.get_renderer(path)
        if renderer is None:
            raise MarkupError(
                provisional, f"No renderer for {path.suffix} files", source_path=path
            )

        date: datetime = metadata["date"]
        if frontmatter.get("slug"):
            slug = slugify(str(frontmatter["slug"]))
        else:
            slug = slugify(path.stem.lstrip("_"))
        categories = metadata.get("categories", ())
        url = self.permalink_deriver.derive(
            slug, date, categories, pattern=frontmatter.get("permalink")
        )
        return Document(
            identifier=f"{date:%Y-%m-%d}-{slug}",
            title=metadata.get("title", ""),
            date=date,
            categories=categories,
            tags=metadata.get("tags", ()),
            layout=metadata.get("layout", ""),
            body=metadata["body"],
            slug=slug,
            url=url,
            excerpt=metadata.get("excerpt", ""),
            source_type=renderer.source_type,
            draft=draft,
            path=path,
            frontmatter=frontmatter,
        )


class ContentStore:
    """Enumerates documents under a content root.

    Neither operation writes anything; every call re-reads the sources.

    Attributes:
        site_dir: Content root.
    """

    def __init__(
        self,
        site_dir: Path,
        content_loader: FileContentLoader | None = None,
        document_builder: DocumentBuilder | None = None,
    ):
        self.site_dir = site_dir
        self._content_loader = content_loader or FileContentLoader(site_dir)
        self._document_builder = document_builder or DocumentBuilder(site_dir)

    def _require_root(self) -> None:
        if not self.site_dir.is_dir():
            raise NotFoundError(
                None,
                f"Content root not found: {self.site_dir}",
                source_path=self.site_dir,
            )

    def list(self, include_drafts: bool = False) -> DocumentCollection:
        """Load every document, newest first.

        Args:
            include_drafts: Whether to include drafts.

        Returns:
            DocumentCollection in index order.

        Raises:
            NotFoundError: If the content root is absent.
            DuplicateDocumentError: If two documents share an identifier or URL.
        """
        self._require_root()
        by_identifier: dict[str, Document] = {}
        by_url: dict[str, Document] = {}
        for path in self._content_loader.iter_files(include_drafts):
            document = self._document_builder.build(
                path, draft=path.name.startswith("_")
            )
            for seen, key, label in (
                (by_identifier, document.identifier, "identifier"),
                (by_url, document.url, "URL"),
            ):
                if key in seen:
                    other = seen[key].path.relative_to(self.site_dir)
                    raise DuplicateDocumentError(
                        document.identifier,
                        f"Duplicate {label} {key!r} (also used by {other.as_posix()})",
                        source_path=path,
                    )
                seen[key] = document
        logger.debug("Loaded %d documents from %s", len(by_identifier), self.site_dir)
        return DocumentCollection(sort_documents(by_identifier.values()))

    def get(self, identifier: str, include_drafts: bool = True) -> Document:
        """Fetch a single document by identifier.

        Sources that fail to build are only reported when their filename
        suggests they are the requested document.

        Raises:
            NotFoundError: If no document has the identifier.
            MissingMetadataError: If the matching document lacks required
                metadata.
        """
        self._require_root()
        for path in self._content_loader.iter_files(include_drafts):
            try:
                document = self._document_builder.build(
                    path, draft=path.name.startswith("_")
                )
            except BuildError as exc:
                if self._document_builder.provisional_identifier(path) == identifier:
                    raise
                logger.debug("Skipping %s while looking up %s: %s", path, identifier, exc)
                continue
            if document.identifier == identifier:
                return document
        raise NotFoundError(identifier, f"No document with identifier {identifier!r}")
