"""Sitemap and RSS output.

Feeds are written after the pages and need absolute links, so each
generator stays silent unless the site data carries a `url`. Nothing here
reads the clock: an unchanged site produces byte-identical feeds.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .collections import sort_documents
from .errors import FilesystemError
from .html_utils import escape_html

if TYPE_CHECKING:
    from .content import Document

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
RSS_DATE_FORMAT = "%a, %d %b %Y %H:%M:%S +0000"


def site_url(data: dict[str, Any]) -> str:
    """The configured site URL without a trailing slash, or ''."""
    return str(data.get("url") or "").rstrip("/")


class FeedGenerator(ABC):
    """One XML file derived from the published documents.

    Subclasses set `filename` and build the document body from the newest
    first document list in `render`.
    """

    filename: str = ""

    def generate(self, documents: Iterable[Document], data: dict[str, Any]) -> str | None:
        """Feed text, or None when the site has no URL."""
        base = site_url(data)
        if not base:
            return None
        lines = [XML_DECLARATION, *self.render(sort_documents(documents), base, data)]
        return "\n".join(lines) + "\n"

    @abstractmethod
    def render(
        self, documents: Sequence[Document], base: str, data: dict[str, Any]
    ) -> list[str]: ...

    def write(self, output_dir: Path, documents: Iterable[Document], data: dict[str, Any]) -> bool:
        """Write the feed into `output_dir`; False when it was skipped.

        Raises:
            FilesystemError: If the file cannot be written.
        """
        text = self.generate(documents, data)
        if text is None:
            return False
        target = output_dir / self.filename
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise FilesystemError(self.filename, f"Could not write {target}: {exc}", exc) from exc
        logger.debug("Wrote %s", target)
        return True


class SitemapGenerator(FeedGenerator):
    """sitemaps.org urlset with one entry per document."""

    filename = "sitemap.xml"

    def render(self, documents, base, data):
        entries = [
            f"  <url><loc>{escape_html(base + doc.url)}</loc>"
            f"<lastmod>{doc.date:%Y-%m-%d}</lastmod></url>"
            for doc in documents
        ]
        return ['<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">', *entries, "</urlset>"]


class RSSGenerator(FeedGenerator):
    """RSS 2.0 channel of the newest documents.

    `lastBuildDate` is the date of the newest document.

    Attributes:
        limit: Maximum number of items.
    """

    filename = "rss.xml"

    def __init__(self, limit: int = 20):
        self.limit = limit

    def render(self, documents, base, data):
        items = documents[: self.limit]
        title = escape_html(data.get("title", "Folio Feed"))
        description = escape_html(data.get("description", title))
        channel = [
            '<rss version="2.0"><channel>',
            f"<title>{title}</title>",
            f"<link>{escape_html(base)}/</link>",
            f"<description>{description}</description>",
        ]
        if items:
            channel.append(f"<lastBuildDate>{items[0].date.strftime(RSS_DATE_FORMAT)}</lastBuildDate>")
        channel.extend(self._item(doc, base) for doc in items)
        channel.append("</channel></rss>")
        return channel

    @staticmethod
    def _item(doc: Document, base: str) -> str:
        link = escape_html(base + doc.url)
        categories = "".join(f"<category>{escape_html(name)}</category>" for name in doc.categories)
        summary = escape_html(doc.excerpt or doc.title)
        return (
            f"<item><title>{escape_html(doc.title)}</title><link>{link}</link><guid>{link}</guid>"
            f"<description>{summary}</description>{categories}"
            f"<pubDate>{doc.date.strftime(RSS_DATE_FORMAT)}</pubDate></item>"
        )


class FeedRegistry:
    """Ordered set of feed generators run at the end of a build."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self, output_dir: Path, documents: Iterable[Document], data: dict[str, Any]
    ) -> list[str]:
        """Write every feed that applies and return their filenames."""
        documents = list(documents)
        return [gen.filename for gen in self._generators if gen.write(output_dir, documents, data)]


def create_default_feed_registry() -> FeedRegistry:
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
