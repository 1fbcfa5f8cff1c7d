"""Protocol definitions for Folio.

These are the seams between the content store, the renderer, and the site
assembler. Any object with the right methods can be plugged in, which keeps
tests free to substitute small fakes.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import Document
    from .renderers import Heading


@runtime_checkable
class BodyRenderer(Protocol):
    """Renders one kind of document body to HTML."""

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        ...

    @abstractmethod
    def render(self, content: str) -> tuple[str, list[Heading]]:
        """Render a body.

        Returns:
            Tuple of (rendered HTML, headings for a table of contents).

        Raises:
            MarkupError: If the body cannot be parsed.
        """
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Source type identifier ('markdown' or 'html')."""
        ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Extracts one kind of metadata from a document body and its front matter."""

    @abstractmethod
    def extract(
        self, content: str, path: Path, frontmatter: dict[str, Any]
    ) -> dict[str, Any]:
        ...


@runtime_checkable
class ContentLoader(Protocol):
    """Discovers document source files."""

    @abstractmethod
    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        ...


@runtime_checkable
class DocumentRenderer(Protocol):
    """Renders documents and index pages to output text."""

    @abstractmethod
    def render_document(self, document: Document) -> str:
        """Render a document wrapped in its layout.

        Raises:
            TemplateError: If the layout is undefined.
            MarkupError: If the body cannot be parsed.
        """
        ...

    @abstractmethod
    def render_index(
        self, kind: str, term: str | None, documents: Any, url: str
    ) -> str:
        ...
