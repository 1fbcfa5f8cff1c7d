"""Template rendering engine for Folio.

This module wraps rendered document bodies in their named Jinja2 layouts
and renders the category, tag, and home index pages.

Key class:
- TemplateEngine: Renders documents and indexes and provides template context.

Rendering is a pure function of its inputs: nothing time- or
environment-dependent is placed in the context, so rendering the same
document twice yields byte-identical output.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import jinja2
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup
from pygments.formatters import HtmlFormatter

from .collections import DocumentCollection, Index
from .content import Document
from .errors import MarkupError, TemplateError
from .html_utils import escape_html, join_root_url
from .renderers import Heading, RendererRegistry, default_renderer_registry

__all__ = ["TemplateEngine", "render_toc"]

LAYOUT_SUFFIXES = (".html.jinja", ".jinja", ".html")

_INDEX_LISTING = """\
<ul class="document-index">
{%- for doc in index_documents %}
  <li><time datetime="{{ doc.date.strftime('%Y-%m-%d') }}">{{ doc.date.strftime('%Y-%m-%d') }}</time> <a href="{{ url_for(doc.url) }}">{{ doc.title }}</a></li>
{%- endfor %}
</ul>
"""

_INDEX_PAGE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ page.title }}{% if site.title %} | {{ site.title }}{% endif %}</title>
</head>
<body>
<h1>{{ page.title }}</h1>
{{ content }}
</body>
</html>
"""

INDEX_TITLES = {
    "categories": "Category: {term}",
    "tags": "Tag: {term}",
}


def render_toc(headings: Iterable[Heading] | None) -> Markup:
    """Render headings as a nested `<ul>` table of contents.

    Args:
        headings: Headings in document order.

    Returns:
        Markup-safe HTML, or empty Markup when there are no headings.
    """
    headings = list(headings or [])
    if not headings:
        return Markup("")

    html_parts: list[str] = []
    level_stack: list[int] = []
    for heading in headings:
        level = heading.level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")
        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        else:
            html_parts.append("<ul>")
            level_stack.append(level)
        html_parts.append(
            f'<li><a href="#{escape_html(heading.id)}">{escape_html(Markup(heading.text).striptags())}</a>'
        )
    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")
    return Markup("".join(html_parts))


class TemplateEngine:
    """Jinja2 rendering for documents and index pages.

    Attributes:
        site_dir: Content root; layouts live in `_layouts`, includes in `_partials`.
        data: Global site data, exposed to templates as `site`.
        root_url: Base URL applied by `url_for`.
        index_layout: Layout for index pages, or None for the built-in page.
        env: Jinja2 environment.
    """

    def __init__(
        self,
        site_dir: Path,
        data: dict[str, Any],
        root_url: str | None = None,
        index_layout: str | None = None,
        renderer_registry: RendererRegistry | None = None,
    ):
        self.site_dir = site_dir
        self.data = data
        self.root_url = root_url or data.get("root_url", "") or ""
        self.index_layout = index_layout
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.env = Environment(
            loader=FileSystemLoader(
                [site_dir / "_layouts", site_dir / "_partials"]
            ),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            keep_trailing_newline=True,
        )
        self.documents = DocumentCollection([])
        self.categories = Index("categories", {})
        self.tags = Index("tags", {})
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.globals["site"] = self.data
        self.env.globals["documents"] = self.documents
        self.env.globals["categories"] = self.categories
        self.env.globals["tags"] = self.tags
        self.env.globals["url_for"] = self._url_for
        self.env.globals["render_toc"] = render_toc
        self.env.globals["pygments_css"] = self._pygments_css

    @staticmethod
    def _pygments_css() -> Markup:
        return Markup(HtmlFormatter().get_style_defs(".highlight"))

    def update_collections(
        self,
        documents: Iterable[Document],
        categories: Mapping[str, Iterable[Document]] | Index,
        tags: Mapping[str, Iterable[Document]] | Index,
    ) -> None:
        """Expose the document list and indexes to every template."""
        self.documents = DocumentCollection(documents)
        self.categories = (
            categories if isinstance(categories, Index) else Index("categories", categories)
        )
        self.tags = tags if isinstance(tags, Index) else Index("tags", tags)
        self._install_globals()

    def _url_for(self, path: str) -> str:
        """Generate a URL for a path, applying root_url (or site url) if configured."""
        if path.startswith(("http://", "https://", "//")):
            return path
        base = self.root_url or str(self.data.get("url", "") or "")
        rooted = path if path.startswith("/") else f"/{path}"
        return join_root_url(base, rooted) if base else rooted

    def has_layout(self, layout: str) -> bool:
        return any(
            (self.site_dir / "_layouts" / f"{layout}{suffix}").is_file()
            for suffix in LAYOUT_SUFFIXES
        )

    def _resolve_layout_template(self, layout: str, identifier: str | None):
        """Return the compiled template for a layout name.

        Raises:
            TemplateError: If no file defines the layout or it fails to compile.
        """
        for suffix in LAYOUT_SUFFIXES:
            name = f"{layout}{suffix}"
            if not (self.site_dir / "_layouts" / name).is_file():
                continue
            try:
                return self.env.get_template(name)
            except TemplateNotFound:
                break
            except jinja2.TemplateSyntaxError as exc:
                raise TemplateError(
                    identifier,
                    layout,
                    f"Template syntax error in layout '{layout}' on line {exc.lineno}: {exc.message}",
                    exc,
                ) from exc
        raise TemplateError(identifier, layout, f"Layout '{layout}' is not defined")

    def render_body(self, document: Document) -> tuple[str, list[Heading]]:
        """Render a document body to HTML.

        Raises:
            MarkupError: If the body cannot be parsed.
        """
        renderer = self.renderer_registry.get_renderer(document.path)
        if renderer is None:
            raise MarkupError(
                document.identifier,
                f"No renderer for {document.path.suffix} files",
                source_path=document.path,
            )
        try:
            return renderer.render(document.body)
        except MarkupError as exc:
            raise MarkupError(
                document.identifier,
                exc.message,
                exc.original_error or exc,
                document.path,
            ) from exc

    def render_document(self, document: Document) -> str:
        """Render a document wrapped in its layout.

        Args:
            document: Document to render.

        Returns:
            The output page text.

        Raises:
            TemplateError: If the layout is undefined or fails to render.
            MarkupError: If the body cannot be parsed.
        """
        body_html, toc = self.render_body(document)
        template = self._resolve_layout_template(document.layout, document.identifier)
        context = {
            "page": document,
            "content": Markup(body_html),
            "toc": toc,
            "frontmatter": document.frontmatter,
        }
        return self._render(template, context, document.layout, document.identifier, document.path)

    def render_index(
        self,
        kind: str,
        term: str | None,
        documents: Iterable[Document],
        url: str,
    ) -> str:
        """Render an index page listing documents.

        Args:
            kind: "categories", "tags", or "home".
            term: The category or tag, None for the home index.
            documents: Documents to list, already in index order.
            url: URL path of the index page.

        Raises:
            TemplateError: If the configured index layout is undefined.
        """
        if term is None:
            title = str(self.data.get("title") or "Archive")
            identifier = "index"
        else:
            title = INDEX_TITLES.get(kind, "{term}").format(term=term)
            identifier = f"{kind}/{term}"
        index_documents = DocumentCollection(documents)
        listing = self.env.from_string(_INDEX_LISTING).render(
            index_documents=index_documents
        )
        context = {
            "page": {"title": title, "url": url, "kind": kind, "term": term},
            "content": Markup(listing),
            "index_documents": index_documents,
            "toc": [],
            "frontmatter": {},
        }
        if self.index_layout:
            template = self._resolve_layout_template(self.index_layout, identifier)
            layout = self.index_layout
        else:
            template = self.env.from_string(_INDEX_PAGE)
            layout = "<built-in index>"
        return self._render(template, context, layout, identifier, None)

    def _render(
        self,
        template,
        context: dict[str, Any],
        layout: str,
        identifier: str | None,
        source_path: Path | None,
    ) -> str:
        try:
            return template.render(**context)
        except TemplateNotFound as exc:
            raise TemplateError(
                identifier,
                layout,
                f"Layout '{layout}' includes missing template '{exc.name}'",
                exc,
                source_path,
            ) from exc
        except jinja2.TemplateError as exc:
            raise TemplateError(
                identifier,
                layout,
                f"Layout '{layout}' failed to render: {exc}",
                exc,
                source_path,
            ) from exc
        except Exception as exc:
            raise TemplateError(
                identifier,
                layout,
                f"Layout '{layout}' failed to render: {type(exc).__name__}: {exc}",
                exc,
                source_path,
            ) from exc
