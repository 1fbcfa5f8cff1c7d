"""Body renderers for Folio.

Each renderer turns one kind of document body into HTML. Layout wrapping is
the TemplateEngine's job; these only handle the markup itself.

Key classes:
- MarkdownRenderer: mistune with heading anchors and Pygments code blocks.
- HTMLRenderer: Passes through HTML bodies.
- RendererRegistry: Picks a renderer for a source path.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .errors import MarkupError
from .html_utils import escape_html
from .utils import is_html, is_markdown

FENCE_RE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})")
MARKDOWN_PLUGINS = ["strikethrough", "footnotes", "table", "url"]


@dataclass
class Heading:
    """One heading of a rendered body, used for tables of contents.

    Attributes:
        id: Anchor id written on the heading tag.
        text: Inner HTML of the heading.
        level: 1 for `<h1>` through 6 for `<h6>`.
    """

    id: str
    text: str
    level: int


def heading_anchor(text: str) -> str:
    """Anchor id for a heading: tags dropped, lowercased, words hyphen-joined."""
    plain = re.sub(r"<[^>]+>", "", text).lower()
    kept = "".join(ch for ch in plain if ch.isalnum() or ch.isspace() or ch in "-_")
    return "-".join(kept.replace("-", " ").split()) or "section"


def check_code_fences(source: str) -> None:
    """Ensure every fenced code block is closed.

    Raises:
        MarkupError: Naming the line of the unterminated opening fence.
    """
    opening: tuple[str, int, int] | None = None
    for lineno, line in enumerate(source.splitlines(), start=1):
        match = FENCE_RE.match(line)
        if not match:
            continue
        fence = match.group("fence")
        if opening is None:
            opening = (fence[0], len(fence), lineno)
        elif fence[0] == opening[0] and len(fence) >= opening[1] and not line.strip(
            fence[0] + " \t"
        ):
            opening = None
    if opening is not None:
        raise MarkupError(None, f"Unterminated code fence opened on line {opening[2]}")


def _lexer_for(info: str | None):
    name = (info or "").split(maxsplit=1)
    if not name:
        return None, None
    try:
        return name[0], get_lexer_by_name(name[0], stripall=True)
    except ClassNotFound:
        return name[0], None


class _AnchoredHTMLRenderer(mistune.HTMLRenderer):
    """mistune HTML output with heading ids and highlighted code blocks.

    Repeated heading text gets `-1`, `-2`, ... suffixes so anchors stay unique
    within one body.
    """

    def __init__(self, highlight_code: bool = True):
        super().__init__(escape=False)
        self.highlight_code = highlight_code
        self.headings: list[Heading] = []
        self._seen: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        anchor = heading_anchor(text)
        repeats = self._seen.get(anchor)
        self._seen[anchor] = 0 if repeats is None else repeats + 1
        if repeats is not None:
            anchor = f"{anchor}-{repeats + 1}"
        self.headings.append(Heading(anchor, text, level))
        return f'<h{level} id="{anchor}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        lang, lexer = _lexer_for(info)
        if lexer is not None and self.highlight_code:
            return highlight(code, lexer, HtmlFormatter(cssclass="highlight"))
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown bodies to HTML."""

    source_type = "markdown"

    def __init__(self, highlight_code: bool = True):
        self.highlight_code = highlight_code

    def can_render(self, path: Path) -> bool:
        return is_markdown(path)

    def render(self, content: str) -> tuple[str, list[Heading]]:
        """Render a Markdown body.

        Args:
            content: Markdown body without front matter.

        Returns:
            The HTML and the headings found in it, in order.

        Raises:
            MarkupError: If a code fence is left open or the parser fails.
        """
        check_code_fences(content)
        renderer = _AnchoredHTMLRenderer(self.highlight_code)
        to_html = mistune.create_markdown(renderer=renderer, plugins=MARKDOWN_PLUGINS)
        try:
            html = to_html(content)
        except Exception as exc:
            raise MarkupError(None, f"Markdown parse failed: {exc}", exc) from exc
        return html, renderer.headings


class HTMLRenderer:
    """Passes HTML bodies through unchanged."""

    source_type = "html"

    def can_render(self, path: Path) -> bool:
        return is_html(path)

    def render(self, content: str) -> tuple[str, list[Heading]]:
        return content, []


class RendererRegistry:
    """Body renderers, consulted in registration order."""

    def __init__(self, highlight_code: bool = True):
        self.renderers: list = [MarkdownRenderer(highlight_code), HTMLRenderer()]

    def register(self, renderer) -> None:
        self.renderers.append(renderer)

    def get_renderer(self, path: Path):
        """First renderer accepting `path`, or None for non-document files."""
        return next((r for r in self.renderers if r.can_render(path)), None)


default_renderer_registry = RendererRegistry()
