"""Small HTML and URL helpers shared by renderers, templates, and feeds."""

from __future__ import annotations

import re

_ENTITIES = str.maketrans({"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;"})

# href="..." / src='...' / action="..."; the closing quote must match the opening one.
_LINK_ATTR = re.compile(r"""\b(href|src|action)=(["'])(.+?)\2""")


def escape_html(text: str) -> str:
    """Escape `&`, `<`, `>` and `"` for HTML or XML text.

    Examples:
        >>> escape_html('Tom & "Jerry" <3')
        'Tom &amp; &quot;Jerry&quot; &lt;3'
    """
    return str(text).translate(_ENTITIES)


def join_root_url(root_url: str, path: str) -> str:
    """Prefix `path` with `root_url`, keeping exactly one slash between them.

    Examples:
        >>> join_root_url('https://example.com/blog/', 'posts/')
        'https://example.com/blog/posts/'
    """
    if not root_url:
        return path
    return root_url.rstrip("/") + "/" + path.lstrip("/")


def _is_site_path(url: str) -> bool:
    # "/about/" yes; "//cdn", "https://", "#top", "mailto:" and "relative.html" no.
    return url.startswith("/") and not url.startswith("//")


def absolutize_html_urls(html: str, root_url: str) -> str:
    """Rewrite site-rooted href/src/action values in `html` against `root_url`.

    Used for feed bodies and `--root-url` builds, where links must survive
    being read outside the site.
    """
    if not root_url:
        return html

    def rewrite(match: re.Match) -> str:
        attr, quote, url = match.groups()
        if not _is_site_path(url):
            return match.group(0)
        return f"{attr}={quote}{join_root_url(root_url, url)}{quote}"

    return _LINK_ATTR.sub(rewrite, html)
