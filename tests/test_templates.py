from datetime import datetime
from pathlib import Path

import pytest

from folio.collections import build_index
from folio.content import Document
from folio.errors import MarkupError, TemplateError
from folio.protocols import DocumentRenderer
from folio.renderers import Heading
from folio.templates import TemplateEngine, render_toc


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def make_doc(site: Path, slug="hello", layout="post", body="Hello *world*.", **kwargs):
    date = kwargs.pop("date", datetime(2015, 2, 28))
    fields = dict(
        identifier=f"{date:%Y-%m-%d}-{slug}",
        title=kwargs.pop("title", slug.title()),
        date=date,
        categories=kwargs.pop("categories", ()),
        tags=kwargs.pop("tags", ()),
        layout=layout,
        body=body,
        slug=slug,
        url=f"/{date:%Y/%m/%d}/{slug}/",
        excerpt="",
        source_type="markdown",
        draft=False,
        path=site / "posts" / f"{date:%Y-%m-%d}-{slug}.md",
        frontmatter=kwargs.pop("frontmatter", {}),
    )
    fields.update(kwargs)
    return Document(**fields)


def create_site(tmp_path: Path) -> Path:
    site = tmp_path / "site"
    write(
        site / "_layouts" / "post.html.jinja",
        "<title>{{ page.title }}</title>\n<main>{{ content }}</main>\n{{ render_toc(toc) }}\n",
    )
    write(
        site / "_layouts" / "wrapped.html.jinja",
        '{% include "nav.html.jinja" %}|{{ content }}|{{ frontmatter.mood }}',
    )
    write(site / "_partials" / "nav.html.jinja", "<nav>{{ site.title }}</nav>")
    write(site / "_layouts" / "plain.html", "[{{ content }}]")
    return site


def test_render_document_wraps_body_in_layout(tmp_path):
    site = create_site(tmp_path)
    engine = TemplateEngine(site, {"title": "Blog"})
    html = engine.render_document(make_doc(site, title="Hello & <Bye>"))
    assert "<title>Hello &amp; &lt;Bye&gt;</title>" in html
    assert "<main><p>Hello <em>world</em>.</p>\n</main>" in html


def test_layouts_with_partials_and_front_matter(tmp_path):
    site = create_site(tmp_path)
    engine = TemplateEngine(site, {"title": "Blog"})
    doc = make_doc(site, layout="wrapped", body="Hi", frontmatter={"mood": "calm"})
    assert engine.render_document(doc) == "<nav>Blog</nav>|<p>Hi</p>\n|calm"

    plain = make_doc(site, layout="plain", body="Hi")
    assert engine.render_document(plain) == "[<p>Hi</p>\n]"


def test_rendering_is_idempotent(tmp_path):
    site = create_site(tmp_path)
    engine = TemplateEngine(site, {"title": "Blog"})
    doc = make_doc(site, body="# One\n\n## Two\n\n```python\nx = 1\n```\n")
    assert engine.render_document(doc) == engine.render_document(doc)


def test_undefined_layout_raises_template_error(tmp_path):
    site = create_site(tmp_path)
    # A content file with the layout's name must not be picked up as a layout.
    write(site / "missing.html.jinja", "not a layout")
    engine = TemplateEngine(site, {})
    doc = make_doc(site, layout="missing")
    with pytest.raises(TemplateError) as excinfo:
        engine.render_document(doc)
    assert excinfo.value.layout == "missing"
    assert "missing" in str(excinfo.value)
    assert excinfo.value.identifier == doc.identifier
    assert engine.has_layout("post")
    assert not engine.has_layout("missing")


def test_broken_layouts_raise_template_error(tmp_path):
    site = create_site(tmp_path)
    write(site / "_layouts" / "syntax.html.jinja", "{% if %}")
    write(site / "_layouts" / "include.html.jinja", '{% include "nope.html.jinja" %}')
    engine = TemplateEngine(site, {})

    with pytest.raises(TemplateError, match="syntax error") as excinfo:
        engine.render_document(make_doc(site, layout="syntax"))
    assert excinfo.value.layout == "syntax"

    with pytest.raises(TemplateError, match="nope.html.jinja") as excinfo:
        engine.render_document(make_doc(site, layout="include"))
    assert excinfo.value.layout == "include"


def test_runtime_error_in_layout_raises_template_error(tmp_path):
    site = create_site(tmp_path)
    write(site / "_layouts" / "divide.html.jinja", "{{ 1 / 0 }}")
    engine = TemplateEngine(site, {})

    with pytest.raises(TemplateError, match="ZeroDivisionError") as excinfo:
        engine.render_document(make_doc(site, layout="divide"))
    assert excinfo.value.layout == "divide"
    assert excinfo.value.identifier == "2015-02-28-hello"
    assert isinstance(excinfo.value.original_error, ZeroDivisionError)


def test_body_markup_error_names_document(tmp_path):
    site = create_site(tmp_path)
    engine = TemplateEngine(site, {})
    doc = make_doc(site, body="```\nopen")
    with pytest.raises(MarkupError) as excinfo:
        engine.render_document(doc)
    assert excinfo.value.identifier == doc.identifier
    assert excinfo.value.source_path == doc.path


def test_render_index_lists_documents(tmp_path):
    site = create_site(tmp_path)
    engine = TemplateEngine(site, {"title": "Blog"})
    older = make_doc(site, slug="older", date=datetime(2015, 1, 1), title="Older")
    newer = make_doc(site, slug="newer", date=datetime(2015, 6, 1), title="Newer <b>")
    html = engine.render_index("categories", "lisp", [newer, older], "/categories/lisp/")
    assert "<title>Category: lisp | Blog</title>" in html
    assert html.index('href="/2015/06/01/newer/"') < html.index('href="/2015/01/01/older/"')
    assert "Newer &lt;b&gt;" in html

    home = engine.render_index("home", None, [newer], "/")
    assert "<h1>Blog</h1>" in home


def test_render_index_with_configured_layout(tmp_path):
    site = create_site(tmp_path)
    write(
        site / "_layouts" / "listing.html.jinja",
        "{{ page.title }}:{% for d in index_documents %}{{ d.slug }},{% endfor %}",
    )
    doc = make_doc(site)
    engine = TemplateEngine(site, {}, index_layout="listing")
    assert engine.render_index("tags", "jvm", [doc], "/tags/jvm/") == "Tag: jvm:hello,"

    broken = TemplateEngine(site, {}, index_layout="absent")
    with pytest.raises(TemplateError) as excinfo:
        broken.render_index("tags", "jvm", [doc], "/tags/jvm/")
    assert excinfo.value.identifier == "tags/jvm"
    assert excinfo.value.layout == "absent"


def test_collections_are_exposed_to_templates(tmp_path):
    site = create_site(tmp_path)
    write(
        site / "_layouts" / "nav.html.jinja",
        "{% for term in categories %}<a href=\"{{ url_for(categories.url_for(term)) }}\">"
        "{{ term }} ({{ categories[term]|length }})</a>{% endfor %}"
        "|{{ documents|length }}",
    )
    first = make_doc(site, slug="a", layout="nav", categories=("Web Dev",))
    second = make_doc(site, slug="b", layout="nav", categories=("Web Dev", "lisp"))
    engine = TemplateEngine(site, {}, root_url="https://example.com/blog/")
    engine.update_collections(
        [first, second],
        build_index("categories", [first, second]),
        build_index("tags", [first, second]),
    )
    html = engine.render_document(first)
    assert (
        '<a href="https://example.com/blog/categories/web-dev/">Web Dev (2)</a>'
        '<a href="https://example.com/blog/categories/lisp/">lisp (1)</a>|2'
    ) in html


def test_url_for(tmp_path):
    engine = TemplateEngine(tmp_path, {})
    assert engine._url_for("/about/") == "/about/"
    assert engine._url_for("about/") == "/about/"
    assert engine._url_for("https://other.example/") == "https://other.example/"

    with_site_url = TemplateEngine(tmp_path, {"url": "https://example.com"})
    assert with_site_url._url_for("/about/") == "https://example.com/about/"


def test_render_toc_nests_headings():
    headings = [
        Heading("a", "A", 1),
        Heading("b", "B <em>x</em>", 2),
        Heading("c", "C", 2),
        Heading("d", "D", 1),
    ]
    assert str(render_toc(headings)) == (
        '<ul><li><a href="#a">A</a>'
        '<ul><li><a href="#b">B x</a></li><li><a href="#c">C</a></li></ul></li>'
        '<li><a href="#d">D</a></li></ul>'
    )
    assert str(render_toc([])) == ""


def test_engine_satisfies_document_renderer(tmp_path):
    assert isinstance(TemplateEngine(tmp_path, {}), DocumentRenderer)
