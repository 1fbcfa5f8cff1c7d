from datetime import datetime
from types import SimpleNamespace

import pytest

from folio.errors import FilesystemError
from folio.feeds import (
    FeedRegistry,
    RSSGenerator,
    SitemapGenerator,
    create_default_feed_registry,
)


def doc(identifier, date, url, title="Post", excerpt="", categories=()):
    return SimpleNamespace(
        identifier=identifier,
        date=date,
        url=url,
        title=title,
        excerpt=excerpt,
        categories=categories,
    )


DOCS = [
    doc("2015-02-28-old", datetime(2015, 2, 28), "/2015/02/28/old/", title="Old & Gold"),
    doc(
        "2016-01-01-new",
        datetime(2016, 1, 1, 10, 0),
        "/lisp/2016/01/01/new/",
        excerpt="Fresh <stuff>",
        categories=("lisp",),
    ),
]

DATA = {"url": "https://example.com/", "title": "Blog", "description": "Notes"}


def test_feeds_skipped_without_site_url(tmp_path):
    assert SitemapGenerator().generate(DOCS, {}) is None
    assert RSSGenerator().generate(DOCS, {"title": "Blog"}) is None
    assert create_default_feed_registry().generate_all(tmp_path, DOCS, {}) == []
    assert list(tmp_path.iterdir()) == []


def test_sitemap_lists_documents():
    sitemap = SitemapGenerator().generate(DOCS, DATA)
    assert sitemap.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert (
        "<url><loc>https://example.com/lisp/2016/01/01/new/</loc>"
        "<lastmod>2016-01-01</lastmod></url>"
    ) in sitemap
    assert sitemap.index("new/") < sitemap.index("old/")


def test_rss_items_are_escaped_and_dated_by_content():
    rss = RSSGenerator().generate(DOCS, DATA)
    assert "<title>Blog</title>" in rss
    assert "<link>https://example.com/</link>" in rss
    assert "<lastBuildDate>Fri, 01 Jan 2016 10:00:00 +0000</lastBuildDate>" in rss
    assert "<title>Old &amp; Gold</title>" in rss
    assert "<description>Fresh &lt;stuff&gt;</description>" in rss
    assert "<category>lisp</category>" in rss
    assert "<guid>https://example.com/2015/02/28/old/</guid>" in rss
    assert RSSGenerator().generate(DOCS, DATA) == rss


def test_rss_limit():
    rss = RSSGenerator(limit=1).generate(DOCS, DATA)
    assert rss.count("<item>") == 1
    assert "new/" in rss


def test_registry_writes_feeds(tmp_path):
    written = create_default_feed_registry().generate_all(tmp_path, DOCS, DATA)
    assert written == ["sitemap.xml", "rss.xml"]
    assert (tmp_path / "rss.xml").read_text(encoding="utf-8").startswith("<?xml")


def test_write_failure_is_filesystem_error(tmp_path):
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    missing = tmp_path / "does-not-exist"
    with pytest.raises(FilesystemError) as excinfo:
        registry.generate_all(missing, DOCS, DATA)
    assert excinfo.value.identifier == "sitemap.xml"
