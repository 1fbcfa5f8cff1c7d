from datetime import datetime
from pathlib import Path

import pytest

from folio.errors import MarkupError
from folio.extractors import (
    CompositeMetadataExtractor,
    DateExtractor,
    ExcerptExtractor,
    TermExtractor,
    TitleExtractor,
    extract_frontmatter,
)
from folio.protocols import MetadataExtractor


def test_extract_frontmatter_variants():
    data, body = extract_frontmatter("---\ntitle: Hi\n---\nBody\n")
    assert data == {"title": "Hi"}
    assert body == "Body\n"

    data, body = extract_frontmatter("No front matter here")
    assert data == {}
    assert body == "No front matter here"

    data, body = extract_frontmatter("---\n---\nBody")
    assert data == {}
    assert body == "Body"


def test_extract_frontmatter_errors():
    with pytest.raises(MarkupError, match="Unterminated"):
        extract_frontmatter("---\ntitle: Hi\nBody\n", Path("x.md"))
    with pytest.raises(MarkupError, match="mapping"):
        extract_frontmatter("---\n- a\n- b\n---\n")
    with pytest.raises(MarkupError, match="Invalid front matter"):
        extract_frontmatter("---\ntitle: [oops\n---\n")


def test_date_extractor_prefers_front_matter():
    extractor = DateExtractor()
    path = Path("2015-02-28-post.md")
    assert extractor.extract("", path, {}) == {"date": datetime(2015, 2, 28)}
    assert extractor.extract("", path, {"date": "2016-05-01 08:30"}) == {
        "date": datetime(2016, 5, 1, 8, 30)
    }
    assert extractor.extract("", Path("undated.md"), {}) == {}
    with pytest.raises(MarkupError):
        extractor.extract("", path, {"date": "tomorrow"})


def test_term_extractor_accepts_lists_strings_and_aliases():
    extractor = TermExtractor("categories", "category")
    path = Path("x.md")
    assert extractor.extract("", path, {"categories": ["a", "b", "a"]}) == {
        "categories": ("a", "b")
    }
    assert extractor.extract("", path, {"categories": "a b", "category": "c"}) == {
        "categories": ("a", "b", "c")
    }
    assert extractor.extract("", path, {}) == {"categories": ()}
    with pytest.raises(MarkupError):
        extractor.extract("", path, {"categories": {"nested": True}})


def test_title_and_excerpt_extractors():
    path = Path("x.md")
    assert TitleExtractor().extract("", path, {"title": "  Spaced  "}) == {"title": "Spaced"}
    assert TitleExtractor().extract("", path, {"title": ""}) == {}

    body = "# Heading\n\n```\ncode\n```\n\nThe *first* paragraph\nwraps here.\n\nSecond."
    assert ExcerptExtractor().extract(body, path, {}) == {
        "excerpt": "The first paragraph wraps here."
    }
    assert ExcerptExtractor().extract(body, path, {"excerpt": "Custom\n text"}) == {
        "excerpt": "Custom text"
    }


def test_composite_extractor_and_custom_extractors():
    class WordCountExtractor:
        def extract(self, content, path, frontmatter):
            return {"words": len(content.split())}

    assert isinstance(WordCountExtractor(), MetadataExtractor)

    composite = CompositeMetadataExtractor()
    composite.add_extractor(WordCountExtractor())
    result = composite.extract(
        "---\ntitle: Post\nlayout: post\ntags: [a]\n---\none two three\n",
        Path("2015-01-01-post.md"),
    )
    assert result["title"] == "Post"
    assert result["layout"] == "post"
    assert result["tags"] == ("a",)
    assert result["categories"] == ()
    assert result["date"] == datetime(2015, 1, 1)
    assert result["body"] == "one two three\n"
    assert result["words"] == 3
    assert result["frontmatter"]["tags"] == ["a"]

    only_custom = CompositeMetadataExtractor([WordCountExtractor()])
    result = only_custom.extract("---\ntitle: T\n---\na b\n", Path("x.md"))
    assert result == {"frontmatter": {"title": "T"}, "body": "a b\n", "words": 2}
