from datetime import datetime
from types import SimpleNamespace

from folio.collections import DocumentCollection, Index, build_index, sort_documents


def doc(identifier, date, categories=(), tags=(), draft=False):
    return SimpleNamespace(
        identifier=identifier,
        date=date,
        categories=categories,
        tags=tags,
        draft=draft,
    )


def test_sort_documents_newest_first_with_identifier_tiebreak():
    a = doc("2015-01-01-b", datetime(2015, 1, 1))
    b = doc("2015-01-01-a", datetime(2015, 1, 1))
    c = doc("2016-01-01-c", datetime(2016, 1, 1))
    assert [d.identifier for d in sort_documents([a, b, c])] == [
        "2016-01-01-c",
        "2015-01-01-a",
        "2015-01-01-b",
    ]


def test_document_collection_helpers():
    first = doc("1", datetime(2024, 1, 1), categories=("python",), tags=("web",))
    second = doc("2", datetime(2024, 2, 1), categories=("python", "js"), draft=True)
    third = doc("3", datetime(2023, 12, 1), tags=("web",))
    collection = DocumentCollection([first, second, third])

    assert len(collection) == 3
    assert collection[0] is first
    assert [d.identifier for d in collection.in_category("python")] == ["1", "2"]
    assert [d.identifier for d in collection.with_tag("web")] == ["1", "3"]
    assert [d.identifier for d in collection.drafts()] == ["2"]
    assert [d.identifier for d in collection.published()] == ["1", "3"]
    assert [d.identifier for d in collection.sorted()] == ["2", "1", "3"]
    assert [d.identifier for d in collection.sorted(reverse=False)] == ["3", "1", "2"]
    assert [d.identifier for d in collection.latest(2)] == ["2", "1"]


def test_build_index_groups_and_orders():
    old = doc("2015-01-01-old", datetime(2015, 1, 1), categories=("lisp", "Web Dev"))
    new = doc("2016-01-01-new", datetime(2016, 1, 1), categories=("lisp",), tags=("jvm",))
    plain = doc("2014-01-01-plain", datetime(2014, 1, 1))

    categories = build_index("categories", [old, plain, new])
    assert categories.kind == "categories"
    assert list(categories) == ["Web Dev", "lisp"]
    assert [d.identifier for d in categories["lisp"]] == ["2016-01-01-new", "2015-01-01-old"]
    assert [d.identifier for d in categories["Web Dev"]] == ["2015-01-01-old"]
    assert categories.url_for("Web Dev") == "/categories/web-dev/"

    tags = build_index("tags", [old, plain, new])
    assert dict(tags.items()).keys() == {"jvm"}
    assert tags.url_for("jvm") == "/tags/jvm/"


def test_index_from_plain_mapping():
    first = doc("a", datetime(2020, 1, 1))
    second = doc("b", datetime(2021, 1, 1))
    index = Index("tags", {"z": [first], "a": [first, second]})
    assert list(index) == ["a", "z"]
    assert len(index) == 2
    assert [d.identifier for d in index["a"]] == ["b", "a"]
    assert "missing" not in index


def test_terms_sharing_a_slug_form_one_entry():
    upper = doc("2015-01-01-upper", datetime(2015, 1, 1), categories=("Clojure",))
    lower = doc("2016-01-01-lower", datetime(2016, 1, 1), categories=("clojure",))
    both = doc("2014-01-01-both", datetime(2014, 1, 1), tags=("c++", "c"))

    categories = build_index("categories", [upper, lower])
    assert list(categories) == ["Clojure"]
    assert [d.identifier for d in categories["clojure"]] == [
        "2016-01-01-lower",
        "2015-01-01-upper",
    ]
    assert categories["Clojure"] is categories["clojure"]
    assert categories.url_for("clojure") == "/categories/clojure/"

    tags = build_index("tags", [both])
    assert list(tags) == ["c"]
    assert [d.identifier for d in tags["c++"]] == ["2014-01-01-both"]

    collection = DocumentCollection([upper, lower, both])
    assert [d.identifier for d in collection.in_category("CLOJURE")] == [
        "2015-01-01-upper",
        "2016-01-01-lower",
    ]
    assert [d.identifier for d in collection.with_tag("c")] == ["2014-01-01-both"]
