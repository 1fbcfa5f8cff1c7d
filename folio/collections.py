from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING

from .utils import slugify

if TYPE_CHECKING:
    from .content import Document


def sort_documents(documents: Iterable[Document]) -> list[Document]:
    """Return documents in index order: newest first, ties by identifier ascending."""
    by_identifier = sorted(documents, key=lambda d: d.identifier)
    return sorted(by_identifier, key=lambda d: d.date, reverse=True)


class DocumentCollection(Sequence["Document"]):
    """Lightweight helper for working with lists of Documents in templates and code."""

    def __init__(self, documents: Iterable[Document]):
        self._documents = list(documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, item):
        return self._documents[item]

    def in_category(self, name: str) -> DocumentCollection:
        key = slugify(name)
        return DocumentCollection(
            d for d in self._documents if key in {slugify(c) for c in d.categories}
        )

    def with_tag(self, tag: str) -> DocumentCollection:
        key = slugify(tag)
        return DocumentCollection(d for d in self._documents if key in {slugify(t) for t in d.tags})

    def drafts(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.draft)

    def published(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if not d.draft)

    def sorted(self, reverse: bool = True) -> DocumentCollection:
        """Sort documents by date, newest first by default.

        Ties on date are always broken by identifier ascending so the order
        is deterministic in both directions.
        """
        if reverse:
            return DocumentCollection(sort_documents(self._documents))
        return DocumentCollection(
            sorted(self._documents, key=lambda d: (d.date, d.identifier))
        )

    def latest(self, count: int = 5) -> DocumentCollection:
        return DocumentCollection(self.sorted()[:count])

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"DocumentCollection({len(self._documents)} documents)"


class Index(Mapping[str, DocumentCollection]):
    """Mapping of a category or tag to the documents that carry it.

    Terms that share a slug, such as `Clojure` and `clojure`, are one entry
    published at one URL. The entry is named after the first spelling in
    sorted order and can be looked up by any spelling. Keys iterate in
    sorted order and each entry is in index order, so two builds over the
    same documents produce identical listings.

    Attributes:
        kind: "categories" or "tags".
    """

    def __init__(self, kind: str, mapping: Mapping[str, Iterable[Document]]):
        self.kind = kind
        self._names: dict[str, str] = {}
        merged: dict[str, list[Document]] = {}
        for key in sorted(mapping):
            name = self._names.setdefault(slugify(key), key)
            members = merged.setdefault(name, [])
            for document in mapping[key]:
                if not any(document is m for m in members):
                    members.append(document)
        self._mapping = {
            name: DocumentCollection(sort_documents(members))
            for name, members in merged.items()
        }

    def __getitem__(self, key: str) -> DocumentCollection:
        if key not in self._mapping:
            key = self._names.get(slugify(key), key)
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def url_for(self, term: str) -> str:
        """Return the URL path of the index page for a term."""
        return f"/{self.kind}/{slugify(term)}/"

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Index({self.kind}, {len(self._mapping)} terms)"


def build_index(kind: str, documents: Iterable[Document]) -> Index:
    """Group documents by each value of their `kind` attribute.

    Args:
        kind: Document attribute to group by, "categories" or "tags".
        documents: Documents to index.

    Returns:
        Index of term to documents bearing it.
    """
    grouped: dict[str, list[Document]] = {}
    for document in documents:
        for term in getattr(document, kind):
            grouped.setdefault(term, []).append(document)
    return Index(kind, grouped)
