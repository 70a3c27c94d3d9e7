"""In-process index engine.

Evaluates the same filter-tree / sort protocol as the HTTP engine against
documents held in memory. Used for local development (``INDEX_BACKEND=memory``)
and by the test suite.
"""

import hashlib
import math
from typing import Any

from catalog.search.protocol import (
    SHUFFLE,
    Document,
    FilterCondition,
    FilterLeaf,
    FilterTree,
    IndexEngine,
    SearchIndex,
    SearchResults,
    SortOptions,
)


def _flatten(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [s for v in value for s in _flatten(v)]
    return [str(value)]


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    if op == ">=":
        return actual >= expected
    return actual <= expected


def matches(doc: Document, node: FilterTree) -> bool:
    if isinstance(node, FilterLeaf):
        return _matches_condition(doc, node.condition)
    results = (matches(doc, child) for child in node.children)
    if node.type == "AND":
        return all(results)
    if node.type == "OR":
        return any(results)
    # NOT negates the conjunction of its children
    return not all(results)


def _matches_condition(doc: Document, cond: FilterCondition) -> bool:
    actual = doc.get(cond.property)
    if cond.operation == "=":
        return actual == cond.value
    if cond.operation in (">=", "<="):
        return _compare(cond.operation, actual, cond.value)
    if cond.operation == "contains":
        return isinstance(actual, list) and cond.value in actual
    # exists
    present = actual is not None and actual != [] and actual != ""
    return present if cond.value is None or cond.value else not present


def shuffle_key(seed: str, doc_id: str) -> str:
    return hashlib.sha256(f"{seed}:{doc_id}".encode()).hexdigest()


class MemoryIndex(SearchIndex):
    def __init__(self, name: str, fields: list[str]):
        super().__init__(name, fields)
        self.docs: dict[str, Document] = {}

    async def index(self, docs: list[Document]) -> int:
        for doc in docs:
            self.docs[doc["_id"]] = dict(doc)
        return len(docs)

    async def update(self, docs: list[Document]) -> None:
        await self.index(docs)

    async def delete(self, ids: list[str]) -> None:
        for doc_id in ids:
            self.docs.pop(doc_id, None)

    async def clear(self) -> None:
        self.docs.clear()

    def _score(self, doc: Document, terms: list[str]) -> int:
        haystack = " ".join(s for field in self.fields for s in _flatten(doc.get(field))).lower()
        if not all(term in haystack for term in terms):
            return 0
        return sum(haystack.count(term) for term in terms)

    async def search(
        self,
        query: str | None = None,
        filter: FilterTree | None = None,
        sort: SortOptions | None = None,
        skip: int = 0,
        take: int = 24,
    ) -> SearchResults:
        hits = [doc for doc in self.docs.values() if filter is None or matches(doc, filter)]

        terms = (query or "").lower().split()
        if terms:
            scored = [(self._score(doc, terms), doc) for doc in hits]
            scored = [(score, doc) for score, doc in scored if score > 0]
            scored.sort(key=lambda pair: pair[0], reverse=True)
            hits = [doc for _, doc in scored]

        if sort is not None:
            hits = self._sorted(hits, sort)

        page = hits[skip:skip + take]
        return SearchResults(
            items=[doc["_id"] for doc in page],
            total=len(hits),
            num_pages=math.ceil(len(hits) / take) if take else 0,
        )

    @staticmethod
    def _sorted(hits: list[Document], sort: SortOptions) -> list[Document]:
        if sort.sort_by == SHUFFLE:
            return sorted(hits, key=lambda doc: shuffle_key(sort.sort_type, doc["_id"]))

        present = [doc for doc in hits if doc.get(sort.sort_by) is not None]
        missing = [doc for doc in hits if doc.get(sort.sort_by) is None]
        if sort.sort_type == "string":
            key = lambda doc: str(doc[sort.sort_by]).lower()  # noqa: E731
        else:
            key = lambda doc: doc[sort.sort_by]  # noqa: E731
        present.sort(key=key, reverse=not sort.sort_asc)
        return present + missing


class MemoryIndexEngine(IndexEngine):
    def __init__(self):
        self.indexes: dict[str, MemoryIndex] = {}

    async def create_index(self, name: str, fields: list[str]) -> MemoryIndex:
        if name not in self.indexes:
            self.indexes[name] = MemoryIndex(name, fields)
        return self.indexes[name]
