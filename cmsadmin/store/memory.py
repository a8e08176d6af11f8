"""In-memory document store for tests and local development."""

from __future__ import annotations

import itertools
from uuid import uuid4

from cmsadmin.schema import SCHEMA
from cmsadmin.store.base import Document, DocumentStore, Order


class MemoryDocumentStore(DocumentStore):
    """In-memory storage. Each document remembers its table and insertion sequence."""

    def __init__(self) -> None:
        super().__init__()
        self._docs: dict[str, tuple[str, int, Document]] = {}
        self._seq = itertools.count(1)

    async def insert(self, table: str, doc: Document) -> str:
        if table not in SCHEMA:
            raise KeyError(f"Unknown table {table!r}")
        doc_id = uuid4().hex
        stored = {k: v for k, v in doc.items() if v is not None and k != "id"}
        stored["id"] = doc_id
        self._docs[doc_id] = (table, next(self._seq), stored)
        self._notify(table)
        return doc_id

    async def get(self, doc_id: str, table: str | None = None) -> Document | None:
        entry = self._docs.get(doc_id)
        if entry is None or (table is not None and entry[0] != table):
            return None
        return dict(entry[2])

    async def patch(self, doc_id: str, changes: Document) -> None:
        entry = self._docs.get(doc_id)
        if entry is None:
            raise KeyError(doc_id)
        table, seq, doc = entry
        updated = dict(doc)
        for key, value in changes.items():
            if key == "id":
                continue
            if value is None:
                updated.pop(key, None)
            else:
                updated[key] = value
        self._docs[doc_id] = (table, seq, updated)
        self._notify(table)

    async def delete(self, doc_id: str) -> None:
        entry = self._docs.pop(doc_id, None)
        if entry is not None:
            self._notify(entry[0])

    async def fetch(self, table: str, eq: Document, order: Order) -> list[Document]:
        rows = sorted(
            ((seq, doc) for (tbl, seq, doc) in self._docs.values() if tbl == table and _matches(doc, eq)),
            key=lambda item: item[0],
            reverse=order == "desc",
        )
        return [dict(doc) for _, doc in rows]


def _matches(doc: Document, eq: Document) -> bool:
    for field, value in eq.items():
        if value is None:
            if doc.get(field) is not None:
                return False
        elif field not in doc or doc[field] != value or type(doc[field]) is not type(value):
            return False
    return True
