"""
Document store interface.

Handlers talk to the store only through this contract:
insert / get / patch / delete, plus index queries built with query().
Implement with Postgres for the function server, or in-memory for tests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Literal

from cmsadmin.schema import SCHEMA, index_fields

logger = logging.getLogger(__name__)

Document = dict[str, Any]
Order = Literal["asc", "desc"]
WriteListener = Callable[[str], None]


class DocumentStore:
    """
    Abstract document store.

    Documents are plain dicts carrying their "id". Fields set to None are not
    stored, so an equality match on None finds documents without the field.
    Results come back in insertion order unless a query asks for "desc".
    """

    def __init__(self) -> None:
        self._listeners: list[WriteListener] = []

    # -- change notification ------------------------------------------------

    def add_listener(self, listener: WriteListener) -> Callable[[], None]:
        """
        Register a callback invoked with the table name after every write.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self, table: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(table)
            except Exception:
                logger.exception("store: write listener failed for table %s", table)

    # -- documents ------------------------------------------------------------

    async def insert(self, table: str, doc: Document) -> str:
        """Insert a document and return its new id."""
        raise NotImplementedError

    async def get(self, doc_id: str, table: str | None = None) -> Document | None:
        """Fetch a document by id, optionally only from one table. Returns None if not found."""
        raise NotImplementedError

    async def patch(self, doc_id: str, changes: Document) -> None:
        """
        Shallow-merge changes into a document. A None value removes the field.

        Raises:
            KeyError: If the document does not exist
        """
        raise NotImplementedError

    async def delete(self, doc_id: str) -> None:
        """Delete a document. Deleting a missing id is a no-op."""
        raise NotImplementedError

    async def fetch(self, table: str, eq: Document, order: Order) -> list[Document]:
        """Return documents of a table whose fields equal every value in eq."""
        raise NotImplementedError

    def query(self, table: str) -> Query:
        """Start a query on a declared table."""
        if table not in SCHEMA:
            raise KeyError(f"Unknown table {table!r}")
        return Query(self, table)


class Query:
    """
    Index query builder.

    Usage:
        rows = await store.query("news").with_index("by_category", category_id=cid).collect()
        row = await store.query("categories").with_index("by_slug", slug="games").first()
    """

    def __init__(self, store: DocumentStore, table: str):
        self._store = store
        self._table = table
        self._eq: Document = {}
        self._order: Order = "asc"

    def with_index(self, index: str, **eq: Any) -> Query:
        """
        Restrict the query with equality matches on a declared index.

        The matched fields must be a prefix of the index's fields.
        """
        fields = index_fields(self._table, index)
        if tuple(eq) != fields[: len(eq)]:
            raise ValueError(f"Index {index!r} matches {fields}, got {tuple(eq)}")
        self._eq = dict(eq)
        return self

    def order(self, order: Order) -> Query:
        if order not in ("asc", "desc"):
            raise ValueError(f"Invalid order {order!r}")
        self._order = order
        return self

    async def collect(self) -> list[Document]:
        return await self._store.fetch(self._table, self._eq, self._order)

    async def first(self) -> Document | None:
        rows = await self.collect()
        return rows[0] if rows else None
