"""Shared plumbing for entity handlers."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from cmsadmin.errors import NotFoundError
from cmsadmin.models.common import ListFilters
from cmsadmin.store.base import Document, DocumentStore

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


class BaseHandlers:
    """Holds the store and the clock every handler set stamps timestamps with."""

    table: str
    label: str

    def __init__(self, store: DocumentStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or utcnow

    async def _require(self, doc_id: str) -> Document:
        """Fetch a document of this handler's table or raise NotFoundError."""
        doc = await self.store.get(doc_id, self.table)
        if doc is None:
            raise NotFoundError(f"{self.label} not found")
        return doc

    def _changes(self, req: BaseModel) -> dict[str, Any]:
        """Fields an update request actually carries, plus a fresh updated_at."""
        changes: dict[str, Any] = req.model_dump(exclude_unset=True, exclude_none=True, exclude={"id"})
        changes["updated_at"] = self.clock()
        return changes


def stamp_first_publish(existing: Document, changes: dict[str, Any]) -> None:
    """Set published_at the first time published becomes true. Never cleared afterwards."""
    if changes.get("published") is True and not existing.get("published_at"):
        changes["published_at"] = changes["updated_at"]


async def list_by_filters(store: DocumentStore, table: str, filters: ListFilters | None) -> list[Document]:
    """
    Listing policy shared by news and posts.

    Category wins over published: with both filters the category index is
    used and published is applied in memory. No filters returns every
    document newest first.
    """
    filters = filters or ListFilters()
    if filters.category_id is not None:
        rows = await store.query(table).with_index("by_category", category_id=filters.category_id).collect()
        if filters.published is not None:
            rows = [row for row in rows if row.get("published") is filters.published]
        return rows
    if filters.published is not None:
        return await store.query(table).with_index("by_published", published=filters.published).collect()
    return await store.query(table).order("desc").collect()
