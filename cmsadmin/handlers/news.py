"""News article handlers."""

from __future__ import annotations

from cmsadmin.handlers.base import BaseHandlers, list_by_filters, stamp_first_publish
from cmsadmin.models.common import ListFilters
from cmsadmin.models.news import CreateNewsRequest, News, UpdateNewsRequest
from cmsadmin.schema import CATEGORIES, NEWS


class NewsHandlers(BaseHandlers):
    """All news operations. Content here is the source locale; see translations.py for the rest."""

    table = NEWS
    label = "News"

    async def list(self, filters: ListFilters | None = None) -> list[News]:
        """
        List news with optional category and published filters.

        Args:
            filters: ListFilters; see list_by_filters for precedence

        Returns:
            Matching news. Newest first when unfiltered, insertion order otherwise.
        """
        rows = await list_by_filters(self.store, NEWS, filters)
        return [News.model_validate(row) for row in rows]

    async def get(self, news_id: str) -> News | None:
        doc = await self.store.get(news_id, NEWS)
        return News.model_validate(doc) if doc else None

    async def get_by_author(self, author_id: str) -> list[News]:
        """News written by one identity provider subject, newest first."""
        rows = await self.store.query(NEWS).with_index("by_author", author_id=author_id).order("desc").collect()
        return [News.model_validate(row) for row in rows]

    async def get_by_category_slug(self, category_slug: str) -> list[News]:
        """
        Published news of the category with this slug.

        Returns:
            Newest first by published_at (created_at when never published),
            or an empty list if no category has the slug
        """
        category = await self.store.query(CATEGORIES).with_index("by_slug", slug=category_slug).first()
        if not category:
            return []
        rows = await self.store.query(NEWS).with_index("by_category", category_id=category["id"]).collect()
        items = [News.model_validate(row) for row in rows if row.get("published") is True]
        items.sort(key=lambda n: n.published_at or n.created_at, reverse=True)
        return items

    async def create(self, req: CreateNewsRequest) -> str:
        """
        Create a news article. Publishing at creation stamps published_at.

        Returns:
            New news id
        """
        now = self.clock()
        return await self.store.insert(
            NEWS,
            {
                **req.model_dump(),
                "published_at": now if req.published else None,
                "created_at": now,
                "updated_at": now,
            },
        )

    async def update(self, req: UpdateNewsRequest) -> None:
        """
        Apply the provided fields to a news article.

        published_at is stamped the first time published turns true and is
        kept when the article is later unpublished.

        Raises:
            NotFoundError: If the news item does not exist
        """
        existing = await self._require(req.id)
        changes = self._changes(req)
        stamp_first_publish(existing, changes)
        await self.store.patch(req.id, changes)

    async def remove(self, news_id: str) -> None:
        """Delete a news article. Its translations are not removed."""
        await self.store.delete(news_id)
