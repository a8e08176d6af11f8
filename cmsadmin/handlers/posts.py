"""Forum post handlers."""

from __future__ import annotations

from cmsadmin.handlers.base import BaseHandlers, list_by_filters, stamp_first_publish
from cmsadmin.models.common import ListFilters
from cmsadmin.models.post import CreatePostRequest, Post, UpdatePostRequest
from cmsadmin.schema import POSTS


class PostHandlers(BaseHandlers):
    """All post operations. Mirrors NewsHandlers without translations."""

    table = POSTS
    label = "Post"

    async def list(self, filters: ListFilters | None = None) -> list[Post]:
        rows = await list_by_filters(self.store, POSTS, filters)
        return [Post.model_validate(row) for row in rows]

    async def get(self, post_id: str) -> Post | None:
        doc = await self.store.get(post_id, POSTS)
        return Post.model_validate(doc) if doc else None

    async def get_by_author(self, author_id: str) -> list[Post]:
        rows = await self.store.query(POSTS).with_index("by_author", author_id=author_id).order("desc").collect()
        return [Post.model_validate(row) for row in rows]

    async def create(self, req: CreatePostRequest) -> str:
        now = self.clock()
        return await self.store.insert(
            POSTS,
            {
                **req.model_dump(),
                "published_at": now if req.published else None,
                "created_at": now,
                "updated_at": now,
            },
        )

    async def update(self, req: UpdatePostRequest) -> None:
        existing = await self._require(req.id)
        changes = self._changes(req)
        stamp_first_publish(existing, changes)
        await self.store.patch(req.id, changes)

    async def remove(self, post_id: str) -> None:
        """Delete a post. Replies are not removed."""
        await self.store.delete(post_id)
