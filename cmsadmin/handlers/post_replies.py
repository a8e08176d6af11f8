"""Post reply handlers."""

from __future__ import annotations

from cmsadmin.errors import NotFoundError, ValidationError
from cmsadmin.handlers.base import BaseHandlers
from cmsadmin.models.post import CreatePostReplyRequest, PostReply, UpdatePostReplyRequest
from cmsadmin.schema import POST_REPLIES, POSTS


class PostReplyHandlers(BaseHandlers):
    """All reply operations. Replies thread through parent_reply_id within one post."""

    table = POST_REPLIES
    label = "Reply"

    async def list_by_post(self, post_id: str) -> list[PostReply]:
        """Replies of a post, newest first."""
        rows = await self.store.query(POST_REPLIES).with_index("by_post", post_id=post_id).order("desc").collect()
        return [PostReply.model_validate(row) for row in rows]

    async def get(self, reply_id: str) -> PostReply | None:
        doc = await self.store.get(reply_id, POST_REPLIES)
        return PostReply.model_validate(doc) if doc else None

    async def get_by_author(self, author_id: str) -> list[PostReply]:
        rows = await (
            self.store.query(POST_REPLIES).with_index("by_author", author_id=author_id).order("desc").collect()
        )
        return [PostReply.model_validate(row) for row in rows]

    async def get_by_parent(self, parent_reply_id: str) -> list[PostReply]:
        """Direct children of a reply, newest first."""
        rows = await (
            self.store.query(POST_REPLIES)
            .with_index("by_parent", parent_reply_id=parent_reply_id)
            .order("desc")
            .collect()
        )
        return [PostReply.model_validate(row) for row in rows]

    async def create(self, req: CreatePostReplyRequest) -> str:
        """
        Create a reply.

        Raises:
            NotFoundError: If the post or the parent reply does not exist
            ValidationError: If the parent reply belongs to another post
        """
        if await self.store.get(req.post_id, POSTS) is None:
            raise NotFoundError("Post not found")
        if req.parent_reply_id is not None:
            parent = await self.store.get(req.parent_reply_id, POST_REPLIES)
            if parent is None:
                raise NotFoundError("Parent reply not found")
            if parent["post_id"] != req.post_id:
                raise ValidationError("Parent reply belongs to a different post")

        now = self.clock()
        return await self.store.insert(POST_REPLIES, {**req.model_dump(), "created_at": now, "updated_at": now})

    async def update(self, req: UpdatePostReplyRequest) -> None:
        await self._require(req.id)
        await self.store.patch(req.id, self._changes(req))

    async def remove(self, reply_id: str) -> None:
        """Delete a reply. Nested replies keep their parent_reply_id."""
        await self.store.delete(reply_id)
