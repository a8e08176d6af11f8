"""Forum post and reply models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class Post(BaseModel):
    """Core post model. Like News, without translations and with an optional category."""

    id: str
    title: str
    content: str
    excerpt: str | None = None
    category_id: str | None = None
    author_id: str
    published: bool
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CreatePostRequest(BaseModel):
    model_config = {"extra": "forbid"}

    title: str = Field(min_length=3, max_length=200)
    content: str = Field(min_length=10)
    excerpt: str | None = Field(default=None, max_length=300)
    category_id: str | None = None
    author_id: str
    published: bool


class UpdatePostRequest(BaseModel):
    model_config = {"extra": "forbid"}

    id: str
    title: str | None = Field(default=None, min_length=3, max_length=200)
    content: str | None = Field(default=None, min_length=10)
    excerpt: str | None = Field(default=None, max_length=300)
    category_id: str | None = None
    published: bool | None = None


class PostReply(BaseModel):
    """A reply to a post. parent_reply_id threads it under another reply of the same post."""

    id: str
    post_id: str
    author_id: str
    content: str
    parent_reply_id: str | None = None
    created_at: datetime
    updated_at: datetime


class CreatePostReplyRequest(BaseModel):
    model_config = {"extra": "forbid"}

    post_id: str
    author_id: str
    content: str = Field(min_length=1, max_length=5000)
    parent_reply_id: str | None = None


class UpdatePostReplyRequest(BaseModel):
    model_config = {"extra": "forbid"}

    id: str
    content: str = Field(min_length=1, max_length=5000)


class PostIdArgs(BaseModel):
    model_config = {"extra": "forbid"}

    post_id: str


class ParentReplyArgs(BaseModel):
    model_config = {"extra": "forbid"}

    parent_reply_id: str
