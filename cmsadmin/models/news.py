"""News article models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class News(BaseModel):
    """
    Core news model. Represents a document in the news table.

    Content here is the source-locale (English) version. Other locales live
    in the news_translations table.
    """

    id: str
    title: str
    content: str
    excerpt: str | None = None
    cover_image: str | None = None
    category_id: str
    author_id: str  # identity provider subject, not checked against any user table
    published: bool
    is_featured: bool | None = None
    published_at: datetime | None = None  # stamped once, on first publish
    created_at: datetime
    updated_at: datetime


class CreateNewsRequest(BaseModel):
    """What the client sends to create a news article."""

    model_config = {"extra": "forbid"}

    title: str = Field(min_length=3, max_length=200)
    content: str = Field(min_length=10)
    excerpt: str | None = Field(default=None, max_length=300)
    cover_image: str | None = None
    category_id: str
    author_id: str
    published: bool
    is_featured: bool | None = None


class UpdateNewsRequest(BaseModel):
    """What the client sends to update a news article. All fields but id optional."""

    model_config = {"extra": "forbid"}

    id: str
    title: str | None = Field(default=None, min_length=3, max_length=200)
    content: str | None = Field(default=None, min_length=10)
    excerpt: str | None = Field(default=None, max_length=300)
    cover_image: str | None = None
    category_id: str | None = None
    published: bool | None = None
    is_featured: bool | None = None


class CategorySlugArgs(BaseModel):
    model_config = {"extra": "forbid"}

    category_slug: str
