"""Category models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from cmsadmin.slugs import SLUG_PATTERN


class Category(BaseModel):
    """Core category model. Represents a document in the categories table."""

    id: str
    name: str
    description: str | None = None
    slug: str
    created_at: datetime
    updated_at: datetime


class CreateCategoryRequest(BaseModel):
    """What the client sends to create a category."""

    model_config = {"extra": "forbid"}

    name: str = Field(min_length=2, max_length=100)
    slug: str = Field(min_length=2, pattern=SLUG_PATTERN)
    description: str | None = Field(default=None, max_length=500)


class UpdateCategoryRequest(BaseModel):
    """What the client sends to update a category. All fields but id optional."""

    model_config = {"extra": "forbid"}

    id: str
    name: str | None = Field(default=None, min_length=2, max_length=100)
    slug: str | None = Field(default=None, min_length=2, pattern=SLUG_PATTERN)
    description: str | None = Field(default=None, max_length=500)
