"""Game models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from cmsadmin.slugs import SLUG_PATTERN


class Game(BaseModel):
    """Core game model. Represents a document in the games table."""

    id: str
    name: str
    image: str
    slug: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class CreateGameRequest(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1, max_length=100)
    image: str = Field(min_length=1)
    slug: str = Field(min_length=1, pattern=SLUG_PATTERN)
    description: str | None = None


class UpdateGameRequest(BaseModel):
    model_config = {"extra": "forbid"}

    id: str
    name: str | None = Field(default=None, min_length=1, max_length=100)
    image: str | None = Field(default=None, min_length=1)
    slug: str | None = Field(default=None, min_length=1, pattern=SLUG_PATTERN)
    description: str | None = None
