"""Argument shapes shared by several entities."""

from __future__ import annotations

from pydantic import BaseModel


class NoArgs(BaseModel):
    """Functions that take no arguments."""

    model_config = {"extra": "forbid"}


class IdArgs(BaseModel):
    """Lookup or delete by document id."""

    model_config = {"extra": "forbid"}

    id: str


class SlugArgs(BaseModel):
    model_config = {"extra": "forbid"}

    slug: str


class AuthorArgs(BaseModel):
    model_config = {"extra": "forbid"}

    author_id: str


class ListFilters(BaseModel):
    """
    Filters for News and Post listings. Both optional.

    - category_id only: category index
    - published only: published index
    - both: category index, then published in memory
    - neither: every document, newest first
    """

    model_config = {"extra": "forbid"}

    published: bool | None = None
    category_id: str | None = None
