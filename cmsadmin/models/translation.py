"""News translation models and the shapes the translation resolver returns."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from cmsadmin.models.common import ListFilters
from cmsadmin.models.news import News

TranslationStatus = Literal["draft", "review", "published"]


class NewsTranslation(BaseModel):
    """One locale's version of a news article. Represents a document in news_translations."""

    id: str
    news_id: str
    locale: str
    title: str
    excerpt: str | None = None
    body: str
    slug: str | None = None  # unique per locale
    seo_title: str | None = None
    seo_description: str | None = None
    status: TranslationStatus = "draft"
    created_at: datetime
    updated_at: datetime


class TranslationKey(BaseModel):
    """Identifies a translation by (news_id, locale)."""

    model_config = {"extra": "forbid"}

    news_id: str
    locale: str


class UpsertTranslationRequest(BaseModel):
    """
    What the client sends to create or update a translation.

    On update only the fields actually sent replace the stored ones.
    On create, status defaults to "draft".
    """

    model_config = {"extra": "forbid"}

    news_id: str
    locale: str
    title: str
    excerpt: str | None = None
    body: str
    slug: str | None = None
    seo_title: str | None = None
    seo_description: str | None = None
    status: TranslationStatus | None = None


class SetTranslationStatusRequest(BaseModel):
    model_config = {"extra": "forbid"}

    news_id: str
    locale: str
    status: TranslationStatus


class NewsIdArgs(BaseModel):
    model_config = {"extra": "forbid"}

    news_id: str


class LocalizedListArgs(ListFilters):
    """List filters plus the locale to resolve every item into."""

    locale: str


class EffectiveContent(BaseModel):
    """The fields a reader of a given locale actually sees."""

    title: str
    excerpt: str = ""
    body: str
    slug: str | None = None
    seo_title: str | None = None
    seo_description: str | None = None


class ResolvedNews(BaseModel):
    """A news item, the translation considered for it (if any) and the effective content."""

    news: News
    translation: NewsTranslation | None = None
    effective: EffectiveContent


class LocaleCoverage(BaseModel):
    exists: bool
    updated_at: datetime | None = None


class TranslationCoverage(BaseModel):
    """Per-locale translation presence for one news item."""

    total: int
    translated: int
    missing: list[str] = Field(default_factory=list)
    coverage: dict[str, LocaleCoverage] = Field(default_factory=dict)


class NewsWithCoverage(News):
    """A news row annotated for the admin listing."""

    translation_coverage: TranslationCoverage
