"""
News translation handlers and the translation resolver.

The news row holds the source-locale (English) content. Each supported
locale may have one row in news_translations, keyed by (news_id, locale).
Readers get the translation only once it is published; otherwise they fall
back to the source content.
"""

from __future__ import annotations

import logging

from cmsadmin.errors import ConflictError, NotFoundError, ValidationError
from cmsadmin.handlers.base import BaseHandlers, list_by_filters
from cmsadmin.models.common import ListFilters
from cmsadmin.models.news import News
from cmsadmin.models.translation import (
    EffectiveContent,
    LocaleCoverage,
    NewsTranslation,
    NewsWithCoverage,
    ResolvedNews,
    TranslationCoverage,
    TranslationStatus,
    UpsertTranslationRequest,
)
from cmsadmin.schema import NEWS, NEWS_TRANSLATIONS, SOURCE_LOCALE, SUPPORTED_LOCALES

logger = logging.getLogger(__name__)


def check_locale(locale: str, allow_source: bool = False) -> None:
    """
    Reject locales outside the supported set.

    Raises:
        ValidationError: If the locale is unsupported
    """
    if allow_source and locale == SOURCE_LOCALE:
        return
    if locale not in SUPPORTED_LOCALES:
        supported = ", ".join(((SOURCE_LOCALE,) if allow_source else ()) + SUPPORTED_LOCALES)
        raise ValidationError(f"Unsupported locale: {locale}. Supported: {supported}")


def source_content(news: News) -> EffectiveContent:
    """The news row's own fields. Translation-only fields stay unset."""
    return EffectiveContent(title=news.title, excerpt=news.excerpt or "", body=news.content)


def effective_content(news: News, translation: NewsTranslation | None) -> EffectiveContent:
    """Translated fields when the translation is published, else the source fields."""
    if translation is None or translation.status != "published":
        return source_content(news)
    return EffectiveContent(
        title=translation.title,
        excerpt=translation.excerpt or "",
        body=translation.body,
        slug=translation.slug,
        seo_title=translation.seo_title,
        seo_description=translation.seo_description,
    )


class NewsTranslationHandlers(BaseHandlers):
    """Translation CRUD, resolution and coverage."""

    table = NEWS_TRANSLATIONS
    label = "Translation"

    async def _find(self, news_id: str, locale: str) -> NewsTranslation | None:
        doc = await (
            self.store.query(NEWS_TRANSLATIONS)
            .with_index("by_news_id_locale", news_id=news_id, locale=locale)
            .first()
        )
        return NewsTranslation.model_validate(doc) if doc else None

    async def _require_news(self, news_id: str) -> News:
        doc = await self.store.get(news_id, NEWS)
        if doc is None:
            raise NotFoundError("News not found")
        return News.model_validate(doc)

    async def _require_translation(self, news_id: str, locale: str) -> NewsTranslation:
        translation = await self._find(news_id, locale)
        if translation is None:
            raise NotFoundError("Translation not found")
        return translation

    # -- queries --------------------------------------------------------------

    async def get_translation(self, news_id: str, locale: str) -> NewsTranslation | None:
        """The (news_id, locale) row regardless of status, or None."""
        check_locale(locale)
        return await self._find(news_id, locale)

    async def resolve(self, news_id: str, locale: str) -> ResolvedNews:
        """
        Resolve what a reader of `locale` sees for a news item.

        Args:
            news_id: News id
            locale: Source locale or one of SUPPORTED_LOCALES

        Returns:
            ResolvedNews; `translation` is the row found (any status),
            `effective` uses it only when published

        Raises:
            ValidationError: If the locale is unsupported
            NotFoundError: If the news item does not exist
        """
        check_locale(locale, allow_source=True)
        news = await self._require_news(news_id)
        return await self._resolve_item(news, locale)

    async def _resolve_item(self, news: News, locale: str) -> ResolvedNews:
        if locale == SOURCE_LOCALE:
            return ResolvedNews(news=news, translation=None, effective=source_content(news))
        translation = await self._find(news.id, locale)
        return ResolvedNews(news=news, translation=translation, effective=effective_content(news, translation))

    async def merge_list(self, news_items: list[News], locale: str) -> list[ResolvedNews]:
        """Resolve every item into `locale`, one lookup per item, keeping input order."""
        check_locale(locale, allow_source=True)
        return [await self._resolve_item(item, locale) for item in news_items]

    async def list_with_translation(self, filters: ListFilters | None, locale: str) -> list[ResolvedNews]:
        """The news listing resolved into one locale."""
        check_locale(locale, allow_source=True)
        rows = await list_by_filters(self.store, NEWS, filters)
        return await self.merge_list([News.model_validate(row) for row in rows], locale)

    async def compute_coverage(self, news_id: str) -> TranslationCoverage:
        """Which supported locales have a translation row, and when each was last updated."""
        rows = await self.store.query(NEWS_TRANSLATIONS).with_index("by_news_id", news_id=news_id).collect()
        translations = {row["locale"]: NewsTranslation.model_validate(row) for row in rows}

        coverage: dict[str, LocaleCoverage] = {}
        for locale in SUPPORTED_LOCALES:
            translation = translations.get(locale)
            coverage[locale] = LocaleCoverage(
                exists=translation is not None,
                updated_at=translation.updated_at if translation else None,
            )

        missing = [locale for locale in SUPPORTED_LOCALES if not coverage[locale].exists]
        return TranslationCoverage(
            total=len(SUPPORTED_LOCALES),
            translated=len(SUPPORTED_LOCALES) - len(missing),
            missing=missing,
            coverage=coverage,
        )

    async def list_news_for_admin(self, filters: ListFilters | None = None) -> list[NewsWithCoverage]:
        """The news listing, each item annotated with its translation coverage."""
        rows = await list_by_filters(self.store, NEWS, filters)
        result = []
        for row in rows:
            coverage = await self.compute_coverage(row["id"])
            result.append(NewsWithCoverage.model_validate({**row, "translation_coverage": coverage}))
        return result

    # -- mutations ------------------------------------------------------------

    async def upsert(self, req: UpsertTranslationRequest) -> str:
        """
        Create or update the (news_id, locale) translation.

        On update only the fields sent replace the stored ones and updated_at
        refreshes. On create, status defaults to "draft". The slug check and
        the write are separate store calls, so two concurrent writers can
        still race to the same slug.

        Returns:
            Translation id

        Raises:
            ValidationError: If the locale is unsupported
            NotFoundError: If the news item does not exist
            ConflictError: If another translation in the locale uses the slug
        """
        check_locale(req.locale)
        await self._require_news(req.news_id)
        existing = await self._find(req.news_id, req.locale)

        if req.slug:
            clash = await (
                self.store.query(NEWS_TRANSLATIONS)
                .with_index("by_locale_slug", locale=req.locale, slug=req.slug)
                .first()
            )
            if clash and (existing is None or clash["id"] != existing.id):
                raise ConflictError(f'Slug "{req.slug}" already exists for locale "{req.locale}"')

        now = self.clock()
        if existing is not None:
            # Unsent fields keep their stored values, status included: an update never resets it to draft.
            changes = req.model_dump(exclude_unset=True, exclude_none=True, exclude={"news_id", "locale"})
            changes["updated_at"] = now
            await self.store.patch(existing.id, changes)
            logger.info("translations: updated %s/%s", req.news_id, req.locale)
            return existing.id

        doc = req.model_dump(exclude={"status"})
        translation_id = await self.store.insert(
            NEWS_TRANSLATIONS,
            {**doc, "status": req.status or "draft", "created_at": now, "updated_at": now},
        )
        logger.info("translations: created %s/%s", req.news_id, req.locale)
        return translation_id

    async def set_status(self, news_id: str, locale: str, status: TranslationStatus) -> None:
        """
        Move a translation to any status. No workflow order is enforced.

        Raises:
            NotFoundError: If there is no translation for (news_id, locale)
        """
        check_locale(locale)
        translation = await self._require_translation(news_id, locale)
        await self.store.patch(translation.id, {"status": status, "updated_at": self.clock()})

    async def delete(self, news_id: str, locale: str) -> None:
        """
        Delete the (news_id, locale) translation.

        Raises:
            NotFoundError: If there is no such translation
        """
        check_locale(locale)
        translation = await self._require_translation(news_id, locale)
        await self.store.delete(translation.id)

    async def create_missing_translations(self, news_id: str) -> list[str]:
        """
        Create an empty draft row for every supported locale without one.

        Returns:
            Ids of the rows created. Empty on a second call.
        """
        await self._require_news(news_id)
        rows = await self.store.query(NEWS_TRANSLATIONS).with_index("by_news_id", news_id=news_id).collect()
        existing_locales = {row["locale"] for row in rows}

        now = self.clock()
        created: list[str] = []
        for locale in SUPPORTED_LOCALES:
            if locale in existing_locales:
                continue
            created.append(
                await self.store.insert(
                    NEWS_TRANSLATIONS,
                    {
                        "news_id": news_id,
                        "locale": locale,
                        "title": "",
                        "body": "",
                        "status": "draft",
                        "created_at": now,
                        "updated_at": now,
                    },
                )
            )
        return created
