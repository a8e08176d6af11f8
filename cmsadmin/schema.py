"""
Table and index declarations for the document store.

Index names map to the ordered list of fields they match on. Queries may only
use indexes declared here; the stores reject anything else.
"""

from __future__ import annotations

CATEGORIES = "categories"
NEWS = "news"
NEWS_TRANSLATIONS = "news_translations"
POSTS = "posts"
POST_REPLIES = "post_replies"
GAMES = "games"

SCHEMA: dict[str, dict[str, tuple[str, ...]]] = {
    CATEGORIES: {
        "by_slug": ("slug",),
    },
    NEWS: {
        "by_category": ("category_id",),
        "by_author": ("author_id",),
        "by_published": ("published",),
    },
    NEWS_TRANSLATIONS: {
        "by_news_id": ("news_id",),
        "by_locale": ("locale",),
        "by_news_id_locale": ("news_id", "locale"),
        "by_locale_slug": ("locale", "slug"),
    },
    POSTS: {
        "by_category": ("category_id",),
        "by_author": ("author_id",),
        "by_published": ("published",),
    },
    POST_REPLIES: {
        "by_post": ("post_id",),
        "by_author": ("author_id",),
        "by_parent": ("parent_reply_id",),
    },
    GAMES: {
        "by_slug": ("slug",),
    },
}

# Locales. The source locale lives on the news row itself.
SOURCE_LOCALE = "en"
SUPPORTED_LOCALES: tuple[str, ...] = ("pt", "es", "fr")


def index_fields(table: str, index: str) -> tuple[str, ...]:
    """Fields of a declared index. Raises KeyError for unknown tables or indexes."""
    try:
        return SCHEMA[table][index]
    except KeyError:
        raise KeyError(f"Unknown index {index!r} on table {table!r}") from None
