"""
Handler layer: one handler set per entity, published as named functions.

Every function has a path ("news:list"), a kind (query or mutation) and an
argument model. Transports and the function server call run() with plain
JSON arguments and get JSON-compatible results back.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

import pydantic
from pydantic import BaseModel, TypeAdapter

from cmsadmin.errors import NotFoundError, ValidationError, to_app_error
from cmsadmin.handlers.base import Clock
from cmsadmin.handlers.categories import CategoryHandlers
from cmsadmin.handlers.games import GameHandlers
from cmsadmin.handlers.news import NewsHandlers
from cmsadmin.handlers.post_replies import PostReplyHandlers
from cmsadmin.handlers.posts import PostHandlers
from cmsadmin.handlers.translations import NewsTranslationHandlers
from cmsadmin.models import (
    AuthorArgs,
    CategorySlugArgs,
    CreateCategoryRequest,
    CreateGameRequest,
    CreateNewsRequest,
    CreatePostReplyRequest,
    CreatePostRequest,
    IdArgs,
    ListFilters,
    LocalizedListArgs,
    NewsIdArgs,
    NoArgs,
    ParentReplyArgs,
    PostIdArgs,
    SetTranslationStatusRequest,
    SlugArgs,
    TranslationKey,
    UpdateCategoryRequest,
    UpdateGameRequest,
    UpdateNewsRequest,
    UpdatePostReplyRequest,
    UpdatePostRequest,
    UpsertTranslationRequest,
)
from cmsadmin.store.base import DocumentStore

FunctionKind = Literal["query", "mutation"]

_JSON = TypeAdapter(Any)


@dataclass(frozen=True)
class Function:
    path: str
    kind: FunctionKind
    args: type[BaseModel]
    call: Callable[[Any], Awaitable[Any]]


class FunctionRegistry:
    """Named queries and mutations over one document store."""

    def __init__(self, store: DocumentStore, functions: list[Function]):
        self.store = store
        self._functions = {fn.path: fn for fn in functions}

    @property
    def paths(self) -> list[str]:
        return sorted(self._functions)

    def get(self, path: str) -> Function:
        fn = self._functions.get(path)
        if fn is None:
            raise NotFoundError(f"Unknown function: {path}")
        return fn

    async def run(self, path: str, args: dict[str, Any] | None = None, kind: FunctionKind | None = None) -> Any:
        """
        Validate arguments, call the function and return a JSON-compatible result.

        Args:
            path: Function path, e.g. "news:list"
            args: Raw argument dict
            kind: If given, the function must be of this kind

        Raises:
            NotFoundError: Unknown path
            ValidationError: Wrong kind or invalid arguments
            AppError: Whatever the handler raises
        """
        fn = self.get(path)
        if kind is not None and fn.kind != kind:
            raise ValidationError(f"{path} is a {fn.kind}, not a {kind}")
        try:
            parsed = fn.args.model_validate(args or {})
        except pydantic.ValidationError as e:
            raise to_app_error(e) from e
        result = await fn.call(parsed)
        return _JSON.dump_python(result, mode="json")


def _query(path: str, args: type[BaseModel], call: Callable[[Any], Awaitable[Any]]) -> Function:
    return Function(path, "query", args, call)


def _mutation(path: str, args: type[BaseModel], call: Callable[[Any], Awaitable[Any]]) -> Function:
    return Function(path, "mutation", args, call)


def _filters(a: ListFilters) -> ListFilters:
    return ListFilters(published=a.published, category_id=a.category_id)


def build_registry(store: DocumentStore, clock: Clock | None = None) -> FunctionRegistry:
    """Wire every handler set to its function paths."""
    categories = CategoryHandlers(store, clock)
    news = NewsHandlers(store, clock)
    translations = NewsTranslationHandlers(store, clock)
    posts = PostHandlers(store, clock)
    replies = PostReplyHandlers(store, clock)
    games = GameHandlers(store, clock)

    return FunctionRegistry(
        store,
        [
            # categories
            _query("categories:list", NoArgs, lambda a: categories.list()),
            _query("categories:get", IdArgs, lambda a: categories.get(a.id)),
            _query("categories:get_by_slug", SlugArgs, lambda a: categories.get_by_slug(a.slug)),
            _mutation("categories:create", CreateCategoryRequest, categories.create),
            _mutation("categories:update", UpdateCategoryRequest, categories.update),
            _mutation("categories:remove", IdArgs, lambda a: categories.remove(a.id)),
            # news
            _query("news:list", ListFilters, news.list),
            _query("news:get", IdArgs, lambda a: news.get(a.id)),
            _query("news:get_by_author", AuthorArgs, lambda a: news.get_by_author(a.author_id)),
            _query(
                "news:get_by_category_slug",
                CategorySlugArgs,
                lambda a: news.get_by_category_slug(a.category_slug),
            ),
            _mutation("news:create", CreateNewsRequest, news.create),
            _mutation("news:update", UpdateNewsRequest, news.update),
            _mutation("news:remove", IdArgs, lambda a: news.remove(a.id)),
            # news translations
            _query(
                "news_translations:get_translation",
                TranslationKey,
                lambda a: translations.get_translation(a.news_id, a.locale),
            ),
            _query(
                "news_translations:get_news_with_translation",
                TranslationKey,
                lambda a: translations.resolve(a.news_id, a.locale),
            ),
            _query(
                "news_translations:list_with_translation",
                LocalizedListArgs,
                lambda a: translations.list_with_translation(_filters(a), a.locale),
            ),
            _query("news_translations:list_news_for_admin", ListFilters, translations.list_news_for_admin),
            _query(
                "news_translations:get_coverage",
                NewsIdArgs,
                lambda a: translations.compute_coverage(a.news_id),
            ),
            _mutation("news_translations:upsert_translation", UpsertTranslationRequest, translations.upsert),
            _mutation(
                "news_translations:delete_translation",
                TranslationKey,
                lambda a: translations.delete(a.news_id, a.locale),
            ),
            _mutation(
                "news_translations:set_translation_status",
                SetTranslationStatusRequest,
                lambda a: translations.set_status(a.news_id, a.locale, a.status),
            ),
            _mutation(
                "news_translations:create_missing_translations",
                NewsIdArgs,
                lambda a: translations.create_missing_translations(a.news_id),
            ),
            # posts
            _query("posts:list", ListFilters, posts.list),
            _query("posts:get", IdArgs, lambda a: posts.get(a.id)),
            _query("posts:get_by_author", AuthorArgs, lambda a: posts.get_by_author(a.author_id)),
            _mutation("posts:create", CreatePostRequest, posts.create),
            _mutation("posts:update", UpdatePostRequest, posts.update),
            _mutation("posts:remove", IdArgs, lambda a: posts.remove(a.id)),
            # post replies
            _query("post_replies:list_by_post", PostIdArgs, lambda a: replies.list_by_post(a.post_id)),
            _query("post_replies:get", IdArgs, lambda a: replies.get(a.id)),
            _query("post_replies:get_by_author", AuthorArgs, lambda a: replies.get_by_author(a.author_id)),
            _query(
                "post_replies:get_by_parent",
                ParentReplyArgs,
                lambda a: replies.get_by_parent(a.parent_reply_id),
            ),
            _mutation("post_replies:create", CreatePostReplyRequest, replies.create),
            _mutation("post_replies:update", UpdatePostReplyRequest, replies.update),
            _mutation("post_replies:remove", IdArgs, lambda a: replies.remove(a.id)),
            # games
            _query("games:list", NoArgs, lambda a: games.list()),
            _query("games:get", IdArgs, lambda a: games.get(a.id)),
            _query("games:get_by_slug", SlugArgs, lambda a: games.get_by_slug(a.slug)),
            _mutation("games:create", CreateGameRequest, games.create),
            _mutation("games:update", UpdateGameRequest, games.update),
            _mutation("games:remove", IdArgs, lambda a: games.remove(a.id)),
        ],
    )


__all__ = [
    "Function",
    "FunctionKind",
    "FunctionRegistry",
    "build_registry",
    "CategoryHandlers",
    "GameHandlers",
    "NewsHandlers",
    "NewsTranslationHandlers",
    "PostHandlers",
    "PostReplyHandlers",
]
