"""
Repository layer: per-entity adapters over a Transport.

Reads return a subscribe function. Calling it with (on_snapshot, on_error)
opens one live query and returns its Subscription; the caller owns closing
it. Writes are plain coroutines that return the result or raise the
transport's error. Nothing here retries or caches.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, TypeAdapter

from cmsadmin.client.transport import ErrorCallback, Subscription, Transport
from cmsadmin.models import (
    Category,
    CreateCategoryRequest,
    CreateGameRequest,
    CreateNewsRequest,
    CreatePostReplyRequest,
    CreatePostRequest,
    Game,
    ListFilters,
    News,
    NewsTranslation,
    NewsWithCoverage,
    Post,
    PostReply,
    ResolvedNews,
    TranslationCoverage,
    TranslationStatus,
    UpdateCategoryRequest,
    UpdateGameRequest,
    UpdateNewsRequest,
    UpdatePostReplyRequest,
    UpdatePostRequest,
    UpsertTranslationRequest,
)

T = TypeVar("T")


class SubscribeFn(Generic[T]):
    """
    A live read, not yet started.

    Usage:
        subscription = repo.list(filters)(on_snapshot, on_error)
        ...
        subscription.close()
    """

    def __init__(self, transport: Transport, path: str, args: dict[str, Any], result_type: Any):
        self.transport = transport
        self.path = path
        self.args = args
        self.result_type = result_type

    def __call__(self, on_snapshot: Callable[[T], None], on_error: ErrorCallback) -> Subscription:
        adapter = _adapter(self.result_type)

        def handle(raw: Any) -> None:
            on_snapshot(adapter.validate_python(raw))

        return self.transport.watch_query(self.path, self.args, handle, on_error)


@lru_cache(maxsize=None)
def _adapter(result_type: Any) -> TypeAdapter:
    return TypeAdapter(result_type)


def _create_args(req: BaseModel) -> dict[str, Any]:
    return req.model_dump(mode="json", exclude_none=True)


def _update_args(req: BaseModel) -> dict[str, Any]:
    """Only the fields the caller set travel, so the handler patches just those."""
    return req.model_dump(mode="json", exclude_unset=True)


def _filter_args(filters: ListFilters | None) -> dict[str, Any]:
    return filters.model_dump(mode="json", exclude_none=True) if filters else {}


class Repository:
    """Base adapter holding the shared transport."""

    module: str

    def __init__(self, transport: Transport):
        self.transport = transport

    def _watch(self, name: str, args: dict[str, Any], result_type: Any) -> SubscribeFn:
        return SubscribeFn(self.transport, f"{self.module}:{name}", args, result_type)

    async def _mutate(self, name: str, args: dict[str, Any]) -> Any:
        return await self.transport.mutation(f"{self.module}:{name}", args)


class CategoryRepository(Repository):
    module = "categories"

    def list(self) -> SubscribeFn[list[Category]]:
        return self._watch("list", {}, list[Category])

    def get(self, category_id: str) -> SubscribeFn[Category | None]:
        return self._watch("get", {"id": category_id}, Category | None)

    def get_by_slug(self, slug: str) -> SubscribeFn[Category | None]:
        return self._watch("get_by_slug", {"slug": slug}, Category | None)

    async def create(self, req: CreateCategoryRequest) -> str:
        return await self._mutate("create", _create_args(req))

    async def update(self, req: UpdateCategoryRequest) -> None:
        await self._mutate("update", _update_args(req))

    async def delete(self, category_id: str) -> None:
        await self._mutate("remove", {"id": category_id})


class NewsRepository(Repository):
    module = "news"

    def list(self, filters: ListFilters | None = None) -> SubscribeFn[list[News]]:
        return self._watch("list", _filter_args(filters), list[News])

    def get(self, news_id: str) -> SubscribeFn[News | None]:
        return self._watch("get", {"id": news_id}, News | None)

    def get_by_author(self, author_id: str) -> SubscribeFn[list[News]]:
        return self._watch("get_by_author", {"author_id": author_id}, list[News])

    def get_by_category_slug(self, category_slug: str) -> SubscribeFn[list[News]]:
        return self._watch("get_by_category_slug", {"category_slug": category_slug}, list[News])

    async def create(self, req: CreateNewsRequest) -> str:
        return await self._mutate("create", _create_args(req))

    async def update(self, req: UpdateNewsRequest) -> None:
        await self._mutate("update", _update_args(req))

    async def delete(self, news_id: str) -> None:
        await self._mutate("remove", {"id": news_id})


class NewsTranslationRepository(Repository):
    module = "news_translations"

    def get_translation(self, news_id: str, locale: str) -> SubscribeFn[NewsTranslation | None]:
        return self._watch("get_translation", {"news_id": news_id, "locale": locale}, NewsTranslation | None)

    def get_news_with_translation(self, news_id: str, locale: str) -> SubscribeFn[ResolvedNews]:
        return self._watch("get_news_with_translation", {"news_id": news_id, "locale": locale}, ResolvedNews)

    def list_with_translation(
        self, locale: str, filters: ListFilters | None = None
    ) -> SubscribeFn[list[ResolvedNews]]:
        return self._watch("list_with_translation", {**_filter_args(filters), "locale": locale}, list[ResolvedNews])

    def list_news_for_admin(self, filters: ListFilters | None = None) -> SubscribeFn[list[NewsWithCoverage]]:
        return self._watch("list_news_for_admin", _filter_args(filters), list[NewsWithCoverage])

    def get_coverage(self, news_id: str) -> SubscribeFn[TranslationCoverage]:
        return self._watch("get_coverage", {"news_id": news_id}, TranslationCoverage)

    async def upsert_translation(self, req: UpsertTranslationRequest) -> str:
        return await self._mutate("upsert_translation", _update_args(req))

    async def delete_translation(self, news_id: str, locale: str) -> None:
        await self._mutate("delete_translation", {"news_id": news_id, "locale": locale})

    async def set_translation_status(self, news_id: str, locale: str, status: TranslationStatus) -> None:
        await self._mutate("set_translation_status", {"news_id": news_id, "locale": locale, "status": status})

    async def create_missing_translations(self, news_id: str) -> list[str]:
        return await self._mutate("create_missing_translations", {"news_id": news_id})


class PostRepository(Repository):
    module = "posts"

    def list(self, filters: ListFilters | None = None) -> SubscribeFn[list[Post]]:
        return self._watch("list", _filter_args(filters), list[Post])

    def get(self, post_id: str) -> SubscribeFn[Post | None]:
        return self._watch("get", {"id": post_id}, Post | None)

    def get_by_author(self, author_id: str) -> SubscribeFn[list[Post]]:
        return self._watch("get_by_author", {"author_id": author_id}, list[Post])

    async def create(self, req: CreatePostRequest) -> str:
        return await self._mutate("create", _create_args(req))

    async def update(self, req: UpdatePostRequest) -> None:
        await self._mutate("update", _update_args(req))

    async def delete(self, post_id: str) -> None:
        await self._mutate("remove", {"id": post_id})


class PostReplyRepository(Repository):
    module = "post_replies"

    def list_by_post(self, post_id: str) -> SubscribeFn[list[PostReply]]:
        return self._watch("list_by_post", {"post_id": post_id}, list[PostReply])

    def get(self, reply_id: str) -> SubscribeFn[PostReply | None]:
        return self._watch("get", {"id": reply_id}, PostReply | None)

    def get_by_author(self, author_id: str) -> SubscribeFn[list[PostReply]]:
        return self._watch("get_by_author", {"author_id": author_id}, list[PostReply])

    def get_by_parent(self, parent_reply_id: str) -> SubscribeFn[list[PostReply]]:
        return self._watch("get_by_parent", {"parent_reply_id": parent_reply_id}, list[PostReply])

    async def create(self, req: CreatePostReplyRequest) -> str:
        return await self._mutate("create", _create_args(req))

    async def update(self, req: UpdatePostReplyRequest) -> None:
        await self._mutate("update", _update_args(req))

    async def delete(self, reply_id: str) -> None:
        await self._mutate("remove", {"id": reply_id})


class GameRepository(Repository):
    module = "games"

    def list(self) -> SubscribeFn[list[Game]]:
        return self._watch("list", {}, list[Game])

    def get(self, game_id: str) -> SubscribeFn[Game | None]:
        return self._watch("get", {"id": game_id}, Game | None)

    def get_by_slug(self, slug: str) -> SubscribeFn[Game | None]:
        return self._watch("get_by_slug", {"slug": slug}, Game | None)

    async def create(self, req: CreateGameRequest) -> str:
        return await self._mutate("create", _create_args(req))

    async def update(self, req: UpdateGameRequest) -> None:
        await self._mutate("update", _update_args(req))

    async def delete(self, game_id: str) -> None:
        await self._mutate("remove", {"id": game_id})


class Repositories:
    """Every repository over one shared transport, built once at startup."""

    def __init__(self, transport: Transport):
        self.transport = transport
        self.categories = CategoryRepository(transport)
        self.news = NewsRepository(transport)
        self.translations = NewsTranslationRepository(transport)
        self.posts = PostRepository(transport)
        self.replies = PostReplyRepository(transport)
        self.games = GameRepository(transport)
