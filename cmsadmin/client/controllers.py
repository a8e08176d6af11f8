"""
Per-entity controllers: the state a view binds to.

Each controller owns exactly one LiveQuery, so loading a list and then a
single item closes the list subscription first. Mutations never raise: a
failure is translated into the error taxonomy, logged, and left in `error`
for the view, while the last loaded data stays in place.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar

import pydantic

from cmsadmin.client.live import LiveQuery
from cmsadmin.client.repositories import (
    CategoryRepository,
    GameRepository,
    NewsRepository,
    NewsTranslationRepository,
    PostReplyRepository,
    PostRepository,
)
from cmsadmin.errors import AppError, log_error, to_app_error, user_message
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
    TranslationStatus,
    UpdateCategoryRequest,
    UpdateGameRequest,
    UpdateNewsRequest,
    UpdatePostReplyRequest,
    UpdatePostRequest,
    UpsertTranslationRequest,
    User,
)
from cmsadmin.slugs import generate_slug

T = TypeVar("T")


class UserSource(Protocol):
    """Where controllers read the signed-in user from. SessionManager satisfies it."""

    @property
    def user(self) -> User | None: ...


class Controller:
    """Shared state handling: one live query, a pending-mutation count and an error slot."""

    def __init__(self, session: UserSource | None = None):
        self.session = session
        self.query: LiveQuery[Any] = LiveQuery()
        self._error: str | None = None
        self._pending = 0

    @property
    def is_loading(self) -> bool:
        return self._pending > 0 or self.query.is_loading

    @property
    def error(self) -> str | None:
        return self._error or self.query.message

    def clear_error(self) -> None:
        self._error = None
        self.query.clear_error()

    def cleanup(self) -> None:
        """Close the live subscription. Call when the owning view goes away."""
        self.query.dispose()

    def _load(self, subscribe: Any, apply: Any) -> None:
        self._error = None
        self.query.load(subscribe, apply)

    def _require_user(self, action: str) -> User | None:
        user = self.session.user if self.session is not None else None
        if user is None:
            self._error = f"You must be logged in to {action}"
        return user

    def _fail(self, error: AppError, context: str) -> None:
        log_error(error, context)
        self._error = user_message(error)

    def _build(self, model: type[T], context: str, **fields: Any) -> T | None:
        """Build a request model. Field rule violations land in `error` as one message."""
        try:
            return model(**fields)
        except pydantic.ValidationError as e:
            self._fail(to_app_error(e), context)
            return None

    async def _mutate(self, context: str, call: Awaitable[T]) -> tuple[bool, T | None]:
        """
        Await one repository mutation.

        Returns:
            (True, result) on success, (False, None) after recording the error
        """
        self._pending += 1
        self._error = None
        try:
            return True, await call
        except Exception as e:
            self._fail(to_app_error(e), context)
            return False, None
        finally:
            self._pending -= 1


class CategoryController(Controller):
    def __init__(self, repo: CategoryRepository, session: UserSource | None = None):
        super().__init__(session)
        self.repo = repo
        self.categories: list[Category] = []
        self.current: Category | None = None

    def load_categories(self) -> None:
        self._load(self.repo.list(), self._set_categories)

    def load_item(self, category_id: str) -> None:
        self._load(self.repo.get(category_id), self._set_current)

    async def create(self, name: str, slug: str | None = None, description: str | None = None) -> str | None:
        """Create a category. An empty slug is generated from the name."""
        slug = slug or generate_slug(name or "")
        req = self._build(CreateCategoryRequest, "CategoryCreate", name=name, slug=slug, description=description)
        if req is None:
            return None
        _, category_id = await self._mutate("CategoryCreate", self.repo.create(req))
        return category_id

    async def update(self, category_id: str, **fields: Any) -> bool:
        """Update the given fields. Takes UpdateCategoryRequest fields except id."""
        req = self._build(UpdateCategoryRequest, "CategoryUpdate", id=category_id, **fields)
        if req is None:
            return False
        ok, _ = await self._mutate("CategoryUpdate", self.repo.update(req))
        return ok

    async def delete(self, category_id: str) -> bool:
        ok, _ = await self._mutate("CategoryDelete", self.repo.delete(category_id))
        return ok

    def _set_categories(self, value: list[Category]) -> None:
        self.categories = value

    def _set_current(self, value: Category | None) -> None:
        self.current = value


class NewsController(Controller):
    def __init__(self, repo: NewsRepository, session: UserSource | None = None):
        super().__init__(session)
        self.repo = repo
        self.news: list[News] = []
        self.current: News | None = None

    def load_news(self, filters: ListFilters | None = None) -> None:
        self._load(self.repo.list(filters), self._set_news)

    def load_by_category_slug(self, category_slug: str) -> None:
        self._load(self.repo.get_by_category_slug(category_slug), self._set_news)

    def load_item(self, news_id: str) -> None:
        self._load(self.repo.get(news_id), self._set_current)

    async def create(self, **fields: Any) -> str | None:
        """
        Create a news item authored by the signed-in user.

        Args:
            **fields: CreateNewsRequest fields except author_id

        Returns:
            New id, or None with `error` set
        """
        user = self._require_user("create news")
        if user is None:
            return None
        req = self._build(CreateNewsRequest, "NewsCreate", **{**fields, "author_id": user.id})
        if req is None:
            return None
        _, news_id = await self._mutate("NewsCreate", self.repo.create(req))
        return news_id

    async def update(self, news_id: str, **fields: Any) -> bool:
        req = self._build(UpdateNewsRequest, "NewsUpdate", id=news_id, **fields)
        if req is None:
            return False
        ok, _ = await self._mutate("NewsUpdate", self.repo.update(req))
        return ok

    async def delete(self, news_id: str) -> bool:
        ok, _ = await self._mutate("NewsDelete", self.repo.delete(news_id))
        return ok

    def _set_news(self, value: list[News]) -> None:
        self.news = value

    def _set_current(self, value: News | None) -> None:
        self.current = value


class NewsTranslationController(Controller):
    def __init__(self, repo: NewsTranslationRepository, session: UserSource | None = None):
        super().__init__(session)
        self.repo = repo
        self.translation: NewsTranslation | None = None
        self.news_with_translation: ResolvedNews | None = None
        self.news_with_coverage: list[NewsWithCoverage] = []

    def load_translation(self, news_id: str, locale: str) -> None:
        self._load(self.repo.get_translation(news_id, locale), self._set_translation)

    def load_news_with_translation(self, news_id: str, locale: str) -> None:
        self._load(self.repo.get_news_with_translation(news_id, locale), self._set_news_with_translation)

    def load_news_with_coverage(self, filters: ListFilters | None = None) -> None:
        self._load(self.repo.list_news_for_admin(filters), self._set_news_with_coverage)

    async def upsert(self, req: UpsertTranslationRequest) -> bool:
        ok, _ = await self._mutate("TranslationUpsert", self.repo.upsert_translation(req))
        return ok

    async def delete(self, news_id: str, locale: str) -> bool:
        ok, _ = await self._mutate("TranslationDelete", self.repo.delete_translation(news_id, locale))
        return ok

    async def set_status(self, news_id: str, locale: str, status: TranslationStatus) -> bool:
        ok, _ = await self._mutate(
            "TranslationSetStatus", self.repo.set_translation_status(news_id, locale, status)
        )
        return ok

    async def create_missing(self, news_id: str) -> list[str] | None:
        """Ids of the draft rows created, or None with `error` set."""
        ok, created = await self._mutate("TranslationCreateMissing", self.repo.create_missing_translations(news_id))
        return created if ok else None

    def _set_translation(self, value: NewsTranslation | None) -> None:
        self.translation = value

    def _set_news_with_translation(self, value: ResolvedNews) -> None:
        self.news_with_translation = value

    def _set_news_with_coverage(self, value: list[NewsWithCoverage]) -> None:
        self.news_with_coverage = value


class PostController(Controller):
    def __init__(self, repo: PostRepository, session: UserSource | None = None):
        super().__init__(session)
        self.repo = repo
        self.posts: list[Post] = []
        self.current: Post | None = None

    def load_posts(self, filters: ListFilters | None = None) -> None:
        self._load(self.repo.list(filters), self._set_posts)

    def load_by_author(self, author_id: str) -> None:
        self._load(self.repo.get_by_author(author_id), self._set_posts)

    def load_item(self, post_id: str) -> None:
        self._load(self.repo.get(post_id), self._set_current)

    async def create(self, **fields: Any) -> str | None:
        """Create a post authored by the signed-in user. Takes CreatePostRequest fields except author_id."""
        user = self._require_user("create posts")
        if user is None:
            return None
        req = self._build(CreatePostRequest, "PostCreate", **{**fields, "author_id": user.id})
        if req is None:
            return None
        _, post_id = await self._mutate("PostCreate", self.repo.create(req))
        return post_id

    async def update(self, post_id: str, **fields: Any) -> bool:
        req = self._build(UpdatePostRequest, "PostUpdate", id=post_id, **fields)
        if req is None:
            return False
        ok, _ = await self._mutate("PostUpdate", self.repo.update(req))
        return ok

    async def delete(self, post_id: str) -> bool:
        ok, _ = await self._mutate("PostDelete", self.repo.delete(post_id))
        return ok

    def _set_posts(self, value: list[Post]) -> None:
        self.posts = value

    def _set_current(self, value: Post | None) -> None:
        self.current = value


class PostReplyController(Controller):
    def __init__(self, repo: PostReplyRepository, session: UserSource | None = None):
        super().__init__(session)
        self.repo = repo
        self.replies: list[PostReply] = []
        self.current: PostReply | None = None

    def load_replies(self, post_id: str) -> None:
        self._load(self.repo.list_by_post(post_id), self._set_replies)

    def load_children(self, parent_reply_id: str) -> None:
        self._load(self.repo.get_by_parent(parent_reply_id), self._set_replies)

    def load_item(self, reply_id: str) -> None:
        self._load(self.repo.get(reply_id), self._set_current)

    async def create(self, post_id: str, content: str, parent_reply_id: str | None = None) -> str | None:
        user = self._require_user("reply")
        if user is None:
            return None
        req = self._build(
            CreatePostReplyRequest,
            "PostReplyCreate",
            post_id=post_id,
            author_id=user.id,
            content=content,
            parent_reply_id=parent_reply_id,
        )
        if req is None:
            return None
        _, reply_id = await self._mutate("PostReplyCreate", self.repo.create(req))
        return reply_id

    async def update(self, reply_id: str, content: str) -> bool:
        req = self._build(UpdatePostReplyRequest, "PostReplyUpdate", id=reply_id, content=content)
        if req is None:
            return False
        ok, _ = await self._mutate("PostReplyUpdate", self.repo.update(req))
        return ok

    async def delete(self, reply_id: str) -> bool:
        ok, _ = await self._mutate("PostReplyDelete", self.repo.delete(reply_id))
        return ok

    def _set_replies(self, value: list[PostReply]) -> None:
        self.replies = value

    def _set_current(self, value: PostReply | None) -> None:
        self.current = value


class GameController(Controller):
    def __init__(self, repo: GameRepository, session: UserSource | None = None):
        super().__init__(session)
        self.repo = repo
        self.games: list[Game] = []
        self.current: Game | None = None

    def load_games(self) -> None:
        self._load(self.repo.list(), self._set_games)

    def load_item(self, game_id: str) -> None:
        self._load(self.repo.get(game_id), self._set_current)

    async def create(
        self, name: str, image: str, slug: str | None = None, description: str | None = None
    ) -> str | None:
        req = self._build(
            CreateGameRequest,
            "GameCreate",
            name=name,
            image=image,
            slug=slug or generate_slug(name or ""),
            description=description,
        )
        if req is None:
            return None
        _, game_id = await self._mutate("GameCreate", self.repo.create(req))
        return game_id

    async def update(self, game_id: str, **fields: Any) -> bool:
        req = self._build(UpdateGameRequest, "GameUpdate", id=game_id, **fields)
        if req is None:
            return False
        ok, _ = await self._mutate("GameUpdate", self.repo.update(req))
        return ok

    async def delete(self, game_id: str) -> bool:
        ok, _ = await self._mutate("GameDelete", self.repo.delete(game_id))
        return ok

    def _set_games(self, value: list[Game]) -> None:
        self.games = value

    def _set_current(self, value: Game | None) -> None:
        self.current = value
