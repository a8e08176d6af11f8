"""Tests for the repository layer over the local transport."""

from __future__ import annotations

import pytest
import pytest_asyncio

from cmsadmin.client.repositories import Repositories
from cmsadmin.client.transport import LocalTransport
from cmsadmin.errors import ConflictError, NotFoundError, ValidationError
from cmsadmin.models import (
    Category,
    CreateCategoryRequest,
    CreateNewsRequest,
    CreatePostReplyRequest,
    CreatePostRequest,
    ListFilters,
    News,
    UpdateNewsRequest,
    UpsertTranslationRequest,
)


@pytest_asyncio.fixture
async def repos(registry):
    transport = LocalTransport(registry)
    yield Repositories(transport)
    transport.close()


def _news(published: bool = True, **kwargs) -> CreateNewsRequest:
    fields = {"title": "Launch", "content": "The servers are up.", "category_id": "c", "author_id": "u", "published": published}
    fields.update(kwargs)
    return CreateNewsRequest(**fields)


async def test_subscribe_delivers_models(repos, settle):
    snapshots: list = []
    category_id = await repos.categories.create(CreateCategoryRequest(name="Esports", slug="esports"))

    subscription = repos.categories.list()(snapshots.append, lambda e: None)
    await settle()

    assert len(snapshots) == 1
    assert isinstance(snapshots[0][0], Category)
    assert snapshots[0][0].id == category_id
    subscription.close()


async def test_get_missing_delivers_none(repos, settle):
    snapshots: list = []

    repos.news.get("missing")(snapshots.append, lambda e: None)
    await settle()

    assert snapshots == [None]


async def test_each_call_opens_its_own_subscription(repos, settle):
    subscribe = repos.news.list(ListFilters(published=True))

    first = subscribe(lambda v: None, lambda e: None)
    second = subscribe(lambda v: None, lambda e: None)

    assert first is not second
    assert repos.transport.active_subscriptions == 2
    first.close()
    second.close()
    assert repos.transport.active_subscriptions == 0


async def test_update_sends_only_fields_set(repos):
    news_id = await repos.news.create(_news(excerpt="Short"))

    await repos.news.update(UpdateNewsRequest(id=news_id, title="Launch day"))

    value = await repos.transport.query("news:get", {"id": news_id})
    item = News.model_validate(value)
    assert item.title == "Launch day"
    assert item.excerpt == "Short"
    assert item.published is True


async def test_mutation_faults_propagate(repos):
    with pytest.raises(NotFoundError):
        await repos.news.update(UpdateNewsRequest(id="missing", title="Missing news"))


async def test_translation_repository(repos, settle):
    news_id = await repos.news.create(_news())
    resolved: list = []
    repos.translations.get_news_with_translation(news_id, "pt")(resolved.append, lambda e: None)
    await settle()

    await repos.translations.upsert_translation(
        UpsertTranslationRequest(news_id=news_id, locale="pt", title="Olá", body="Olá", slug="ola")
    )
    await repos.translations.set_translation_status(news_id, "pt", "published")
    await settle()

    assert resolved[0].effective.title == "Launch"
    assert resolved[-1].effective.title == "Olá"

    created = await repos.translations.create_missing_translations(news_id)
    assert len(created) == 2

    other_news = await repos.news.create(_news())
    with pytest.raises(ConflictError):
        await repos.translations.upsert_translation(
            UpsertTranslationRequest(news_id=other_news, locale="pt", title="x", body="y", slug="ola")
        )

    await repos.translations.delete_translation(news_id, "pt")
    with pytest.raises(NotFoundError):
        await repos.translations.delete_translation(news_id, "pt")


async def test_coverage_and_admin_list(repos, settle):
    news_id = await repos.news.create(_news())
    coverage: list = []
    admin: list = []
    repos.translations.get_coverage(news_id)(coverage.append, lambda e: None)
    repos.translations.list_news_for_admin()(admin.append, lambda e: None)
    await settle()

    await repos.translations.create_missing_translations(news_id)
    await settle()

    assert coverage[0].translated == 0
    assert coverage[-1].translated == 3
    assert admin[-1][0].translation_coverage.missing == []


async def test_reply_repository(repos, settle):
    post_id = await repos.posts.create(
        CreatePostRequest(title="Patch", content="Notes here", author_id="u", published=True)
    )
    replies: list = []
    repos.replies.list_by_post(post_id)(replies.append, lambda e: None)

    reply_id = await repos.replies.create(CreatePostReplyRequest(post_id=post_id, author_id="u", content="hi"))
    await settle()

    assert [r.id for r in replies[-1]] == [reply_id]


async def test_subscription_errors_reach_on_error(repos, settle):
    errors: list = []

    repos.translations.get_news_with_translation("x", "de")(lambda v: None, errors.append)
    await settle()

    assert isinstance(errors[0], ValidationError)
