"""Tests for category and game handlers."""

from __future__ import annotations

import pytest

from cmsadmin.errors import NotFoundError
from cmsadmin.models import (
    CreateCategoryRequest,
    CreateGameRequest,
    UpdateCategoryRequest,
    UpdateGameRequest,
)


async def test_category_crud(categories, clock):
    category_id = await categories.create(CreateCategoryRequest(name="Esports", slug="esports"))

    category = await categories.get(category_id)
    assert category.name == "Esports"
    assert category.description is None

    clock.advance(minutes=1)
    await categories.update(UpdateCategoryRequest(id=category_id, description="Competitive play"))
    category = await categories.get(category_id)
    assert category.description == "Competitive play"
    assert category.slug == "esports"
    assert category.updated_at == clock.now

    await categories.remove(category_id)
    assert await categories.get(category_id) is None


async def test_category_get_by_slug(categories):
    category_id = await categories.create(CreateCategoryRequest(name="Esports", slug="esports"))

    found = await categories.get_by_slug("esports")

    assert found.id == category_id
    assert await categories.get_by_slug("nope") is None


async def test_category_list_newest_first(categories):
    first = await categories.create(CreateCategoryRequest(name="One", slug="one"))
    second = await categories.create(CreateCategoryRequest(name="Two", slug="two"))

    assert [c.id for c in await categories.list()] == [second, first]


async def test_category_slugs_are_not_unique(categories):
    await categories.create(CreateCategoryRequest(name="One", slug="same"))
    await categories.create(CreateCategoryRequest(name="Two", slug="same"))

    assert len(await categories.list()) == 2


async def test_category_update_missing(categories):
    with pytest.raises(NotFoundError, match="Category not found"):
        await categories.update(UpdateCategoryRequest(id="missing", name="Missing"))


async def test_get_ignores_other_tables(categories, games):
    game_id = await games.create(CreateGameRequest(name="Chess", image="chess.png", slug="chess"))

    assert await categories.get(game_id) is None


async def test_game_crud(games):
    game_id = await games.create(
        CreateGameRequest(name="Chess", image="chess.png", slug="chess", description="Classic")
    )

    assert (await games.get_by_slug("chess")).id == game_id

    await games.update(UpdateGameRequest(id=game_id, image="chess-v2.png"))
    game = await games.get(game_id)
    assert game.image == "chess-v2.png"
    assert game.description == "Classic"

    await games.remove(game_id)
    assert await games.list() == []


async def test_game_update_missing(games):
    with pytest.raises(NotFoundError):
        await games.update(UpdateGameRequest(id="missing", name="x"))
