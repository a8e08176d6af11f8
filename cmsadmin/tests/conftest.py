"""
Pytest configuration and fixtures for CMS admin tests.

Everything runs against the in-memory document store with a fixed clock,
so tests need no external services.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from cmsadmin.handlers import build_registry
from cmsadmin.handlers.categories import CategoryHandlers
from cmsadmin.handlers.games import GameHandlers
from cmsadmin.handlers.news import NewsHandlers
from cmsadmin.handlers.post_replies import PostReplyHandlers
from cmsadmin.handlers.posts import PostHandlers
from cmsadmin.handlers.translations import NewsTranslationHandlers
from cmsadmin.store.memory import MemoryDocumentStore


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def registry(store, clock):
    return build_registry(store, clock)


@pytest.fixture
def categories(store, clock):
    return CategoryHandlers(store, clock)


@pytest.fixture
def news(store, clock):
    return NewsHandlers(store, clock)


@pytest.fixture
def translations(store, clock):
    return NewsTranslationHandlers(store, clock)


@pytest.fixture
def posts(store, clock):
    return PostHandlers(store, clock)


@pytest.fixture
def replies(store, clock):
    return PostReplyHandlers(store, clock)


@pytest.fixture
def games(store, clock):
    return GameHandlers(store, clock)


@pytest.fixture
def settle():
    """Let scheduled callbacks and tasks run to completion."""

    async def _settle(rounds: int = 10) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _settle
