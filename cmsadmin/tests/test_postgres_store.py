"""
Tests for the Postgres document store.

Requires a running Postgres instance. Skipped when DATABASE_URL is unset.
"""

import os
import uuid
from datetime import UTC, datetime

import pytest
import pytest_asyncio

from cmsadmin.handlers.news import NewsHandlers
from cmsadmin.models import CreateNewsRequest
from cmsadmin.store.postgres import PostgresDocumentStore


@pytest_asyncio.fixture
async def pg_store():
    """Connect and ensure the schema exists."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set")

    store = await PostgresDocumentStore.connect(database_url)
    yield store
    await store.close()


class TestPostgresDocumentStore:
    """CRUD and index queries against a real database."""

    async def test_insert_and_get(self, pg_store):
        slug = f"slug-{uuid.uuid4().hex}"
        doc_id = await pg_store.insert("categories", {"name": "Esports", "slug": slug, "description": None})

        doc = await pg_store.get(doc_id)
        assert doc == {"id": doc_id, "name": "Esports", "slug": slug}
        assert await pg_store.get(doc_id, "categories") == doc
        assert await pg_store.get(doc_id, "games") is None

    async def test_get_nonexistent(self, pg_store):
        assert await pg_store.get(uuid.uuid4().hex) is None

    async def test_patch_merges_and_removes(self, pg_store):
        doc_id = await pg_store.insert("categories", {"name": "Esports", "slug": "e", "description": "old"})

        await pg_store.patch(doc_id, {"name": "E-sports", "description": None})

        assert await pg_store.get(doc_id) == {"id": doc_id, "name": "E-sports", "slug": "e"}

    async def test_patch_missing_raises(self, pg_store):
        with pytest.raises(KeyError):
            await pg_store.patch(uuid.uuid4().hex, {"name": "x"})

    async def test_delete_is_idempotent(self, pg_store):
        doc_id = await pg_store.insert("games", {"name": "Chess", "image": "c.png", "slug": "chess"})

        await pg_store.delete(doc_id)
        await pg_store.delete(doc_id)

        assert await pg_store.get(doc_id) is None

    async def test_index_query_order(self, pg_store):
        post_id = uuid.uuid4().hex
        first = await pg_store.insert("post_replies", {"post_id": post_id, "author_id": "a", "content": "1"})
        second = await pg_store.insert("post_replies", {"post_id": post_id, "author_id": "a", "content": "2"})

        asc = await pg_store.query("post_replies").with_index("by_post", post_id=post_id).collect()
        desc = await pg_store.query("post_replies").with_index("by_post", post_id=post_id).order("desc").collect()

        assert [d["id"] for d in asc] == [first, second]
        assert [d["id"] for d in desc] == [second, first]

    async def test_query_matches_absent_field(self, pg_store):
        post_id = uuid.uuid4().hex
        top = await pg_store.insert("post_replies", {"post_id": post_id, "author_id": "a", "content": "top"})
        await pg_store.insert(
            "post_replies", {"post_id": post_id, "author_id": "a", "content": "child", "parent_reply_id": top}
        )

        children = await pg_store.query("post_replies").with_index("by_parent", parent_reply_id=top).collect()

        assert [d["content"] for d in children] == ["child"]

    async def test_handlers_round_trip_datetimes(self, pg_store):
        now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        handlers = NewsHandlers(pg_store, lambda: now)
        author = uuid.uuid4().hex

        news_id = await handlers.create(
            CreateNewsRequest(
                title="Launch", content="The servers are up.", category_id="c", author_id=author, published=True
            )
        )

        item = await handlers.get(news_id)
        assert item.published_at == now
        assert [n.id for n in await handlers.get_by_author(author)] == [news_id]
