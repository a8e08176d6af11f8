"""Integration tests for the function server routes."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import httpx
import jwt
import pytest_asyncio

from cmsadmin.server.app import create_app
from cmsadmin.server.auth import TokenVerifier

SECRET = "test-secret-key-for-testing-only"


def _token(expires_in: timedelta = timedelta(minutes=5), key: str = SECRET) -> str:
    payload = {"sub": "user-1", "exp": datetime.now(UTC) + expires_in}
    return jwt.encode(payload, key, algorithm="HS256")


@pytest_asyncio.fixture
async def async_client(registry):
    """Async HTTP client against a server without token verification."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=create_app(registry)),
        base_url="http://test",
    ) as client:
        yield client


@pytest_asyncio.fixture
async def secured_client(registry):
    """Async HTTP client against a server that verifies bearer tokens."""
    app = create_app(registry, verifier=TokenVerifier(SECRET, algorithm="HS256"))
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


class TestFunctionRoutes:
    """Tests for /api/query and /api/mutation."""

    async def test_mutation_then_query(self, async_client):
        res = await async_client.post(
            "/api/mutation",
            json={"path": "categories:create", "args": {"name": "Esports", "slug": "esports"}},
        )
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "success"
        category_id = body["value"]

        res = await async_client.post("/api/query", json={"path": "categories:list", "args": {}})
        assert res.status_code == 200
        assert [c["id"] for c in res.json()["value"]] == [category_id]

    async def test_not_found_envelope(self, async_client):
        res = await async_client.post(
            "/api/mutation",
            json={"path": "news:update", "args": {"id": "missing", "title": "Missing news"}},
        )
        assert res.status_code == 404
        assert res.json() == {
            "status": "error",
            "errorMessage": "News not found",
            "errorData": {"code": "NOT_FOUND"},
        }

    async def test_validation_envelope(self, async_client):
        res = await async_client.post(
            "/api/query",
            json={"path": "news_translations:get_translation", "args": {"news_id": "n", "locale": "xx"}},
        )
        assert res.status_code == 422
        assert res.json()["errorData"]["code"] == "VALIDATION_ERROR"

    async def test_invalid_slug_envelope(self, async_client):
        res = await async_client.post(
            "/api/mutation",
            json={"path": "categories:create", "args": {"name": "Esports", "slug": "NOT A SLUG!!"}},
        )
        assert res.status_code == 422
        assert res.json() == {
            "status": "error",
            "errorMessage": "Slug must contain only lowercase letters, numbers, and hyphens",
            "errorData": {"code": "VALIDATION_ERROR"},
        }

    async def test_query_route_rejects_mutations(self, async_client):
        res = await async_client.post("/api/query", json={"path": "news:remove", "args": {"id": "x"}})
        assert res.status_code == 422

    async def test_unknown_function(self, async_client):
        res = await async_client.post("/api/query", json={"path": "news:nothing", "args": {}})
        assert res.status_code == 404

    async def test_malformed_path(self, async_client):
        res = await async_client.post("/api/query", json={"path": "../etc", "args": {}})
        assert res.status_code == 422

    async def test_health(self, async_client):
        res = await async_client.get("/health")
        assert res.json() == {"status": "ok"}


class TestTokenVerification:
    """Tests for bearer checks when a verifier is configured."""

    async def test_query_without_token_allowed(self, secured_client):
        res = await secured_client.post("/api/query", json={"path": "categories:list", "args": {}})
        assert res.status_code == 200

    async def test_mutation_without_token(self, secured_client):
        res = await secured_client.post(
            "/api/mutation", json={"path": "categories:create", "args": {"name": "Arcade", "slug": "arcade"}}
        )
        assert res.status_code == 401
        assert res.json()["errorData"]["code"] == "UNAUTHORIZED"

    async def test_mutation_with_valid_token(self, secured_client):
        res = await secured_client.post(
            "/api/mutation",
            json={"path": "categories:create", "args": {"name": "Arcade", "slug": "arcade"}},
            headers={"Authorization": f"Bearer {_token()}"},
        )
        assert res.status_code == 200

    async def test_expired_token(self, secured_client):
        res = await secured_client.post(
            "/api/mutation",
            json={"path": "categories:create", "args": {"name": "Arcade", "slug": "arcade"}},
            headers={"Authorization": f"Bearer {_token(expires_in=timedelta(minutes=-5))}"},
        )
        assert res.status_code == 401
        assert res.json()["errorMessage"] == "Session expired. Please sign in again."

    async def test_wrong_signature(self, secured_client):
        res = await secured_client.post(
            "/api/query",
            json={"path": "categories:list", "args": {}},
            headers={"Authorization": f"Bearer {_token(key='another-secret-key-of-enough-length')}"},
        )
        assert res.status_code == 401

    async def test_non_bearer_header(self, secured_client):
        res = await secured_client.post(
            "/api/mutation",
            json={"path": "categories:create", "args": {"name": "Arcade", "slug": "arcade"}},
            headers={"Authorization": "Basic abc"},
        )
        assert res.status_code == 401
        assert res.json()["errorMessage"] == "Invalid token format."
