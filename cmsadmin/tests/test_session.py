"""
Tests for the auth session manager.

The identity provider is faked; tokens are real HS256 JWTs so claim
decoding and expiry run through the same code as in production.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

import jwt
import pytest
import pytest_asyncio

from cmsadmin.client.session import SessionManager, SessionState
from cmsadmin.client.token_store import MemoryTokenStore
from cmsadmin.errors import NetworkError, UnauthorizedError
from cmsadmin.models.user import TokenSet


def make_tokens(clock, sub="user-1", username="alice", expires_in=300, refresh_token="refresh-1") -> TokenSet:
    exp = int((clock.now + timedelta(seconds=expires_in)).timestamp())
    claims = {"sub": sub, "preferred_username": username, "email": f"{username}@example.com", "exp": exp}
    return TokenSet(
        access_token=jwt.encode(claims, "test-secret-key-for-testing-only", algorithm="HS256"),
        refresh_token=refresh_token,
        expires_in=expires_in,
    )


class FakeProvider:
    def __init__(self, clock):
        self.clock = clock
        self.calls: list[str] = []
        self.fail_with: Exception | None = None
        self.logout_error: Exception | None = None
        self.gate: asyncio.Event | None = None

    def authorization_url(self, redirect_uri, state, code_challenge):
        self.calls.append("authorization_url")
        return f"https://idp.example.com/auth?state={state}&code_challenge={code_challenge}"

    async def password_grant(self, username, password):
        self.calls.append("password_grant")
        if password != "secret":
            raise UnauthorizedError("Invalid user credentials")
        return make_tokens(self.clock, username=username)

    async def exchange_code(self, code, redirect_uri, code_verifier):
        self.calls.append("exchange_code")
        return make_tokens(self.clock, username="redirected")

    async def refresh(self, refresh_token):
        self.calls.append("refresh")
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return make_tokens(self.clock, username="alice", refresh_token="refresh-2")

    async def logout(self, refresh_token):
        self.calls.append("logout")
        if self.logout_error is not None:
            raise self.logout_error


class FakeTransport:
    def __init__(self):
        self.auth_history: list[object] = []

    @property
    def credentials(self):
        return self.auth_history[-1] if self.auth_history else None

    def set_auth(self, credentials):
        self.auth_history.append(credentials)


@pytest.fixture
def provider(clock):
    return FakeProvider(clock)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest_asyncio.fixture
async def session(provider, transport, clock):
    manager = SessionManager(provider, transport, token_store=MemoryTokenStore(), refresh_interval=3600, clock=clock)
    yield manager
    await manager.aclose()


class TestLogin:
    async def test_login_success(self, session, transport):
        assert await session.login("alice", "secret") is True

        assert session.state is SessionState.AUTHENTICATED
        assert session.is_authenticated
        assert session.user.id == "user-1"
        assert session.user.username == "alice"
        assert transport.credentials is session
        assert session.auth_header().startswith("Bearer ")

    async def test_login_failure_sets_error(self, session, transport):
        assert await session.login("alice", "wrong") is False

        assert session.state is SessionState.UNAUTHENTICATED
        assert session.error == "Invalid user credentials"
        assert session.user is None
        assert transport.credentials is None

    async def test_login_persists_tokens(self, session):
        await session.login("alice", "secret")

        assert session.token_store.load().access_token == session.access_token

    async def test_failed_relogin_keeps_session(self, session, transport):
        await session.login("alice", "secret")

        assert await session.login("alice", "wrong") is False

        assert session.is_authenticated
        assert session.user.username == "alice"
        assert session.error == "Invalid user credentials"
        assert transport.credentials is session

    async def test_redirect_flow(self, session, provider):
        url = session.authorization_url("https://admin.example.com/callback")
        state = url.split("state=")[1].split("&")[0]

        assert await session.complete_login("code-1", state, "https://admin.example.com/callback") is True
        assert session.user.username == "redirected"
        assert provider.calls == ["authorization_url", "exchange_code"]

    async def test_redirect_state_mismatch(self, session, provider):
        session.authorization_url("https://admin.example.com/callback")

        assert await session.complete_login("code-1", "forged", "https://admin.example.com/callback") is False
        assert session.error == "Login state mismatch. Please sign in again."
        assert "exchange_code" not in provider.calls


class TestExpiry:
    async def test_expired_token_is_not_authenticated(self, session, clock):
        await session.login("alice", "secret")

        clock.advance(seconds=301)

        assert session.state is SessionState.AUTHENTICATED
        assert not session.is_authenticated

    async def test_get_token_refreshes_near_expiry(self, session, provider, clock):
        await session.login("alice", "secret")
        first = session.access_token

        clock.advance(seconds=290)
        token = await session.get_token()

        assert provider.calls.count("refresh") == 1
        assert token != first
        assert session.token_store.load().refresh_token == "refresh-2"

    async def test_get_token_skips_refresh_when_fresh(self, session, provider):
        await session.login("alice", "secret")

        assert await session.get_token() == session.access_token
        assert "refresh" not in provider.calls

    async def test_refresh_with_min_validity_skips_fresh_token(self, session, provider):
        await session.login("alice", "secret")

        assert await session.refresh(min_validity=30) is True
        assert "refresh" not in provider.calls

    async def test_failed_refresh_signs_out(self, session, provider, transport, clock):
        await session.login("alice", "secret")
        provider.fail_with = UnauthorizedError("Token is not active")

        assert await session.refresh() is False

        assert session.state is SessionState.UNAUTHENTICATED
        assert not session.is_authenticated
        assert session.user is None
        assert transport.credentials is None
        assert session.token_store.load() is None
        assert session.error == "Token is not active"

    async def test_get_token_after_failed_refresh_is_none(self, session, provider, clock):
        await session.login("alice", "secret")
        provider.fail_with = NetworkError("Could not reach the identity provider.")
        clock.advance(seconds=295)

        assert await session.get_token() is None
        assert await session.get_token() is None


class TestInit:
    async def test_init_without_stored_tokens(self, session):
        assert await session.init() is False
        assert session.state is SessionState.UNAUTHENTICATED

    async def test_init_recovers_valid_session(self, provider, transport, clock):
        store = MemoryTokenStore(make_tokens(clock))
        manager = SessionManager(provider, transport, token_store=store, refresh_interval=3600, clock=clock)

        assert await manager.init() is True
        assert manager.is_authenticated
        assert "refresh" not in provider.calls
        await manager.aclose()

    async def test_init_refreshes_expired_session(self, provider, transport, clock):
        store = MemoryTokenStore(make_tokens(clock, expires_in=-60))
        manager = SessionManager(provider, transport, token_store=store, refresh_interval=3600, clock=clock)

        assert await manager.init() is True
        assert provider.calls == ["refresh"]
        assert manager.is_authenticated
        await manager.aclose()

    async def test_init_failure_clears_store(self, provider, transport, clock):
        store = MemoryTokenStore(make_tokens(clock, expires_in=-60, refresh_token=None))
        manager = SessionManager(provider, transport, token_store=store, refresh_interval=3600, clock=clock)

        assert await manager.init() is False
        assert store.load() is None
        assert transport.credentials is None


class TestLogout:
    async def test_logout_clears_state(self, session, provider, transport):
        await session.login("alice", "secret")

        await session.logout()

        assert session.state is SessionState.UNAUTHENTICATED
        assert session.user is None
        assert transport.credentials is None
        assert provider.calls[-1] == "logout"

    async def test_logout_is_best_effort(self, session, provider, transport):
        await session.login("alice", "secret")
        provider.logout_error = NetworkError("Could not reach the identity provider.")

        await session.logout()

        assert session.user is None
        assert transport.credentials is None

    async def test_logout_during_refresh_discards_new_tokens(self, session, provider, transport):
        await session.login("alice", "secret")
        provider.gate = asyncio.Event()
        refreshing = asyncio.create_task(session.refresh())
        await asyncio.sleep(0)
        assert provider.calls[-1] == "refresh"

        await session.logout()
        provider.gate.set()

        assert await refreshing is False
        assert session.state is SessionState.UNAUTHENTICATED
        assert session.access_token is None
        assert session.token_store.load() is None
        assert transport.credentials is None

    async def test_logout_when_signed_out(self, session, provider):
        await session.logout()

        assert "logout" not in provider.calls
