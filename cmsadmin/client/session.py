"""
Auth session manager.

    UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED

While authenticated a background task refreshes the token every
TOKEN_REFRESH_INTERVAL seconds, and get_token() refreshes on demand when
the token is about to expire. The manager hands itself to the transport as
the credential provider, so every call reads the current token. Any failed
refresh signs the session out and clears transport auth.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Protocol

from cmsadmin.client.identity import decode_claims, new_pkce_pair, token_expiry
from cmsadmin.client.token_store import MemoryTokenStore, TokenStore
from cmsadmin.client.transport import CredentialProvider
from cmsadmin.config import settings
from cmsadmin.errors import UnauthorizedError, log_error, to_app_error
from cmsadmin.models.user import TokenSet, User

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class IdentityProvider(Protocol):
    def authorization_url(self, redirect_uri: str, state: str, code_challenge: str) -> str: ...

    async def password_grant(self, username: str, password: str) -> TokenSet: ...

    async def exchange_code(self, code: str, redirect_uri: str, code_verifier: str) -> TokenSet: ...

    async def refresh(self, refresh_token: str) -> TokenSet: ...

    async def logout(self, refresh_token: str) -> None: ...


class AuthClient(Protocol):
    """The one piece of transport state the session manager owns."""

    def set_auth(self, credentials: CredentialProvider | None) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionManager:
    """
    Owns the signed-in user's tokens and the transport's authorization.

    Args:
        provider: Identity provider (KeycloakProvider in production)
        transport: Transport whose auth this session controls
        token_store: Where tokens persist between runs (default: memory)
        refresh_interval: Seconds between background refreshes
        min_validity: Refresh when the token expires within this many seconds
        clock: Current time, injectable for tests
    """

    def __init__(
        self,
        provider: IdentityProvider,
        transport: AuthClient,
        token_store: TokenStore | None = None,
        refresh_interval: float | None = None,
        min_validity: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.provider = provider
        self.transport = transport
        self.token_store = token_store or MemoryTokenStore()
        self.refresh_interval = settings.TOKEN_REFRESH_INTERVAL if refresh_interval is None else refresh_interval
        self.min_validity = settings.TOKEN_MIN_VALIDITY if min_validity is None else min_validity
        self.clock = clock or _utcnow

        self.state = SessionState.UNAUTHENTICATED
        self.user: User | None = None
        self.error: str | None = None
        self._tokens: TokenSet | None = None
        self._expires_at: datetime | None = None
        self._pending_logins: dict[str, str] = {}
        self._refresh_task: asyncio.Task | None = None
        self._refresh_lock = asyncio.Lock()

    # -- state ----------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        """True only while signed in with an unexpired access token."""
        if self.state is not SessionState.AUTHENTICATED or self._tokens is None or self.user is None:
            return False
        return self._expires_at is None or self.clock() < self._expires_at

    @property
    def access_token(self) -> str | None:
        return self._tokens.access_token if self._tokens else None

    def auth_header(self) -> str | None:
        token = self.access_token
        return f"Bearer {token}" if token else None

    def clear_error(self) -> None:
        self.error = None

    # -- sign in --------------------------------------------------------------

    async def init(self) -> bool:
        """
        Recover a session from the token store, refreshing it if it has expired.

        Returns:
            True if a session was recovered
        """
        tokens = self.token_store.load()
        if tokens is None:
            return False

        self.state = SessionState.AUTHENTICATING
        self.error = None
        try:
            if self._expiring(tokens, self.min_validity):
                if not tokens.refresh_token:
                    raise UnauthorizedError("Session expired. Please sign in again.")
                tokens = await self.provider.refresh(tokens.refresh_token)
            self._establish(tokens)
        except Exception as e:
            error = to_app_error(e)
            log_error(error, "AuthInit")
            self._sign_out_locally()
            return False
        logger.info("session: recovered session for %s", self.user.username if self.user else "?")
        return True

    async def login(self, username: str, password: str) -> bool:
        """Direct credential exchange. On failure the provider's message lands in `error`."""
        if self._tokens is None:
            self.state = SessionState.AUTHENTICATING
        self.error = None
        try:
            self._establish(await self.provider.password_grant(username, password))
        except Exception as e:
            self._login_failed(e)
            return False
        logger.info("session: signed in %s", username)
        return True

    def authorization_url(self, redirect_uri: str) -> str:
        """Start the redirect flow. complete_login() finishes it with the returned code and state."""
        verifier, challenge = new_pkce_pair()
        state = secrets.token_urlsafe(16)
        self._pending_logins[state] = verifier
        return self.provider.authorization_url(redirect_uri, state, challenge)

    async def complete_login(self, code: str, state: str, redirect_uri: str) -> bool:
        verifier = self._pending_logins.pop(state, None)
        if verifier is None:
            self.error = "Login state mismatch. Please sign in again."
            return False
        if self._tokens is None:
            self.state = SessionState.AUTHENTICATING
        self.error = None
        try:
            self._establish(await self.provider.exchange_code(code, redirect_uri, verifier))
        except Exception as e:
            self._login_failed(e)
            return False
        return True

    # -- sign out -------------------------------------------------------------

    async def logout(self) -> None:
        """
        Clear local state and transport auth, then end the provider session.

        The provider call is best-effort: local state is already gone when it runs.
        """
        tokens = self._tokens
        self._sign_out_locally()
        if tokens is None or not tokens.refresh_token:
            return
        try:
            await self.provider.logout(tokens.refresh_token)
        except Exception as e:
            log_error(to_app_error(e), "AuthLogout")

    async def aclose(self) -> None:
        """Stop the refresh loop without signing out."""
        task = self._refresh_task
        self._refresh_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    # -- tokens ---------------------------------------------------------------

    async def get_token(self) -> str | None:
        """
        Current access token, refreshed first if it expires within min_validity.

        Returns None once the session is gone, including after a failed refresh.
        """
        if self._tokens is None:
            return None
        if self._expiring(self._tokens, self.min_validity) and not await self.refresh(self.min_validity):
            return None
        return self.access_token

    async def refresh(self, min_validity: float | None = None) -> bool:
        """
        Refresh the token set.

        Args:
            min_validity: If given, skip the refresh unless the token expires
                within this many seconds

        Returns:
            True if the session is still valid afterwards
        """
        async with self._refresh_lock:
            tokens = self._tokens
            if tokens is None:
                return False
            if min_validity is not None and not self._expiring(tokens, min_validity):
                return True
            try:
                if not tokens.refresh_token:
                    raise UnauthorizedError("Session expired. Please sign in again.")
                refreshed = await self.provider.refresh(tokens.refresh_token)
                if self._tokens is not tokens:
                    # Signed out while the provider call was in flight.
                    logger.info("session: discarding refresh result for an ended session")
                    return False
                self._apply(refreshed)
            except Exception as e:
                if self._tokens is not tokens:
                    return False
                error = to_app_error(e)
                log_error(error, "AuthRefreshToken")
                self._sign_out_locally()
                self.error = error.message
                return False
        logger.debug("session: token refreshed")
        return True

    # -- internals ------------------------------------------------------------

    def _expiring(self, tokens: TokenSet, within: float) -> bool:
        expires_at = token_expiry(tokens.access_token)
        return expires_at is not None and expires_at - timedelta(seconds=within) <= self.clock()

    def _apply(self, tokens: TokenSet) -> None:
        self.user = User.from_claims(decode_claims(tokens.access_token))
        self._tokens = tokens
        self._expires_at = token_expiry(tokens.access_token)
        self.token_store.save(tokens)

    def _establish(self, tokens: TokenSet) -> None:
        self._apply(tokens)
        self.state = SessionState.AUTHENTICATED
        self.error = None
        self.transport.set_auth(self)
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.get_running_loop().create_task(self._refresh_loop())

    def _login_failed(self, exc: Exception) -> None:
        error = to_app_error(exc)
        log_error(error, "AuthLogin")
        # A failed re-login leaves the current session signed in.
        if self._tokens is None:
            self._sign_out_locally()
        self.error = error.message

    def _sign_out_locally(self) -> None:
        task = self._refresh_task
        self._refresh_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        self._tokens = None
        self._expires_at = None
        self.user = None
        self.state = SessionState.UNAUTHENTICATED
        self.transport.set_auth(None)
        self.token_store.clear()

    async def _refresh_loop(self) -> None:
        while self.state is SessionState.AUTHENTICATED:
            await asyncio.sleep(self.refresh_interval)
            if self.state is not SessionState.AUTHENTICATED:
                return
            await self.refresh(self.min_validity)
