"""
Keycloak OpenID Connect client.

Supports the direct credential exchange (password grant), the redirect
flow (authorization code with PKCE S256) and refresh-token grants. Token
claims are decoded locally without signature checks; the function server
verifies signatures.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlencode

import httpx
import jwt

from cmsadmin.config import missing, settings
from cmsadmin.errors import NetworkError, UnauthorizedError, to_app_error
from cmsadmin.models.user import TokenSet

logger = logging.getLogger(__name__)


def new_pkce_pair() -> tuple[str, str]:
    """
    Generate a PKCE code verifier and its S256 challenge.

    Returns:
        (code_verifier, code_challenge)
    """
    verifier = secrets.token_urlsafe(64)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


def decode_claims(token: str) -> dict[str, Any]:
    """Decode a JWT's claims without verifying it."""
    return jwt.decode(token, options={"verify_signature": False})


def token_expiry(token: str) -> datetime | None:
    """When the token expires, from its exp claim."""
    exp = decode_claims(token).get("exp")
    return datetime.fromtimestamp(exp, UTC) if exp is not None else None


class KeycloakProvider:
    """
    Token endpoint client for one realm and client.

    Raises:
        RuntimeError: If the URL, realm or client id is not configured
    """

    def __init__(
        self,
        url: str | None = None,
        realm: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        url = settings.KEYCLOAK_URL if url is None else url
        realm = settings.KEYCLOAK_REALM if realm is None else realm
        client_id = settings.KEYCLOAK_CLIENT_ID if client_id is None else client_id
        absent = missing(KEYCLOAK_URL=url, KEYCLOAK_REALM=realm, KEYCLOAK_CLIENT_ID=client_id)
        if absent:
            raise RuntimeError(
                f"Keycloak is not configured. Missing: {', '.join(absent)}. "
                "Set these environment variables and restart."
            )
        self.issuer = f"{url.rstrip('/')}/realms/{realm}"
        self.client_id = client_id
        self.client_secret = settings.KEYCLOAK_CLIENT_SECRET if client_secret is None else client_secret
        self.client = client or httpx.AsyncClient(timeout=30.0)

    @property
    def token_endpoint(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/token"

    @property
    def auth_endpoint(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/auth"

    @property
    def logout_endpoint(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/logout"

    def authorization_url(self, redirect_uri: str, state: str, code_challenge: str) -> str:
        """URL to send the user to for the redirect flow."""
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "scope": "openid",
            "redirect_uri": redirect_uri,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self.auth_endpoint}?{urlencode(params)}"

    async def password_grant(self, username: str, password: str) -> TokenSet:
        return await self._token_request(
            {"grant_type": "password", "username": username, "password": password, "scope": "openid"}
        )

    async def exchange_code(self, code: str, redirect_uri: str, code_verifier: str) -> TokenSet:
        return await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "code_verifier": code_verifier,
            }
        )

    async def refresh(self, refresh_token: str) -> TokenSet:
        return await self._token_request({"grant_type": "refresh_token", "refresh_token": refresh_token})

    async def logout(self, refresh_token: str) -> None:
        """End the provider-side session."""
        try:
            res = await self.client.post(self.logout_endpoint, data=self._client_auth({"refresh_token": refresh_token}))
            res.raise_for_status()
        except httpx.HTTPError as e:
            raise to_app_error(e) from e

    async def aclose(self) -> None:
        await self.client.aclose()

    def _client_auth(self, data: dict[str, str]) -> dict[str, str]:
        data = {**data, "client_id": self.client_id}
        if self.client_secret:
            data["client_secret"] = self.client_secret
        return data

    async def _token_request(self, data: dict[str, str]) -> TokenSet:
        """
        POST to the token endpoint.

        Raises:
            UnauthorizedError: Rejected grant, carrying the provider's error_description
            NetworkError: Provider unreachable
        """
        try:
            res = await self.client.post(self.token_endpoint, data=self._client_auth(data))
        except httpx.TransportError as e:
            logger.warning("keycloak: token request failed: %s", e)
            raise NetworkError("Could not reach the identity provider.", details=e) from e

        if res.status_code in (400, 401):
            try:
                body = res.json()
            except ValueError:
                body = {}
            message = body.get("error_description") or body.get("error") or "Invalid credentials"
            raise UnauthorizedError(message)
        try:
            res.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise to_app_error(e) from e
        return TokenSet.model_validate(res.json())
