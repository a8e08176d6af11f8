"""
Bearer token verification for the function server.

Tokens are issued by the identity provider; the server only checks them.
Verification is off when no key is configured.
"""

from __future__ import annotations

from typing import Any

import jwt

from cmsadmin.config import settings
from cmsadmin.errors import UnauthorizedError


class TokenVerifier:
    """Checks signature, expiry and (optionally) audience of bearer tokens."""

    def __init__(self, key: str, algorithm: str = "RS256", audience: str | None = None):
        self.key = key
        self.algorithm = algorithm
        self.audience = audience or None

    @classmethod
    def from_settings(cls) -> TokenVerifier | None:
        """Verifier built from AUTH_JWT_* settings, or None when verification is disabled."""
        if not settings.AUTH_JWT_KEY:
            return None
        return cls(settings.AUTH_JWT_KEY, settings.AUTH_JWT_ALGORITHM, settings.AUTH_JWT_AUDIENCE)

    def decode(self, token: str) -> dict[str, Any]:
        """
        Decode and verify a token.

        Args:
            token: Raw JWT

        Returns:
            Decoded claims

        Raises:
            UnauthorizedError: If the token is invalid or expired
        """
        try:
            return jwt.decode(
                token,
                self.key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
        except jwt.ExpiredSignatureError as e:
            raise UnauthorizedError("Session expired. Please sign in again.") from e
        except jwt.InvalidTokenError as e:
            raise UnauthorizedError("Invalid session token. Please sign in again.") from e

    def identity(self, authorization: str | None, required: bool) -> dict[str, Any] | None:
        """
        Claims from an Authorization header.

        Args:
            authorization: Header value, "Bearer <jwt>"
            required: Reject requests without a token

        Returns:
            Claims, or None when no token was sent and none is required
        """
        if not authorization:
            if required:
                raise UnauthorizedError("Not authenticated. Please sign in.")
            return None
        if not authorization.startswith("Bearer "):
            raise UnauthorizedError("Invalid token format.")
        return self.decode(authorization.removeprefix("Bearer "))
