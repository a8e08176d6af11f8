"""Session user and token models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class User(BaseModel):
    """
    Signed-in user, rebuilt from identity token claims on every refresh.

    Never persisted by this system.
    """

    id: str
    username: str = ""
    email: str = ""
    first_name: str | None = None
    last_name: str | None = None
    roles: list[str] = Field(default_factory=list)

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> User:
        """Build a User from decoded access token claims."""
        realm_access = claims.get("realm_access") or {}
        return cls(
            id=claims["sub"],
            username=claims.get("preferred_username") or claims.get("username") or "",
            email=claims.get("email") or "",
            first_name=claims.get("given_name"),
            last_name=claims.get("family_name"),
            roles=list(realm_access.get("roles") or []),
        )


class TokenSet(BaseModel):
    """What the identity provider's token endpoint returns."""

    access_token: str
    refresh_token: str | None = None
    id_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_expires_in: int | None = None
