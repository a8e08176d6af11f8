"""
Where a signed-in session's tokens live between runs.

FileTokenStore keeps one JSON file with owner-only permissions, the way a
CLI keeps its credentials. MemoryTokenStore forgets everything on exit.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

import pydantic

from cmsadmin.config import settings
from cmsadmin.models.user import TokenSet

logger = logging.getLogger(__name__)


class TokenStore(Protocol):
    def load(self) -> TokenSet | None: ...

    def save(self, tokens: TokenSet) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStore:
    """Process-local token store."""

    def __init__(self, tokens: TokenSet | None = None):
        self._tokens = tokens

    def load(self) -> TokenSet | None:
        return self._tokens

    def save(self, tokens: TokenSet) -> None:
        self._tokens = tokens

    def clear(self) -> None:
        self._tokens = None


class FileTokenStore:
    """
    Token set persisted as JSON.

    Args:
        path: File path. Defaults to CMS_TOKEN_STORE, else ~/.cmsadmin/tokens.json
    """

    def __init__(self, path: str | Path | None = None):
        if path is None:
            path = settings.TOKEN_STORE_PATH or Path.home() / ".cmsadmin" / "tokens.json"
        self.path = Path(path)

    def load(self) -> TokenSet | None:
        """Load the stored token set. A missing or unreadable file means no session."""
        if not self.path.exists():
            return None
        try:
            with open(self.path) as f:
                return TokenSet.model_validate(json.load(f))
        except (OSError, ValueError, pydantic.ValidationError) as e:
            logger.warning("token store: ignoring unreadable %s: %s", self.path, e)
            return None

    def save(self, tokens: TokenSet) -> None:
        """Write the token set with owner-only read/write permissions."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(tokens.model_dump(exclude_none=True), f, indent=2)
        self.path.chmod(0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
