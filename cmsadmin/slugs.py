"""URL slugs for categories and games."""

from __future__ import annotations

import re

SLUG_PATTERN = r"^[a-z0-9-]+$"


def generate_slug(text: str) -> str:
    """
    URL-friendly slug: lowercase, punctuation dropped, runs of spaces,
    underscores and hyphens collapsed to one hyphen, no hyphen at either end.

    Example:
        generate_slug("  Hello, World_2024! ") == "hello-world-2024"
    """
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    return re.sub(r"^-+|-+$", "", slug)
