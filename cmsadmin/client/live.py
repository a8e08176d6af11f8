"""
Live query state: one subscription, its latest snapshot and its status.

    IDLE -> LOADING -> READY | FAILED

load() re-enters LOADING and always closes the previous subscription first,
so an instance never has two subscriptions open. Each snapshot replaces the
held result in full. An error keeps the last result and sets a user-facing
message. dispose() stops delivery synchronously: callbacks carry the
generation they were opened under and are dropped once it moves on.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from cmsadmin.client.transport import Subscription
from cmsadmin.errors import AppError, user_message

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscribe = Callable[[Callable[[Any], None], Callable[[AppError], None]], Subscription]


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class LiveQuery(Generic[T]):
    """
    Holds at most one active subscription.

    Args:
        on_change: Called after every state change (status, data or error)
    """

    def __init__(self, on_change: Callable[[LiveQuery[T]], None] | None = None):
        self.status = QueryStatus.IDLE
        self.data: T | None = None
        self.error: AppError | None = None
        self.message: str | None = None
        self.on_change = on_change
        self._subscription: Subscription | None = None
        self._generation = 0

    @property
    def is_loading(self) -> bool:
        return self.status is QueryStatus.LOADING

    @property
    def has_subscription(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def load(self, subscribe: Subscribe, apply: Callable[[T], None] | None = None) -> None:
        """
        Open a new subscription, closing the current one first.

        Args:
            subscribe: A repository read, e.g. repos.news.list(filters)
            apply: Optional hook run with every accepted snapshot
        """
        self._close()
        self._generation += 1
        generation = self._generation

        self.status = QueryStatus.LOADING
        self.error = None
        self.message = None
        self._changed()

        def on_snapshot(value: T) -> None:
            if generation != self._generation:
                logger.debug("live query: dropped late snapshot (generation %d)", generation)
                return
            self.data = value
            if apply is not None:
                apply(value)
            self.status = QueryStatus.READY
            self.error = None
            self.message = None
            self._changed()

        def on_error(error: AppError) -> None:
            if generation != self._generation:
                return
            self.status = QueryStatus.FAILED
            self.error = error
            self.message = user_message(error)
            self._changed()

        self._subscription = subscribe(on_snapshot, on_error)

    def clear_error(self) -> None:
        self.error = None
        self.message = None

    def dispose(self) -> None:
        """Close the subscription. Nothing is delivered after this returns."""
        self._generation += 1
        self._close()
        if self.status is QueryStatus.LOADING:
            self.status = QueryStatus.IDLE

    def _close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self)
