"""
Transport clients: how repositories reach the handler functions.

Two implementations share one contract:
- LocalTransport runs functions in-process against a FunctionRegistry and
  re-runs live queries after every store write.
- HttpTransport calls a function server over HTTP and keeps live queries
  fresh by polling.

Both re-resolve the bearer token through the injected CredentialProvider on
every call, so a silently refreshed token is picked up immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

import httpx

from cmsadmin.config import PLACEHOLDER_DEPLOYMENT_URL, settings
from cmsadmin.errors import (
    AppError,
    UnauthorizedError,
    error_from_code,
    log_error,
    to_app_error,
)
from cmsadmin.handlers import FunctionKind, FunctionRegistry

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Any], None]
ErrorCallback = Callable[[AppError], None]

_STATUS_CODES = {401: "UNAUTHORIZED", 403: "FORBIDDEN", 404: "NOT_FOUND", 409: "CONFLICT", 422: "VALIDATION_ERROR"}


class CredentialProvider(Protocol):
    """Anything that can hand out the current bearer token."""

    async def get_token(self) -> str | None: ...


class Subscription:
    """
    Handle for one live query.

    `active` is the liveness flag every delivery checks; close() flips it
    synchronously, so nothing is delivered after close() returns even if a
    fetch for this subscription is still in flight.
    """

    def __init__(self, path: str, args: dict[str, Any], on_close: Callable[[Subscription], None] | None = None):
        self.path = path
        self.args = args
        self.active = True
        self._on_close = on_close

    def close(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._on_close is not None:
            self._on_close(self)

    cancel = close


class Transport(Protocol):
    """What repositories need from a transport."""

    def set_auth(self, credentials: CredentialProvider | None) -> None: ...

    def watch_query(
        self,
        path: str,
        args: dict[str, Any],
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription: ...

    async def query(self, path: str, args: dict[str, Any] | None = None) -> Any: ...

    async def mutation(self, path: str, args: dict[str, Any] | None = None) -> Any: ...


class _Watch:
    """Bookkeeping for one subscription: last delivered value and run counter."""

    def __init__(self, subscription: Subscription, on_snapshot: SnapshotCallback, on_error: ErrorCallback):
        self.subscription = subscription
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.last: Any = _UNSET
        self.runs = 0

    def deliver(self, run: int, value: Any) -> None:
        """Deliver a full snapshot if this run is the latest and the value changed."""
        if not self.subscription.active or run != self.runs or value == self.last:
            return
        self.last = value
        try:
            self.on_snapshot(value)
        except Exception as e:
            error = to_app_error(e)
            log_error(error, f"Query {self.subscription.path}")
            self.fail(run, error)

    def fail(self, run: int, error: AppError) -> None:
        if not self.subscription.active or run != self.runs:
            return
        # The next successful run is delivered even if unchanged.
        self.last = _UNSET
        self.on_error(error)


_UNSET = object()


class BaseTransport:
    """Auth bookkeeping shared by both transports."""

    def __init__(self) -> None:
        self._credentials: CredentialProvider | None = None

    def set_auth(self, credentials: CredentialProvider | None) -> None:
        """Install (or with None, drop) the provider asked for a token on every call."""
        self._credentials = credentials

    @property
    def has_auth(self) -> bool:
        return self._credentials is not None

    async def _token(self) -> str | None:
        if self._credentials is None:
            return None
        return await self._credentials.get_token()


class LocalTransport(BaseTransport):
    """
    In-process transport over a FunctionRegistry.

    Every store write re-runs all active live queries; a snapshot is
    delivered only when its result differs from the last one delivered.
    """

    def __init__(self, registry: FunctionRegistry, require_auth: bool = False):
        super().__init__()
        self.registry = registry
        self.require_auth = require_auth
        self._watches: dict[int, _Watch] = {}
        self._runs: set[asyncio.Task] = set()
        self._remove_listener = registry.store.add_listener(self._on_write)

    def watch_query(
        self,
        path: str,
        args: dict[str, Any],
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        subscription = Subscription(path, dict(args), on_close=self._forget)
        watch = _Watch(subscription, on_snapshot, on_error)
        self._watches[id(subscription)] = watch
        self._schedule(watch)
        return subscription

    async def query(self, path: str, args: dict[str, Any] | None = None) -> Any:
        return await self._call(path, args or {}, "query")

    async def mutation(self, path: str, args: dict[str, Any] | None = None) -> Any:
        return await self._call(path, args or {}, "mutation")

    async def _call(self, path: str, args: dict[str, Any], kind: FunctionKind) -> Any:
        token = await self._token()
        if kind == "mutation" and self.require_auth and not token:
            raise UnauthorizedError("Not authenticated. Please sign in.")
        return await self.registry.run(path, args, kind=kind)

    def _on_write(self, table: str) -> None:
        for watch in list(self._watches.values()):
            self._schedule(watch)

    def _schedule(self, watch: _Watch) -> None:
        watch.runs += 1
        task = asyncio.get_running_loop().create_task(self._run(watch, watch.runs))
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)

    async def _run(self, watch: _Watch, run: int) -> None:
        if not watch.subscription.active:
            return
        try:
            value = await self._call(watch.subscription.path, watch.subscription.args, "query")
        except Exception as e:
            error = to_app_error(e)
            log_error(error, f"Query {watch.subscription.path}")
            watch.fail(run, error)
            return
        watch.deliver(run, value)

    def _forget(self, subscription: Subscription) -> None:
        self._watches.pop(id(subscription), None)

    @property
    def active_subscriptions(self) -> int:
        return len(self._watches)

    @property
    def pending_runs(self) -> int:
        return len(self._runs)

    def close(self) -> None:
        """Stop every live query and detach from the store."""
        for watch in list(self._watches.values()):
            watch.subscription.close()
        for task in list(self._runs):
            task.cancel()
        self._runs.clear()
        self._remove_listener()


class HttpTransport(BaseTransport):
    """HTTP client for a function server. Live queries poll every `poll_interval` seconds."""

    def __init__(
        self,
        url: str | None = None,
        client: httpx.AsyncClient | None = None,
        poll_interval: float | None = None,
    ):
        super().__init__()
        url = settings.DEPLOYMENT_URL if url is None else url
        if not url or not url.strip() or url == PLACEHOLDER_DEPLOYMENT_URL:
            raise RuntimeError(
                "CMS_DEPLOYMENT_URL is not set or is using the placeholder value. "
                "Set it to the base URL of your function server."
            )
        self.url = url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=30.0)
        self.poll_interval = settings.QUERY_POLL_INTERVAL if poll_interval is None else poll_interval
        self._tasks: dict[int, asyncio.Task] = {}

    async def _headers(self) -> dict[str, str]:
        """Build request headers."""
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = await self._token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _call(self, kind: FunctionKind, path: str, args: dict[str, Any]) -> Any:
        try:
            res = await self.client.post(
                f"{self.url}/api/{kind}",
                json={"path": path, "args": args},
                headers=await self._headers(),
            )
        except httpx.TransportError as e:
            raise to_app_error(e) from e

        try:
            body = res.json()
        except ValueError:
            body = {}
        if res.is_success and body.get("status") == "success":
            return body.get("value")

        message = body.get("errorMessage") or _detail(body) or f"{kind} {path} failed with HTTP {res.status_code}"
        code = (body.get("errorData") or {}).get("code") or _STATUS_CODES.get(res.status_code)
        raise error_from_code(code, message)

    async def query(self, path: str, args: dict[str, Any] | None = None) -> Any:
        return await self._call("query", path, args or {})

    async def mutation(self, path: str, args: dict[str, Any] | None = None) -> Any:
        try:
            return await self._call("mutation", path, args or {})
        except AppError as e:
            log_error(e, f"Mutation {path}")
            raise

    def watch_query(
        self,
        path: str,
        args: dict[str, Any],
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        subscription = Subscription(path, dict(args), on_close=self._cancel)
        watch = _Watch(subscription, on_snapshot, on_error)
        task = asyncio.get_running_loop().create_task(self._poll(watch))
        self._tasks[id(subscription)] = task
        return subscription

    async def _poll(self, watch: _Watch) -> None:
        subscription = watch.subscription
        while subscription.active:
            watch.runs += 1
            run = watch.runs
            try:
                value = await self.query(subscription.path, subscription.args)
            except Exception as e:
                error = to_app_error(e)
                log_error(error, f"Query {subscription.path}")
                watch.fail(run, error)
            else:
                watch.deliver(run, value)
            await asyncio.sleep(self.poll_interval)

    def _cancel(self, subscription: Subscription) -> None:
        task = self._tasks.pop(id(subscription), None)
        if task is not None:
            task.cancel()

    async def aclose(self) -> None:
        """Cancel every poller and close the HTTP client."""
        for task in list(self._tasks.values()):
            task.cancel()
        self._tasks.clear()
        await self.client.aclose()


def _detail(body: dict[str, Any]) -> str | None:
    detail = body.get("detail")
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        return "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail)
    return None
