"""
Function server.

Serves the handler registry over HTTP:
    POST /api/query     {"path": "news:list", "args": {...}}
    POST /api/mutation  {"path": "news:create", "args": {...}}

Success: {"status": "success", "value": ...}
Failure: {"status": "error", "errorMessage": ..., "errorData": {"code": ...}}
with the HTTP status of the error class.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cmsadmin.config import settings
from cmsadmin.errors import AppError
from cmsadmin.handlers import FunctionKind, FunctionRegistry, build_registry
from cmsadmin.server.auth import TokenVerifier
from cmsadmin.store.memory import MemoryDocumentStore
from cmsadmin.store.postgres import PostgresDocumentStore

logger = logging.getLogger(__name__)


class FunctionCall(BaseModel):
    """What a transport sends to run a function."""

    model_config = {"extra": "forbid"}

    path: str = Field(min_length=1, pattern=r"^[a-z_]+:[a-z_]+$")
    args: dict[str, Any] = Field(default_factory=dict)


def create_app(registry: FunctionRegistry | None = None, verifier: TokenVerifier | None = None) -> FastAPI:
    """
    Build the function server.

    Args:
        registry: Handlers to serve. Built at startup from DATABASE_URL when
            omitted (Postgres if set, in-memory otherwise).
        verifier: Bearer token verifier. Mutations require a valid token when set.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: connect the document store if no registry was injected.
        Shutdown: close the Postgres pool we opened.
        """
        store: PostgresDocumentStore | None = None
        if app.state.registry is None:
            if settings.DATABASE_URL:
                store = await PostgresDocumentStore.connect(settings.DATABASE_URL)
                logger.info("server: Postgres document store connected")
            else:
                logger.warning("server: DATABASE_URL not set, using in-memory document store")
            app.state.registry = build_registry(store or MemoryDocumentStore())
        yield
        if store is not None:
            await store.close()
            logger.info("server: Postgres document store closed")

    app = FastAPI(title=settings.APP_NAME, docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.registry = registry
    app.state.verifier = verifier

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "errorMessage": exc.message, "errorData": {"code": exc.code}},
        )

    async def run(request: Request, call: FunctionCall, kind: FunctionKind, authorization: str | None) -> dict:
        verifier: TokenVerifier | None = request.app.state.verifier
        if verifier is not None:
            verifier.identity(authorization, required=kind == "mutation")
        value = await request.app.state.registry.run(call.path, call.args, kind=kind)
        return {"status": "success", "value": value}

    @app.post("/api/query")
    async def query(
        request: Request,
        call: FunctionCall,
        authorization: Annotated[str | None, Header()] = None,
    ) -> dict:
        """Run a query function."""
        return await run(request, call, "query", authorization)

    @app.post("/api/mutation")
    async def mutation(
        request: Request,
        call: FunctionCall,
        authorization: Annotated[str | None, Header()] = None,
    ) -> dict:
        """Run a mutation function."""
        try:
            return await run(request, call, "mutation", authorization)
        except AppError as e:
            logger.warning("server: mutation %s failed: %s", call.path, e.message)
            raise

    @app.get("/health")
    async def health():
        """Health check endpoint for uptime monitoring."""
        return {"status": "ok"}

    return app


app = create_app(verifier=TokenVerifier.from_settings())
