"""
autodocs.api.app

FastAPI app factory for the AutoDocs service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Create and dispose shared infrastructure (DB engine, HTTP client, writer, SSE broker).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from autodocs import __version__
from autodocs.api.routers.admin import router as admin_router
from autodocs.api.routers.dev_auth import router as dev_auth_router
from autodocs.api.routers.events import router as events_router
from autodocs.api.routers.github import router as github_router
from autodocs.api.routers.health import router as health_router
from autodocs.api.routers.repos import router as repos_router
from autodocs.api.routers.webhooks import router as webhooks_router
from autodocs.db.init_db import init_db
from autodocs.db.session import create_engine, create_sessionmaker
from autodocs.llm.writer import build_writer
from autodocs.observability.logging import configure_logging, get_logger
from autodocs.observability.middleware import RequestContextMiddleware
from autodocs.services.events import EventBroker
from autodocs.settings import Settings, get_settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, llm_provider=settings.llm_provider)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod uses Alembic migrations.
            await init_db(engine)

        # One client for every GitHub call; retries apply to connection failures only.
        transport = http_transport or httpx.AsyncHTTPTransport(retries=settings.http_retries)
        app.state.http = httpx.AsyncClient(
            transport=transport, timeout=settings.http_timeout_seconds
        )
        app.state.writer = build_writer(settings)
        app.state.broker = EventBroker(
            pending_ttl_seconds=settings.sse_pending_ttl_seconds,
            queue_size=settings.sse_queue_size,
        )
        try:
            yield
        finally:
            await app.state.http.aclose()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="AutoDocs",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(webhooks_router)
    app.include_router(repos_router)
    app.include_router(github_router)
    app.include_router(events_router)
    app.include_router(admin_router)

    return app


# --- Module Notes -----------------------------------------------------------
# Tests pass `http_transport=httpx.MockTransport(...)` so GitHub never sees traffic.
