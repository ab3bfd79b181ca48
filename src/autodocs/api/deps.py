"""
autodocs.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, DB sessions, and shared clients.
- Encapsulate app.state access patterns (sessionmaker, http client, writer, broker).
- Build request-scoped services from those pieces.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autodocs.github.client import GitHubClient
from autodocs.llm.writer import DocWriter
from autodocs.services.documentation_service import DocumentationService
from autodocs.services.events import EventBroker
from autodocs.services.repo_service import RepoService
from autodocs.settings import Settings, get_settings


def settings_dep(settings: Settings = Depends(get_settings)) -> Settings:
    return settings


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created in the lifespan of `autodocs.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session


def http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http  # type: ignore[attr-defined]


def doc_writer(request: Request) -> DocWriter:
    return request.app.state.writer  # type: ignore[attr-defined]


def event_broker(request: Request) -> EventBroker:
    return request.app.state.broker  # type: ignore[attr-defined]


def github_token(
    x_github_token: str | None = Header(default=None),
    settings: Settings = Depends(settings_dep),
) -> str | None:
    # The dashboard forwards the user's OAuth token; the service token is the fallback.
    return x_github_token or settings.github_token


def github_client(
    http: httpx.AsyncClient = Depends(http_client),
    token: str | None = Depends(github_token),
    settings: Settings = Depends(settings_dep),
) -> GitHubClient:
    return GitHubClient(http=http, token=token, base_url=settings.github_api_url)


def documentation_service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    github: GitHubClient = Depends(github_client),
    writer: DocWriter = Depends(doc_writer),
    broker: EventBroker = Depends(event_broker),
) -> DocumentationService:
    return DocumentationService(
        session=session, settings=settings, github=github, writer=writer, broker=broker
    )


def repo_service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    github: GitHubClient = Depends(github_client),
) -> RepoService:
    return RepoService(session=session, settings=settings, github=github)


# --- Module Notes -----------------------------------------------------------
# `create_app` overrides `get_settings` so every dependency here (and in `autodocs.auth`)
# sees the Settings instance the app was built with.
