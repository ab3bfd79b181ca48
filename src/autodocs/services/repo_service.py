"""
autodocs.services.repo_service

Repository onboarding and webhook management.

Responsibilities:
- Register a repository selected by a user (idempotent per GitHub id).
- Create, inspect, and recreate the push webhook on GitHub.
- Remove a repository, its webhook, and everything generated for it.
- Run onboarding (webhook + initial sync) outside the request cycle.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autodocs.db.models import Repository
from autodocs.db.repositories.repos import RepositoryRepo
from autodocs.db.session import session_scope
from autodocs.github.client import GitHubClient, GitHubError
from autodocs.llm.writer import DocWriter
from autodocs.services.documentation_service import DocumentationService, RepositoryNotFound
from autodocs.services.events import EventBroker
from autodocs.settings import Settings

log = structlog.get_logger(__name__)

WEBHOOK_PATH = "/v1/webhooks/github"


@dataclass(frozen=True, slots=True)
class SelectedRepo:
    github_id: int
    name: str
    full_name: str
    html_url: str | None = None
    default_branch: str | None = None


class RepoService:
    def __init__(self, *, session: AsyncSession, settings: Settings, github: GitHubClient) -> None:
        self._session = session
        self._settings = settings
        self._github = github
        self._repos = RepositoryRepo(session)

    @property
    def webhook_url(self) -> str:
        return self._settings.public_base_url.rstrip("/") + WEBHOOK_PATH

    async def select(self, *, owner: str, selected: SelectedRepo) -> tuple[Repository, bool]:
        """Returns (repository, created)."""

        existing = await self._repos.get_by_github_id(selected.github_id)
        if existing is not None:
            if existing.owner is None:
                # First seen through a webhook delivery; the selecting user claims it.
                existing.owner = owner
                await self._session.commit()
            return existing, False

        repo = await self._repos.create(
            github_id=selected.github_id,
            name=selected.name,
            full_name=selected.full_name,
            owner=owner,
            html_url=selected.html_url,
            default_branch=selected.default_branch or "main",
        )
        await self._session.commit()
        log.info("repository_selected", repo=repo.full_name, owner=owner)
        return repo, True

    async def ensure_webhook(self, repo_id: uuid.UUID) -> int | None:
        repo = await self._require(repo_id)
        if not self._settings.webhook_secret:
            await self._repos.set_webhook(repo_id, webhook_id=None, error="Webhook secret not configured")
            await self._session.commit()
            log.warning("webhook_skipped", repo=repo.full_name, reason="no_secret")
            return None

        try:
            hook_id = await self._github.create_push_webhook(
                repo.full_name, url=self.webhook_url, secret=self._settings.webhook_secret
            )
        except GitHubError as e:
            await self._repos.set_webhook(repo_id, webhook_id=None, error=e.message)
            await self._session.commit()
            log.warning("webhook_create_failed", repo=repo.full_name, status=e.status_code, error=e.message)
            return None

        await self._repos.set_webhook(repo_id, webhook_id=hook_id, error=None)
        await self._session.commit()
        log.info("webhook_created", repo=repo.full_name, webhook_id=hook_id)
        return hook_id

    async def webhook_status(self, repo_id: uuid.UUID) -> dict[str, Any]:
        repo = await self._require(repo_id)
        hooks = await self._github.list_webhooks(repo.full_name)
        match = next(
            (
                h
                for h in hooks
                if (repo.webhook_id is not None and h.get("id") == repo.webhook_id)
                or (h.get("config") or {}).get("url") == self.webhook_url
            ),
            None,
        )
        if match is None:
            return {
                "exists": False,
                "webhook_id": repo.webhook_id,
                "webhook_error": repo.webhook_error,
                "url": self.webhook_url,
            }
        return {
            "exists": True,
            "webhook_id": match.get("id"),
            "active": bool(match.get("active")),
            "events": list(match.get("events") or []),
            "url": (match.get("config") or {}).get("url"),
            "webhook_error": repo.webhook_error,
        }

    async def recreate_webhook(self, repo_id: uuid.UUID) -> int | None:
        repo = await self._require(repo_id)
        if repo.webhook_id is not None:
            await self._delete_remote_hook(repo.full_name, repo.webhook_id)
        return await self.ensure_webhook(repo_id)

    async def delete(self, repo_id: uuid.UUID) -> None:
        repo = await self._require(repo_id)
        if repo.webhook_id is not None:
            await self._delete_remote_hook(repo.full_name, repo.webhook_id)
        full_name = repo.full_name
        await self._repos.delete(repo_id)
        await self._session.commit()
        log.info("repository_deleted", repo=full_name)

    async def _delete_remote_hook(self, full_name: str, hook_id: int) -> None:
        try:
            await self._github.delete_webhook(full_name, hook_id)
        except GitHubError as e:
            # Already gone on GitHub (or access revoked): local cleanup still proceeds.
            log.warning("webhook_delete_failed", repo=full_name, webhook_id=hook_id, status=e.status_code)

    async def _require(self, repo_id: uuid.UUID) -> Repository:
        repo = await self._repos.get(repo_id)
        if repo is None:
            raise RepositoryNotFound(str(repo_id))
        return repo


async def onboard_repository(
    *,
    repo_id: uuid.UUID,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    http: httpx.AsyncClient,
    github_token: str | None,
    writer: DocWriter,
    broker: EventBroker,
) -> None:
    """
    Background half of `POST /v1/repos/select`: create the webhook, then document the
    default branch with a sync-mode run.
    """

    github = GitHubClient(http=http, token=github_token, base_url=settings.github_api_url)
    async with session_scope(session_factory) as session:
        await RepoService(session=session, settings=settings, github=github).ensure_webhook(repo_id)
        docs = DocumentationService(
            session=session, settings=settings, github=github, writer=writer, broker=broker
        )
        try:
            await docs.run_sync(repo_id=repo_id)
        except Exception:
            # Failure is already recorded on the run and the repository status.
            log.warning("onboarding_sync_failed", repo_id=str(repo_id))
