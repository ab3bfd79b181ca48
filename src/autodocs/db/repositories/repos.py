"""
autodocs.db.repositories.repos

Data access for tracked `Repository` rows.

Responsibilities:
- Create/upsert repositories (by GitHub id) and look them up by id, name, or owner.
- Persist documentation status/progress and webhook bookkeeping.
- Delete a repository together with its documents, contents, and runs.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autodocs.db.models import (
    DocRun,
    DocsStatus,
    RepoContent,
    RepoDocumentation,
    Repository,
)


def _now() -> datetime:
    return datetime.now(tz=UTC).replace(tzinfo=None)


class RepositoryRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        github_id: int,
        name: str,
        full_name: str,
        owner: str | None = None,
        html_url: str | None = None,
        default_branch: str = "main",
    ) -> Repository:
        repo = Repository(
            github_id=github_id,
            name=name,
            full_name=full_name,
            owner=owner,
            html_url=html_url or f"https://github.com/{full_name}",
            default_branch=default_branch,
            docs_status=DocsStatus.not_started,
            docs_progress=0,
        )
        self._session.add(repo)
        await self._session.flush()
        return repo

    async def upsert_from_github(
        self,
        *,
        github_id: int,
        name: str,
        full_name: str,
        html_url: str | None = None,
        default_branch: str | None = None,
    ) -> Repository:
        # Webhook deliveries may reference a repo that was renamed since it was connected.
        existing = await self.get_by_github_id(github_id)
        if existing is None:
            return await self.create(
                github_id=github_id,
                name=name,
                full_name=full_name,
                html_url=html_url,
                default_branch=default_branch or "main",
            )
        existing.name = name
        existing.full_name = full_name
        if html_url:
            existing.html_url = html_url
        if default_branch:
            existing.default_branch = default_branch
        existing.updated_at = _now()
        await self._session.flush()
        return existing

    async def get(self, repo_id: uuid.UUID) -> Repository | None:
        return await self._session.get(Repository, repo_id)

    async def get_by_github_id(self, github_id: int) -> Repository | None:
        stmt = select(Repository).where(Repository.github_id == github_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_for_owner(self, owner: str) -> list[Repository]:
        stmt = (
            select(Repository)
            .where(Repository.owner == owner)
            .order_by(desc(Repository.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_all(self) -> list[Repository]:
        stmt = select(Repository).order_by(desc(Repository.created_at))
        return list((await self._session.execute(stmt)).scalars().all())

    async def document_counts(self) -> dict[uuid.UUID, int]:
        stmt = select(RepoDocumentation.repo_id, func.count(RepoDocumentation.id)).group_by(
            RepoDocumentation.repo_id
        )
        return {repo_id: int(count) for repo_id, count in (await self._session.execute(stmt)).all()}

    async def set_docs_status(
        self,
        repo_id: uuid.UUID,
        *,
        status: DocsStatus,
        progress: int,
        message: str,
        error: str | None = None,
    ) -> None:
        repo = await self._session.get(Repository, repo_id, with_for_update=True)
        if repo is None:
            return
        repo.docs_status = status
        repo.docs_progress = max(0, min(100, progress))
        repo.docs_message = message
        repo.docs_updated_at = _now()
        if error is not None:
            repo.last_error = error

    async def set_webhook(
        self,
        repo_id: uuid.UUID,
        *,
        webhook_id: int | None,
        error: str | None,
    ) -> None:
        repo = await self._session.get(Repository, repo_id)
        if repo is None:
            return
        repo.webhook_id = webhook_id
        repo.webhook_error = error

    async def set_merkle_root(self, repo_id: uuid.UUID, merkle_root: str | None) -> None:
        repo = await self._session.get(Repository, repo_id)
        if repo is None:
            return
        repo.merkle_root = merkle_root

    async def delete(self, repo_id: uuid.UUID) -> None:
        # Explicit child deletes: SQLite does not enforce ON DELETE CASCADE without a pragma.
        for model in (RepoDocumentation, RepoContent, DocRun):
            await self._session.execute(delete(model).where(model.repo_id == repo_id))
        await self._session.execute(delete(Repository).where(Repository.id == repo_id))
