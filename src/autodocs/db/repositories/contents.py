"""
autodocs.db.repositories.contents

Data access for `RepoContent` snapshots.

Responsibilities:
- Upsert raw file snapshots produced by a documentation run.
- Expose the (path -> blob sha) view used by sync-mode change detection.
- Expose the (path -> content hash) view the Merkle root is computed from.
"""

from __future__ import annotations

import posixpath
import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from autodocs.db.models import RepoContent


class ContentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, repo_id: uuid.UUID, file_path: str) -> RepoContent | None:
        stmt = select(RepoContent).where(
            RepoContent.repo_id == repo_id, RepoContent.file_path == file_path
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def upsert(
        self,
        *,
        repo_id: uuid.UUID,
        file_path: str,
        content: str,
        content_hash: str,
        sha: str | None,
    ) -> RepoContent:
        existing = await self.get(repo_id, file_path)
        size = len(content.encode("utf-8"))
        if existing is not None:
            existing.content = content
            existing.content_hash = content_hash
            existing.sha = sha
            existing.size = size
            await self._session.flush()
            return existing

        row = RepoContent(
            repo_id=repo_id,
            file_path=file_path,
            file_name=posixpath.basename(file_path),
            content=content,
            content_hash=content_hash,
            sha=sha,
            size=size,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def blob_shas(self, repo_id: uuid.UUID) -> dict[str, str]:
        stmt = select(RepoContent.file_path, RepoContent.sha).where(RepoContent.repo_id == repo_id)
        return {path: sha or "" for path, sha in (await self._session.execute(stmt)).all()}

    async def content_hashes(self, repo_id: uuid.UUID) -> dict[str, str]:
        stmt = select(RepoContent.file_path, RepoContent.content_hash).where(
            RepoContent.repo_id == repo_id
        )
        return dict((await self._session.execute(stmt)).tuples().all())

    async def delete_paths(self, repo_id: uuid.UUID, paths: list[str]) -> int:
        if not paths:
            return 0
        result = await self._session.execute(
            delete(RepoContent).where(
                RepoContent.repo_id == repo_id, RepoContent.file_path.in_(paths)
            )
        )
        return int(result.rowcount or 0)


# --- Module Notes -----------------------------------------------------------
# Push-mode runs never read `blob_shas`: GitHub's commit payload already says what changed.
