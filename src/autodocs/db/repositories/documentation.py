from __future__ import annotations

import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autodocs.db.models import RepoDocumentation


class DocumentationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(
        self,
        *,
        repo_id: uuid.UUID,
        file_path: str,
        content: str,
        chunk_hashes: list[str],
        source_sha: str | None = None,
    ) -> RepoDocumentation:
        existing = await self.get(repo_id, file_path)
        if existing is not None:
            if existing.content != content or existing.chunk_hashes != chunk_hashes:
                existing.version += 1
            existing.content = content
            existing.chunk_hashes = list(chunk_hashes)
            existing.source_sha = source_sha
            await self._session.flush()
            return existing

        doc = RepoDocumentation(
            repo_id=repo_id,
            file_path=file_path,
            content=content,
            version=1,
            chunk_hashes=list(chunk_hashes),
            source_sha=source_sha,
        )
        self._session.add(doc)
        await self._session.flush()
        return doc

    async def get(self, repo_id: uuid.UUID, file_path: str) -> RepoDocumentation | None:
        stmt = select(RepoDocumentation).where(
            RepoDocumentation.repo_id == repo_id, RepoDocumentation.file_path == file_path
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_paths(self, repo_id: uuid.UUID) -> list[str]:
        stmt = (
            select(RepoDocumentation.file_path)
            .where(RepoDocumentation.repo_id == repo_id)
            .order_by(RepoDocumentation.file_path)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def chunk_hashes_by_path(self, repo_id: uuid.UUID) -> dict[str, list[str]]:
        stmt = select(RepoDocumentation.file_path, RepoDocumentation.chunk_hashes).where(
            RepoDocumentation.repo_id == repo_id
        )
        return {path: list(hashes or []) for path, hashes in (await self._session.execute(stmt)).all()}

    async def count(self, repo_id: uuid.UUID) -> int:
        stmt = select(func.count(RepoDocumentation.id)).where(RepoDocumentation.repo_id == repo_id)
        return int((await self._session.execute(stmt)).scalar_one())

    async def delete_paths(self, repo_id: uuid.UUID, paths: list[str]) -> int:
        if not paths:
            return 0
        result = await self._session.execute(
            delete(RepoDocumentation).where(
                RepoDocumentation.repo_id == repo_id, RepoDocumentation.file_path.in_(paths)
            )
        )
        return int(result.rowcount or 0)
