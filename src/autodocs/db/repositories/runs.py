"""
autodocs.db.repositories.runs

Repository for `DocRun` entities.

Responsibilities:
- Create and fetch documentation runs.
- Persist checkpoints (state snapshots), outcome counters, and failure metadata.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from autodocs.db.models import DocRun, RunStatus, RunTrigger


class DocRunRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        repo_id: uuid.UUID,
        trigger: RunTrigger,
        delivery_id: str | None = None,
    ) -> DocRun:
        run = DocRun(
            repo_id=repo_id,
            trigger=trigger,
            status=RunStatus.running,
            delivery_id=delivery_id,
            state={},
        )
        self._session.add(run)
        await self._session.flush()
        return run

    async def get(self, run_id: uuid.UUID) -> DocRun | None:
        return await self._session.get(DocRun, run_id)

    async def list_for_repo(self, repo_id: uuid.UUID, *, limit: int = 20) -> list[DocRun]:
        stmt = (
            select(DocRun)
            .where(DocRun.repo_id == repo_id)
            .order_by(desc(DocRun.created_at))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def checkpoint(self, run_id: uuid.UUID, state: dict[str, Any]) -> None:
        run = await self._session.get(DocRun, run_id)
        if run is None:
            return
        run.state = state

    async def finish(
        self,
        run_id: uuid.UUID,
        *,
        status: RunStatus,
        changed_files: int = 0,
        updated_files: int = 0,
        removed_files: int = 0,
        error: str | None = None,
    ) -> None:
        run = await self._session.get(DocRun, run_id)
        if run is None:
            return
        run.status = status
        run.changed_files = changed_files
        run.updated_files = updated_files
        run.removed_files = removed_files
        run.error = error
