"""
autodocs.services.documentation_service

Documentation run lifecycle service (transaction + persistence owner).

Responsibilities:
- Create runs for pushes and tree syncs and seed the pipeline state from the DB.
- Execute the LangGraph pipeline with a durable checkpoint after each node.
- Persist contents/docs, drop removed files, and recompute the Merkle root.
- Keep `repositories.docs_*` and the SSE stream in step with run progress.
- Reconcile stored docs status with the documents that actually exist.
- Verify a stored doc against its source snapshot and the repository Merkle root.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from autodocs.db.models import DocsStatus, RunStatus, RunTrigger
from autodocs.db.repositories.contents import ContentRepo
from autodocs.db.repositories.documentation import DocumentationRepo
from autodocs.db.repositories.repos import RepositoryRepo
from autodocs.db.repositories.runs import DocRunRepo
from autodocs.github.client import GitHubClient
from autodocs.llm.writer import DocWriter
from autodocs.pipeline.graph import build_graph
from autodocs.pipeline.merkle import (
    chunk_hashes,
    chunk_text,
    leaf_hash,
    merkle_proof,
    merkle_root,
    sha256_hex,
    snapshot_leaves,
    verify_proof,
)
from autodocs.pipeline.state import INDEX_PATH, DocState, checkpoint_view
from autodocs.services.events import DocsEvent, EventBroker
from autodocs.settings import Settings

log = structlog.get_logger(__name__)

# Progress reported once a node has finished; generate_docs also reports per file
# between fetch_contents and its own value.
_NODE_PROGRESS = {
    "collect_changes": 25,
    "fetch_contents": 40,
    "generate_docs": 90,
    "build_index": 95,
}

MSG_STARTED = "Generating documentation..."
MSG_UPDATED = "Documentation regenerated successfully"
MSG_UNCHANGED = "No documentation changes needed"
MSG_CORRECTED = "Documentation completed"
MSG_READY = "Documentation is ready!"
MSG_NOT_STARTED = "Documentation not generated yet"


class RepositoryNotFound(LookupError):
    pass


class DocumentNotFound(LookupError):
    pass


class DocumentationService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        github: GitHubClient,
        writer: DocWriter,
        broker: EventBroker,
    ) -> None:
        self._session = session
        self._settings = settings
        self._github = github
        self._writer = writer
        self._broker = broker

        self._repos = RepositoryRepo(session)
        self._docs = DocumentationRepo(session)
        self._contents = ContentRepo(session)
        self._runs = DocRunRepo(session)

    async def run_push(
        self,
        *,
        repo_id: uuid.UUID,
        commits: list[str],
        ref: str,
        delivery_id: str | None = None,
    ) -> dict[str, Any]:
        return await self._run(
            repo_id=repo_id,
            trigger=RunTrigger.push,
            delivery_id=delivery_id,
            state={"mode": "push", "commits": list(commits), "ref": ref},
        )

    async def run_sync(
        self,
        *,
        repo_id: uuid.UUID,
        delivery_id: str | None = None,
    ) -> dict[str, Any]:
        return await self._run(
            repo_id=repo_id,
            trigger=RunTrigger.sync,
            delivery_id=delivery_id,
            state={"mode": "sync", "known_shas": await self._contents.blob_shas(repo_id)},
        )

    async def _run(
        self,
        *,
        repo_id: uuid.UUID,
        trigger: RunTrigger,
        delivery_id: str | None,
        state: DocState,
    ) -> dict[str, Any]:
        started = time.perf_counter()
        repo = await self._repos.get(repo_id)
        if repo is None:
            raise RepositoryNotFound(str(repo_id))
        # Plain copies: ORM attributes expire on rollback and cannot lazy-load under asyncio.
        full_name = repo.full_name
        repo_name = repo.name
        state.setdefault("ref", repo.default_branch)

        run = await self._runs.create(repo_id=repo_id, trigger=trigger, delivery_id=delivery_id)
        run_id = run.id
        bound = log.bind(repo=full_name, run_id=str(run_id), trigger=trigger.value)

        state.update(
            {
                "repo_id": str(repo_id),
                "repo_full_name": full_name,
                "run_id": str(run_id),
                "existing_chunk_hashes": await self._docs.chunk_hashes_by_path(repo_id),
                "existing_doc_paths": await self._docs.list_paths(repo_id),
            }
        )
        await self._report(repo_id, repo_name, DocsStatus.generating, 10, MSG_STARTED)
        await self._session.commit()
        bound.info("doc_run_started")

        async def on_file(path: str, done: int, total: int) -> None:
            span = _NODE_PROGRESS["generate_docs"] - _NODE_PROGRESS["fetch_contents"]
            progress = _NODE_PROGRESS["fetch_contents"] + (span * done) // max(total, 1)
            await self._report(
                repo_id, repo_name, DocsStatus.generating, progress, f"Documented {path} ({done}/{total})"
            )
            await self._session.commit()

        graph = build_graph(
            github=self._github, writer=self._writer, settings=self._settings, on_file=on_file
        )

        try:
            state = await self._execute_with_checkpoints(
                graph=graph, repo_id=repo_id, repo_name=repo_name, run_id=run_id, state=state
            )
            root = await self._persist_outputs(repo_id=repo_id, state=state)

            documents = state.get("documents", {})
            removed = state.get("removed", [])
            message = MSG_UPDATED if state.get("outcome") == "updated" else MSG_UNCHANGED
            await self._runs.checkpoint(run_id, checkpoint_view(state))
            await self._runs.finish(
                run_id,
                status=RunStatus.completed,
                changed_files=len(state.get("changes", [])),
                updated_files=len(documents),
                removed_files=len(removed),
            )
            await self._report(repo_id, repo_name, DocsStatus.complete, 100, message)
            await self._session.commit()
        except Exception as e:
            await self._session.rollback()
            error = str(e) or e.__class__.__name__
            await self._runs.finish(run_id, status=RunStatus.failed, error=error)
            await self._report(
                repo_id,
                repo_name,
                DocsStatus.error,
                0,
                f"Failed to generate documentation: {error}",
                error=error,
            )
            await self._session.commit()
            bound.exception("doc_run_failed")
            raise

        duration_ms = int((time.perf_counter() - started) * 1000)
        bound.info(
            "doc_run_completed",
            updated=len(documents),
            removed=len(removed),
            unchanged=len(state.get("unchanged", [])),
            duration_ms=duration_ms,
        )
        return {
            "success": True,
            "message": f"Processed {len(documents)} files",
            "run_id": str(run_id),
            "repo_id": str(repo_id),
            "updated_files": len(documents),
            "removed_files": len(removed),
            "unchanged_files": len(state.get("unchanged", [])),
            "total_changes": int(state.get("total_changes", 0)),
            "merkle_root": root,
            "duration_ms": duration_ms,
        }

    async def _execute_with_checkpoints(
        self,
        *,
        graph: Any,
        repo_id: uuid.UUID,
        repo_name: str,
        run_id: uuid.UUID,
        state: DocState,
    ) -> DocState:
        """
        Persist the run state after each node update (LangGraph stream_mode='updates').
        """

        last_state: DocState = dict(state)  # type: ignore[assignment]
        async for update in graph.astream(last_state, stream_mode="updates"):
            if not isinstance(update, dict) or not update:
                continue
            node_name, node_update = next(iter(update.items()))
            if isinstance(node_update, dict):
                # Updates are partial; no state key has a reducer.
                last_state.update(node_update)  # type: ignore[typeddict-item]

            await self._runs.checkpoint(run_id, checkpoint_view(last_state))
            progress = _NODE_PROGRESS.get(node_name)
            if progress is not None:
                await self._report(
                    repo_id,
                    repo_name,
                    DocsStatus.generating,
                    progress,
                    _node_message(node_name, last_state),
                )
            await self._session.commit()
        return last_state

    async def _persist_outputs(self, *, repo_id: uuid.UUID, state: DocState) -> str | None:
        shas = {c["path"]: c.get("sha") for c in state.get("changes", [])}
        documents = state.get("documents", {})

        for path, text in state.get("contents", {}).items():
            doc = documents.get(path)
            await self._contents.upsert(
                repo_id=repo_id,
                file_path=path,
                content=text,
                content_hash=doc["content_hash"] if doc else sha256_hex(text),
                sha=shas.get(path),
            )
        for path, doc in documents.items():
            await self._docs.upsert(
                repo_id=repo_id,
                file_path=path,
                content=doc["content"],
                chunk_hashes=doc["chunk_hashes"],
                source_sha=doc["source_sha"],
            )

        removed = list(state.get("removed", []))
        await self._contents.delete_paths(repo_id, removed)
        await self._docs.delete_paths(repo_id, removed)

        index = state.get("index_document")
        if index:
            await self._docs.upsert(
                repo_id=repo_id,
                file_path=INDEX_PATH,
                content=index,
                chunk_hashes=[sha256_hex(index)],
            )

        root = merkle_root(snapshot_leaves(await self._contents.content_hashes(repo_id))) or None
        await self._repos.set_merkle_root(repo_id, root)
        return root

    async def _report(
        self,
        repo_id: uuid.UUID,
        repo_name: str,
        status: DocsStatus,
        progress: int,
        message: str,
        *,
        error: str | None = None,
    ) -> None:
        await self._repos.set_docs_status(
            repo_id, status=status, progress=progress, message=message, error=error
        )
        event_type = {
            DocsStatus.complete: "documentation_complete",
            DocsStatus.error: "documentation_error",
        }.get(status, "documentation_progress")
        self._broker.publish(
            DocsEvent(
                type=event_type,  # type: ignore[arg-type]
                repo_id=str(repo_id),
                repo_name=repo_name,
                status=status.value,
                message=message,
                progress=progress,
            )
        )

    async def status(self, repo_id: uuid.UUID) -> dict[str, Any]:
        repo = await self._repos.get(repo_id)
        if repo is None:
            raise RepositoryNotFound(str(repo_id))
        count = await self._docs.count(repo_id)

        if count > 0 and repo.docs_status not in (DocsStatus.complete, DocsStatus.generating):
            log.info("docs_status_corrected", repo=repo.full_name, previous=repo.docs_status, documents=count)
            await self._repos.set_docs_status(
                repo_id, status=DocsStatus.complete, progress=100, message=MSG_CORRECTED
            )
            await self._session.commit()

        return {
            "status": DocsStatus(repo.docs_status).value,
            "progress": repo.docs_progress,
            "message": repo.docs_message or "",
            "last_updated": repo.docs_updated_at or repo.updated_at,
            "has_documents": count > 0,
            "document_count": count,
            "merkle_root": repo.merkle_root,
        }

    async def sync_all_statuses(self) -> dict[str, int]:
        counts = await self._repos.document_counts()
        complete = not_started = untouched = 0
        for repo in await self._repos.list_all():
            if counts.get(repo.id, 0) > 0:
                await self._repos.set_docs_status(
                    repo.id, status=DocsStatus.complete, progress=100, message=MSG_READY
                )
                complete += 1
            elif repo.docs_status != DocsStatus.generating:
                await self._repos.set_docs_status(
                    repo.id, status=DocsStatus.not_started, progress=0, message=MSG_NOT_STARTED
                )
                not_started += 1
            else:
                untouched += 1
        await self._session.commit()
        log.info("docs_status_synced", complete=complete, not_started=not_started, generating=untouched)
        return {"complete": complete, "not_started": not_started, "generating": untouched}

    async def verify(self, repo_id: uuid.UUID, file_path: str) -> dict[str, Any]:
        """
        Checks one documented file three ways: its snapshot still hashes to the recorded
        `content_hash`, that leaf is included under `repositories.merkle_root`, and the doc
        was generated from the snapshot's current chunks.
        """

        repo = await self._repos.get(repo_id)
        if repo is None:
            raise RepositoryNotFound(str(repo_id))
        snapshot = await self._contents.get(repo_id, file_path)
        doc = await self._docs.get(repo_id, file_path)
        if snapshot is None or doc is None:
            raise DocumentNotFound(file_path)

        hashes = await self._contents.content_hashes(repo_id)
        leaf = leaf_hash(file_path, snapshot.content_hash)
        proof = merkle_proof(snapshot_leaves(hashes), sorted(hashes).index(file_path))
        root = repo.merkle_root or ""

        content_intact = sha256_hex(snapshot.content) == snapshot.content_hash
        in_tree = verify_proof(leaf, proof, root)
        current_chunks = chunk_hashes(chunk_text(snapshot.content, self._settings.doc_chunk_chars))
        doc_current = list(doc.chunk_hashes or []) == current_chunks

        verified = content_intact and in_tree and doc_current
        if not verified:
            log.warning(
                "doc_verification_failed",
                repo=repo.full_name,
                file=file_path,
                content_intact=content_intact,
                in_merkle_tree=in_tree,
                doc_current=doc_current,
            )
        return {
            "file": file_path,
            "verified": verified,
            "content_intact": content_intact,
            "in_merkle_tree": in_tree,
            "doc_current": doc_current,
            "content_hash": snapshot.content_hash,
            "leaf": leaf,
            "merkle_root": repo.merkle_root,
            "proof": [
                {"sibling": s.sibling, "position": "left" if s.sibling_is_left else "right"}
                for s in proof
            ],
        }


def _node_message(node_name: str, state: DocState) -> str:
    if node_name == "collect_changes":
        return f"Found {len(state.get('changes', []))} changed files"
    if node_name == "fetch_contents":
        return f"Fetched {len(state.get('contents', {}))} files"
    if node_name == "generate_docs":
        return f"Generated documentation for {len(state.get('documents', {}))} files"
    return "Rebuilt documentation index"


# --- Module Notes -----------------------------------------------------------
# This service is the transaction boundary: it commits after every checkpoint so the dashboard
# (polling /status) and the run history see progress while the pipeline is still running.
