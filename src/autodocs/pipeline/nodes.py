from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable

import structlog

from autodocs.github.client import GitHubClient, GitHubError
from autodocs.llm.writer import ChunkRequest, DocWriter
from autodocs.pipeline.filters import change_action, is_documentable
from autodocs.pipeline.merkle import chunk_hashes, chunk_text, diff_snapshots, sha256_hex
from autodocs.pipeline.state import INDEX_PATH, DocState, FileChange, GeneratedDoc

log = structlog.get_logger(__name__)

FileProgress = Callable[[str, int, int], Awaitable[None]]


async def collect_changes_node(
    state: DocState,
    *,
    github: GitHubClient,
    extensions: Iterable[str],
    max_file_bytes: int,
) -> DocState:
    """
    Push mode: union of the files touched by each pushed commit (later commits win).
    Sync mode: diff of the branch tree against the stored snapshot.
    """

    full_name = state["repo_full_name"]
    exts = list(extensions)

    if state.get("mode") == "sync":
        entries = await github.tree(full_name, state.get("ref") or "HEAD")
        current = {
            e.path: e.sha
            for e in entries
            if e.size <= max_file_bytes and is_documentable(e.path, exts)
        }
        changes: list[FileChange] = [
            {"path": c.path, "action": c.action, "sha": current.get(c.path)}
            for c in diff_snapshots(state.get("known_shas", {}), current)
        ]
        log.info("tree_diffed", files=len(current), changes=len(changes))
        return {"changes": changes, "total_changes": len(changes), "commit_failures": []}

    by_path: dict[str, FileChange] = {}
    total = 0
    lines_changed = 0
    failures: list[str] = []
    for sha in state.get("commits", []):
        try:
            files = await github.commit_files(full_name, sha)
        except GitHubError as e:
            # Skipped; the remaining commits are still processed.
            log.warning("commit_fetch_failed", commit=sha[:7], status=e.status_code, error=e.message)
            failures.append(sha)
            continue
        total += len(files)
        lines_changed += sum(f.additions + f.deletions for f in files)
        for f in files:
            if f.previous_filename and is_documentable(f.previous_filename, exts):
                # Renames surface once, under the new name; the old path goes away.
                by_path[f.previous_filename] = {
                    "path": f.previous_filename,
                    "action": "removed",
                    "sha": None,
                }
            if not is_documentable(f.filename, exts):
                continue
            action = change_action(f.status)
            by_path[f.filename] = {"path": f.filename, "action": action, "sha": f.sha}
    log.info(
        "commits_scanned",
        commits=len(state.get("commits", [])),
        files=total,
        lines_changed=lines_changed,
        changes=len(by_path),
    )
    return {
        "changes": list(by_path.values()),
        "total_changes": total,
        "commit_failures": failures,
        "lines_changed": lines_changed,
    }


async def fetch_contents_node(state: DocState, *, github: GitHubClient) -> DocState:
    full_name = state["repo_full_name"]
    kept: list[FileChange] = []
    contents: dict[str, str] = {}
    failures: list[str] = []

    for change in state.get("changes", []):
        if change["action"] == "removed":
            kept.append(change)
            continue
        try:
            if change.get("sha"):
                text = await github.blob_text(full_name, str(change["sha"]))
            else:
                text = await github.file_text(full_name, change["path"], state.get("ref"))
        except GitHubError as e:
            log.warning("content_fetch_failed", path=change["path"], status=e.status_code)
            failures.append(change["path"])
            continue
        contents[change["path"]] = text
        kept.append(change)

    return {"changes": kept, "contents": contents, "fetch_failures": failures}


async def generate_docs_node(
    state: DocState,
    *,
    writer: DocWriter,
    chunk_chars: int,
    on_file: FileProgress | None = None,
) -> DocState:
    full_name = state["repo_full_name"]
    existing = state.get("existing_chunk_hashes", {})
    contents = state.get("contents", {})

    documents: dict[str, GeneratedDoc] = {}
    unchanged: list[str] = []
    removed: list[str] = []

    pending = [c for c in state.get("changes", []) if c["action"] != "removed"]
    for change in state.get("changes", []):
        if change["action"] == "removed":
            removed.append(change["path"])

    for i, change in enumerate(pending, start=1):
        path = change["path"]
        text = contents.get(path, "")
        chunks = chunk_text(text, chunk_chars)
        hashes = chunk_hashes(chunks)
        if existing.get(path) == hashes:
            unchanged.append(path)
        else:
            parts = [
                await writer.write(
                    ChunkRequest(
                        repo_full_name=full_name,
                        file_path=path,
                        chunk=chunk,
                        chunk_index=idx,
                        chunk_count=len(chunks),
                    )
                )
                for idx, chunk in enumerate(chunks)
            ]
            documents[path] = {
                "content": "\n\n".join(p.strip() for p in parts) + "\n",
                "chunk_hashes": hashes,
                "content_hash": sha256_hex(text),
                "source_sha": change.get("sha"),
            }
        if on_file is not None:
            await on_file(path, i, len(pending))

    log.info(
        "docs_generated",
        generated=len(documents),
        unchanged=len(unchanged),
        removed=len(removed),
    )
    return {"documents": documents, "unchanged": unchanged, "removed": removed}


async def build_index_node(state: DocState) -> DocState:
    removed = set(state.get("removed", []))
    paths = {p for p in state.get("existing_doc_paths", []) if p != INDEX_PATH}
    paths = (paths - removed) | set(state.get("documents", {}))
    ordered = sorted(paths)
    return {"index_document": render_index(state["repo_full_name"], ordered), "documented_paths": ordered}


def render_index(full_name: str, paths: list[str]) -> str:
    lines = [f"# {full_name}", "", "Generated documentation for this repository.", ""]
    if not paths:
        lines.append("_No documented source files yet._")
    current_dir = None
    for path in paths:
        directory, _, _ = path.rpartition("/")
        if directory != current_dir:
            lines.extend(["", f"## {directory or '(root)'}", ""])
            current_dir = directory
        lines.append(f"- [`{path}`]({path})")
    return "\n".join(lines).rstrip() + "\n"


async def finish_node(state: DocState) -> DocState:
    touched = bool(state.get("documents")) or bool(state.get("removed"))
    return {"outcome": "updated" if touched else "unchanged"}


def route_after_collect(state: DocState) -> str:
    return "fetch_contents" if state.get("changes") else "finish"


def route_after_fetch(state: DocState) -> str:
    # Every changed file failed to download: nothing left to document.
    return "generate_docs" if state.get("changes") else "finish"
