"""
autodocs.pipeline.state

Typed state schema used by the LangGraph documentation pipeline.

Responsibilities:
- Define the contract between nodes (inputs/outputs).
- Provide a stable shape for checkpoints (stored in doc_runs.state).
"""

from __future__ import annotations

from typing import Any, Literal, TypedDict

INDEX_PATH = "index.md"


class FileChange(TypedDict):
    path: str
    action: Literal["added", "modified", "removed"]
    sha: str | None


class GeneratedDoc(TypedDict):
    content: str
    chunk_hashes: list[str]
    content_hash: str
    source_sha: str | None


class DocState(TypedDict, total=False):
    # Identifiers
    repo_id: str
    repo_full_name: str
    run_id: str

    # Inputs
    mode: Literal["push", "sync"]
    ref: str
    commits: list[str]
    known_shas: dict[str, str]
    existing_chunk_hashes: dict[str, list[str]]
    existing_doc_paths: list[str]

    # collect_changes
    changes: list[FileChange]
    total_changes: int
    commit_failures: list[str]
    lines_changed: int

    # fetch_contents
    contents: dict[str, str]
    fetch_failures: list[str]

    # generate_docs (persisted by the service layer)
    documents: dict[str, GeneratedDoc]
    unchanged: list[str]
    removed: list[str]

    # build_index
    index_document: str
    documented_paths: list[str]

    # finish
    outcome: Literal["updated", "unchanged"]


def checkpoint_view(state: DocState) -> dict[str, Any]:
    """State as stored in `doc_runs.state`: file bodies are dropped, paths and counters kept."""

    view: dict[str, Any] = {
        k: v
        for k, v in state.items()
        if k not in ("contents", "documents", "index_document", "known_shas", "existing_chunk_hashes")
    }
    if "contents" in state:
        view["fetched"] = sorted(state["contents"])
    if "documents" in state:
        view["generated"] = sorted(state["documents"])
    return view


# --- Module Notes -----------------------------------------------------------
# Nodes return partial updates and no key carries a reducer, so applying an update is a
# plain dict.update; the service layer relies on this to track the live state.
