"""
autodocs.pipeline.merkle

Content hashing for incremental documentation.

Responsibilities:
- Split source text into line-aligned chunks and hash them (sha256 hex).
- Compute a Merkle root over a repository snapshot, plus inclusion proofs.
- Diff two (path -> hash) snapshots into added/modified/removed changes.

Tree shape: leaves are hashed pairwise left-to-right as hex strings
(`sha256(left + right)`); an odd node at the end of a level is paired with itself.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

ChangeAction = Literal["added", "modified", "removed"]


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def chunk_text(text: str, max_chars: int) -> list[str]:
    """
    Split `text` into chunks of at most `max_chars`, breaking on line boundaries.

    Lines longer than `max_chars` are hard-split. Joining the chunks gives back `text`
    exactly; empty text yields a single empty chunk so every file has one hash.
    """

    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if not text:
        return [""]

    chunks: list[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line) > max_chars:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:max_chars])
            line = line[max_chars:]
        if len(current) + len(line) > max_chars:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return chunks


def chunk_hashes(chunks: list[str]) -> list[str]:
    return [sha256_hex(c) for c in chunks]


def leaf_hash(path: str, content_hash: str) -> str:
    # Path is part of the leaf so a rename changes the root even when content does not.
    return sha256_hex(f"{path}\0{content_hash}")


def snapshot_leaves(content_hashes: Mapping[str, str]) -> list[str]:
    return [leaf_hash(path, content_hashes[path]) for path in sorted(content_hashes)]


def merkle_root(leaves: list[str]) -> str:
    if not leaves:
        return ""
    level = list(leaves)
    while len(level) > 1:
        level = _next_level(level)
    return level[0]


def _next_level(level: list[str]) -> list[str]:
    out: list[str] = []
    for i in range(0, len(level), 2):
        left = level[i]
        right = level[i + 1] if i + 1 < len(level) else left
        out.append(sha256_hex(left + right))
    return out


@dataclass(frozen=True, slots=True)
class ProofStep:
    sibling: str
    # True when the sibling sits to the left of the running hash.
    sibling_is_left: bool


def merkle_proof(leaves: list[str], index: int) -> list[ProofStep]:
    if not 0 <= index < len(leaves):
        raise IndexError(f"leaf index {index} out of range for {len(leaves)} leaves")

    proof: list[ProofStep] = []
    level = list(leaves)
    idx = index
    while len(level) > 1:
        if idx % 2 == 0:
            sibling = level[idx + 1] if idx + 1 < len(level) else level[idx]
            proof.append(ProofStep(sibling=sibling, sibling_is_left=False))
        else:
            proof.append(ProofStep(sibling=level[idx - 1], sibling_is_left=True))
        level = _next_level(level)
        idx //= 2
    return proof


def verify_proof(leaf: str, proof: list[ProofStep], root: str) -> bool:
    computed = leaf
    for step in proof:
        if step.sibling_is_left:
            computed = sha256_hex(step.sibling + computed)
        else:
            computed = sha256_hex(computed + step.sibling)
    return bool(root) and computed == root


@dataclass(frozen=True, slots=True)
class SnapshotChange:
    path: str
    action: ChangeAction


def diff_snapshots(
    previous: Mapping[str, str], current: Mapping[str, str]
) -> list[SnapshotChange]:
    changes: list[SnapshotChange] = []
    for path in sorted(previous):
        if path not in current:
            changes.append(SnapshotChange(path=path, action="removed"))
        elif current[path] != previous[path]:
            changes.append(SnapshotChange(path=path, action="modified"))
    for path in sorted(current):
        if path not in previous:
            changes.append(SnapshotChange(path=path, action="added"))
    return changes
