"""
autodocs.pipeline.filters

Path filters deciding which repository files are documented.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Literal

# Matched against "/" + repo-relative path, case-insensitive.
EXCLUDED_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^/\.git(/|$)",
        r"/node_modules/",
        r"/dist/",
        r"/build/",
        r"/\.next/",
        r"/out/",
        r"\.(gitignore|gitkeep|gitattributes)$",
        r"\.(lock|log|tmp|temp|DS_Store)$",
        r"/\.[^/]*$",
        r"/\.[^/]+/",
        r"/(test|tests|__tests__|spec|specs|coverage|cypress|e2e)/",
        r"\.(jpg|jpeg|png|gif|svg|webp|ico|mp4|webm|wav|mp3|m4a|aac|oga|woff|woff2|ttf|eot|otf"
        r"|zip|gz|rar|7z|tar|pdf|docx?|xlsx?|pptx?|avif|webmanifest|wasm|bin|dll|exe)$",
    )
)


def is_excluded(path: str) -> bool:
    full = "/" + path.lstrip("/")
    return any(p.search(full) for p in EXCLUDED_PATTERNS)


def is_code_file(path: str, extensions: Iterable[str]) -> bool:
    lower = path.lower()
    return any(lower.endswith(ext.lower()) for ext in extensions)


def is_documentable(path: str, extensions: Iterable[str]) -> bool:
    return is_code_file(path, extensions) and not is_excluded(path)


def change_action(github_status: str) -> Literal["added", "modified", "removed"]:
    # GitHub file statuses: added, removed, modified, renamed, copied, changed, unchanged.
    if github_status == "added":
        return "added"
    if github_status == "removed":
        return "removed"
    return "modified"
