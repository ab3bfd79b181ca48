from __future__ import annotations

import pytest

from autodocs.pipeline.filters import change_action, is_documentable, is_excluded
from autodocs.settings import Settings

EXTS = Settings().code_extensions


@pytest.mark.parametrize(
    "path",
    [
        "src/app.py",
        "lib/server.ts",
        "components/Button.TSX",
        "cmd/main.go",
        "Program.cs",
    ],
)
def test_documentable(path: str) -> None:
    assert is_documentable(path, EXTS)


@pytest.mark.parametrize(
    "path",
    [
        ".git/config",
        "web/node_modules/react/index.js",
        "dist/bundle.js",
        "app/build/out.js",
        "tests/test_app.py",
        "src/__tests__/thing.test.ts",
        ".github/workflows/ci.py",
        "src/.hidden.py",
        "assets/logo.png",
        "yarn.lock",
    ],
)
def test_excluded(path: str) -> None:
    assert is_excluded(path)
    assert not is_documentable(path, EXTS)


def test_non_code_files_are_skipped() -> None:
    assert not is_excluded("README.md")
    assert not is_documentable("README.md", EXTS)


@pytest.mark.parametrize(
    ("status", "action"),
    [
        ("added", "added"),
        ("removed", "removed"),
        ("modified", "modified"),
        ("renamed", "modified"),
        ("changed", "modified"),
    ],
)
def test_change_action(status: str, action: str) -> None:
    assert change_action(status) == action
