"""
autodocs.llm.writer

Documentation writer interface and the deterministic template writer.

Responsibilities:
- Define the `DocWriter` contract the pipeline calls once per source chunk.
- Provide `TemplateWriter`, an offline writer used in dev/test and when no LLM key is set.
- Build the configured writer from settings.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Protocol

from autodocs.settings import Settings


class WriterError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class ChunkRequest:
    repo_full_name: str
    file_path: str
    chunk: str
    chunk_index: int
    chunk_count: int


class DocWriter(Protocol):
    async def write(self, request: ChunkRequest) -> str: ...


_LANGUAGES = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "jsx",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".java": "java",
    ".go": "go",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
}


def language_for(path: str) -> str:
    return _LANGUAGES.get(posixpath.splitext(path)[1].lower(), "")


class TemplateWriter:
    """Produces a Markdown outline from the source itself; no network calls."""

    async def write(self, request: ChunkRequest) -> str:
        lines = request.chunk.splitlines()
        header = ""
        if request.chunk_index == 0:
            header = f"# `{request.file_path}`\n\nRepository: `{request.repo_full_name}`\n\n"
        part = ""
        if request.chunk_count > 1:
            part = f"## Part {request.chunk_index + 1} of {request.chunk_count}\n\n"
        symbols = [ln.strip() for ln in lines if _looks_like_definition(ln)]
        outline = "\n".join(f"- `{s}`" for s in symbols[:50]) or "- (no top-level definitions)"
        return f"{header}{part}Lines: {len(lines)}\n\n### Definitions\n\n{outline}\n"


def _looks_like_definition(line: str) -> bool:
    stripped = line.lstrip()
    if stripped != line and not stripped.startswith(("def ", "async def ")):
        return False
    return stripped.startswith(
        (
            "def ",
            "async def ",
            "class ",
            "function ",
            "export ",
            "func ",
            "public ",
            "interface ",
            "type ",
            "module ",
        )
    )


def build_writer(settings: Settings) -> DocWriter:
    if settings.llm_provider == "gemini":
        if not settings.gemini_api_key:
            raise WriterError("AUTODOCS_GEMINI_API_KEY is required when llm_provider=gemini")
        from autodocs.llm.gemini import GeminiWriter, create_client

        client = create_client(api_key=settings.gemini_api_key, base_url=settings.gemini_base_url)
        return GeminiWriter(client=client, model=settings.gemini_model)
    return TemplateWriter()
