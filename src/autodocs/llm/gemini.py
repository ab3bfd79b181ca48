"""
autodocs.llm.gemini

Gemini writer built on the `google-genai` SDK.

Responsibilities:
- Build the per-chunk documentation prompt.
- Call `generate_content` through the SDK's async client and return the Markdown.
- Map API failures, blocked prompts, and empty responses to `WriterError`.
"""

from __future__ import annotations

from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors

from autodocs.llm.writer import ChunkRequest, WriterError, language_for

_SYSTEM_INSTRUCTION = (
    "You are a senior engineer writing reference documentation for a source file. "
    "Answer in GitHub-flavored Markdown only. Describe purpose, public API "
    "(functions, classes, endpoints), important behavior and edge cases, and how the "
    "file fits into the repository. Do not repeat the code verbatim."
)


def build_prompt(request: ChunkRequest) -> str:
    lang = language_for(request.file_path)
    lines = [f"Repository: {request.repo_full_name}", f"File: {request.file_path}"]
    if request.chunk_count > 1:
        lines.append(f"This is part {request.chunk_index + 1} of {request.chunk_count} of the file.")
    if request.chunk_index == 0:
        lines.append("Start with a level-1 heading naming the file.")
    else:
        lines.append("Continue the documentation without repeating the file heading.")
    return "\n".join(lines) + f"\n\n```{lang}\n{request.chunk}\n```\n"


def create_client(*, api_key: str, base_url: str | None = None) -> genai.Client:
    http_options = {"base_url": base_url} if base_url else None
    return genai.Client(api_key=api_key, http_options=http_options)


class GeminiWriter:
    def __init__(self, *, client: Any, model: str, temperature: float = 0.2) -> None:
        # `client` is a `genai.Client`; only `client.aio.models` is used.
        self._client = client
        self._model = model
        self._temperature = temperature

    async def write(self, request: ChunkRequest) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=build_prompt(request),
                config={
                    "system_instruction": _SYSTEM_INSTRUCTION,
                    "temperature": self._temperature,
                },
            )
        except genai_errors.APIError as e:
            raise WriterError(f"Gemini API error {e.code}: {e.message}") from e
        except httpx.HTTPError as e:
            raise WriterError(f"Gemini request failed: {e}") from e

        text = (response.text or "").strip()
        if text:
            return text
        feedback = getattr(response, "prompt_feedback", None)
        reason = getattr(feedback, "block_reason", None)
        if reason:
            raise WriterError(f"Prompt blocked: {reason}")
        raise WriterError("Gemini returned empty content")
