"""
autodocs.github.payloads

Pydantic views over the parts of GitHub webhook payloads the service reads.

Responsibilities:
- Validate push payloads (repository + ref are required; commits may be empty).
- Derive the pushed branch from `ref`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _Lenient(BaseModel):
    # GitHub payloads are large; only the fields below are modelled.
    model_config = ConfigDict(extra="ignore")


class WebhookRepository(_Lenient):
    id: int
    name: str
    full_name: str
    html_url: str | None = None
    default_branch: str | None = None


class PushCommit(_Lenient):
    id: str


class PushEvent(_Lenient):
    ref: str
    repository: WebhookRepository
    commits: list[PushCommit] = Field(default_factory=list)
    after: str | None = None

    @property
    def branch(self) -> str:
        # Last path segment: `refs/heads/release/main` is treated as `main`.
        return self.ref.rsplit("/", 1)[-1]
