"""
tests.conftest

Shared fixtures: a temp SQLite database, an in-memory GitHub API behind
`httpx.MockTransport`, and an app whose lifespan is run explicitly.
"""

from __future__ import annotations

import json
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from autodocs.api.app import create_app
from autodocs.auth.jwt import TokenCodec
from autodocs.github.signatures import sign
from autodocs.settings import Settings

WEBHOOK_SECRET = "whsec-test"


@dataclass
class FakeGitHub:
    """Just enough of the GitHub REST API for the pipeline and onboarding flows."""

    commits: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    trees: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    blobs: dict[str, str] = field(default_factory=dict)
    files: dict[str, str] = field(default_factory=dict)
    hooks: list[dict[str, Any]] = field(default_factory=list)
    user_repos: list[dict[str, Any]] = field(default_factory=list)
    fail_hooks: bool = False
    requests: list[httpx.Request] = field(default_factory=list)
    _next_hook_id: int = 1000

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if m := re.fullmatch(r"/repos/[^/]+/[^/]+/commits/([^/]+)", path):
            files = self.commits.get(m.group(1))
            if files is None:
                return httpx.Response(404, json={"message": "No commit found"})
            return httpx.Response(200, json={"sha": m.group(1), "files": files})

        if m := re.fullmatch(r"/repos/[^/]+/[^/]+/git/trees/([^/]+)", path):
            tree = self.trees.get(m.group(1))
            if tree is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json={"tree": tree, "truncated": False})

        if m := re.fullmatch(r"/repos/[^/]+/[^/]+/git/blobs/([^/]+)", path):
            text = self.blobs.get(m.group(1))
            if text is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, text=text)

        if m := re.fullmatch(r"/repos/[^/]+/[^/]+/contents/(.+)", path):
            text = self.files.get(m.group(1))
            if text is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, text=text)

        if re.fullmatch(r"/repos/[^/]+/[^/]+/hooks", path):
            if request.method == "GET":
                return httpx.Response(200, json=self.hooks)
            if self.fail_hooks:
                return httpx.Response(422, json={"message": "Hook already exists on this repository"})
            body = json.loads(request.content)
            self._next_hook_id += 1
            hook = {
                "id": self._next_hook_id,
                "active": body["active"],
                "events": body["events"],
                "config": {"url": body["config"]["url"], "content_type": "json"},
            }
            self.hooks.append(hook)
            return httpx.Response(201, json=hook)

        if m := re.fullmatch(r"/repos/[^/]+/[^/]+/hooks/(\d+)", path):
            self.hooks = [h for h in self.hooks if h["id"] != int(m.group(1))]
            return httpx.Response(204)

        if path == "/user/repos":
            return httpx.Response(200, json=self.user_repos)

        return httpx.Response(404, json={"message": f"unexpected {request.method} {path}"})

    def calls(self, method: str, pattern: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and re.search(pattern, r.url.path)]


def tree_entry(path: str, sha: str, size: int = 100) -> dict[str, Any]:
    return {"path": path, "sha": sha, "size": size, "type": "blob", "mode": "100644"}


def push_payload(
    *,
    commits: list[str],
    ref: str = "refs/heads/main",
    github_id: int = 101,
    full_name: str = "octo/widgets",
) -> dict[str, Any]:
    return {
        "ref": ref,
        "after": commits[-1] if commits else "0" * 40,
        "repository": {
            "id": github_id,
            "name": full_name.split("/")[-1],
            "full_name": full_name,
            "html_url": f"https://github.com/{full_name}",
            "default_branch": "main",
        },
        "commits": [{"id": sha, "message": f"commit {sha}"} for sha in commits],
    }


def signed_headers(body: bytes, *, event: str = "push", secret: str = WEBHOOK_SECRET) -> dict[str, str]:
    return {
        "content-type": "application/json",
        "x-github-event": event,
        "x-github-delivery": "delivery-1",
        "x-hub-signature-256": sign(body, secret),
    }


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'autodocs.db'}",
        webhook_secret=WEBHOOK_SECRET,
        github_token="ghs-service-token",
        public_base_url="https://docs.example.com",
        llm_provider="template",
        http_retries=0,
    )


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest_asyncio.fixture
async def app(settings: Settings, github: FakeGitHub) -> AsyncIterator[FastAPI]:
    application = create_app(settings=settings, http_transport=httpx.MockTransport(github.handler))
    # httpx ASGITransport does not run the lifespan; do it explicitly.
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers(settings: Settings):
    codec = TokenCodec.from_settings(settings)

    def _make(subject: str = "user-1", roles: list[str] | None = None) -> dict[str, str]:
        token = codec.issue(subject=subject, roles=roles or [])
        return {"authorization": f"Bearer {token}"}

    return _make
