from __future__ import annotations

import json

import httpx
import pytest

from autodocs.llm.writer import ChunkRequest, WriterError
from tests.conftest import push_payload, signed_headers


def _body(payload: dict) -> bytes:
    return json.dumps(payload).encode()


@pytest.mark.asyncio
async def test_ping(client: httpx.AsyncClient) -> None:
    body = _body({"zen": "Design for failure.", "hook_id": 1})
    r = await client.post(
        "/v1/webhooks/github", content=body, headers=signed_headers(body, event="ping")
    )
    assert r.status_code == 200
    assert r.json() == {"msg": "pong"}


@pytest.mark.asyncio
async def test_missing_event_header(client: httpx.AsyncClient) -> None:
    body = _body({})
    headers = signed_headers(body)
    del headers["x-github-event"]
    r = await client.post("/v1/webhooks/github", content=body, headers=headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_missing_signature(client: httpx.AsyncClient) -> None:
    body = _body({})
    headers = signed_headers(body)
    del headers["x-hub-signature-256"]
    r = await client.post("/v1/webhooks/github", content=body, headers=headers)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_bad_signature(client: httpx.AsyncClient) -> None:
    body = _body(push_payload(commits=["c1"]))
    r = await client.post(
        "/v1/webhooks/github", content=body, headers=signed_headers(body, secret="wrong")
    )
    assert r.status_code == 401
    assert r.json() == {"detail": "Invalid signature"}


@pytest.mark.asyncio
async def test_invalid_json(client: httpx.AsyncClient) -> None:
    body = b"not json"
    r = await client.post("/v1/webhooks/github", content=body, headers=signed_headers(body))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_push_without_repository_is_rejected(client: httpx.AsyncClient) -> None:
    body = _body({"ref": "refs/heads/main", "commits": []})
    r = await client.post("/v1/webhooks/github", content=body, headers=signed_headers(body))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_unhandled_event(client: httpx.AsyncClient) -> None:
    body = _body({"action": "opened"})
    r = await client.post(
        "/v1/webhooks/github", content=body, headers=signed_headers(body, event="issues")
    )
    assert r.json() == {"success": True, "message": "Unhandled event type: issues"}


@pytest.mark.asyncio
async def test_non_main_branch_is_skipped(client: httpx.AsyncClient, github) -> None:
    body = _body(push_payload(commits=["c1"], ref="refs/heads/feature/login"))
    r = await client.post("/v1/webhooks/github", content=body, headers=signed_headers(body))
    assert r.json() == {"success": True, "message": "Skipping non-main branch: login"}
    assert github.requests == []


@pytest.mark.asyncio
async def test_branch_is_last_ref_segment(client: httpx.AsyncClient, github) -> None:
    github.commits["c1"] = [{"filename": "src/app.py", "status": "added", "sha": "blob-app"}]
    github.blobs["blob-app"] = "x = 1\n"

    body = _body(push_payload(commits=["c1"], ref="refs/heads/release/main"))
    r = await client.post("/v1/webhooks/github", content=body, headers=signed_headers(body))

    assert r.status_code == 200
    assert r.json()["updated_files"] == 1


@pytest.mark.asyncio
async def test_push_regenerates_docs(client: httpx.AsyncClient, github, auth_headers) -> None:
    github.commits["c1"] = [
        {"filename": "src/app.py", "status": "added", "sha": "blob-app"},
        {"filename": "package-lock.json", "status": "modified", "sha": "blob-lock"},
    ]
    github.blobs["blob-app"] = "def handler(event):\n    return event\n"

    body = _body(push_payload(commits=["c1"]))
    r = await client.post("/v1/webhooks/github", content=body, headers=signed_headers(body))

    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["message"] == "Processed 1 files"
    assert data["updated_files"] == 1
    assert data["total_changes"] == 2
    assert isinstance(data["duration_ms"], int)
    assert r.headers["x-request-id"] == "delivery-1"

    # The repo was first seen through the webhook, so only an admin can read it.
    admin = auth_headers("ops", roles=["admin"])
    url = f"/v1/repos/{data['repo_id']}/docs"
    r = await client.get(url, headers=admin, params={"file": "src/app.py"})
    assert r.status_code == 200
    assert "def handler(event):" in r.json()["content"]

    r = await client.get(f"/v1/repos/{data['repo_id']}/docs", headers=auth_headers("user-1"))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_push_failure_returns_500(app, client: httpx.AsyncClient, github) -> None:
    class BrokenWriter:
        async def write(self, request: ChunkRequest) -> str:
            raise WriterError("quota exceeded")

    app.state.writer = BrokenWriter()
    github.commits["c1"] = [{"filename": "src/app.py", "status": "added", "sha": "blob-app"}]
    github.blobs["blob-app"] = "x = 1\n"

    body = _body(push_payload(commits=["c1"]))
    r = await client.post("/v1/webhooks/github", content=body, headers=signed_headers(body))

    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "quota exceeded"}
