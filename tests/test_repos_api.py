"""
tests.test_repos_api

Dashboard-facing API: onboarding, docs browsing, status, runs, webhooks, admin.
"""

from __future__ import annotations

import uuid

import httpx
import pytest

from autodocs.db.repositories.contents import ContentRepo
from tests.conftest import FakeGitHub, tree_entry

REPO = {
    "id": 555,
    "name": "widgets",
    "full_name": "octo/widgets",
    "html_url": "https://github.com/octo/widgets",
    "default_branch": "main",
}


def _seed(github: FakeGitHub) -> None:
    github.trees["main"] = [
        tree_entry("src/app.py", "sha-app"),
        tree_entry("src/util/strings.ts", "sha-strings"),
        tree_entry("node_modules/left-pad/index.js", "sha-pad"),
    ]
    github.blobs["sha-app"] = "def main():\n    print('hi')\n"
    github.blobs["sha-strings"] = "export function pad(s: string) {\n  return s;\n}\n"


async def _select(client: httpx.AsyncClient, headers: dict[str, str]) -> dict:
    r = await client.post("/v1/repos/select", json={"repo": REPO}, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


@pytest.mark.asyncio
async def test_select_creates_webhook_and_documents_repo(
    client: httpx.AsyncClient, github: FakeGitHub, auth_headers
) -> None:
    _seed(github)
    headers = auth_headers("user-1")

    data = await _select(client, headers)
    assert data["message"] == "Repository added successfully. Background sync in progress."
    repo_id = data["repo"]["id"]

    # ASGITransport returns once background tasks have finished.
    (hook,) = github.hooks
    assert hook["config"]["url"] == "https://docs.example.com/v1/webhooks/github"
    assert hook["events"] == ["push"]

    r = await client.get(f"/v1/repos/{repo_id}", headers=headers)
    repo = r.json()
    assert repo["webhook_id"] == hook["id"]
    assert repo["docs_status"] == "complete"
    assert repo["document_count"] == 3
    assert len(repo["merkle_root"]) == 64

    r = await client.get("/v1/repos", headers=headers)
    assert [x["full_name"] for x in r.json()] == ["octo/widgets"]

    again = await _select(client, headers)
    assert again["message"] == "Repository already exists"
    assert len(github.hooks) == 1


@pytest.mark.asyncio
async def test_select_requires_id_and_name(client: httpx.AsyncClient, auth_headers) -> None:
    r = await client.post(
        "/v1/repos/select", json={"repo": {"full_name": "octo/x"}}, headers=auth_headers()
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_webhook_failure_is_recorded(
    client: httpx.AsyncClient, github: FakeGitHub, auth_headers
) -> None:
    _seed(github)
    github.fail_hooks = True
    headers = auth_headers()

    repo_id = (await _select(client, headers))["repo"]["id"]

    repo = (await client.get(f"/v1/repos/{repo_id}", headers=headers)).json()
    assert repo["webhook_id"] is None
    assert repo["webhook_error"] == "Hook already exists on this repository"
    # Documentation still runs without a webhook.
    assert repo["docs_status"] == "complete"


@pytest.mark.asyncio
async def test_docs_endpoint(client: httpx.AsyncClient, github: FakeGitHub, auth_headers) -> None:
    _seed(github)
    headers = auth_headers()
    repo_id = (await _select(client, headers))["repo"]["id"]
    url = f"/v1/repos/{repo_id}/docs"

    r = await client.get(url, headers=headers, params={"file": "check"})
    assert r.json() == {"has_documents": True, "document_count": 3}

    r = await client.get(url, headers=headers)
    body = r.json()
    assert body["file"] == "index.md"
    assert body["files"] == ["index.md", "src/app.py", "src/util/strings.ts"]
    assert "## src/util" in body["content"]

    r = await client.get(url, headers=headers, params={"file": "src/util/strings.ts"})
    assert r.json()["version"] == 1
    assert "export function pad" in r.json()["content"]

    r = await client.get(url, headers=headers, params={"file": "src/missing.py"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_verify_doc_against_merkle_root(
    app, client: httpx.AsyncClient, github: FakeGitHub, auth_headers
) -> None:
    _seed(github)
    headers = auth_headers()
    repo_id = (await _select(client, headers))["repo"]["id"]
    url = f"/v1/repos/{repo_id}/docs/verify"

    r = await client.get(url, headers=headers, params={"file": "src/app.py"})
    body = r.json()
    assert body["verified"] is True
    assert body["in_merkle_tree"] is True
    repo = (await client.get(f"/v1/repos/{repo_id}", headers=headers)).json()
    assert body["merkle_root"] == repo["merkle_root"]
    # Two snapshot leaves: one sibling, to the right of src/app.py.
    assert [step["position"] for step in body["proof"]] == ["right"]

    async with app.state.sessionmaker() as session:
        row = await ContentRepo(session).get(uuid.UUID(repo_id), "src/app.py")
        row.content = "def main():\n    print('tampered')\n"
        await session.commit()

    body = (await client.get(url, headers=headers, params={"file": "src/app.py"})).json()
    assert body["verified"] is False
    assert body["content_intact"] is False
    assert body["doc_current"] is False
    assert body["in_merkle_tree"] is True

    # index.md has no source snapshot.
    r = await client.get(url, headers=headers, params={"file": "index.md"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_status_runs_and_manual_sync(
    client: httpx.AsyncClient, github: FakeGitHub, auth_headers
) -> None:
    _seed(github)
    headers = auth_headers()
    repo_id = (await _select(client, headers))["repo"]["id"]

    r = await client.get(f"/v1/repos/{repo_id}/status", headers=headers)
    status = r.json()
    assert status["status"] == "complete"
    assert status["progress"] == 100
    assert status["has_documents"] is True

    github.blobs["sha-app-2"] = "def main():\n    print('bye')\n"
    github.trees["main"][0] = tree_entry("src/app.py", "sha-app-2")
    r = await client.post(f"/v1/repos/{repo_id}/sync", headers=headers)
    assert r.json()["updated_files"] == 1

    r = await client.get(f"/v1/repos/{repo_id}/runs", headers=headers)
    runs = r.json()
    assert [run["trigger"] for run in runs] == ["sync", "sync"]
    assert all(run["status"] == "completed" for run in runs)


@pytest.mark.asyncio
async def test_other_users_cannot_see_repo(
    client: httpx.AsyncClient, github: FakeGitHub, auth_headers
) -> None:
    _seed(github)
    repo_id = (await _select(client, auth_headers("user-1")))["repo"]["id"]

    r = await client.get(f"/v1/repos/{repo_id}", headers=auth_headers("user-2"))
    assert r.status_code == 404
    r = await client.get("/v1/repos", headers=auth_headers("user-2"))
    assert r.json() == []


@pytest.mark.asyncio
async def test_webhook_check_and_recreate(
    client: httpx.AsyncClient, github: FakeGitHub, auth_headers
) -> None:
    _seed(github)
    headers = auth_headers()
    repo_id = (await _select(client, headers))["repo"]["id"]

    r = await client.get(f"/v1/repos/{repo_id}/webhook", headers=headers)
    assert r.json()["exists"] is True

    github.hooks.clear()
    r = await client.get(f"/v1/repos/{repo_id}/webhook", headers=headers)
    assert r.json()["exists"] is False

    r = await client.post(f"/v1/repos/{repo_id}/webhook", headers=headers)
    assert r.json()["success"] is True
    assert len(github.hooks) == 1


@pytest.mark.asyncio
async def test_delete_removes_repo_and_hook(
    client: httpx.AsyncClient, github: FakeGitHub, auth_headers
) -> None:
    _seed(github)
    headers = auth_headers()
    repo_id = (await _select(client, headers))["repo"]["id"]

    r = await client.delete(f"/v1/repos/{repo_id}", headers=headers)
    assert r.json()["success"] is True
    assert github.hooks == []
    assert (await client.get(f"/v1/repos/{repo_id}", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_github_repos_uses_forwarded_token(
    client: httpx.AsyncClient, github: FakeGitHub, auth_headers
) -> None:
    github.user_repos = [dict(REPO, private=False, description="Widgets", owner={"login": "octo"})]
    headers = {**auth_headers(), "x-github-token": "gho-user-token"}

    r = await client.get("/v1/github/repos", headers=headers)

    assert r.status_code == 200
    assert r.json()[0]["full_name"] == "octo/widgets"
    assert "owner" not in r.json()[0]
    (call,) = github.calls("GET", r"^/user/repos$")
    assert call.headers["authorization"] == "Bearer gho-user-token"


@pytest.mark.asyncio
async def test_admin_sync_status_requires_admin(
    client: httpx.AsyncClient, github: FakeGitHub, auth_headers
) -> None:
    _seed(github)
    await _select(client, auth_headers())

    r = await client.post("/v1/admin/sync-status", headers=auth_headers())
    assert r.status_code == 403

    r = await client.post("/v1/admin/sync-status", headers=auth_headers("ops", roles=["admin"]))
    assert r.status_code == 200
    assert r.json() == {"complete": 1, "not_started": 0, "generating": 0}
