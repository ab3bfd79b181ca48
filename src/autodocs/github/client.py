"""
autodocs.github.client

HTTP client boundary for the GitHub REST API.

Responsibilities:
- Attach the GitHub token and API version headers to every call.
- Fetch commit details, trees, and blob contents used by change detection.
- Manage repository webhooks and list the caller's repositories.
- Turn non-2xx responses into `GitHubError` with status and message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

_JSON = "application/vnd.github+json"
_RAW = "application/vnd.github.raw+json"


class GitHubError(Exception):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True, slots=True)
class CommitFile:
    filename: str
    status: str
    sha: str | None
    additions: int = 0
    deletions: int = 0
    previous_filename: str | None = None


@dataclass(frozen=True, slots=True)
class TreeEntry:
    path: str
    sha: str
    size: int


class GitHubClient:
    """
    Thin async wrapper over the endpoints the pipeline needs.
    The `httpx.AsyncClient` is owned by the caller and shared with other boundaries.
    """

    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        token: str | None,
        base_url: str = "https://api.github.com",
    ) -> None:
        self._http = http
        self._token = token
        self._base_url = base_url.rstrip("/")

    def _headers(self, accept: str = _JSON) -> dict[str, str]:
        headers = {"Accept": accept, "X-GitHub-Api-Version": "2022-11-28"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(
        self, method: str, path: str, *, accept: str = _JSON, **kwargs: Any
    ) -> httpx.Response:
        try:
            r = await self._http.request(
                method, self._base_url + path, headers=self._headers(accept), **kwargs
            )
        except httpx.HTTPError as e:
            # 502 marks a transport failure: GitHub never answered.
            raise GitHubError(502, str(e) or e.__class__.__name__) from e
        if r.is_error:
            raise GitHubError(r.status_code, _error_message(r))
        return r

    async def commit_files(self, full_name: str, sha: str) -> list[CommitFile]:
        r = await self._request("GET", f"/repos/{full_name}/commits/{sha}")
        files = r.json().get("files") or []
        return [
            CommitFile(
                filename=str(f["filename"]),
                status=str(f.get("status", "modified")),
                sha=f.get("sha"),
                additions=int(f.get("additions", 0) or 0),
                deletions=int(f.get("deletions", 0) or 0),
                previous_filename=f.get("previous_filename"),
            )
            for f in files
            if f.get("filename")
        ]

    async def tree(self, full_name: str, ref: str) -> list[TreeEntry]:
        r = await self._request(
            "GET", f"/repos/{full_name}/git/trees/{quote(ref, safe='')}", params={"recursive": "1"}
        )
        body = r.json()
        # GitHub caps recursive trees (~100k entries); a truncated listing is still usable.
        return [
            TreeEntry(path=str(e["path"]), sha=str(e["sha"]), size=int(e.get("size", 0) or 0))
            for e in body.get("tree", [])
            if e.get("type") == "blob"
        ]

    async def blob_text(self, full_name: str, sha: str) -> str:
        r = await self._request("GET", f"/repos/{full_name}/git/blobs/{sha}", accept=_RAW)
        return r.text

    async def file_text(self, full_name: str, path: str, ref: str | None = None) -> str:
        params = {"ref": ref} if ref else None
        r = await self._request(
            "GET",
            f"/repos/{full_name}/contents/{quote(path)}",
            accept=_RAW,
            params=params,
        )
        return r.text

    async def create_push_webhook(self, full_name: str, *, url: str, secret: str) -> int:
        r = await self._request(
            "POST",
            f"/repos/{full_name}/hooks",
            json={
                "name": "web",
                "active": True,
                "events": ["push"],
                "config": {
                    "url": url,
                    "content_type": "json",
                    "insecure_ssl": "0",
                    "secret": secret,
                },
            },
        )
        return int(r.json()["id"])

    async def list_webhooks(self, full_name: str) -> list[dict[str, Any]]:
        r = await self._request("GET", f"/repos/{full_name}/hooks")
        return list(r.json())

    async def delete_webhook(self, full_name: str, hook_id: int) -> None:
        await self._request("DELETE", f"/repos/{full_name}/hooks/{hook_id}")

    async def user_repos(self, *, per_page: int = 100) -> list[dict[str, Any]]:
        r = await self._request(
            "GET", "/user/repos", params={"per_page": per_page, "sort": "updated"}
        )
        return list(r.json())


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text[:200] or r.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return r.reason_phrase


# --- Module Notes -----------------------------------------------------------
# Connection-level retries and timeouts live on the shared transport (see `api.app`).
