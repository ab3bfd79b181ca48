from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_404_NOT_FOUND, HTTP_502_BAD_GATEWAY

from autodocs.api.deps import github_client, github_token
from autodocs.auth.deps import get_principal
from autodocs.auth.models import Principal
from autodocs.github.client import GitHubClient, GitHubError

router = APIRouter(prefix="/v1/github", tags=["github"])

_REPO_FIELDS = (
    "id",
    "name",
    "full_name",
    "html_url",
    "description",
    "private",
    "default_branch",
    "updated_at",
)


@router.get("/repos")
async def list_github_repos(
    principal: Principal = Depends(get_principal),
    token: str | None = Depends(github_token),
    github: GitHubClient = Depends(github_client),
) -> list[dict[str, Any]]:
    if not token:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="No GitHub token found")
    try:
        repos = await github.user_repos()
    except GitHubError as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=e.message) from e
    return [{k: r.get(k) for k in _REPO_FIELDS} for r in repos]
