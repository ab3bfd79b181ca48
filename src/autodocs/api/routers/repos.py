from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from autodocs.api.deps import (
    db_session,
    documentation_service,
    github_token,
    repo_service,
    settings_dep,
)
from autodocs.auth.deps import get_principal
from autodocs.auth.models import Principal
from autodocs.db.models import Repository
from autodocs.db.repositories.documentation import DocumentationRepo
from autodocs.db.repositories.repos import RepositoryRepo
from autodocs.db.repositories.runs import DocRunRepo
from autodocs.github.client import GitHubError
from autodocs.pipeline.state import INDEX_PATH
from autodocs.services.documentation_service import DocumentationService, DocumentNotFound
from autodocs.services.repo_service import RepoService, SelectedRepo, onboard_repository
from autodocs.settings import Settings

router = APIRouter(prefix="/v1/repos", tags=["repos"])


class RepoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    github_id: int
    name: str
    full_name: str
    html_url: str | None
    default_branch: str
    webhook_id: int | None
    webhook_error: str | None
    merkle_root: str | None
    docs_status: str
    docs_progress: int
    docs_message: str | None
    docs_updated_at: datetime | None
    created_at: datetime
    document_count: int = 0


class GitHubRepoIn(BaseModel):
    # id/name are validated by hand: the dashboard expects 400, not 422.
    id: int | None = None
    name: str | None = None
    full_name: str | None = None
    html_url: str | None = None
    default_branch: str | None = None


class SelectRepoRequest(BaseModel):
    repo: GitHubRepoIn = Field(default_factory=GitHubRepoIn)


class RunOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    trigger: str
    status: str
    delivery_id: str | None
    changed_files: int
    updated_files: int
    removed_files: int
    error: str | None
    created_at: datetime
    updated_at: datetime


async def _owned_repo(session: AsyncSession, repo_id: uuid.UUID, principal: Principal) -> Repository:
    repo = await RepositoryRepo(session).get(repo_id)
    # Foreign repositories are reported as missing, not forbidden.
    if repo is None or not principal.owns(repo.owner):
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Repository not found")
    return repo


def _repo_out(repo: Repository, document_count: int = 0) -> RepoOut:
    out = RepoOut.model_validate(repo)
    out.document_count = document_count
    return out


@router.get("", response_model=list[RepoOut])
async def list_repos(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> list[RepoOut]:
    repos = RepositoryRepo(session)
    counts = await repos.document_counts()
    return [_repo_out(r, counts.get(r.id, 0)) for r in await repos.list_for_owner(principal.subject)]


@router.post("/select")
async def select_repo(
    request: Request,
    body: SelectRepoRequest,
    background: BackgroundTasks,
    principal: Principal = Depends(get_principal),
    settings: Settings = Depends(settings_dep),
    token: str | None = Depends(github_token),
    svc: RepoService = Depends(repo_service),
) -> dict[str, Any]:
    gh = body.repo
    if gh.id is None or not gh.name:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Invalid repository data")

    repo, created = await svc.select(
        owner=principal.subject,
        selected=SelectedRepo(
            github_id=gh.id,
            name=gh.name,
            full_name=gh.full_name or gh.name,
            html_url=gh.html_url,
            default_branch=gh.default_branch,
        ),
    )
    if not created:
        return {"message": "Repository already exists", "repo": _repo_out(repo)}

    background.add_task(
        onboard_repository,
        repo_id=repo.id,
        session_factory=request.app.state.sessionmaker,
        settings=settings,
        http=request.app.state.http,
        github_token=token,
        writer=request.app.state.writer,
        broker=request.app.state.broker,
    )
    return {
        "message": "Repository added successfully. Background sync in progress.",
        "repo": _repo_out(repo),
    }


@router.get("/{repo_id}", response_model=RepoOut)
async def get_repo(
    repo_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> RepoOut:
    repo = await _owned_repo(session, repo_id, principal)
    return _repo_out(repo, await DocumentationRepo(session).count(repo_id))


@router.delete("/{repo_id}")
async def delete_repo(
    repo_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    svc: RepoService = Depends(repo_service),
) -> dict[str, Any]:
    await _owned_repo(session, repo_id, principal)
    await svc.delete(repo_id)
    return {"success": True, "message": "Repository deleted"}


@router.post("/{repo_id}/sync", response_model=None)
async def sync_repo(
    repo_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    docs: DocumentationService = Depends(documentation_service),
) -> dict[str, Any] | JSONResponse:
    await _owned_repo(session, repo_id, principal)
    try:
        return await docs.run_sync(repo_id=repo_id)
    except Exception as e:
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e) or e.__class__.__name__},
        )


@router.get("/{repo_id}/status")
async def repo_status(
    repo_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    docs: DocumentationService = Depends(documentation_service),
) -> dict[str, Any]:
    await _owned_repo(session, repo_id, principal)
    return await docs.status(repo_id)


@router.get("/{repo_id}/docs")
async def repo_docs(
    repo_id: uuid.UUID,
    file: str | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = await _owned_repo(session, repo_id, principal)
    docs = DocumentationRepo(session)

    if file == "check":
        count = await docs.count(repo_id)
        return {"has_documents": count > 0, "document_count": count}

    paths = await docs.list_paths(repo_id)
    if file:
        doc = await docs.get(repo_id, file)
        if doc is None:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Document not found")
        return {
            "repo": repo.full_name,
            "file": doc.file_path,
            "content": doc.content,
            "version": doc.version,
            "updated_at": doc.updated_at,
            "files": paths,
        }

    if not paths:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="No documentation found")
    main = _main_file(paths)
    doc = await docs.get(repo_id, main)
    return {
        "repo": repo.full_name,
        "file": main,
        "content": doc.content if doc else "",
        "version": doc.version if doc else 0,
        "updated_at": doc.updated_at if doc else None,
        "files": paths,
    }


def _main_file(paths: list[str]) -> str:
    by_lower = {p.lower(): p for p in paths}
    for candidate in (INDEX_PATH, "readme.md"):
        if candidate in by_lower:
            return by_lower[candidate]
    return paths[0]


@router.get("/{repo_id}/docs/verify")
async def verify_doc(
    repo_id: uuid.UUID,
    file: str = Query(min_length=1),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    docs: DocumentationService = Depends(documentation_service),
) -> dict[str, Any]:
    await _owned_repo(session, repo_id, principal)
    try:
        return await docs.verify(repo_id, file)
    except DocumentNotFound as e:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Document not found") from e


@router.get("/{repo_id}/runs", response_model=list[RunOut])
async def repo_runs(
    repo_id: uuid.UUID,
    limit: int = Query(default=20, ge=1, le=100),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> list[RunOut]:
    await _owned_repo(session, repo_id, principal)
    return [RunOut.model_validate(r) for r in await DocRunRepo(session).list_for_repo(repo_id, limit=limit)]


@router.get("/{repo_id}/webhook")
async def webhook_status(
    repo_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    svc: RepoService = Depends(repo_service),
) -> dict[str, Any]:
    await _owned_repo(session, repo_id, principal)
    try:
        return await svc.webhook_status(repo_id)
    except GitHubError as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=e.message) from e


@router.post("/{repo_id}/webhook")
async def recreate_webhook(
    repo_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    svc: RepoService = Depends(repo_service),
) -> dict[str, Any]:
    await _owned_repo(session, repo_id, principal)
    hook_id = await svc.recreate_webhook(repo_id)
    repo = await RepositoryRepo(session).get(repo_id)
    return {
        "success": hook_id is not None,
        "webhook_id": hook_id,
        "webhook_error": repo.webhook_error if repo else None,
    }
