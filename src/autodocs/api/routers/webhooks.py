"""
autodocs.api.routers.webhooks

GitHub webhook receiver.

Responsibilities:
- Authenticate deliveries with the `X-Hub-Signature-256` HMAC.
- Answer `ping`, ignore untracked branches and unhandled events.
- Run a push-mode documentation run for tracked branches and return its summary.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from autodocs.api.deps import db_session, documentation_service, settings_dep
from autodocs.db.repositories.repos import RepositoryRepo
from autodocs.github.payloads import PushEvent
from autodocs.github.signatures import SignatureError, verify_signature
from autodocs.services.documentation_service import DocumentationService
from autodocs.settings import Settings

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])
log = structlog.get_logger(__name__)


@router.post("/github", response_model=None)
async def github_webhook(
    request: Request,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    docs: DocumentationService = Depends(documentation_service),
) -> dict[str, Any] | JSONResponse:
    event = request.headers.get("x-github-event")
    signature = request.headers.get("x-hub-signature-256")
    delivery_id = request.headers.get("x-github-delivery")

    if not event:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Missing X-GitHub-Event header")
    if not signature:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing signature")
    if not settings.webhook_secret:
        log.error("webhook_secret_missing")
        raise HTTPException(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail="Server configuration error"
        )

    body = await request.body()
    try:
        verify_signature(body=body, signature=signature, secret=settings.webhook_secret)
    except SignatureError as e:
        log.warning("webhook_signature_rejected", gh_event=event, reason=str(e))
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid signature") from e

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Invalid JSON payload") from e

    if event == "ping":
        return {"msg": "pong"}
    if event != "push":
        return {"success": True, "message": f"Unhandled event type: {event}"}

    try:
        push = PushEvent.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Invalid push payload") from e

    if push.branch not in settings.tracked_branches:
        return {"success": True, "message": f"Skipping non-main branch: {push.branch}"}

    repo = await RepositoryRepo(session).upsert_from_github(
        github_id=push.repository.id,
        name=push.repository.name,
        full_name=push.repository.full_name,
        html_url=push.repository.html_url,
        default_branch=push.repository.default_branch,
    )
    await session.commit()
    log.info(
        "push_received",
        repo=push.repository.full_name,
        branch=push.branch,
        commits=len(push.commits),
        head=(push.after or "")[:7],
        delivery_id=delivery_id,
    )

    try:
        return await docs.run_push(
            repo_id=repo.id,
            commits=[c.id for c in push.commits],
            ref=push.ref,
            delivery_id=delivery_id,
        )
    except Exception as e:
        # Already logged and recorded on the run by the service.
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e) or e.__class__.__name__},
        )
