"""
autodocs.api.routers.dev_auth

Token minting for local dashboards and scripts (disabled in prod).
"""

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from starlette.status import HTTP_404_NOT_FOUND

from autodocs.api.deps import settings_dep
from autodocs.auth.jwt import TokenCodec
from autodocs.settings import Settings

router = APIRouter(prefix="/v1/dev", tags=["dev"])


class DevTokenRequest(BaseModel):
    # Dashboard user id; becomes `repositories.owner` for repos this user selects.
    subject: str = Field(min_length=1, max_length=256)
    roles: list[str] = Field(default_factory=list)
    ttl_minutes: int = Field(default=60, ge=1, le=24 * 60)


class DevTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    subject: str


@router.post("/token", response_model=DevTokenResponse)
async def mint_dev_token(
    body: DevTokenRequest,
    settings: Settings = Depends(settings_dep),
) -> DevTokenResponse:
    if settings.env == "prod":
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not found")

    ttl = timedelta(minutes=body.ttl_minutes)
    token = TokenCodec.from_settings(settings).issue(subject=body.subject, roles=body.roles, ttl=ttl)
    return DevTokenResponse(
        access_token=token, expires_in=int(ttl.total_seconds()), subject=body.subject
    )
