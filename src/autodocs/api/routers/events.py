"""
autodocs.api.routers.events

Server-Sent Events endpoint streaming documentation progress to the dashboard.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from autodocs.api.deps import event_broker, settings_dep
from autodocs.services.events import EventBroker, event_stream
from autodocs.settings import Settings

router = APIRouter(prefix="/v1", tags=["events"])


@router.get("/events")
async def stream_events(
    request: Request,
    repo: str | None = Query(default=None, description="Only events for this repository id"),
    broker: EventBroker = Depends(event_broker),
    settings: Settings = Depends(settings_dep),
) -> StreamingResponse:
    sub = broker.subscribe(repo_id=repo)
    return StreamingResponse(
        event_stream(
            broker,
            sub,
            keepalive_seconds=settings.sse_keepalive_seconds,
            is_disconnected=request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
