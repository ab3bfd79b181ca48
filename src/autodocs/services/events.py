"""
autodocs.services.events

In-process publish/subscribe for documentation progress (Server-Sent Events).

Responsibilities:
- Fan out `DocsEvent`s to every connected SSE subscriber (optionally filtered by repo).
- Buffer events published while nobody listens, for a bounded time.
- Render subscriber queues as `text/event-stream` frames with keepalives.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Literal

import structlog
from pydantic import BaseModel

log = structlog.get_logger(__name__)

EventType = Literal[
    "connected",
    "documentation_progress",
    "documentation_complete",
    "documentation_error",
]


class DocsEvent(BaseModel):
    type: EventType
    repo_id: str | None = None
    repo_name: str | None = None
    status: str | None = None
    message: str | None = None
    progress: int | None = None

    def to_sse(self) -> str:
        return f"data: {self.model_dump_json(exclude_none=True)}\n\n"


@dataclass(eq=False)
class Subscription:
    queue: asyncio.Queue[DocsEvent]
    repo_id: str | None = None
    closed: bool = False

    def wants(self, event: DocsEvent) -> bool:
        return self.repo_id is None or event.repo_id == self.repo_id


class EventBroker:
    def __init__(
        self,
        *,
        pending_ttl_seconds: float = 30.0,
        queue_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._pending_ttl = pending_ttl_seconds
        self._queue_size = queue_size
        self._clock = clock
        self._subscribers: set[Subscription] = set()
        self._pending: deque[tuple[float, DocsEvent]] = deque()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def pending_count(self) -> int:
        self._prune_pending()
        return len(self._pending)

    def subscribe(self, *, repo_id: str | None = None) -> Subscription:
        # +1 leaves room for the "connected" greeting on top of the replayed backlog.
        sub = Subscription(queue=asyncio.Queue(maxsize=self._queue_size + 1), repo_id=repo_id)
        sub.queue.put_nowait(DocsEvent(type="connected", message="SSE connection established"))

        self._prune_pending()
        replayed = 0
        # Events for other repositories stay buffered for the next subscriber.
        kept: deque[tuple[float, DocsEvent]] = deque()
        while self._pending:
            stamped = self._pending.popleft()
            if not sub.wants(stamped[1]):
                kept.append(stamped)
                continue
            if sub.queue.full():
                continue
            sub.queue.put_nowait(stamped[1])
            replayed += 1
        self._pending = kept

        self._subscribers.add(sub)
        log.info("sse_subscribed", subscribers=len(self._subscribers), replayed=replayed, repo_id=repo_id)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.closed = True
        if sub in self._subscribers:
            self._subscribers.discard(sub)
            log.info("sse_unsubscribed", subscribers=len(self._subscribers))

    def publish(self, event: DocsEvent) -> int:
        """Returns the number of subscribers the event was queued for."""

        if not self._subscribers:
            self._prune_pending()
            self._pending.append((self._clock(), event))
            return 0

        delivered = 0
        for sub in list(self._subscribers):
            if not sub.wants(event):
                continue
            try:
                sub.queue.put_nowait(event)
            except asyncio.QueueFull:
                log.warning("sse_slow_consumer_dropped", repo_id=sub.repo_id)
                self.unsubscribe(sub)
                continue
            delivered += 1
        return delivered

    def _prune_pending(self) -> None:
        cutoff = self._clock() - self._pending_ttl
        while self._pending and self._pending[0][0] < cutoff:
            self._pending.popleft()


async def event_stream(
    broker: EventBroker,
    sub: Subscription,
    *,
    keepalive_seconds: float,
    is_disconnected: Callable[[], Awaitable[bool]],
) -> AsyncIterator[str]:
    try:
        while not sub.closed:
            if await is_disconnected():
                break
            try:
                event = await asyncio.wait_for(sub.queue.get(), timeout=keepalive_seconds)
            except TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield event.to_sse()
    finally:
        broker.unsubscribe(sub)


# --- Module Notes -----------------------------------------------------------
# The broker lives on `app.state.broker` and is process-local: with several API workers a
# browser only sees progress for runs executed by the worker it is connected to.
