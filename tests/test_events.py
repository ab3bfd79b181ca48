"""
tests.test_events

SSE broker semantics: fan-out, pending buffer, slow consumers, stream framing.
"""

from __future__ import annotations

import json

import pytest

from autodocs.services.events import DocsEvent, EventBroker, event_stream


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _progress(repo_id: str = "r1", progress: int = 50) -> DocsEvent:
    return DocsEvent(
        type="documentation_progress",
        repo_id=repo_id,
        repo_name="widgets",
        status="generating",
        message="working",
        progress=progress,
    )


def _drain(sub) -> list[DocsEvent]:
    out = []
    while not sub.queue.empty():
        out.append(sub.queue.get_nowait())
    return out


@pytest.mark.asyncio
async def test_subscriber_gets_connected_then_events() -> None:
    broker = EventBroker()
    sub = broker.subscribe()
    assert broker.publish(_progress()) == 1

    events = _drain(sub)
    assert [e.type for e in events] == ["connected", "documentation_progress"]


@pytest.mark.asyncio
async def test_events_without_subscribers_are_buffered_then_replayed_once() -> None:
    broker = EventBroker()
    assert broker.publish(_progress(progress=10)) == 0
    assert broker.publish(_progress(progress=20)) == 0
    assert broker.pending_count == 2

    first = broker.subscribe()
    assert [e.progress for e in _drain(first)] == [None, 10, 20]
    assert broker.pending_count == 0

    broker.unsubscribe(first)
    second = broker.subscribe()
    assert [e.type for e in _drain(second)] == ["connected"]


@pytest.mark.asyncio
async def test_buffered_events_expire() -> None:
    clock = _Clock()
    broker = EventBroker(pending_ttl_seconds=30, clock=clock)
    broker.publish(_progress(progress=10))
    clock.now += 31
    broker.publish(_progress(progress=20))

    sub = broker.subscribe()
    assert [e.progress for e in _drain(sub)] == [None, 20]


@pytest.mark.asyncio
async def test_repo_filter() -> None:
    broker = EventBroker()
    sub = broker.subscribe(repo_id="r2")
    assert broker.publish(_progress(repo_id="r1")) == 0
    assert broker.publish(_progress(repo_id="r2")) == 1
    assert [e.repo_id for e in _drain(sub)] == [None, "r2"]


@pytest.mark.asyncio
async def test_slow_consumer_is_dropped() -> None:
    broker = EventBroker(queue_size=2)
    slow = broker.subscribe()
    for i in range(3):
        broker.publish(_progress(progress=i))
    assert slow.closed
    assert broker.subscriber_count == 0


@pytest.mark.asyncio
async def test_stream_frames_and_unsubscribes_on_disconnect() -> None:
    broker = EventBroker()
    sub = broker.subscribe()
    broker.publish(_progress(progress=42))

    disconnected = False

    async def is_disconnected() -> bool:
        return disconnected

    stream = event_stream(broker, sub, keepalive_seconds=0.01, is_disconnected=is_disconnected)
    first = await anext(stream)
    second = await anext(stream)
    keepalive = await anext(stream)

    assert json.loads(first.removeprefix("data: "))["type"] == "connected"
    assert second.endswith("\n\n")
    assert json.loads(second.removeprefix("data: ")) == {
        "type": "documentation_progress",
        "repo_id": "r1",
        "repo_name": "widgets",
        "status": "generating",
        "message": "working",
        "progress": 42,
    }
    assert keepalive == ": keepalive\n\n"

    disconnected = True
    with pytest.raises(StopAsyncIteration):
        await anext(stream)
    assert broker.subscriber_count == 0


@pytest.mark.asyncio
async def test_filtered_subscriber_leaves_other_repos_buffered() -> None:
    broker = EventBroker()
    broker.publish(_progress(repo_id="r1", progress=10))
    broker.publish(_progress(repo_id="r2", progress=20))

    filtered = broker.subscribe(repo_id="r2")
    assert [e.progress for e in _drain(filtered)] == [None, 20]
    assert broker.pending_count == 1

    broker.unsubscribe(filtered)
    everyone = broker.subscribe()
    assert [(e.repo_id, e.progress) for e in _drain(everyone)] == [(None, None), ("r1", 10)]
