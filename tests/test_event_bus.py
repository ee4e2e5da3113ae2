"""Tests for EventBus."""

from __future__ import annotations

import threading

import pytest

from event_bus import EventBus
from models import EventKind, PipelineEvent


def _chunk(session_id: str, text: str) -> PipelineEvent:
    return PipelineEvent(kind=EventKind.ANALYSIS_CHUNK, session_id=session_id, text=text)


@pytest.fixture
def bus():
    b = EventBus()
    yield b
    b.stop()


def test_delivers_in_publish_order(bus: EventBus) -> None:
    seen: list[str] = []
    bus.subscribe(lambda e: seen.append(e.text))

    for i in range(50):
        assert bus.publish(_chunk("s1", str(i)))
    assert bus.flush()

    assert seen == [str(i) for i in range(50)]


def test_handlers_run_on_dispatch_thread(bus: EventBus) -> None:
    threads: list[bool] = []
    bus.subscribe(lambda e: threads.append(bus.is_dispatch_thread))

    bus.publish(_chunk("s1", "a"))
    assert bus.flush()

    assert threads == [True]
    assert bus.is_dispatch_thread is False


def test_invalid_events_are_dropped(bus: EventBus) -> None:
    seen: list[PipelineEvent] = []
    bus.subscribe(seen.append)

    assert bus.publish(PipelineEvent(kind=EventKind.FRAME_READY, session_id="")) is False
    assert bus.publish(PipelineEvent(kind="frame_ready", session_id="s1")) is False  # type: ignore[arg-type]
    assert bus.flush()

    assert seen == []


def test_failing_handler_does_not_stop_delivery(bus: EventBus) -> None:
    seen: list[str] = []

    def broken(event: PipelineEvent) -> None:
        raise RuntimeError("boom")

    bus.subscribe(broken)
    bus.subscribe(lambda e: seen.append(e.text))

    bus.publish(_chunk("s1", "a"))
    bus.publish(_chunk("s1", "b"))
    assert bus.flush()

    assert seen == ["a", "b"]


def test_unsubscribe(bus: EventBus) -> None:
    seen: list[str] = []
    handler = lambda e: seen.append(e.text)  # noqa: E731
    bus.subscribe(handler)
    bus.subscribe(handler)

    bus.publish(_chunk("s1", "a"))
    assert bus.flush()
    bus.unsubscribe(handler)
    bus.publish(_chunk("s1", "b"))
    assert bus.flush()

    assert seen == ["a"]


def test_per_publisher_order_with_concurrent_publishers(bus: EventBus) -> None:
    seen: list[tuple[str, int]] = []
    bus.subscribe(lambda e: seen.append((e.session_id, int(e.text))))

    def publisher(name: str) -> None:
        for i in range(100):
            bus.publish(_chunk(name, str(i)))

    threads = [threading.Thread(target=publisher, args=(f"p{n}",)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert bus.flush()

    assert len(seen) == 400
    for n in range(4):
        assert [i for name, i in seen if name == f"p{n}"] == list(range(100))


def test_publish_after_stop_restarts(bus: EventBus) -> None:
    seen: list[str] = []
    bus.subscribe(lambda e: seen.append(e.text))

    bus.publish(_chunk("s1", "a"))
    assert bus.flush()
    bus.stop()
    bus.publish(_chunk("s1", "b"))
    assert bus.flush()

    assert seen == ["a", "b"]
