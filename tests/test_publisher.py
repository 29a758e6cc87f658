from __future__ import annotations

import asyncio
import json

import pytest

from booking_service.events import build_event
from booking_service.publisher import EventQueue, RabbitPublisher


class RecordingPublisher:
    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.published: list[tuple[str, dict]] = []

    async def publish(self, routing_key, message_body):
        if routing_key == self.fail_on:
            raise RuntimeError("broker unavailable")
        self.published.append((routing_key, json.loads(message_body)))


@pytest.mark.asyncio
async def test_emit_only_enqueues_until_flushed():
    publisher = RecordingPublisher()
    queue = EventQueue(publisher)

    queue.emit(build_event("booking.created", {"n": 1}))
    queue.emit(build_event("booking.status_updated", {"n": 2}))

    assert publisher.published == []
    assert queue.pending() == 2

    assert await queue.flush() == 2
    assert [rk for rk, _ in publisher.published] == ["booking.created", "booking.status_updated"]
    assert queue.pending() == 0


@pytest.mark.asyncio
async def test_full_queue_drops_instead_of_raising():
    queue = EventQueue(RecordingPublisher(), maxsize=1)

    queue.emit(build_event("booking.created", {"n": 1}))
    queue.emit(build_event("booking.created", {"n": 2}))

    assert queue.pending() == 1


@pytest.mark.asyncio
async def test_publish_failure_does_not_stop_the_queue():
    publisher = RecordingPublisher(fail_on="booking.created")
    queue = EventQueue(publisher)

    queue.emit(build_event("booking.created", {}))
    queue.emit(build_event("booking.status_updated", {}))

    assert await queue.flush() == 2
    assert [rk for rk, _ in publisher.published] == ["booking.status_updated"]


@pytest.mark.asyncio
async def test_drain_loop_empties_queue_before_stopping():
    publisher = RecordingPublisher()
    queue = EventQueue(publisher)
    stop = asyncio.Event()

    for i in range(3):
        queue.emit(build_event("booking.created", {"n": i}))
    stop.set()

    await asyncio.wait_for(queue.drain_loop(stop), timeout=5)

    assert [body["data"]["n"] for _, body in publisher.published] == [0, 1, 2]


@pytest.mark.asyncio
async def test_publisher_without_url_is_a_noop():
    publisher = RabbitPublisher(url=None)

    await publisher.connect()
    await publisher.publish("booking.created", "{}")
    await publisher.close()

    assert not publisher.enabled
