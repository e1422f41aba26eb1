"""Tests for the event bus."""

import pytest

from neuralgraph.events.bus import EventBus, Event


@pytest.mark.asyncio
async def test_emit_and_subscribe():
    bus = EventBus()
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.subscribe("evolution.cycle_completed", handler)
    await bus.emit("evolution.cycle_completed", {"station_id": "iot-hub"})

    assert len(received) == 1
    assert received[0].topic == "evolution.cycle_completed"
    assert received[0].data["station_id"] == "iot-hub"


@pytest.mark.asyncio
async def test_wildcard_subscribe():
    bus = EventBus()
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.subscribe("approval.*", handler)
    await bus.emit("approval.approved", {"event_id": "e1"})
    await bus.emit("approval.rejected", {"event_id": "e2"})
    await bus.emit("execution.recorded", {"record_id": "r1"})  # should NOT match

    assert len(received) == 2


@pytest.mark.asyncio
async def test_star_matches_all():
    bus = EventBus()
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.subscribe("*", handler)
    await bus.emit("evolution.cycle_started")
    await bus.emit("approval.requested")
    await bus.emit("execution.recorded")

    assert len(received) == 3


@pytest.mark.asyncio
async def test_unsubscribe():
    bus = EventBus()
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.subscribe("test", handler)
    await bus.emit("test")
    assert len(received) == 1

    bus.unsubscribe("test", handler)
    await bus.emit("test")
    assert len(received) == 1  # no new events


@pytest.mark.asyncio
async def test_history_newest_first_and_filtered():
    bus = EventBus()
    await bus.emit("a.1", {"x": 1})
    await bus.emit("a.2", {"x": 2})
    await bus.emit("b.1", {"x": 3})

    all_events = bus.history()
    assert [e.topic for e in all_events] == ["b.1", "a.2", "a.1"]

    a_events = bus.history(topic_filter="a.*")
    assert len(a_events) == 2


@pytest.mark.asyncio
async def test_history_limit():
    bus = EventBus(history_limit=5)
    for i in range(10):
        await bus.emit("test", {"i": i})

    assert len(bus.history()) == 5


@pytest.mark.asyncio
async def test_failing_handler_does_not_reach_emitter():
    bus = EventBus()
    received = []

    async def broken(event: Event):
        raise RuntimeError("boom")

    async def healthy(event: Event):
        received.append(event)

    bus.subscribe("event", broken)
    bus.subscribe("event", healthy)
    event = await bus.emit("event")

    assert event.topic == "event"
    assert len(received) == 1


@pytest.mark.asyncio
async def test_emit_returns_event():
    bus = EventBus()
    event = await bus.emit("test.topic", {"key": "value"}, source="system")

    assert event.topic == "test.topic"
    assert event.source == "system"
    assert event.id


def test_subscriber_count():
    bus = EventBus()

    async def handler(event: Event):
        pass

    bus.subscribe("a", handler)
    bus.subscribe("b.*", handler)
    assert bus.subscriber_count == 2
