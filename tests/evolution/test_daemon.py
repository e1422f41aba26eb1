"""Tests for the evolution daemon."""

import asyncio

import pytest

from neuralgraph.events.bus import EventBus
from neuralgraph.evolution.cycle import CycleSummary, EvolutionCycle
from neuralgraph.evolution.daemon import EvolutionDaemon
from neuralgraph.maturation.lifecycle import seed_genesis
from neuralgraph.store.memory import InMemoryGraphStore
from neuralgraph.types import MaturationPhase

STATION = "iot-hub"
FAST = 0.03 / 60  # interval_minutes giving a 30ms tick


class FakeCycle:
    """Cycle stand-in whose behaviour each test scripts."""

    def __init__(self, fail_first: int = 0, block: bool = False):
        self.calls = 0
        self.completed = 0
        self.fail_first = fail_first
        self.block = block
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def run(self, station_id):
        self.calls += 1
        self.entered.set()
        if self.calls <= self.fail_first:
            raise RuntimeError("store went away")
        if self.block:
            await self.release.wait()
        self.completed += 1
        return CycleSummary(station_id=station_id, phase=MaturationPhase.GENESIS)


async def _wait_for(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


def test_daemon_init():
    daemon = EvolutionDaemon(FakeCycle(), STATION)
    assert not daemon.is_running
    assert daemon.history == []


@pytest.mark.asyncio
async def test_daemon_start_stop():
    daemon = EvolutionDaemon(FakeCycle(), STATION)
    await daemon.start()
    assert daemon.is_running

    await daemon.stop()
    assert not daemon.is_running


@pytest.mark.asyncio
async def test_daemon_start_idempotent():
    cycle = FakeCycle()
    daemon = EvolutionDaemon(cycle, STATION)
    await daemon.start()
    await daemon.start()  # should not create second task
    await _wait_for(lambda: cycle.calls >= 1)
    await daemon.stop()
    assert cycle.calls == 1


@pytest.mark.asyncio
async def test_daemon_run_once_with_real_cycle():
    store = InMemoryGraphStore()
    await seed_genesis(store, STATION)
    daemon = EvolutionDaemon(EvolutionCycle(store), STATION)

    summary = await daemon.run_once()

    assert isinstance(summary, CycleSummary)
    assert summary.station_id == STATION
    assert len(daemon.history) == 1


@pytest.mark.asyncio
async def test_daemon_history_is_bounded():
    daemon = EvolutionDaemon(FakeCycle(), STATION, history_limit=3)
    for _ in range(5):
        await daemon.run_once()
    assert len(daemon.history) == 3


@pytest.mark.asyncio
async def test_daemon_emits_events():
    bus = EventBus()
    received = []

    async def handler(event):
        received.append(event)

    bus.subscribe("evolution.*", handler)

    daemon = EvolutionDaemon(FakeCycle(), STATION, event_bus=bus)
    await daemon.start()
    await asyncio.sleep(0.05)
    await daemon.stop()

    topics = [e.topic for e in received]
    assert "evolution.daemon_started" in topics
    assert "evolution.daemon_stopped" in topics


@pytest.mark.asyncio
async def test_failed_cycle_does_not_kill_the_loop():
    bus = EventBus()
    cycle = FakeCycle(fail_first=1)
    daemon = EvolutionDaemon(cycle, STATION, interval_minutes=FAST, event_bus=bus)

    await daemon.start()
    await _wait_for(lambda: cycle.completed >= 1)
    await daemon.stop()

    assert cycle.calls >= 2
    assert [e.topic for e in bus.history("evolution.daemon_error")] == ["evolution.daemon_error"]


@pytest.mark.asyncio
async def test_stop_lets_inflight_cycle_finish():
    cycle = FakeCycle(block=True)
    daemon = EvolutionDaemon(cycle, STATION)

    await daemon.start()
    await cycle.entered.wait()

    stopping = asyncio.create_task(daemon.stop())
    await asyncio.sleep(0.05)
    assert not stopping.done()

    cycle.release.set()
    await stopping
    assert cycle.completed == 1
    assert not daemon.is_running


@pytest.mark.asyncio
async def test_stop_timeout_cancels_stuck_cycle():
    cycle = FakeCycle(block=True)
    daemon = EvolutionDaemon(cycle, STATION)

    await daemon.start()
    await cycle.entered.wait()
    await daemon.stop(timeout=0.05)

    assert cycle.completed == 0
    assert not daemon.is_running


@pytest.mark.asyncio
async def test_initial_delay_postpones_first_cycle():
    cycle = FakeCycle()
    daemon = EvolutionDaemon(cycle, STATION, initial_delay=10)

    await daemon.start()
    await asyncio.sleep(0.05)
    await daemon.stop()

    assert cycle.calls == 0
