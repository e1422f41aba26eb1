"""Evolution daemon — runs evolution cycles on a schedule in the background.

Uses asyncio tasks for scheduling. A failed cycle is logged and the daemon
carries on; a stop request lets the in-flight cycle finish its writes
before the loop exits.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from neuralgraph.evolution.cycle import EVOLUTION_INTERVAL_MINUTES, CycleSummary, EvolutionCycle
from neuralgraph.types import StationId

logger = structlog.get_logger()


class EvolutionDaemon:
    """Background daemon that runs evolution cycles for one station."""

    def __init__(
        self,
        cycle: EvolutionCycle,
        station_id: StationId,
        interval_minutes: float = EVOLUTION_INTERVAL_MINUTES,
        initial_delay: float = 0,
        event_bus: Any | None = None,
        history_limit: int = 100,
    ) -> None:
        self._cycle = cycle
        self._station_id = station_id
        self._interval_seconds = interval_minutes * 60
        self._initial_delay = initial_delay
        self._event_bus = event_bus
        self._history_limit = history_limit
        self._running = False
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._history: list[CycleSummary] = []

    async def start(self) -> None:
        """Start the daemon loop."""
        if self._running:
            return
        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop())
        await self._emit(
            "evolution.daemon_started",
            {"station_id": self._station_id, "interval_seconds": self._interval_seconds},
        )

    async def stop(self, timeout: float | None = None) -> None:
        """Stop the daemon, letting an in-flight cycle finish.

        With a timeout, a cycle still running after ``timeout`` seconds is
        cancelled.
        """
        self._running = False
        self._stop_event.set()
        if self._task and not self._task.done():
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("evolution_daemon_stop_timeout", station_id=self._station_id)
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
        self._task = None
        await self._emit("evolution.daemon_stopped", {"station_id": self._station_id})

    async def run_once(self) -> CycleSummary | None:
        """Run a single evolution cycle. None means it was skipped."""
        summary = await self._cycle.run(self._station_id)
        if summary is not None:
            self._history.append(summary)
            if len(self._history) > self._history_limit:
                self._history = self._history[-self._history_limit:]
        return summary

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def history(self) -> list[CycleSummary]:
        return list(self._history)

    async def _run_loop(self) -> None:
        """Main daemon loop — runs cycles until stopped."""
        if self._initial_delay and await self._wait(self._initial_delay):
            return
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                # A failed cycle means no evolution this round, nothing worse.
                logger.error(
                    "evolution_daemon_cycle_failed",
                    station_id=self._station_id, error=str(e),
                )
                await self._emit("evolution.daemon_error", {
                    "station_id": self._station_id, "error": str(e),
                })

            if await self._wait(self._interval_seconds):
                break

    async def _wait(self, seconds: float) -> bool:
        """Sleep for ``seconds``; return True if a stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _emit(self, topic: str, data: dict[str, Any]) -> None:
        if self._event_bus:
            await self._event_bus.emit(topic, data, source="evolution_daemon")
