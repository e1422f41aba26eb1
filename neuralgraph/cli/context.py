"""CLI runtime context — bridges the sync CLI to the async engine."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

from neuralgraph.config import settings
from neuralgraph.events.bus import EventBus
from neuralgraph.station import Station
from neuralgraph.store.sqlite import SqliteGraphStore


class NeuralGraphContext:
    """Singleton runtime context holding the station the CLI operates on."""

    _instance: NeuralGraphContext | None = None

    def __init__(self) -> None:
        self.event_bus = EventBus()
        self.store = SqliteGraphStore(str(settings.db_path))
        self.station = Station(
            self.store,
            event_bus=self.event_bus,
            station_id=settings.station_id,
        )
        self._store_initialized = False

    async def ensure_station(self) -> Station:
        """Create the workspace and migrate the store on first use."""
        if not self._store_initialized:
            settings.db_path.parent.mkdir(parents=True, exist_ok=True)
            await self.store.initialize()
            self._store_initialized = True
        return self.station

    @classmethod
    def get(cls) -> NeuralGraphContext:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance


def run_async(coro: Coroutine) -> Any:
    """Run an async coroutine from sync CLI code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # Already inside an event loop (e.g. under a notebook)
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    else:
        return asyncio.run(coro)
