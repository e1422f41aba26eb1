"""Shared test fixtures — graph stores and a recording event bus."""

from __future__ import annotations

import tempfile

import pytest
import pytest_asyncio

from neuralgraph.events.bus import Event, EventBus
from neuralgraph.store.memory import InMemoryGraphStore
from neuralgraph.store.sqlite import SqliteGraphStore

STATION = "iot-hub"


class RecordingBus(EventBus):
    """Event bus that also keeps every topic it has seen, in order."""

    def __init__(self) -> None:
        super().__init__()
        self.topics: list[str] = []

    async def emit(self, topic: str, data: dict | None = None, source: str = "") -> Event:
        self.topics.append(topic)
        return await super().emit(topic, data, source)


@pytest.fixture
def store():
    return InMemoryGraphStore()


@pytest_asyncio.fixture
async def sqlite_store():
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    s = SqliteGraphStore(db_path)
    await s.initialize()
    return s


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def any_store(request):
    """Run a test once per store implementation."""
    if request.param == "memory":
        return InMemoryGraphStore()
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    s = SqliteGraphStore(db_path)
    await s.initialize()
    return s


@pytest.fixture
def bus():
    return RecordingBus()
