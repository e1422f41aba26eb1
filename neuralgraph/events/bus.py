"""Event Bus — pub/sub with wildcard matching.

Every subsystem that changes the graph announces it here.
Supports topic wildcards: "evolution.*" matches "evolution.cycle_completed".
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Awaitable

from pydantic import BaseModel, Field

from neuralgraph.types import new_id, utcnow

_logger = logging.getLogger(__name__)

EventHandler = Callable[["Event"], Awaitable[None]]


class Event(BaseModel):
    """A system event."""

    id: str = Field(default_factory=new_id)
    topic: str
    data: dict[str, Any] = Field(default_factory=dict)
    source: str = ""
    timestamp: datetime = Field(default_factory=utcnow)


class EventBus:
    """Async pub/sub event bus with wildcard topic matching.

    Subscribe to "approval.*" to receive all approval events.
    Subscribe to "*" to receive everything.
    Handler failures are logged and never reach the emitter.
    """

    def __init__(self, history_limit: int = 500) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self._history: list[Event] = []
        self._history_limit = history_limit

    def subscribe(self, pattern: str, handler: EventHandler) -> None:
        self._subscribers[pattern].append(handler)

    def unsubscribe(self, pattern: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(pattern, [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, topic: str, data: dict | None = None, source: str = "") -> Event:
        """Emit an event to all matching subscribers."""
        event = Event(topic=topic, data=data or {}, source=source)

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit:]

        handlers = [
            handler
            for pattern, subscribed in self._subscribers.items()
            if fnmatch.fnmatch(topic, pattern)
            for handler in subscribed
        ]
        if handlers:
            results = await asyncio.gather(
                *(handler(event) for handler in handlers), return_exceptions=True,
            )
            for result in results:
                if isinstance(result, Exception):
                    _logger.warning("Event handler failed for %s: %s", topic, result)

        return event

    def history(self, topic_filter: str = "*", limit: int = 50) -> list[Event]:
        """Recent events, newest first, optionally filtered by topic pattern."""
        if topic_filter == "*":
            events = self._history
        else:
            events = [e for e in self._history if fnmatch.fnmatch(e.topic, topic_filter)]
        return list(reversed(events[-limit:]))

    @property
    def subscriber_count(self) -> int:
        return sum(len(h) for h in self._subscribers.values())
