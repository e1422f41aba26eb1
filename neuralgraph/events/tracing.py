"""Request-scoped routing traces.

A trace follows one task request through the graph: every component that
touches the request appends itself to ``nodes_visited`` and records how long
its own step took in ``node_latencies``.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from pydantic import BaseModel, Field

from neuralgraph.types import edge_id_for, new_id, utcnow


class RoutingTrace(BaseModel):
    """Ordered visit log for a single request."""

    trace_id: str = Field(default_factory=new_id)
    nodes_visited: list[str] = Field(default_factory=list)
    node_latencies: dict[str, float] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=utcnow)

    def visit(self, node_id: str, latency_ms: float) -> None:
        self.nodes_visited.append(node_id)
        self.node_latencies[node_id] = latency_ms

    @contextmanager
    def span(self, node_id: str) -> Iterator[None]:
        """Time the enclosed block and record it as a visit, even on error."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.visit(node_id, (time.perf_counter() - start) * 1000)

    @property
    def total_latency_ms(self) -> float:
        return sum(self.node_latencies.values())

    @property
    def edges_traversed(self) -> list[str]:
        """Edge IDs between consecutive visits."""
        return [
            edge_id_for(a, b)
            for a, b in zip(self.nodes_visited, self.nodes_visited[1:])
        ]
