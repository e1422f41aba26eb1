"""Abstract graph store — the engine's only path to durable state.

Every call is keyed by stable string IDs and is safe to retry: creation is
insert-if-absent, counter and weight updates are single atomic statements,
and flag writes are plain overwrites. Event status writes can be made
conditional on the current status, so two deciders never both win.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from neuralgraph.types import (
    ApprovalStatus,
    EdgeId,
    EventId,
    EvolutionEvent,
    ExecutionRecord,
    GraphEdge,
    GraphNode,
    NodeId,
    StationId,
)


class GraphStore(ABC):
    """Typed read/write access to nodes, edges, execution records and events."""

    async def initialize(self) -> None:
        """Prepare the backing storage. No-op by default."""

    async def close(self) -> None:
        """Release the backing storage. No-op by default."""

    @abstractmethod
    async def ping(self) -> bool:
        """Return True if the store is reachable."""
        ...

    # ── Nodes ────────────────────────────────────────────────────

    @abstractmethod
    async def list_nodes(self, station_id: StationId | None = None) -> list[GraphNode]:
        ...

    @abstractmethod
    async def get_node(self, node_id: NodeId) -> GraphNode | None:
        ...

    @abstractmethod
    async def upsert_node(self, node: GraphNode) -> bool:
        """Insert the node unless its ID exists. Returns True if inserted.

        An existing node is left untouched so accumulated counters survive.
        """
        ...

    @abstractmethod
    async def update_node_fitness(self, node_id: NodeId, score: float) -> None:
        ...

    @abstractmethod
    async def record_node_activation(
        self, node_id: NodeId, latency_ms: float, success: bool, at: datetime,
    ) -> bool:
        """Increment a node's counters. Returns False if the node is unknown."""
        ...

    @abstractmethod
    async def delete_node(self, node_id: NodeId) -> bool:
        """Delete a node and every edge touching it."""
        ...

    # ── Edges ────────────────────────────────────────────────────

    @abstractmethod
    async def list_edges(self, station_id: StationId | None = None) -> list[GraphEdge]:
        ...

    @abstractmethod
    async def get_edge(self, edge_id: EdgeId) -> GraphEdge | None:
        ...

    @abstractmethod
    async def upsert_edge(self, edge: GraphEdge) -> bool:
        """Insert the edge unless its ID exists. Returns True if inserted."""
        ...

    @abstractmethod
    async def mark_edge_myelinated(self, edge_id: EdgeId) -> bool:
        ...

    @abstractmethod
    async def set_edge_weight(self, edge_id: EdgeId, weight: float) -> bool:
        ...

    @abstractmethod
    async def record_edge_activation(self, edge_id: EdgeId, latency_ms: float) -> bool:
        """Bump activation_count and fold latency into the running average."""
        ...

    @abstractmethod
    async def adjust_edge_weight(self, edge_id: EdgeId, delta: float) -> bool:
        """Add ``delta`` to the weight in one atomic update, clamped to [0, 1]."""
        ...

    @abstractmethod
    async def record_co_activation(self, edge_id: EdgeId) -> bool:
        """Bump co_activation_count: both endpoints fired in a successful execution."""
        ...

    # ── Execution records ────────────────────────────────────────

    @abstractmethod
    async def append_execution_record(self, record: ExecutionRecord) -> None:
        ...

    @abstractmethod
    async def count_execution_records(self, station_id: StationId) -> int:
        ...

    @abstractmethod
    async def list_execution_records(
        self, station_id: StationId | None = None, limit: int = 100,
    ) -> list[ExecutionRecord]:
        """Most recent first."""
        ...

    # ── Evolution events ─────────────────────────────────────────

    @abstractmethod
    async def create_evolution_event(self, event: EvolutionEvent) -> None:
        ...

    @abstractmethod
    async def get_evolution_event(self, event_id: EventId) -> EvolutionEvent | None:
        ...

    @abstractmethod
    async def list_pending_evolution_events(
        self, station_id: StationId | None = None,
    ) -> list[EvolutionEvent]:
        """Oldest first."""
        ...

    @abstractmethod
    async def count_evolution_events(self, station_id: StationId) -> int:
        ...

    @abstractmethod
    async def list_evolution_events(
        self, station_id: StationId | None = None, limit: int = 50,
    ) -> list[EvolutionEvent]:
        """Most recent first."""
        ...

    @abstractmethod
    async def set_evolution_event_status(
        self,
        event_id: EventId,
        status: ApprovalStatus,
        decided_at: datetime | None,
        expected: ApprovalStatus | None = None,
    ) -> bool:
        """Overwrite the status. With ``expected``, only if the current status matches.

        Returns False when the event is unknown or its status did not match.
        """
        ...
