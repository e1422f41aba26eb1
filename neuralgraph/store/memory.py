"""In-memory graph store.

Keeps nodes, edges, records and events in insertion-ordered dicts.
Reads hand out copies, so callers never alias stored state.
"""

from __future__ import annotations

from datetime import datetime

from neuralgraph.store.base import GraphStore
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


class InMemoryGraphStore(GraphStore):
    """Dictionary-backed store for tests and single-process embedding."""

    def __init__(self) -> None:
        self._nodes: dict[NodeId, GraphNode] = {}
        self._edges: dict[EdgeId, GraphEdge] = {}
        self._records: list[ExecutionRecord] = []
        self._events: dict[EventId, EvolutionEvent] = {}

    async def ping(self) -> bool:
        return True

    # ── Nodes ────────────────────────────────────────────────────

    async def list_nodes(self, station_id: StationId | None = None) -> list[GraphNode]:
        return [
            n.model_copy(deep=True) for n in self._nodes.values()
            if station_id is None or n.station_id == station_id
        ]

    async def get_node(self, node_id: NodeId) -> GraphNode | None:
        node = self._nodes.get(node_id)
        return node.model_copy(deep=True) if node else None

    async def upsert_node(self, node: GraphNode) -> bool:
        if node.node_id in self._nodes:
            return False
        self._nodes[node.node_id] = node.model_copy(deep=True)
        return True

    async def update_node_fitness(self, node_id: NodeId, score: float) -> None:
        node = self._nodes.get(node_id)
        if node is not None:
            node.fitness_score = score

    async def record_node_activation(
        self, node_id: NodeId, latency_ms: float, success: bool, at: datetime,
    ) -> bool:
        node = self._nodes.get(node_id)
        if node is None:
            return False
        node.activation_count += 1
        node.total_latency_ms += latency_ms
        if success:
            node.success_count += 1
        else:
            node.failure_count += 1
        node.last_activated = at
        return True

    async def delete_node(self, node_id: NodeId) -> bool:
        if self._nodes.pop(node_id, None) is None:
            return False
        for edge_id in [e.edge_id for e in self._edges.values() if e.touches(node_id)]:
            del self._edges[edge_id]
        return True

    # ── Edges ────────────────────────────────────────────────────

    async def list_edges(self, station_id: StationId | None = None) -> list[GraphEdge]:
        return [
            e.model_copy(deep=True) for e in self._edges.values()
            if station_id is None or e.station_id == station_id
        ]

    async def get_edge(self, edge_id: EdgeId) -> GraphEdge | None:
        edge = self._edges.get(edge_id)
        return edge.model_copy(deep=True) if edge else None

    async def upsert_edge(self, edge: GraphEdge) -> bool:
        if edge.edge_id in self._edges:
            return False
        self._edges[edge.edge_id] = edge.model_copy(deep=True)
        return True

    async def mark_edge_myelinated(self, edge_id: EdgeId) -> bool:
        edge = self._edges.get(edge_id)
        if edge is None:
            return False
        edge.myelinated = True
        return True

    async def set_edge_weight(self, edge_id: EdgeId, weight: float) -> bool:
        edge = self._edges.get(edge_id)
        if edge is None:
            return False
        edge.weight = weight
        return True

    async def record_edge_activation(self, edge_id: EdgeId, latency_ms: float) -> bool:
        edge = self._edges.get(edge_id)
        if edge is None:
            return False
        count = edge.activation_count
        edge.avg_latency_ms = (edge.avg_latency_ms * count + latency_ms) / (count + 1)
        edge.activation_count = count + 1
        return True

    async def adjust_edge_weight(self, edge_id: EdgeId, delta: float) -> bool:
        edge = self._edges.get(edge_id)
        if edge is None:
            return False
        edge.weight = max(0.0, min(1.0, edge.weight + delta))
        return True

    async def record_co_activation(self, edge_id: EdgeId) -> bool:
        edge = self._edges.get(edge_id)
        if edge is None:
            return False
        edge.co_activation_count += 1
        return True

    # ── Execution records ────────────────────────────────────────

    async def append_execution_record(self, record: ExecutionRecord) -> None:
        self._records.append(record)

    async def count_execution_records(self, station_id: StationId) -> int:
        return sum(1 for r in self._records if r.station_id == station_id)

    async def list_execution_records(
        self, station_id: StationId | None = None, limit: int = 100,
    ) -> list[ExecutionRecord]:
        records = [
            r for r in self._records
            if station_id is None or r.station_id == station_id
        ]
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records[:limit]

    # ── Evolution events ─────────────────────────────────────────

    async def create_evolution_event(self, event: EvolutionEvent) -> None:
        self._events[event.event_id] = event.model_copy(deep=True)

    async def get_evolution_event(self, event_id: EventId) -> EvolutionEvent | None:
        event = self._events.get(event_id)
        return event.model_copy(deep=True) if event else None

    async def list_pending_evolution_events(
        self, station_id: StationId | None = None,
    ) -> list[EvolutionEvent]:
        return [
            e.model_copy(deep=True) for e in self._events.values()
            if e.status == ApprovalStatus.PENDING
            and (station_id is None or e.station_id == station_id)
        ]

    async def list_evolution_events(
        self, station_id: StationId | None = None, limit: int = 50,
    ) -> list[EvolutionEvent]:
        events = [
            e.model_copy(deep=True) for e in self._events.values()
            if station_id is None or e.station_id == station_id
        ]
        events.sort(key=lambda e: e.proposed_at, reverse=True)
        return events[:limit]

    async def count_evolution_events(self, station_id: StationId) -> int:
        return sum(1 for e in self._events.values() if e.station_id == station_id)

    async def set_evolution_event_status(
        self,
        event_id: EventId,
        status: ApprovalStatus,
        decided_at: datetime | None,
        expected: ApprovalStatus | None = None,
    ) -> bool:
        event = self._events.get(event_id)
        if event is None:
            return False
        if expected is not None and event.status != expected:
            return False
        event.status = status
        event.decided_at = decided_at
        return True

    def __repr__(self) -> str:
        return f"InMemoryGraphStore(nodes={len(self._nodes)}, edges={len(self._edges)})"
