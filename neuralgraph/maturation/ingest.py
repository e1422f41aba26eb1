"""Execution ingestion — turns finished tasks into graph counters.

Ingestion owns the raw counters. It appends the immutable record, then
bumps node and edge counters through the store's atomic increments.
Every edge an execution traverses also learns: its weight moves up by
``WEIGHT_REINFORCEMENT`` on success and down by ``WEIGHT_DECAY`` on
failure, clamped to [0, 1]. Activation counts every traversal;
co-activation counts only successful ones.

It never writes fitness or myelination; those belong to the evolution
cycle.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from neuralgraph.store.base import GraphStore
from neuralgraph.types import EdgeType, ExecutionRecord, GraphEdge, edge_id_for

_logger = logging.getLogger(__name__)

WEIGHT_REINFORCEMENT = 0.02
WEIGHT_DECAY = 0.01


class IngestResult(BaseModel):
    record_id: str
    nodes_activated: int = 0
    edges_activated: int = 0
    edges_created: int = 0
    unknown_nodes: list[str] = Field(default_factory=list)


class ExecutionRecorder:
    """Appends execution records and updates the counters they imply."""

    def __init__(self, store: GraphStore, event_bus: Any | None = None) -> None:
        self._store = store
        self._bus = event_bus

    async def record(self, record: ExecutionRecord) -> IngestResult:
        await self._store.append_execution_record(record)
        result = IngestResult(record_id=record.record_id)

        for node_id in record.nodes_visited:
            latency = record.node_latencies.get(node_id, 0.0)
            if await self._store.record_node_activation(
                node_id, latency, record.success, record.timestamp,
            ):
                result.nodes_activated += 1
            else:
                result.unknown_nodes.append(node_id)

        known = set(record.nodes_visited) - set(result.unknown_nodes)
        for source, target in zip(record.nodes_visited, record.nodes_visited[1:]):
            if source == target or source not in known or target not in known:
                continue
            edge_id = edge_id_for(source, target)
            # First traversal creates the synapse.
            created = await self._store.upsert_edge(GraphEdge(
                source_node_id=source,
                target_node_id=target,
                edge_type=EdgeType.ACTIVATION,
                station_id=record.station_id,
            ))
            result.edges_created += int(created)
            await self._store.record_edge_activation(
                edge_id, record.node_latencies.get(source, 0.0),
            )
            if record.success:
                await self._store.record_co_activation(edge_id)
            await self._store.adjust_edge_weight(
                edge_id, WEIGHT_REINFORCEMENT if record.success else -WEIGHT_DECAY,
            )
            result.edges_activated += 1

        if result.unknown_nodes:
            _logger.warning(
                "Execution %s visited unknown nodes: %s",
                record.record_id, ", ".join(result.unknown_nodes),
            )

        if self._bus:
            await self._bus.emit("execution.recorded", {
                "record_id": record.record_id,
                "station_id": record.station_id,
                "task_type": record.task_type,
                "success": record.success,
                "nodes_activated": result.nodes_activated,
                "edges_created": result.edges_created,
            }, source="execution_recorder")

        return result
