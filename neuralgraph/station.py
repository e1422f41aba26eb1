"""Station — one capability graph and everything that acts on it.

Wires the store, execution recorder, evolution cycle and daemon, approval
gate and routing supervisor for a single station. The API router and the
CLI both talk to a Station rather than to the pieces.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from neuralgraph.approval.gate import EvolutionApprovalGate
from neuralgraph.config import settings
from neuralgraph.events.tracing import RoutingTrace
from neuralgraph.evolution.cycle import CycleSummary, EvolutionCycle
from neuralgraph.evolution.daemon import EvolutionDaemon
from neuralgraph.exceptions import UpstreamUnavailableError
from neuralgraph.maturation.ingest import ExecutionRecorder, IngestResult
from neuralgraph.maturation.lifecycle import GenesisResult, determine_phase, seed_genesis
from neuralgraph.routing.classifier import TaskClassifier
from neuralgraph.routing.supervisor import RoutingDecision, RoutingSupervisor
from neuralgraph.store.base import GraphStore
from neuralgraph.types import (
    EventId,
    EvolutionEvent,
    EvolutionKind,
    ExecutionRecord,
    GraphEdge,
    GraphNode,
    MaturationPhase,
    StationId,
)

_logger = logging.getLogger(__name__)


class StationStatus(BaseModel):
    station_id: StationId
    phase: MaturationPhase = MaturationPhase.GENESIS
    node_count: int = 0
    edge_count: int = 0
    execution_count: int = 0
    myelinated_edges: int = 0
    pending_events: int = 0
    avg_fitness: float = 0.0
    store_connected: bool = True
    evolution_running: bool = False
    last_cycle_at: datetime | None = None


class Topology(BaseModel):
    station_id: StationId
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)


class StationMetrics(BaseModel):
    """Status plus the raw graph, for metrics exposition."""

    status: StationStatus
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    evolution_events: int = 0


class Station:
    """Facade over one station's graph."""

    def __init__(
        self,
        store: GraphStore,
        classifier: TaskClassifier | None = None,
        event_bus: Any | None = None,
        station_id: StationId | None = None,
        classifier_timeout: float | None = None,
        evolution_interval_minutes: float | None = None,
        evolution_initial_delay: float | None = None,
    ) -> None:
        self.station_id = station_id or settings.station_id
        self.store = store
        self.event_bus = event_bus
        self.recorder = ExecutionRecorder(store, event_bus=event_bus)
        self.cycle = EvolutionCycle(store, event_bus=event_bus)
        self.gate = EvolutionApprovalGate(store, event_bus=event_bus)
        self.supervisor = RoutingSupervisor(
            classifier=classifier,
            classifier_timeout=(
                classifier_timeout
                if classifier_timeout is not None
                else settings.classifier_timeout_seconds
            ),
        )
        self.daemon = EvolutionDaemon(
            self.cycle,
            self.station_id,
            interval_minutes=(
                evolution_interval_minutes
                if evolution_interval_minutes is not None
                else settings.evolution_interval_minutes
            ),
            initial_delay=(
                evolution_initial_delay
                if evolution_initial_delay is not None
                else settings.evolution_initial_delay
            ),
            event_bus=event_bus,
        )

    async def status(self) -> StationStatus:
        """Summarize the station. Degrades instead of raising when the store is down."""
        status = StationStatus(
            station_id=self.station_id,
            evolution_running=self.cycle.is_running(self.station_id),
            last_cycle_at=self.cycle.last_completed(self.station_id),
        )
        try:
            if not await self.store.ping():
                status.store_connected = False
                return status
            nodes = await self.store.list_nodes(self.station_id)
            edges = await self.store.list_edges(self.station_id)
            executions = await self.store.count_execution_records(self.station_id)
            pending = await self.store.list_pending_evolution_events(self.station_id)
        except UpstreamUnavailableError as e:
            _logger.warning("Store unavailable while reading status: %s", e)
            status.store_connected = False
            return status

        status.phase = determine_phase(executions)
        status.node_count = len(nodes)
        status.edge_count = len(edges)
        status.execution_count = executions
        status.myelinated_edges = sum(1 for e in edges if e.myelinated)
        status.pending_events = len(pending)
        if nodes:
            status.avg_fitness = sum(n.fitness_score for n in nodes) / len(nodes)
        return status

    async def metrics(self) -> StationMetrics:
        """Status plus nodes, edges and the event count. Degrades like ``status``."""
        result = StationMetrics(status=await self.status())
        if not result.status.store_connected:
            return result
        try:
            result.nodes = await self.store.list_nodes(self.station_id)
            result.edges = await self.store.list_edges(self.station_id)
            result.evolution_events = await self.store.count_evolution_events(self.station_id)
        except UpstreamUnavailableError as e:
            _logger.warning("Store unavailable while reading metrics: %s", e)
            return StationMetrics(status=result.status.model_copy(update={"store_connected": False}))
        return result

    async def topology(self) -> Topology:
        return Topology(
            station_id=self.station_id,
            nodes=await self.store.list_nodes(self.station_id),
            edges=await self.store.list_edges(self.station_id),
        )

    async def route(
        self,
        task_type: str = "unknown",
        task_description: str | None = None,
        trace: RoutingTrace | None = None,
    ) -> RoutingDecision:
        return await self.supervisor.route(
            task_type=task_type,
            task_description=task_description,
            station_id=self.station_id,
            trace=trace,
        )

    async def seed_genesis(self) -> GenesisResult:
        return await seed_genesis(self.store, self.station_id)

    async def record_execution(self, record: ExecutionRecord) -> IngestResult:
        return await self.recorder.record(record)

    async def evolve(self) -> CycleSummary | None:
        """Run one evolution cycle now. None if one is already in flight."""
        return await self.cycle.run(self.station_id)

    async def list_pending(self) -> list[EvolutionEvent]:
        return await self.gate.list_pending(self.station_id)

    async def propose(
        self,
        kind: EvolutionKind,
        target_id: str,
        proposed_changes: dict | None = None,
        reason: str = "",
    ) -> EvolutionEvent:
        return await self.gate.propose(
            kind, target_id, self.station_id,
            proposed_changes=proposed_changes, reason=reason,
        )

    async def approve(self, event_id: EventId) -> EvolutionEvent:
        return await self.gate.approve(event_id)

    async def reject(self, event_id: EventId) -> EvolutionEvent:
        return await self.gate.reject(event_id)

    async def list_events(self, limit: int = 50) -> list[EvolutionEvent]:
        return await self.store.list_evolution_events(self.station_id, limit=limit)

    async def list_executions(self, limit: int = 100) -> list[ExecutionRecord]:
        return await self.store.list_execution_records(self.station_id, limit=limit)
