"""Evolution cycle — the periodic pass that reshapes a station's graph.

One pass:
  1. load nodes, edges and the execution count
  2. rescore every node (persisted) and every edge (gating signal only)
  3. myelinate hot, strong edges on the spot
  4. queue prune proposals for weak, idle nodes
  5. queue reweight proposals once the station reaches synaptogenesis
  6. report what happened

Only one pass per station runs at a time. The guard is a plain
in-progress set, checked and set without awaiting in between, so no lock
is ever held across store I/O. Every write is a per-entity upsert: if the
store fails mid-pass, what was applied stays applied and the rest waits
for the next pass.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import structlog
from pydantic import BaseModel, Field

from neuralgraph.evolution.mutations import apply_mutation
from neuralgraph.evolution.risk import is_auto_applied
from neuralgraph.exceptions import NeuralGraphError
from neuralgraph.maturation.fitness import compute_global_stats, score_edge, score_node
from neuralgraph.maturation.lifecycle import determine_phase, phase_index
from neuralgraph.store.base import GraphStore
from neuralgraph.types import (
    ApprovalStatus,
    EvolutionEvent,
    EvolutionKind,
    GraphEdge,
    GraphNode,
    MaturationPhase,
    StationId,
    utcnow,
)

logger = structlog.get_logger()

EVOLUTION_INTERVAL_MINUTES = 15


@dataclass(frozen=True)
class MyelinationThreshold:
    activation_count: int = 100
    min_weight: float = 0.7


@dataclass(frozen=True)
class PruningThreshold:
    min_fitness: float = 30.0
    inactivity_days: int = 7


@dataclass(frozen=True)
class ReweightThreshold:
    min_activations: int = 20
    min_drift: float = 0.2


MYELINATION_THRESHOLD = MyelinationThreshold()
PRUNING_THRESHOLD = PruningThreshold()
REWEIGHT_THRESHOLD = ReweightThreshold()


class CycleSummary(BaseModel):
    """What one evolution pass did."""

    station_id: StationId
    phase: MaturationPhase
    total_executions: int = 0
    nodes_updated: int = 0
    edges_updated: int = 0
    pending_events_created: int = 0
    phase_transition: bool = False
    started_at: datetime = Field(default_factory=utcnow)
    duration_ms: float = 0.0


class EvolutionCycle:
    """Runs evolution passes over a graph store, one per station at a time."""

    def __init__(
        self,
        store: GraphStore,
        event_bus: Any | None = None,
        myelination: MyelinationThreshold = MYELINATION_THRESHOLD,
        pruning: PruningThreshold = PRUNING_THRESHOLD,
        reweight: ReweightThreshold = REWEIGHT_THRESHOLD,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._bus = event_bus
        self._myelination = myelination
        self._pruning = pruning
        self._reweight = reweight
        self._clock = clock
        self._in_progress: set[StationId] = set()
        self._last_phase: dict[StationId, MaturationPhase] = {}
        self._last_completed: dict[StationId, datetime] = {}

    def is_running(self, station_id: StationId) -> bool:
        return station_id in self._in_progress

    def last_completed(self, station_id: StationId) -> datetime | None:
        return self._last_completed.get(station_id)

    async def run(self, station_id: StationId) -> CycleSummary | None:
        """Run one pass. Returns None if a pass for the station is already in flight."""
        if station_id in self._in_progress:
            logger.info("evolution_cycle_skipped", station_id=station_id)
            await self._emit("evolution.cycle_skipped", {"station_id": station_id})
            return None

        self._in_progress.add(station_id)
        try:
            return await self._run(station_id)
        except NeuralGraphError as e:
            logger.error("evolution_cycle_failed", station_id=station_id, error=str(e))
            await self._emit("evolution.cycle_failed", {
                "station_id": station_id, "error": str(e),
            })
            raise
        finally:
            self._in_progress.discard(station_id)

    async def _run(self, station_id: StationId) -> CycleSummary:
        start = time.perf_counter()
        started_at = self._clock()
        await self._emit("evolution.cycle_started", {"station_id": station_id})

        nodes = await self._store.list_nodes(station_id)
        edges = await self._store.list_edges(station_id)
        total_executions = await self._store.count_execution_records(station_id)
        phase = determine_phase(total_executions)

        summary = CycleSummary(
            station_id=station_id,
            phase=phase,
            total_executions=total_executions,
            started_at=started_at,
        )

        summary.nodes_updated = await self._rescore_nodes(nodes, edges)
        edge_scores = {edge.edge_id: score_edge(edge) for edge in edges}

        pending = await self._store.list_pending_evolution_events(station_id)
        queued = {(e.kind, e.target_id) for e in pending}

        for edge in edges:
            if self._should_myelinate(edge):
                event = EvolutionEvent(
                    kind=EvolutionKind.MYELINATE,
                    target_id=edge.edge_id,
                    station_id=station_id,
                    reason=(
                        f"High-traffic edge: {edge.activation_count} activations, "
                        f"weight {edge.weight:.2f}"
                    ),
                    rationale={
                        "activation_count": edge.activation_count,
                        "weight": edge.weight,
                        "edge_fitness": edge_scores[edge.edge_id],
                    },
                    proposed_changes={"myelinated": True},
                )
                if await self._submit(event, queued):
                    summary.edges_updated += 1

        for node in nodes:
            days_idle = self._days_idle(node)
            if (
                node.fitness_score < self._pruning.min_fitness
                and days_idle > self._pruning.inactivity_days
            ):
                event = EvolutionEvent(
                    kind=EvolutionKind.PRUNE_NODE,
                    target_id=node.node_id,
                    station_id=station_id,
                    reason=(
                        f"Fitness {node.fitness_score:.1f}, "
                        f"inactive {_describe_idle(days_idle)}"
                    ),
                    rationale={
                        "fitness_score": node.fitness_score,
                        "days_idle": None if days_idle == float("inf") else round(days_idle, 2),
                        "activation_count": node.activation_count,
                    },
                )
                if await self._submit(event, queued):
                    summary.pending_events_created += 1

        if phase_index(phase) >= phase_index(MaturationPhase.SYNAPTOGENESIS):
            for edge in edges:
                target_weight = self._reweight_target(edge)
                if target_weight is None:
                    continue
                event = EvolutionEvent(
                    kind=EvolutionKind.REWEIGHT,
                    target_id=edge.edge_id,
                    station_id=station_id,
                    reason=(
                        f"Co-activation ratio {target_weight:.2f} "
                        f"vs weight {edge.weight:.2f}"
                    ),
                    rationale={
                        "activation_count": edge.activation_count,
                        "co_activation_count": edge.co_activation_count,
                        "weight": edge.weight,
                        "edge_fitness": edge_scores[edge.edge_id],
                    },
                    proposed_changes={"weight": target_weight},
                )
                if await self._submit(event, queued):
                    summary.pending_events_created += 1

        previous = self._last_phase.get(station_id, MaturationPhase.GENESIS)
        summary.phase_transition = previous != phase
        self._last_phase[station_id] = phase
        if summary.phase_transition:
            logger.info(
                "evolution_phase_transition",
                station_id=station_id, previous=previous.value, phase=phase.value,
            )
            await self._emit("evolution.phase_transition", {
                "station_id": station_id,
                "previous": previous.value,
                "phase": phase.value,
                "total_executions": total_executions,
            })

        summary.duration_ms = (time.perf_counter() - start) * 1000
        self._last_completed[station_id] = self._clock()

        logger.info(
            "evolution_cycle_completed",
            station_id=station_id,
            phase=phase.value,
            nodes_updated=summary.nodes_updated,
            edges_updated=summary.edges_updated,
            pending_events_created=summary.pending_events_created,
        )
        await self._emit("evolution.cycle_completed", summary.model_dump(mode="json"))
        return summary

    async def _rescore_nodes(self, nodes: list[GraphNode], edges: list[GraphEdge]) -> int:
        """Recompute and persist fitness. Updates the local copies in place."""
        stats = compute_global_stats(nodes)
        incident: dict[str, list[GraphEdge]] = {}
        for edge in edges:
            incident.setdefault(edge.source_node_id, []).append(edge)
            if edge.target_node_id != edge.source_node_id:
                incident.setdefault(edge.target_node_id, []).append(edge)

        changed = 0
        for node in nodes:
            score = score_node(node, incident.get(node.node_id, []), stats)
            if score != node.fitness_score:
                changed += 1
            await self._store.update_node_fitness(node.node_id, score)
            node.fitness_score = score
        return changed

    async def _submit(
        self,
        event: EvolutionEvent,
        queued: set[tuple[EvolutionKind, str]],
    ) -> bool:
        """Route an event through its risk tier. Returns True if something happened."""
        if is_auto_applied(event.kind):
            if not await apply_mutation(self._store, event):
                return False
            event.status = ApprovalStatus.AUTO_APPLIED
            event.decided_at = self._clock()
            await self._store.create_evolution_event(event)
            await self._emit(f"evolution.{event.kind.value}_applied", {
                "event_id": event.event_id,
                "target_id": event.target_id,
                "station_id": event.station_id,
            })
            return True

        key = (event.kind, event.target_id)
        if key in queued:
            return False
        await self._store.create_evolution_event(event)
        queued.add(key)
        await self._emit("evolution.proposal_created", {
            "event_id": event.event_id,
            "kind": event.kind.value,
            "target_id": event.target_id,
            "station_id": event.station_id,
            "reason": event.reason,
        })
        return True

    def _should_myelinate(self, edge: GraphEdge) -> bool:
        return (
            not edge.myelinated
            and edge.activation_count >= self._myelination.activation_count
            and edge.weight >= self._myelination.min_weight
        )

    def _reweight_target(self, edge: GraphEdge) -> float | None:
        # Co-activations count successful traversals only.
        if edge.activation_count < self._reweight.min_activations:
            return None
        ratio = round(min(1.0, edge.co_activation_count / edge.activation_count), 3)
        if abs(ratio - edge.weight) <= self._reweight.min_drift:
            return None
        return ratio

    def _days_idle(self, node: GraphNode) -> float:
        if node.last_activated is None:
            return float("inf")
        last = node.last_activated
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        return (self._clock() - last) / timedelta(days=1)

    async def _emit(self, topic: str, data: dict[str, Any]) -> None:
        if self._bus:
            await self._bus.emit(topic, data, source="evolution_cycle")


def _describe_idle(days: float) -> str:
    return "since creation" if days == float("inf") else f"{days:.0f}d"
