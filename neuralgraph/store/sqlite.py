"""SQLite-backed graph store.

Each operation opens its own connection, so no connection (and no lock) is
held between calls. Counter and weight updates are single UPDATE statements,
which makes them atomic with respect to concurrent ingestion. Conditional
status writes put the expected status in the WHERE clause and report the
rowcount.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

import aiosqlite

from neuralgraph.exceptions import UpstreamUnavailableError
from neuralgraph.migrations.runner import apply_migrations
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

_logger = logging.getLogger(__name__)


class SqliteGraphStore(GraphStore):
    """Graph store persisted to a single SQLite file."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        try:
            applied = await apply_migrations(self._db_path)
        except (aiosqlite.Error, OSError) as e:
            raise UpstreamUnavailableError(f"Graph store unavailable: {e}") from e
        if applied:
            _logger.info("Graph store schema migrated: %s", applied)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                db.row_factory = aiosqlite.Row
                yield db
        except (aiosqlite.Error, OSError) as e:
            raise UpstreamUnavailableError(f"Graph store unavailable: {e}") from e

    async def ping(self) -> bool:
        try:
            async with self._connect() as db:
                await db.execute("SELECT 1")
            return True
        except UpstreamUnavailableError:
            return False

    # ── Nodes ────────────────────────────────────────────────────

    async def list_nodes(self, station_id: StationId | None = None) -> list[GraphNode]:
        sql = "SELECT * FROM graph_nodes"
        params: list = []
        if station_id is not None:
            sql += " WHERE station_id = ?"
            params.append(station_id)
        sql += " ORDER BY rowid"
        async with self._connect() as db:
            async with db.execute(sql, params) as cursor:
                return [self._row_to_node(row) async for row in cursor]

    async def get_node(self, node_id: NodeId) -> GraphNode | None:
        async with self._connect() as db:
            async with db.execute(
                "SELECT * FROM graph_nodes WHERE node_id = ?", (node_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return self._row_to_node(row) if row else None

    async def upsert_node(self, node: GraphNode) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                "INSERT OR IGNORE INTO graph_nodes "
                "(node_id, node_type, station_id, name, description, capabilities, "
                "status, activation_count, success_count, failure_count, "
                "total_latency_ms, fitness_score, last_activated, created_at, metadata) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    node.node_id,
                    node.node_type.value,
                    node.station_id,
                    node.name,
                    node.description,
                    json.dumps(node.capabilities),
                    node.status.value,
                    node.activation_count,
                    node.success_count,
                    node.failure_count,
                    node.total_latency_ms,
                    node.fitness_score,
                    _iso(node.last_activated),
                    node.created_at.isoformat(),
                    json.dumps(node.metadata),
                ),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def update_node_fitness(self, node_id: NodeId, score: float) -> None:
        async with self._connect() as db:
            await db.execute(
                "UPDATE graph_nodes SET fitness_score = ? WHERE node_id = ?",
                (score, node_id),
            )
            await db.commit()

    async def record_node_activation(
        self, node_id: NodeId, latency_ms: float, success: bool, at: datetime,
    ) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE graph_nodes SET "
                "activation_count = activation_count + 1, "
                "total_latency_ms = total_latency_ms + ?, "
                "success_count = success_count + ?, "
                "failure_count = failure_count + ?, "
                "last_activated = ? "
                "WHERE node_id = ?",
                (latency_ms, int(success), int(not success), at.isoformat(), node_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_node(self, node_id: NodeId) -> bool:
        async with self._connect() as db:
            await db.execute(
                "DELETE FROM graph_edges WHERE source_node_id = ? OR target_node_id = ?",
                (node_id, node_id),
            )
            cursor = await db.execute(
                "DELETE FROM graph_nodes WHERE node_id = ?", (node_id,)
            )
            await db.commit()
            return cursor.rowcount > 0

    # ── Edges ────────────────────────────────────────────────────

    async def list_edges(self, station_id: StationId | None = None) -> list[GraphEdge]:
        sql = "SELECT * FROM graph_edges"
        params: list = []
        if station_id is not None:
            sql += " WHERE station_id = ?"
            params.append(station_id)
        sql += " ORDER BY rowid"
        async with self._connect() as db:
            async with db.execute(sql, params) as cursor:
                return [self._row_to_edge(row) async for row in cursor]

    async def get_edge(self, edge_id: EdgeId) -> GraphEdge | None:
        async with self._connect() as db:
            async with db.execute(
                "SELECT * FROM graph_edges WHERE edge_id = ?", (edge_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return self._row_to_edge(row) if row else None

    async def upsert_edge(self, edge: GraphEdge) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                "INSERT OR IGNORE INTO graph_edges "
                "(edge_id, source_node_id, target_node_id, edge_type, station_id, "
                "weight, myelinated, activation_count, co_activation_count, "
                "avg_latency_ms, created_at, metadata) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    edge.edge_id,
                    edge.source_node_id,
                    edge.target_node_id,
                    edge.edge_type.value,
                    edge.station_id,
                    edge.weight,
                    int(edge.myelinated),
                    edge.activation_count,
                    edge.co_activation_count,
                    edge.avg_latency_ms,
                    edge.created_at.isoformat(),
                    json.dumps(edge.metadata),
                ),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def mark_edge_myelinated(self, edge_id: EdgeId) -> bool:
        return await self._update_edge(
            "UPDATE graph_edges SET myelinated = 1 WHERE edge_id = ?", (edge_id,),
        )

    async def set_edge_weight(self, edge_id: EdgeId, weight: float) -> bool:
        return await self._update_edge(
            "UPDATE graph_edges SET weight = ? WHERE edge_id = ?", (weight, edge_id),
        )

    async def record_edge_activation(self, edge_id: EdgeId, latency_ms: float) -> bool:
        # SQLite evaluates every SET expression against the old row.
        return await self._update_edge(
            "UPDATE graph_edges SET "
            "avg_latency_ms = (avg_latency_ms * activation_count + ?) / (activation_count + 1), "
            "activation_count = activation_count + 1 "
            "WHERE edge_id = ?",
            (latency_ms, edge_id),
        )

    async def adjust_edge_weight(self, edge_id: EdgeId, delta: float) -> bool:
        return await self._update_edge(
            "UPDATE graph_edges SET weight = MAX(0.0, MIN(1.0, weight + ?)) WHERE edge_id = ?",
            (delta, edge_id),
        )

    async def record_co_activation(self, edge_id: EdgeId) -> bool:
        return await self._update_edge(
            "UPDATE graph_edges SET co_activation_count = co_activation_count + 1 "
            "WHERE edge_id = ?",
            (edge_id,),
        )

    async def _update_edge(self, sql: str, params: tuple) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            await db.commit()
            return cursor.rowcount > 0

    # ── Execution records ────────────────────────────────────────

    async def append_execution_record(self, record: ExecutionRecord) -> None:
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO execution_records "
                "(record_id, station_id, task_type, task_description, success, "
                "latency_ms, quality_score, capabilities_used, nodes_visited, "
                "node_latencies, timestamp) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.record_id,
                    record.station_id,
                    record.task_type,
                    record.task_description,
                    int(record.success),
                    record.latency_ms,
                    record.quality_score,
                    json.dumps(record.capabilities_used),
                    json.dumps(record.nodes_visited),
                    json.dumps(record.node_latencies),
                    record.timestamp.isoformat(),
                ),
            )
            await db.commit()

    async def count_execution_records(self, station_id: StationId) -> int:
        async with self._connect() as db:
            async with db.execute(
                "SELECT COUNT(*) FROM execution_records WHERE station_id = ?",
                (station_id,),
            ) as cursor:
                row = await cursor.fetchone()
        return row[0]

    async def list_execution_records(
        self, station_id: StationId | None = None, limit: int = 100,
    ) -> list[ExecutionRecord]:
        sql = "SELECT * FROM execution_records"
        params: list = []
        if station_id is not None:
            sql += " WHERE station_id = ?"
            params.append(station_id)
        sql += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)
        async with self._connect() as db:
            async with db.execute(sql, params) as cursor:
                return [self._row_to_record(row) async for row in cursor]

    # ── Evolution events ─────────────────────────────────────────

    async def create_evolution_event(self, event: EvolutionEvent) -> None:
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO evolution_events "
                "(event_id, kind, target_id, station_id, status, reason, rationale, "
                "proposed_changes, proposed_at, decided_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    event.event_id,
                    event.kind.value,
                    event.target_id,
                    event.station_id,
                    event.status.value,
                    event.reason,
                    json.dumps(event.rationale),
                    json.dumps(event.proposed_changes),
                    event.proposed_at.isoformat(),
                    _iso(event.decided_at),
                ),
            )
            await db.commit()

    async def get_evolution_event(self, event_id: EventId) -> EvolutionEvent | None:
        async with self._connect() as db:
            async with db.execute(
                "SELECT * FROM evolution_events WHERE event_id = ?", (event_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return self._row_to_event(row) if row else None

    async def list_pending_evolution_events(
        self, station_id: StationId | None = None,
    ) -> list[EvolutionEvent]:
        sql = "SELECT * FROM evolution_events WHERE status = ?"
        params: list = [ApprovalStatus.PENDING.value]
        if station_id is not None:
            sql += " AND station_id = ?"
            params.append(station_id)
        sql += " ORDER BY proposed_at, rowid"
        async with self._connect() as db:
            async with db.execute(sql, params) as cursor:
                return [self._row_to_event(row) async for row in cursor]

    async def list_evolution_events(
        self, station_id: StationId | None = None, limit: int = 50,
    ) -> list[EvolutionEvent]:
        sql = "SELECT * FROM evolution_events"
        params: list = []
        if station_id is not None:
            sql += " WHERE station_id = ?"
            params.append(station_id)
        sql += " ORDER BY proposed_at DESC LIMIT ?"
        params.append(limit)
        async with self._connect() as db:
            async with db.execute(sql, params) as cursor:
                return [self._row_to_event(row) async for row in cursor]

    async def count_evolution_events(self, station_id: StationId) -> int:
        async with self._connect() as db:
            async with db.execute(
                "SELECT COUNT(*) FROM evolution_events WHERE station_id = ?",
                (station_id,),
            ) as cursor:
                row = await cursor.fetchone()
        return row[0]

    async def set_evolution_event_status(
        self,
        event_id: EventId,
        status: ApprovalStatus,
        decided_at: datetime | None,
        expected: ApprovalStatus | None = None,
    ) -> bool:
        sql = "UPDATE evolution_events SET status = ?, decided_at = ? WHERE event_id = ?"
        params: list = [status.value, _iso(decided_at), event_id]
        if expected is not None:
            sql += " AND status = ?"
            params.append(expected.value)
        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            await db.commit()
            return cursor.rowcount > 0

    # ── Row mapping ──────────────────────────────────────────────

    @staticmethod
    def _row_to_node(row) -> GraphNode:
        return GraphNode(
            node_id=row["node_id"],
            node_type=row["node_type"],
            station_id=row["station_id"],
            name=row["name"],
            description=row["description"],
            capabilities=json.loads(row["capabilities"]),
            status=row["status"],
            activation_count=row["activation_count"],
            success_count=row["success_count"],
            failure_count=row["failure_count"],
            total_latency_ms=row["total_latency_ms"],
            fitness_score=row["fitness_score"],
            last_activated=_parse(row["last_activated"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            metadata=json.loads(row["metadata"]),
        )

    @staticmethod
    def _row_to_edge(row) -> GraphEdge:
        return GraphEdge(
            edge_id=row["edge_id"],
            source_node_id=row["source_node_id"],
            target_node_id=row["target_node_id"],
            edge_type=row["edge_type"],
            station_id=row["station_id"],
            weight=row["weight"],
            myelinated=bool(row["myelinated"]),
            activation_count=row["activation_count"],
            co_activation_count=row["co_activation_count"],
            avg_latency_ms=row["avg_latency_ms"],
            created_at=datetime.fromisoformat(row["created_at"]),
            metadata=json.loads(row["metadata"]),
        )

    @staticmethod
    def _row_to_record(row) -> ExecutionRecord:
        return ExecutionRecord(
            record_id=row["record_id"],
            station_id=row["station_id"],
            task_type=row["task_type"],
            task_description=row["task_description"],
            success=bool(row["success"]),
            latency_ms=row["latency_ms"],
            quality_score=row["quality_score"],
            capabilities_used=json.loads(row["capabilities_used"]),
            nodes_visited=json.loads(row["nodes_visited"]),
            node_latencies=json.loads(row["node_latencies"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )

    @staticmethod
    def _row_to_event(row) -> EvolutionEvent:
        return EvolutionEvent(
            event_id=row["event_id"],
            kind=row["kind"],
            target_id=row["target_id"],
            station_id=row["station_id"],
            status=row["status"],
            reason=row["reason"],
            rationale=json.loads(row["rationale"]),
            proposed_changes=json.loads(row["proposed_changes"]),
            proposed_at=datetime.fromisoformat(row["proposed_at"]),
            decided_at=_parse(row["decided_at"]),
        )

    def __repr__(self) -> str:
        return f"SqliteGraphStore({self._db_path!r})"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
