"""Migration 001: graph nodes, edges, execution records and evolution events."""

from __future__ import annotations

import aiosqlite


async def upgrade(db: aiosqlite.Connection) -> None:
    await db.execute("""
        CREATE TABLE IF NOT EXISTS graph_nodes (
            node_id TEXT PRIMARY KEY,
            node_type TEXT NOT NULL,
            station_id TEXT NOT NULL,
            name TEXT DEFAULT '',
            description TEXT DEFAULT '',
            capabilities TEXT DEFAULT '[]',
            status TEXT NOT NULL,
            activation_count INTEGER DEFAULT 0,
            success_count INTEGER DEFAULT 0,
            failure_count INTEGER DEFAULT 0,
            total_latency_ms REAL DEFAULT 0.0,
            fitness_score REAL DEFAULT 50.0,
            last_activated TEXT,
            created_at TEXT NOT NULL,
            metadata TEXT DEFAULT '{}'
        )
    """)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS graph_edges (
            edge_id TEXT PRIMARY KEY,
            source_node_id TEXT NOT NULL,
            target_node_id TEXT NOT NULL,
            edge_type TEXT NOT NULL,
            station_id TEXT NOT NULL,
            weight REAL DEFAULT 0.5,
            myelinated INTEGER DEFAULT 0,
            activation_count INTEGER DEFAULT 0,
            co_activation_count INTEGER DEFAULT 0,
            avg_latency_ms REAL DEFAULT 0.0,
            created_at TEXT NOT NULL,
            metadata TEXT DEFAULT '{}'
        )
    """)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS execution_records (
            record_id TEXT PRIMARY KEY,
            station_id TEXT NOT NULL,
            task_type TEXT NOT NULL,
            task_description TEXT DEFAULT '',
            success INTEGER NOT NULL,
            latency_ms REAL DEFAULT 0.0,
            quality_score REAL,
            capabilities_used TEXT DEFAULT '[]',
            nodes_visited TEXT DEFAULT '[]',
            node_latencies TEXT DEFAULT '{}',
            timestamp TEXT NOT NULL
        )
    """)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS evolution_events (
            event_id TEXT PRIMARY KEY,
            kind TEXT NOT NULL,
            target_id TEXT NOT NULL,
            station_id TEXT NOT NULL,
            status TEXT NOT NULL,
            reason TEXT DEFAULT '',
            rationale TEXT DEFAULT '{}',
            proposed_changes TEXT DEFAULT '{}',
            proposed_at TEXT NOT NULL,
            decided_at TEXT
        )
    """)
    for sql in (
        "CREATE INDEX IF NOT EXISTS idx_nodes_station ON graph_nodes(station_id)",
        "CREATE INDEX IF NOT EXISTS idx_edges_station ON graph_edges(station_id)",
        "CREATE INDEX IF NOT EXISTS idx_edges_source ON graph_edges(source_node_id)",
        "CREATE INDEX IF NOT EXISTS idx_edges_target ON graph_edges(target_node_id)",
        "CREATE INDEX IF NOT EXISTS idx_records_station ON execution_records(station_id)",
        "CREATE INDEX IF NOT EXISTS idx_events_status ON evolution_events(status)",
    ):
        await db.execute(sql)
