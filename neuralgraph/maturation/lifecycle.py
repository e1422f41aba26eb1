"""Maturation lifecycle — phases and genesis.

A station's phase is a pure function of how many executions it has
recorded. It is derived on every read and never stored, so it cannot
drift away from the execution log.

Genesis seeds the fixed core graph. It is insert-if-absent all the way
down: re-running it on a seeded station creates nothing and resets nothing.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from pydantic import BaseModel

from neuralgraph.exceptions import TaskValidationError
from neuralgraph.store.base import GraphStore
from neuralgraph.types import (
    EdgeType,
    GraphEdge,
    GraphNode,
    MaturationPhase,
    NodeType,
    StationId,
)

_logger = logging.getLogger(__name__)

# Lower bounds, checked from the top down.
PHASE_THRESHOLDS: dict[MaturationPhase, int] = {
    MaturationPhase.PRUNING: 1000,
    MaturationPhase.SYNAPTOGENESIS: 500,
    MaturationPhase.DIFFERENTIATION: 100,
    MaturationPhase.GENESIS: 0,
}

_PHASE_ORDER = [
    MaturationPhase.GENESIS,
    MaturationPhase.DIFFERENTIATION,
    MaturationPhase.SYNAPTOGENESIS,
    MaturationPhase.PRUNING,
]


def determine_phase(execution_count: int) -> MaturationPhase:
    """Map a cumulative execution count to its maturation phase."""
    if execution_count < 0:
        raise TaskValidationError(f"Execution count cannot be negative: {execution_count}")
    for phase, threshold in PHASE_THRESHOLDS.items():
        if execution_count >= threshold:
            return phase
    return MaturationPhase.GENESIS


def phase_index(phase: MaturationPhase) -> int:
    return _PHASE_ORDER.index(phase)


# ── Genesis ──────────────────────────────────────────────────────────────────


class _Seed(NamedTuple):
    node_id: str
    node_type: NodeType
    name: str
    description: str
    capabilities: tuple[str, ...]


GENESIS_NODES: tuple[_Seed, ...] = (
    _Seed(
        "meta-engine", NodeType.CAPABILITY, "Meta-Engine",
        "Task classification, model scoring, performance tracking, autonomous routing",
        ("task_classification", "model_scoring", "performance_tracking"),
    ),
    _Seed(
        "model-manager", NodeType.CAPABILITY, "Model Manager",
        "Hardware detection, model discovery, lifecycle management",
        ("model_management", "hardware_detection", "model_search"),
    ),
    _Seed(
        "model-trainer", NodeType.CAPABILITY, "Model Trainer",
        "Dataset collection, fine-tuning, adapter management, evaluation",
        ("model_training", "dataset_curation", "lora_adapters", "model_evaluation"),
    ),
    _Seed(
        "memory-lancedb", NodeType.CAPABILITY, "Memory",
        "Vector-based memory storage and semantic search",
        ("memory_search", "knowledge_retrieval"),
    ),
    _Seed(
        "iot-hub", NodeType.STATION, "IOT-HUB Station",
        "Primary compute station: gateway, capability hosting, monitoring",
        ("iot", "sensors", "network_monitoring", "linux"),
    ),
    _Seed(
        "julie", NodeType.GATEWAY, "Julie Orchestrator",
        "Central orchestrator coordinating the station network",
        ("orchestration", "station_management"),
    ),
    _Seed(
        "scraper", NodeType.STATION, "SCRAPER Station",
        "Price scraping, anomaly detection and report generation",
        ("price_monitoring", "hotel_scraping", "anomaly_detection", "web_scraping"),
    ),
    _Seed(
        "clerk", NodeType.STATION, "CLERK Station",
        "Hosted inference, embeddings, summarization and analysis",
        ("hf_inference", "embeddings", "summarization", "analysis"),
    ),
    _Seed(
        "social-intel", NodeType.STATION, "SOCIAL-INTEL Station",
        "Social monitoring, messaging integration and sentiment analysis",
        ("social_monitoring", "telegram_integration", "sentiment_analysis"),
    ),
    _Seed(
        "scraper_intel", NodeType.CAPABILITY, "Scraper Intelligence",
        "Routes pricing, anomaly and report tasks to the SCRAPER station",
        ("hotel_scraping", "price_monitoring", "anomaly_detection", "family_report"),
    ),
    _Seed(
        "clerk_learning", NodeType.CAPABILITY, "Clerk Learning",
        "Routes inference, embedding and summarization tasks to the CLERK station",
        ("hf_inference", "embeddings", "summarization", "peer_inference"),
    ),
    _Seed(
        "social_intel", NodeType.CAPABILITY, "Social Intelligence",
        "Routes social monitoring and sentiment tasks to the SOCIAL-INTEL station",
        ("social_monitoring", "telegram_integration", "sentiment_analysis"),
    ),
)

GENESIS_EDGES: tuple[tuple[str, str, EdgeType], ...] = (
    ("meta-engine", "model-manager", EdgeType.DATA_FLOW),
    ("meta-engine", "model-trainer", EdgeType.DATA_FLOW),
    ("meta-engine", "memory-lancedb", EdgeType.DATA_FLOW),
    ("model-manager", "model-trainer", EdgeType.DEPENDENCY),
    ("iot-hub", "meta-engine", EdgeType.ACTIVATION),
    ("iot-hub", "model-manager", EdgeType.ACTIVATION),
    ("iot-hub", "model-trainer", EdgeType.ACTIVATION),
    ("iot-hub", "memory-lancedb", EdgeType.ACTIVATION),
    ("julie", "iot-hub", EdgeType.ACTIVATION),
    ("julie", "meta-engine", EdgeType.DATA_FLOW),
    ("julie", "scraper", EdgeType.ACTIVATION),
    ("julie", "clerk", EdgeType.ACTIVATION),
    ("julie", "social-intel", EdgeType.ACTIVATION),
    ("iot-hub", "scraper", EdgeType.DATA_FLOW),
    ("iot-hub", "clerk", EdgeType.DATA_FLOW),
    ("scraper", "scraper_intel", EdgeType.ACTIVATION),
    ("clerk", "clerk_learning", EdgeType.ACTIVATION),
    ("social-intel", "social_intel", EdgeType.ACTIVATION),
    ("meta-engine", "scraper_intel", EdgeType.DATA_FLOW),
    ("meta-engine", "clerk_learning", EdgeType.DATA_FLOW),
    ("meta-engine", "social_intel", EdgeType.DATA_FLOW),
    ("scraper", "clerk", EdgeType.DATA_FLOW),
)

CORE_NODE_IDS = frozenset(seed.node_id for seed in GENESIS_NODES)


class GenesisResult(BaseModel):
    station_id: StationId
    nodes_created: int = 0
    edges_created: int = 0


async def seed_genesis(store: GraphStore, station_id: StationId) -> GenesisResult:
    """Ensure the core nodes and edges exist for a station."""
    if not station_id:
        raise TaskValidationError("station_id is required for genesis")

    result = GenesisResult(station_id=station_id)

    for seed in GENESIS_NODES:
        created = await store.upsert_node(GraphNode(
            node_id=seed.node_id,
            node_type=seed.node_type,
            station_id=station_id,
            name=seed.name,
            description=seed.description,
            capabilities=list(seed.capabilities),
        ))
        result.nodes_created += int(created)

    for source, target, edge_type in GENESIS_EDGES:
        created = await store.upsert_edge(GraphEdge(
            source_node_id=source,
            target_node_id=target,
            edge_type=edge_type,
            station_id=station_id,
        ))
        result.edges_created += int(created)

    _logger.info(
        "Genesis for %s: %d nodes, %d edges created",
        station_id, result.nodes_created, result.edges_created,
    )
    return result
