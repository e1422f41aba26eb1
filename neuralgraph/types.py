"""Core types shared across all neuralgraph subsystems."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeAlias

from pydantic import BaseModel, Field, field_validator

# ── ID Types ──────────────────────────────────────────────────────────────────

NodeId: TypeAlias = str
EdgeId: TypeAlias = str
StationId: TypeAlias = str
EventId: TypeAlias = str


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


EDGE_ID_SEPARATOR = "->"


def edge_id_for(source_node_id: NodeId, target_node_id: NodeId) -> EdgeId:
    """Edge IDs are derived from their endpoints so re-creation is idempotent.

    Node IDs never contain the separator, so every edge ID has one split.
    """
    return f"{source_node_id}{EDGE_ID_SEPARATOR}{target_node_id}"


def _valid_node_id(node_id: str) -> str:
    if not node_id:
        raise ValueError("node_id must not be empty")
    if EDGE_ID_SEPARATOR in node_id:
        raise ValueError(f"node_id must not contain {EDGE_ID_SEPARATOR!r}")
    return node_id


# ── Enums ─────────────────────────────────────────────────────────────────────


class NodeType(str, Enum):
    CAPABILITY = "capability"
    STATION = "station"
    GATEWAY = "gateway"


class NodeStatus(str, Enum):
    ACTIVE = "active"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


class EdgeType(str, Enum):
    DATA_FLOW = "data_flow"
    DEPENDENCY = "dependency"
    ACTIVATION = "activation"


class MaturationPhase(str, Enum):
    GENESIS = "genesis"
    DIFFERENTIATION = "differentiation"
    SYNAPTOGENESIS = "synaptogenesis"
    PRUNING = "pruning"


class EvolutionKind(str, Enum):
    MYELINATE = "myelinate"
    PRUNE_NODE = "prune_node"
    CREATE_NODE = "create_node"
    REWEIGHT = "reweight"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    AUTO_APPLIED = "auto_applied"


class MyelinState(str, Enum):
    UNMYELINATED = "unmyelinated"
    MYELINATED = "myelinated"


# ── Graph ────────────────────────────────────────────────────────────────────


class GraphNode(BaseModel):
    """A capability unit in the graph.

    Health counters only ever grow, and only through execution ingestion.
    ``fitness_score`` is rewritten by every evolution cycle.
    """

    node_id: NodeId
    node_type: NodeType = NodeType.CAPABILITY
    station_id: StationId
    name: str = ""
    description: str = ""
    capabilities: list[str] = Field(default_factory=list)
    status: NodeStatus = NodeStatus.ACTIVE
    activation_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_latency_ms: float = 0.0
    fitness_score: float = Field(default=50.0, ge=0.0, le=100.0)
    last_activated: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("node_id")
    @classmethod
    def _check_node_id(cls, v: str) -> str:
        return _valid_node_id(v)

    @property
    def avg_latency_ms(self) -> float:
        if self.activation_count <= 0:
            return 0.0
        return self.total_latency_ms / self.activation_count


class GraphEdge(BaseModel):
    """A directed, weighted relation between two nodes."""

    edge_id: EdgeId = ""
    source_node_id: NodeId
    target_node_id: NodeId
    edge_type: EdgeType = EdgeType.ACTIVATION
    station_id: StationId
    weight: float = Field(default=0.5, ge=0.0, le=1.0)
    myelinated: bool = False
    activation_count: int = 0
    co_activation_count: int = 0
    avg_latency_ms: float = 0.0
    created_at: datetime = Field(default_factory=utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("source_node_id", "target_node_id")
    @classmethod
    def _check_endpoints(cls, v: str) -> str:
        return _valid_node_id(v)

    def model_post_init(self, __context: Any) -> None:
        if not self.edge_id:
            self.edge_id = edge_id_for(self.source_node_id, self.target_node_id)

    @property
    def myelin_state(self) -> MyelinState:
        return MyelinState.MYELINATED if self.myelinated else MyelinState.UNMYELINATED

    def touches(self, node_id: NodeId) -> bool:
        return node_id in (self.source_node_id, self.target_node_id)


# ── Telemetry ────────────────────────────────────────────────────────────────


class ExecutionRecord(BaseModel):
    """An immutable fact: one task execution on a station."""

    record_id: str = Field(default_factory=new_id)
    station_id: StationId
    task_type: str
    task_description: str = ""
    success: bool
    latency_ms: float = Field(default=0.0, ge=0.0)
    quality_score: float | None = None
    capabilities_used: list[str] = Field(default_factory=list)
    nodes_visited: list[NodeId] = Field(default_factory=list)
    node_latencies: dict[NodeId, float] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}


# ── Evolution ────────────────────────────────────────────────────────────────


class EvolutionEvent(BaseModel):
    """A proposed (or auto-applied) structural change to the graph."""

    event_id: EventId = Field(default_factory=new_id)
    kind: EvolutionKind
    target_id: str
    station_id: StationId
    status: ApprovalStatus = ApprovalStatus.PENDING
    reason: str = ""
    rationale: dict[str, Any] = Field(default_factory=dict)
    proposed_changes: dict[str, Any] = Field(default_factory=dict)
    proposed_at: datetime = Field(default_factory=utcnow)
    decided_at: datetime | None = None
