"""Fitness scoring — 0 to 100 scale.

Node fitness is a weighted sum of four signals:
  success rate (40), latency (30), utilization (20), connectivity (10).

Edge fitness blends weight, log-scaled usage and a myelination bonus.
Everything here is pure; callers decide what to persist.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from neuralgraph.types import GraphEdge, GraphNode

FITNESS_WEIGHTS: dict[str, int] = {
    "success_rate": 40,
    "latency": 30,
    "utilization": 20,
    "connectivity": 10,
}

# No data, no judgment.
NEUTRAL_FITNESS = 50.0

EDGE_WEIGHT_POINTS = 50.0
EDGE_USAGE_POINTS = 40.0
EDGE_MYELIN_BONUS = 10.0
EDGE_ACTIVATION_CEILING = 1000


@dataclass(frozen=True)
class GlobalStats:
    """Station-wide reference values, computed once per evolution cycle."""

    avg_latency_ms: float = 0.0
    max_activations: int = 0


def compute_global_stats(nodes: Iterable[GraphNode]) -> GlobalStats:
    """Mean per-node latency over active nodes, and the busiest node's count."""
    latencies: list[float] = []
    max_activations = 0
    for node in nodes:
        if node.activation_count > 0:
            latencies.append(node.total_latency_ms / node.activation_count)
        max_activations = max(max_activations, node.activation_count)

    return GlobalStats(
        avg_latency_ms=sum(latencies) / len(latencies) if latencies else 0.0,
        max_activations=max_activations,
    )


def score_node(
    node: GraphNode,
    incident_edges: Iterable[GraphEdge],
    stats: GlobalStats,
) -> float:
    """Score a node's health in [0, 100].

    ``incident_edges`` may contain edges that do not touch the node; they are
    ignored. A node that was never activated gets ``NEUTRAL_FITNESS``.
    """
    if node.activation_count <= 0:
        return NEUTRAL_FITNESS

    outcomes = node.success_count + node.failure_count
    success_rate = node.success_count / outcomes if outcomes > 0 else 0.5

    if stats.avg_latency_ms > 0:
        latency = 1.0 - min(1.0, node.avg_latency_ms / stats.avg_latency_ms)
    else:
        latency = 0.5

    if stats.max_activations > 0:
        utilization = min(1.0, node.activation_count / stats.max_activations)
    else:
        utilization = 0.0

    # Myelinated edges count at full strength.
    strengths = [
        1.0 if edge.myelinated else edge.weight
        for edge in incident_edges
        if edge.touches(node.node_id)
    ]
    connectivity = sum(strengths) / len(strengths) if strengths else 0.0

    score = (
        success_rate * FITNESS_WEIGHTS["success_rate"]
        + latency * FITNESS_WEIGHTS["latency"]
        + utilization * FITNESS_WEIGHTS["utilization"]
        + connectivity * FITNESS_WEIGHTS["connectivity"]
    )
    return _bounded(score)


def score_edge(edge: GraphEdge) -> float:
    """Score an edge in [0, 100]. Usage has diminishing returns."""
    usage = min(
        1.0,
        math.log1p(edge.activation_count) / math.log1p(EDGE_ACTIVATION_CEILING),
    )
    score = edge.weight * EDGE_WEIGHT_POINTS + usage * EDGE_USAGE_POINTS
    if edge.myelinated:
        score += EDGE_MYELIN_BONUS
    return _bounded(score)


def _bounded(score: float) -> float:
    return max(0.0, min(100.0, score))
