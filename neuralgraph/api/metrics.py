"""Prometheus text exposition for a station's graph.

Served at GET /api/neural/metrics. When the store is unreachable only
``neuralgraph_store_connected 0`` is reported.
"""

from __future__ import annotations

from neuralgraph.maturation.lifecycle import phase_index
from neuralgraph.station import StationMetrics

CONTENT_TYPE = "text/plain; version=0.0.4"

WEIGHT_BUCKETS = (0.1, 0.2, 0.3, 0.5, 0.7, 0.9, 1.0)


def _header(lines: list[str], name: str, help_text: str, kind: str) -> None:
    lines.append(f"# HELP {name} {help_text}")
    lines.append(f"# TYPE {name} {kind}")


def render_metrics(metrics: StationMetrics) -> str:
    status = metrics.status
    lines: list[str] = []

    _header(lines, "neuralgraph_store_connected", "Whether the graph store is reachable", "gauge")
    lines.append(f"neuralgraph_store_connected {int(status.store_connected)}")
    if not status.store_connected:
        return "\n".join(lines) + "\n"

    _header(lines, "neuralgraph_node_count", "Nodes in the graph by type", "gauge")
    by_type: dict[str, int] = {}
    for node in metrics.nodes:
        by_type[node.node_type.value] = by_type.get(node.node_type.value, 0) + 1
    for node_type, count in sorted(by_type.items()):
        lines.append(f'neuralgraph_node_count{{type="{node_type}"}} {count}')
    lines.append(f'neuralgraph_node_count{{type="total"}} {status.node_count}')

    _header(lines, "neuralgraph_edge_count", "Edges in the graph", "gauge")
    lines.append(f"neuralgraph_edge_count {status.edge_count}")

    _header(lines, "neuralgraph_myelinated_edges", "Myelinated edges", "gauge")
    lines.append(f"neuralgraph_myelinated_edges {status.myelinated_edges}")

    _header(lines, "neuralgraph_edge_weight", "Edge weight distribution", "histogram")
    weights = [edge.weight for edge in metrics.edges]
    for bucket in WEIGHT_BUCKETS:
        count = sum(1 for w in weights if w <= bucket)
        lines.append(f'neuralgraph_edge_weight_bucket{{le="{bucket}"}} {count}')
    lines.append(f'neuralgraph_edge_weight_bucket{{le="+Inf"}} {len(weights)}')
    lines.append(f"neuralgraph_edge_weight_sum {sum(weights):.4f}")
    lines.append(f"neuralgraph_edge_weight_count {len(weights)}")

    _header(lines, "neuralgraph_node_fitness", "Node fitness score (0-100)", "gauge")
    for node in metrics.nodes:
        lines.append(
            f'neuralgraph_node_fitness{{node="{node.node_id}",type="{node.node_type.value}"}} '
            f"{node.fitness_score:.1f}"
        )
    lines.append(f'neuralgraph_node_fitness{{node="avg",type="all"}} {status.avg_fitness:.1f}')

    _header(lines, "neuralgraph_execution_total", "Execution records ingested", "counter")
    lines.append(f"neuralgraph_execution_total {status.execution_count}")

    _header(lines, "neuralgraph_evolution_events_total", "Evolution events recorded", "counter")
    lines.append(f"neuralgraph_evolution_events_total {metrics.evolution_events}")

    _header(lines, "neuralgraph_pending_events", "Proposals awaiting a decision", "gauge")
    lines.append(f"neuralgraph_pending_events {status.pending_events}")

    _header(
        lines, "neuralgraph_maturation_phase",
        "Maturation phase (0=genesis,1=differentiation,2=synaptogenesis,3=pruning)", "gauge",
    )
    lines.append(f"neuralgraph_maturation_phase {phase_index(status.phase)}")

    _header(lines, "neuralgraph_evolution_running", "Whether an evolution cycle is in flight", "gauge")
    lines.append(f"neuralgraph_evolution_running {int(status.evolution_running)}")

    return "\n".join(lines) + "\n"
