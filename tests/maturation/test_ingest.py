"""Tests for execution ingestion."""

import pytest

from neuralgraph.maturation.ingest import WEIGHT_DECAY, WEIGHT_REINFORCEMENT, ExecutionRecorder
from neuralgraph.maturation.lifecycle import seed_genesis
from neuralgraph.types import EdgeType, ExecutionRecord

STATION = "iot-hub"


def _record(nodes, success=True, latencies=None):
    return ExecutionRecord(
        station_id=STATION,
        task_type="chat",
        success=success,
        latency_ms=100.0,
        nodes_visited=nodes,
        node_latencies=latencies or {n: 10.0 for n in nodes},
    )


async def test_record_updates_node_counters(any_store):
    await seed_genesis(any_store, STATION)
    recorder = ExecutionRecorder(any_store)

    await recorder.record(_record(["meta-engine"], latencies={"meta-engine": 40.0}))
    await recorder.record(_record(["meta-engine"], success=False, latencies={"meta-engine": 20.0}))

    node = await any_store.get_node("meta-engine")
    assert node.activation_count == 2
    assert node.success_count == 1
    assert node.failure_count == 1
    assert node.avg_latency_ms == pytest.approx(30.0)
    assert node.fitness_score == 50.0  # ingestion never rescores
    assert await any_store.count_execution_records(STATION) == 2


async def test_existing_edge_is_activated(any_store):
    await seed_genesis(any_store, STATION)
    recorder = ExecutionRecorder(any_store)

    result = await recorder.record(_record(
        ["meta-engine", "memory-lancedb"],
        latencies={"meta-engine": 12.0, "memory-lancedb": 30.0},
    ))

    assert result.edges_created == 0
    assert result.edges_activated == 1
    edge = await any_store.get_edge("meta-engine->memory-lancedb")
    assert edge.activation_count == 1
    assert edge.co_activation_count == 1
    assert edge.avg_latency_ms == pytest.approx(12.0)
    assert edge.edge_type == EdgeType.DATA_FLOW
    assert edge.myelinated is False


async def test_first_co_activation_creates_edge(any_store):
    await seed_genesis(any_store, STATION)
    recorder = ExecutionRecorder(any_store)

    result = await recorder.record(_record(["memory-lancedb", "model-trainer"]))

    assert result.edges_created == 1
    edge = await any_store.get_edge("memory-lancedb->model-trainer")
    assert edge.edge_type == EdgeType.ACTIVATION
    # Created at 0.5, then reinforced by the successful traversal
    assert edge.weight == pytest.approx(0.5 + WEIGHT_REINFORCEMENT)
    assert edge.activation_count == 1


async def test_unknown_nodes_are_reported_and_skipped(store):
    await seed_genesis(store, STATION)
    recorder = ExecutionRecorder(store)

    result = await recorder.record(_record(["meta-engine", "ghost", "memory-lancedb"]))

    assert result.unknown_nodes == ["ghost"]
    assert result.nodes_activated == 2
    assert result.edges_activated == 0
    assert await store.get_edge("meta-engine->ghost") is None


async def test_record_emits_event(store, bus):
    await seed_genesis(store, STATION)
    recorder = ExecutionRecorder(store, event_bus=bus)

    await recorder.record(_record(["meta-engine"]))

    assert bus.topics == ["execution.recorded"]
    event = bus.history()[0]
    assert event.data["station_id"] == STATION
    assert event.data["nodes_activated"] == 1


# ── Edge learning ──────────────────────────────────────────────


async def test_success_strengthens_failure_weakens(any_store):
    await seed_genesis(any_store, STATION)
    recorder = ExecutionRecorder(any_store)
    path = ["meta-engine", "model-manager"]

    await recorder.record(_record(path))
    await recorder.record(_record(path))
    await recorder.record(_record(path, success=False))

    edge = await any_store.get_edge("meta-engine->model-manager")
    assert edge.weight == pytest.approx(0.5 + 2 * WEIGHT_REINFORCEMENT - WEIGHT_DECAY)
    assert edge.activation_count == 3
    # Only successful traversals count as co-activation
    assert edge.co_activation_count == 2


async def test_weight_stays_in_bounds(store):
    await seed_genesis(store, STATION)
    recorder = ExecutionRecorder(store)

    for _ in range(40):
        await recorder.record(_record(["meta-engine", "model-manager"]))
    for _ in range(80):
        await recorder.record(_record(["meta-engine", "memory-lancedb"], success=False))

    assert (await store.get_edge("meta-engine->model-manager")).weight == 1.0
    assert (await store.get_edge("meta-engine->memory-lancedb")).weight == 0.0


async def test_only_traversed_edges_learn(store):
    await seed_genesis(store, STATION)
    recorder = ExecutionRecorder(store)

    await recorder.record(_record(["iot-hub", "meta-engine", "model-manager"]))

    assert (await store.get_edge("iot-hub->meta-engine")).weight > 0.5
    assert (await store.get_edge("meta-engine->model-manager")).weight > 0.5
    assert (await store.get_edge("meta-engine->model-trainer")).weight == 0.5
