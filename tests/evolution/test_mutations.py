"""Tests for the mutation appliers."""

import pytest
import pytest_asyncio

from neuralgraph.evolution.mutations import APPLIERS, apply_mutation
from neuralgraph.exceptions import TaskValidationError
from neuralgraph.types import EvolutionEvent, EvolutionKind, GraphEdge, GraphNode, NodeType

STATION = "iot-hub"


def _event(kind, target_id, **changes):
    return EvolutionEvent(
        kind=kind, target_id=target_id, station_id=STATION, proposed_changes=changes,
    )


@pytest_asyncio.fixture
async def graph(store):
    for node_id in ("a", "b"):
        await store.upsert_node(GraphNode(node_id=node_id, station_id=STATION))
    await store.upsert_edge(GraphEdge(source_node_id="a", target_node_id="b", station_id=STATION))
    return store


def test_every_kind_has_an_applier():
    assert set(APPLIERS) == set(EvolutionKind)


async def test_myelinate(graph):
    assert await apply_mutation(graph, _event(EvolutionKind.MYELINATE, "a->b")) is True
    assert (await graph.get_edge("a->b")).myelinated is True
    # Already myelinated: nothing left to do
    assert await apply_mutation(graph, _event(EvolutionKind.MYELINATE, "a->b")) is False


async def test_myelinate_missing_edge(graph):
    assert await apply_mutation(graph, _event(EvolutionKind.MYELINATE, "x->y")) is False


async def test_prune_node_removes_incident_edges(graph):
    assert await apply_mutation(graph, _event(EvolutionKind.PRUNE_NODE, "a")) is True
    assert await graph.get_node("a") is None
    assert await graph.get_edge("a->b") is None
    assert await apply_mutation(graph, _event(EvolutionKind.PRUNE_NODE, "a")) is False


async def test_create_node(graph):
    event = _event(
        EvolutionKind.CREATE_NODE, "vision",
        name="Vision", node_type="capability", capabilities=["ocr"],
    )
    assert await apply_mutation(graph, event) is True

    node = await graph.get_node("vision")
    assert node.station_id == STATION
    assert node.node_type == NodeType.CAPABILITY
    assert node.capabilities == ["ocr"]
    assert await apply_mutation(graph, event) is False


async def test_create_node_rejects_bad_payload(graph):
    event = _event(EvolutionKind.CREATE_NODE, "vision", node_type="toaster")
    with pytest.raises(TaskValidationError):
        await apply_mutation(graph, event)


async def test_create_node_rejects_ambiguous_id(graph):
    event = _event(EvolutionKind.CREATE_NODE, "a->b")
    with pytest.raises(TaskValidationError):
        await apply_mutation(graph, event)
    assert await graph.get_node("a->b") is None


async def test_reweight_clamps(graph):
    assert await apply_mutation(graph, _event(EvolutionKind.REWEIGHT, "a->b", weight=1.7)) is True
    assert (await graph.get_edge("a->b")).weight == 1.0


async def test_reweight_needs_weight(graph):
    with pytest.raises(TaskValidationError):
        await apply_mutation(graph, _event(EvolutionKind.REWEIGHT, "a->b"))
