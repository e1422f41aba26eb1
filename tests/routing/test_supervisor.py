"""Tests for the routing supervisor."""

import asyncio

import pytest

from neuralgraph.events.tracing import RoutingTrace
from neuralgraph.exceptions import TaskValidationError
from neuralgraph.routing.classifier import Classification, TaskClassifier
from neuralgraph.routing.supervisor import (
    DEFAULT_ROUTE,
    TASK_ROUTES,
    RoutingSupervisor,
)

STATION = "iot-hub"


class FakeClassifier(TaskClassifier):
    """Returns a canned classification, or misbehaves on request."""

    def __init__(self, primary="hotel_intel", confidence=0.8, error=None, delay=0.0):
        self.primary = primary
        self.confidence = confidence
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def classify(self, text: str) -> Classification:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return Classification(primary=self.primary, confidence=self.confidence)


async def test_classified_task_uses_mapped_route():
    classifier = FakeClassifier(primary="hotel_intel", confidence=0.8)
    supervisor = RoutingSupervisor(classifier=classifier)

    decision = await supervisor.route(
        task_description="Track room prices in Lisbon", station_id=STATION,
    )

    assert decision.route == "scraper_intel"
    assert decision.task_type == "hotel_intel"
    assert decision.confidence == pytest.approx(0.8)
    assert decision.classified is True
    assert classifier.calls == ["Track room prices in Lisbon"]


async def test_classifier_failure_falls_back():
    supervisor = RoutingSupervisor(classifier=FakeClassifier(error=RuntimeError("model offline")))

    decision = await supervisor.route(task_description="something", station_id=STATION)

    assert decision.route == DEFAULT_ROUTE
    assert decision.task_type == "chat"
    assert decision.confidence == pytest.approx(0.3)
    assert decision.classified is False


async def test_classifier_timeout_falls_back():
    classifier = FakeClassifier(delay=1.0)
    supervisor = RoutingSupervisor(classifier=classifier, classifier_timeout=0.05)

    decision = await supervisor.route(task_description="slow one", station_id=STATION)

    assert decision.route == DEFAULT_ROUTE
    assert decision.confidence == pytest.approx(0.3)


async def test_known_type_skips_classifier():
    classifier = FakeClassifier()
    supervisor = RoutingSupervisor(classifier=classifier)

    decision = await supervisor.route(
        task_type="training", task_description="fine-tune the small model", station_id=STATION,
    )

    assert decision.route == "model-trainer"
    assert decision.confidence == pytest.approx(0.9)
    assert classifier.calls == []


async def test_unmapped_known_type_uses_default_route():
    decision = await RoutingSupervisor().route(task_type="poetry", station_id=STATION)
    assert decision.route == DEFAULT_ROUTE
    assert decision.confidence == pytest.approx(0.9)


async def test_unknown_without_description_falls_back():
    classifier = FakeClassifier()
    decision = await RoutingSupervisor(classifier=classifier).route(station_id=STATION)

    assert decision.task_type == "chat"
    assert decision.confidence == pytest.approx(0.3)
    assert classifier.calls == []


async def test_no_classifier_configured():
    decision = await RoutingSupervisor().route(task_description="hello", station_id=STATION)
    assert decision.route == DEFAULT_ROUTE
    assert decision.confidence == pytest.approx(0.3)


async def test_confidence_is_clamped():
    supervisor = RoutingSupervisor(classifier=FakeClassifier(confidence=1.7))
    decision = await supervisor.route(task_description="x", station_id=STATION)
    assert decision.confidence == 1.0


async def test_supervisor_appends_itself_to_trace():
    trace = RoutingTrace()
    trace.visit("julie", 2.0)

    decision = await RoutingSupervisor().route(task_type="chat", station_id=STATION, trace=trace)

    assert decision.trace is trace
    assert trace.nodes_visited == ["julie", "routing_supervisor"]
    assert trace.node_latencies["routing_supervisor"] == decision.latency_ms


@pytest.mark.parametrize("kwargs", [
    {"station_id": ""},
    {"station_id": "   "},
    {"station_id": STATION, "task_type": ""},
])
async def test_blank_inputs_rejected(kwargs):
    with pytest.raises(TaskValidationError):
        await RoutingSupervisor().route(**kwargs)


def test_routes_point_at_genesis_nodes():
    from neuralgraph.maturation.lifecycle import CORE_NODE_IDS

    assert set(TASK_ROUTES.values()) <= CORE_NODE_IDS
    assert DEFAULT_ROUTE in CORE_NODE_IDS
    assert TASK_ROUTES["chat"] == DEFAULT_ROUTE


async def test_custom_routes():
    supervisor = RoutingSupervisor(routes={"chat": "clerk_learning"}, default_route="iot-hub")

    assert (await supervisor.route(task_type="chat", station_id=STATION)).route == "clerk_learning"
    assert (await supervisor.route(task_type="training", station_id=STATION)).route == "iot-hub"
