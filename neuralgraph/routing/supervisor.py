"""Routing supervisor — picks the capability node that handles a task.

Known task types go straight to their route. Unknown ones are classified
from their description first; a slow or broken classifier never fails a
request, it just lands on the general-purpose route with low confidence.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Mapping

from pydantic import BaseModel, Field

from neuralgraph.events.tracing import RoutingTrace
from neuralgraph.exceptions import TaskValidationError
from neuralgraph.routing.classifier import TaskClassifier
from neuralgraph.types import NodeId, StationId

_logger = logging.getLogger(__name__)

SUPERVISOR_NODE = "routing_supervisor"
UNKNOWN_TASK = "unknown"
FALLBACK_TASK = "chat"
FALLBACK_CONFIDENCE = 0.3
KNOWN_TASK_CONFIDENCE = 0.9

DEFAULT_ROUTE: NodeId = "meta-engine"

TASK_ROUTES: dict[str, NodeId] = {
    # General reasoning
    "chat": "meta-engine",
    "code": "meta-engine",
    "coding": "meta-engine",
    "reasoning": "meta-engine",
    "analysis": "meta-engine",
    "creative": "meta-engine",
    "math": "meta-engine",
    "vision": "meta-engine",
    "summarization": "meta-engine",
    "tool-use": "meta-engine",
    # Model lifecycle
    "model_management": "model-manager",
    "model_pull": "model-manager",
    "model_info": "model-manager",
    "training": "model-trainer",
    "fine_tune": "model-trainer",
    "evaluation": "model-trainer",
    # Memory
    "memory_search": "memory-lancedb",
    "knowledge_retrieval": "memory-lancedb",
    # Local network operations
    "network_scan": "iot-hub",
    "station_health": "iot-hub",
    "device_info": "iot-hub",
    # Peer stations
    "hotel_intel": "scraper_intel",
    "hotel_scraping": "scraper_intel",
    "price_monitoring": "scraper_intel",
    "anomaly_detection": "scraper_intel",
    "family_report": "scraper_intel",
    "peer_inference": "clerk_learning",
    "hf_inference": "clerk_learning",
    "hf_embed": "clerk_learning",
    "social_intel": "social_intel",
    "social_monitoring": "social_intel",
    "telegram": "social_intel",
    "sentiment_analysis": "social_intel",
}


class RoutingDecision(BaseModel):
    route: NodeId
    task_type: str
    confidence: float
    latency_ms: float
    station_id: StationId
    classified: bool = False
    trace: RoutingTrace = Field(default_factory=RoutingTrace)


class RoutingSupervisor:
    """Stateless router from task type (or description) to a capability node."""

    def __init__(
        self,
        classifier: TaskClassifier | None = None,
        routes: Mapping[str, NodeId] = TASK_ROUTES,
        default_route: NodeId = DEFAULT_ROUTE,
        classifier_timeout: float = 2.0,
    ) -> None:
        self._classifier = classifier
        self._routes = dict(routes)
        self._default_route = default_route
        self._classifier_timeout = classifier_timeout

    @property
    def routes(self) -> dict[str, NodeId]:
        return dict(self._routes)

    async def route(
        self,
        task_type: str = UNKNOWN_TASK,
        task_description: str | None = None,
        station_id: StationId = "",
        trace: RoutingTrace | None = None,
    ) -> RoutingDecision:
        if not station_id or not station_id.strip():
            raise TaskValidationError("station_id is required for routing")
        if not task_type or not task_type.strip():
            raise TaskValidationError("task_type must not be blank")

        start = time.perf_counter()
        trace = trace or RoutingTrace()
        classified = False

        if task_type != UNKNOWN_TASK:
            confidence = KNOWN_TASK_CONFIDENCE
        else:
            task_type, confidence, classified = await self._classify(task_description)

        route = self._routes.get(task_type, self._default_route)
        latency_ms = (time.perf_counter() - start) * 1000
        trace.visit(SUPERVISOR_NODE, latency_ms)

        _logger.debug(
            "Routed %s task to %s (confidence=%.2f, station=%s)",
            task_type, route, confidence, station_id,
        )
        return RoutingDecision(
            route=route,
            task_type=task_type,
            confidence=confidence,
            latency_ms=latency_ms,
            station_id=station_id,
            classified=classified,
            trace=trace,
        )

    async def _classify(self, description: str | None) -> tuple[str, float, bool]:
        if not description or self._classifier is None:
            return FALLBACK_TASK, FALLBACK_CONFIDENCE, False
        try:
            result = await asyncio.wait_for(
                self._classifier.classify(description),
                timeout=self._classifier_timeout,
            )
        except asyncio.TimeoutError:
            _logger.warning("Task classifier timed out after %.1fs", self._classifier_timeout)
            return FALLBACK_TASK, FALLBACK_CONFIDENCE, False
        except Exception as e:
            # Classification is best-effort; fall back to general routing
            _logger.warning("Task classifier failed: %s", e)
            return FALLBACK_TASK, FALLBACK_CONFIDENCE, False

        if not result.primary:
            return FALLBACK_TASK, FALLBACK_CONFIDENCE, False
        return result.primary, max(0.0, min(1.0, result.confidence)), True
