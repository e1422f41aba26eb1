"""HTTP API — exposes a Station under /api/neural.

  GET  /api/neural/status           — phase, counts, store health
  GET  /api/neural/topology         — nodes and edges
  POST /api/neural/query            — route a task
  POST /api/neural/genesis          — seed the core graph
  POST /api/neural/evolve           — run one evolution cycle now
  GET  /api/neural/pending          — proposals awaiting a decision
  POST /api/neural/proposals        — submit a proposal
  POST /api/neural/approve/{id}     — approve a proposal
  POST /api/neural/reject/{id}      — reject a proposal
  GET  /api/neural/events           — evolution event history
  GET  /api/neural/executions       — recent execution records
  POST /api/neural/executions       — report a finished execution
  GET  /api/neural/metrics          — Prometheus text exposition

The router holds module-level state injected with ``set_station``; the
engine itself never depends on it.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import APIRouter, FastAPI, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from neuralgraph.api.metrics import CONTENT_TYPE, render_metrics
from neuralgraph.exceptions import (
    InvalidStateError,
    NeuralGraphError,
    NotFoundError,
    TaskValidationError,
    UpstreamUnavailableError,
)
from neuralgraph.types import EvolutionKind, ExecutionRecord

_logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/neural")

_ERROR_STATUS: dict[type[NeuralGraphError], int] = {
    NotFoundError: 404,
    InvalidStateError: 409,
    TaskValidationError: 422,
    UpstreamUnavailableError: 503,
}


class QueryRequest(BaseModel):
    task_type: str = "unknown"
    task_description: str | None = None


class ProposalRequest(BaseModel):
    kind: EvolutionKind
    target_id: str
    proposed_changes: dict[str, Any] = Field(default_factory=dict)
    reason: str = ""


class ExecutionReport(BaseModel):
    task_type: str
    task_description: str = ""
    success: bool
    latency_ms: float = Field(default=0.0, ge=0.0)
    quality_score: float | None = None
    capabilities_used: list[str] = Field(default_factory=list)
    nodes_visited: list[str] = Field(default_factory=list)
    node_latencies: dict[str, float] = Field(default_factory=dict)


# ── Module-level state (injected by create_app or the caller) ─

_station = None


def set_station(station) -> None:
    global _station
    _station = station


def _not_ready() -> JSONResponse:
    return JSONResponse({"error": "Station not initialized"}, status_code=503)


def _error(e: NeuralGraphError) -> JSONResponse:
    for exc_type, status_code in _ERROR_STATUS.items():
        if isinstance(e, exc_type):
            break
    else:
        status_code = 500
    if status_code >= 500:
        _logger.error("Request failed: %s", e)
    return JSONResponse({"error": str(e)}, status_code=status_code)


# ── Routes ────────────────────────────────────────────────────


@router.get("/status")
async def status() -> JSONResponse:
    if _station is None:
        return _not_ready()
    result = await _station.status()
    return JSONResponse(result.model_dump(mode="json"))


@router.get("/topology")
async def topology() -> JSONResponse:
    if _station is None:
        return _not_ready()
    try:
        result = await _station.topology()
    except NeuralGraphError as e:
        return _error(e)
    return JSONResponse(result.model_dump(mode="json"))


@router.post("/query")
async def query(request: QueryRequest) -> JSONResponse:
    """Route a task to a capability node."""
    if _station is None:
        return _not_ready()
    try:
        decision = await _station.route(
            task_type=request.task_type,
            task_description=request.task_description,
        )
    except NeuralGraphError as e:
        return _error(e)
    return JSONResponse(decision.model_dump(mode="json"))


@router.post("/genesis")
async def genesis() -> JSONResponse:
    if _station is None:
        return _not_ready()
    try:
        result = await _station.seed_genesis()
    except NeuralGraphError as e:
        return _error(e)
    return JSONResponse(result.model_dump(mode="json"))


@router.post("/evolve")
async def evolve() -> JSONResponse:
    """Run one evolution cycle. 409 if one is already in flight."""
    if _station is None:
        return _not_ready()
    try:
        summary = await _station.evolve()
    except NeuralGraphError as e:
        return _error(e)
    if summary is None:
        return JSONResponse({"error": "Evolution cycle already running"}, status_code=409)
    return JSONResponse(summary.model_dump(mode="json"))


@router.get("/pending")
async def pending() -> JSONResponse:
    if _station is None:
        return _not_ready()
    try:
        events = await _station.list_pending()
    except NeuralGraphError as e:
        return _error(e)
    return JSONResponse([e.model_dump(mode="json") for e in events])


@router.post("/proposals")
async def propose(request: ProposalRequest) -> JSONResponse:
    if _station is None:
        return _not_ready()
    try:
        event = await _station.propose(
            request.kind,
            request.target_id,
            proposed_changes=request.proposed_changes,
            reason=request.reason,
        )
    except NeuralGraphError as e:
        return _error(e)
    return JSONResponse(event.model_dump(mode="json"), status_code=201)


@router.post("/approve/{event_id}")
async def approve(event_id: str) -> JSONResponse:
    if _station is None:
        return _not_ready()
    try:
        event = await _station.approve(event_id)
    except NeuralGraphError as e:
        return _error(e)
    return JSONResponse(event.model_dump(mode="json"))


@router.post("/reject/{event_id}")
async def reject(event_id: str) -> JSONResponse:
    if _station is None:
        return _not_ready()
    try:
        event = await _station.reject(event_id)
    except NeuralGraphError as e:
        return _error(e)
    return JSONResponse(event.model_dump(mode="json"))


@router.get("/events")
async def events(limit: int = 50) -> JSONResponse:
    if _station is None:
        return _not_ready()
    try:
        result = await _station.list_events(limit=limit)
    except NeuralGraphError as e:
        return _error(e)
    return JSONResponse([e.model_dump(mode="json") for e in result])


@router.get("/executions")
async def list_executions(limit: int = 100) -> JSONResponse:
    if _station is None:
        return _not_ready()
    try:
        records = await _station.list_executions(limit=limit)
    except NeuralGraphError as e:
        return _error(e)
    return JSONResponse([r.model_dump(mode="json") for r in records])


@router.post("/executions")
async def record_execution(report: ExecutionReport) -> JSONResponse:
    """Feed a finished execution back into the graph counters."""
    if _station is None:
        return _not_ready()
    record = ExecutionRecord(station_id=_station.station_id, **report.model_dump())
    try:
        result = await _station.record_execution(record)
    except NeuralGraphError as e:
        return _error(e)
    return JSONResponse(result.model_dump(mode="json"), status_code=201)


@router.get("/metrics")
async def metrics() -> Response:
    """Graph health in Prometheus text format."""
    if _station is None:
        return _not_ready()
    result = await _station.metrics()
    return PlainTextResponse(render_metrics(result), media_type=CONTENT_TYPE)


def create_app(station, run_daemon: bool = False) -> FastAPI:
    """Build a FastAPI app serving ``station``.

    With ``run_daemon`` the evolution daemon runs for the app's lifetime.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await station.store.initialize()
        set_station(station)
        if run_daemon:
            await station.daemon.start()
        try:
            yield
        finally:
            if run_daemon:
                await station.daemon.stop()
            set_station(None)
            await station.store.close()

    app = FastAPI(title="neuralgraph", lifespan=lifespan)
    app.include_router(router)
    return app
