"""Approval Gate — human-in-the-loop for destructive graph mutations.

Sits between the evolution cycle and the graph. Proposals whose kind is
GATED wait here as pending evolution events until an operator approves
or rejects them through the API or CLI.

  - approve: claims the event as approved, then applies the mutation
  - reject: marks the event rejected; the graph is not touched

Both require the event to be pending, and the status write only succeeds
while it still is. Rejected events stay in the store for audit. Errors always reach the caller: they carry operator intent.

Usage:
    gate = EvolutionApprovalGate(store, event_bus=bus)
    for event in await gate.list_pending("iot-hub"):
        await gate.approve(event.event_id)
"""

from __future__ import annotations

import logging
from typing import Any

from neuralgraph.evolution.mutations import apply_mutation
from neuralgraph.evolution.risk import is_auto_applied, risk_tier
from neuralgraph.evolution.transitions import APPROVAL_TRANSITIONS, check_transition
from neuralgraph.exceptions import InvalidStateError, NotFoundError, TaskValidationError
from neuralgraph.store.base import GraphStore
from neuralgraph.types import (
    ApprovalStatus,
    EventId,
    EvolutionEvent,
    EvolutionKind,
    StationId,
    utcnow,
)

_logger = logging.getLogger(__name__)


class EvolutionApprovalGate:
    """Queue of proposed structural changes awaiting a decision."""

    def __init__(self, store: GraphStore, event_bus: Any | None = None) -> None:
        self._store = store
        self._bus = event_bus

    async def list_pending(self, station_id: StationId | None = None) -> list[EvolutionEvent]:
        """List pending proposals, oldest first."""
        return await self._store.list_pending_evolution_events(station_id)

    async def propose(
        self,
        kind: EvolutionKind,
        target_id: str,
        station_id: StationId,
        proposed_changes: dict | None = None,
        reason: str = "",
    ) -> EvolutionEvent:
        """Submit a proposal from outside the evolution cycle.

        AUTO kinds are applied immediately and recorded as auto_applied;
        everything else is queued as pending.
        """
        if not target_id or not station_id:
            raise TaskValidationError("Proposals need a target_id and a station_id")

        event = EvolutionEvent(
            kind=kind,
            target_id=target_id,
            station_id=station_id,
            proposed_changes=proposed_changes or {},
            reason=reason,
            rationale={"source": "operator", "risk_tier": risk_tier(kind).value},
        )

        if is_auto_applied(kind):
            await apply_mutation(self._store, event)
            event.status = ApprovalStatus.AUTO_APPLIED
            event.decided_at = utcnow()
            await self._store.create_evolution_event(event)
            _logger.info("Auto-applied %s on %s (id=%s)", kind.value, target_id, event.event_id)
            return event

        await self._store.create_evolution_event(event)
        _logger.info("Approval requested for %s on %s (id=%s)", kind.value, target_id, event.event_id)
        await self._emit("approval.requested", event)
        return event

    async def approve(self, event_id: EventId) -> EvolutionEvent:
        """Claim a pending proposal, apply it and leave it approved.

        The claim is a conditional status write, so of two concurrent
        approvals only one applies the mutation. If applying fails the
        claim is released and the event is pending again.
        """
        event = await self._claim(event_id, ApprovalStatus.APPROVED)
        try:
            changed = await apply_mutation(self._store, event)
        except Exception:
            await self._store.set_evolution_event_status(
                event_id, ApprovalStatus.PENDING, None, expected=ApprovalStatus.APPROVED,
            )
            raise

        _logger.info(
            "Approved %s on %s (id=%s, graph %s)",
            event.kind.value, event.target_id, event_id,
            "changed" if changed else "unchanged",
        )
        await self._emit("approval.approved", event)
        return event

    async def reject(self, event_id: EventId) -> EvolutionEvent:
        """Mark a pending proposal rejected, leaving the graph as it is."""
        event = await self._claim(event_id, ApprovalStatus.REJECTED)

        _logger.info("Rejected %s on %s (id=%s)", event.kind.value, event.target_id, event_id)
        await self._emit("approval.rejected", event)
        return event

    async def _claim(self, event_id: EventId, status: ApprovalStatus) -> EvolutionEvent:
        event = await self._store.get_evolution_event(event_id)
        if event is None:
            raise NotFoundError(f"No evolution event with id {event_id}")
        check_transition(APPROVAL_TRANSITIONS, event.status, status, f"event {event_id}")

        decided_at = utcnow()
        claimed = await self._store.set_evolution_event_status(
            event_id, status, decided_at, expected=ApprovalStatus.PENDING,
        )
        if not claimed:
            raise InvalidStateError(f"Event {event_id} was decided by another caller")
        return event.model_copy(update={"status": status, "decided_at": decided_at})

    async def _emit(self, topic: str, event: EvolutionEvent) -> None:
        if self._bus:
            await self._bus.emit(topic, {
                "event_id": event.event_id,
                "kind": event.kind.value,
                "target_id": event.target_id,
                "station_id": event.station_id,
                "status": event.status.value,
            }, source="approval_gate")
