"""Mutation appliers — the one place graph structure is changed.

Both the evolution cycle (for AUTO kinds) and the approval gate (for
approved GATED kinds) apply mutations through ``apply_mutation``, which
dispatches on the event kind. Appliers tolerate targets that have
already disappeared, so a retried or late approval never wedges the queue.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from pydantic import ValidationError

from neuralgraph.evolution.transitions import MYELIN_TRANSITIONS, can_transition
from neuralgraph.exceptions import TaskValidationError
from neuralgraph.store.base import GraphStore
from neuralgraph.types import EvolutionEvent, EvolutionKind, GraphNode, MyelinState

_logger = logging.getLogger(__name__)

Applier = Callable[[GraphStore, EvolutionEvent], Awaitable[bool]]


async def _myelinate(store: GraphStore, event: EvolutionEvent) -> bool:
    edge = await store.get_edge(event.target_id)
    if edge is None:
        _logger.warning("Myelination target %s no longer exists", event.target_id)
        return False
    if not can_transition(MYELIN_TRANSITIONS, edge.myelin_state, MyelinState.MYELINATED):
        return False
    return await store.mark_edge_myelinated(edge.edge_id)


async def _prune_node(store: GraphStore, event: EvolutionEvent) -> bool:
    deleted = await store.delete_node(event.target_id)
    if not deleted:
        _logger.warning("Prune target %s no longer exists", event.target_id)
    return deleted


async def _create_node(store: GraphStore, event: EvolutionEvent) -> bool:
    try:
        node = GraphNode.model_validate({
            **event.proposed_changes,
            "node_id": event.target_id,
            "station_id": event.station_id,
        })
    except ValidationError as e:
        raise TaskValidationError(f"Invalid node proposal {event.event_id}: {e}") from e
    created = await store.upsert_node(node)
    if not created:
        _logger.warning("Node %s already exists; create_node left it untouched", node.node_id)
    return created


async def _reweight(store: GraphStore, event: EvolutionEvent) -> bool:
    try:
        weight = float(event.proposed_changes["weight"])
    except (KeyError, TypeError, ValueError) as e:
        raise TaskValidationError(
            f"Reweight proposal {event.event_id} has no usable weight"
        ) from e
    updated = await store.set_edge_weight(event.target_id, max(0.0, min(1.0, weight)))
    if not updated:
        _logger.warning("Reweight target %s no longer exists", event.target_id)
    return updated


APPLIERS: dict[EvolutionKind, Applier] = {
    EvolutionKind.MYELINATE: _myelinate,
    EvolutionKind.PRUNE_NODE: _prune_node,
    EvolutionKind.CREATE_NODE: _create_node,
    EvolutionKind.REWEIGHT: _reweight,
}


async def apply_mutation(store: GraphStore, event: EvolutionEvent) -> bool:
    """Apply the structural change an event describes. Returns True if the graph changed."""
    return await APPLIERS[event.kind](store, event)
