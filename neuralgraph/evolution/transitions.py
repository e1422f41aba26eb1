"""Ratchet transitions — one-way state changes the engine enforces.

Approval status and myelination only ever move forward. Each has an
explicit table of allowed moves; anything else is an InvalidStateError.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from neuralgraph.exceptions import InvalidStateError
from neuralgraph.types import ApprovalStatus, MyelinState

S = TypeVar("S", bound=Enum)

APPROVAL_TRANSITIONS: dict[ApprovalStatus, set[ApprovalStatus]] = {
    ApprovalStatus.PENDING: {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED},
    ApprovalStatus.APPROVED: set(),  # terminal
    ApprovalStatus.REJECTED: set(),  # terminal
    ApprovalStatus.AUTO_APPLIED: set(),  # terminal
}

MYELIN_TRANSITIONS: dict[MyelinState, set[MyelinState]] = {
    MyelinState.UNMYELINATED: {MyelinState.MYELINATED},
    MyelinState.MYELINATED: set(),  # terminal
}


def can_transition(table: dict[S, set[S]], current: S, target: S) -> bool:
    return target in table.get(current, set())


def check_transition(table: dict[S, set[S]], current: S, target: S, subject: str) -> None:
    """Raise InvalidStateError unless ``current -> target`` is allowed."""
    if not can_transition(table, current, target):
        raise InvalidStateError(
            f"Cannot move {subject} from {current.value} to {target.value}"
        )
