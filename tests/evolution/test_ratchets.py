"""Tests for ratchet transitions and mutation risk tiers."""

import pytest

from neuralgraph.evolution.risk import MUTATION_RISK, RiskTier, is_auto_applied, risk_tier
from neuralgraph.evolution.transitions import (
    APPROVAL_TRANSITIONS,
    MYELIN_TRANSITIONS,
    can_transition,
    check_transition,
)
from neuralgraph.exceptions import InvalidStateError
from neuralgraph.types import ApprovalStatus, EvolutionKind, MyelinState


def test_pending_can_be_decided():
    assert can_transition(APPROVAL_TRANSITIONS, ApprovalStatus.PENDING, ApprovalStatus.APPROVED)
    assert can_transition(APPROVAL_TRANSITIONS, ApprovalStatus.PENDING, ApprovalStatus.REJECTED)


@pytest.mark.parametrize("terminal", [
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
    ApprovalStatus.AUTO_APPLIED,
])
def test_decided_statuses_are_terminal(terminal):
    for target in ApprovalStatus:
        assert not can_transition(APPROVAL_TRANSITIONS, terminal, target)


def test_myelination_is_one_way():
    assert can_transition(MYELIN_TRANSITIONS, MyelinState.UNMYELINATED, MyelinState.MYELINATED)
    assert not can_transition(MYELIN_TRANSITIONS, MyelinState.MYELINATED, MyelinState.UNMYELINATED)


def test_check_transition_raises():
    with pytest.raises(InvalidStateError, match="approved to rejected"):
        check_transition(
            APPROVAL_TRANSITIONS, ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, "event e1",
        )


def test_every_kind_has_a_risk_tier():
    assert set(MUTATION_RISK) == set(EvolutionKind)


def test_only_myelination_is_automatic():
    assert risk_tier(EvolutionKind.MYELINATE) == RiskTier.AUTO
    assert is_auto_applied(EvolutionKind.MYELINATE)
    for kind in (EvolutionKind.PRUNE_NODE, EvolutionKind.CREATE_NODE, EvolutionKind.REWEIGHT):
        assert risk_tier(kind) == RiskTier.GATED
        assert not is_auto_applied(kind)
