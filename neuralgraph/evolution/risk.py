"""Mutation risk tiers.

Every evolution kind declares how much autonomy the engine has over it.
AUTO mutations are additive and cheap to live with, so the cycle applies
them on the spot. GATED mutations wait in the approval queue.
"""

from __future__ import annotations

from enum import Enum

from neuralgraph.types import EvolutionKind


class RiskTier(str, Enum):
    AUTO = "auto"
    GATED = "gated"


MUTATION_RISK: dict[EvolutionKind, RiskTier] = {
    EvolutionKind.MYELINATE: RiskTier.AUTO,
    EvolutionKind.REWEIGHT: RiskTier.GATED,
    EvolutionKind.CREATE_NODE: RiskTier.GATED,
    EvolutionKind.PRUNE_NODE: RiskTier.GATED,
}


def risk_tier(kind: EvolutionKind) -> RiskTier:
    # Unclassified kinds are gated.
    return MUTATION_RISK.get(kind, RiskTier.GATED)


def is_auto_applied(kind: EvolutionKind) -> bool:
    return risk_tier(kind) is RiskTier.AUTO
