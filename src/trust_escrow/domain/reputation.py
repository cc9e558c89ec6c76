"""Simple v1 reputation score (0-100).

Heuristic only:
    - Rewards completed deals, capped so volume alone cannot max the score.
    - Penalizes refunds more than generic disputes.
    - Clamped to [0, 100] for UI consistency.

Formula:
    reward  = min(completed * 5, 80)
    penalty = refunded * 10 + disputes * 5
    score   = clamp(reward - penalty, 0, 100)

Pure math: no persistence, no time decay. The scorer is fed before/after deal
snapshots and reports how the seller's score moved.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from trust_escrow.domain.enums import DealStatus, ReputationTier

if TYPE_CHECKING:
    from trust_escrow.domain.deal import Deal

COMPLETION_POINTS = 5
COMPLETION_CAP = 80
REFUND_PENALTY = 10
DISPUTE_PENALTY = 5

# Lower bound (inclusive) of each tier, highest first.
_TIER_FLOORS: tuple[tuple[int, ReputationTier], ...] = (
    (80, ReputationTier.ELITE),
    (50, ReputationTier.TRUSTED),
    (20, ReputationTier.ESTABLISHED),
    (0, ReputationTier.NEW),
)


@dataclass(frozen=True, slots=True)
class ReputationCounters:
    completed: int = 0
    refunded: int = 0
    disputes: int = 0


@dataclass(frozen=True, slots=True)
class ReputationDelta:
    old_score: int
    new_score: int
    counters: ReputationCounters

    @property
    def delta(self) -> int:
        return self.new_score - self.old_score


def reputation_score(counters: ReputationCounters) -> int:
    """Compute a 0-100 score.

    Example:
        reputation_score(ReputationCounters(completed=10, refunded=1, disputes=2)) == 30
    """
    reward = min(counters.completed * COMPLETION_POINTS, COMPLETION_CAP)
    penalty = counters.refunded * REFUND_PENALTY + counters.disputes * DISPUTE_PENALTY
    return max(0, min(100, reward - penalty))


def reputation_tier(score: int) -> ReputationTier:
    for floor, tier in _TIER_FLOORS:
        if score >= floor:
            return tier
    return ReputationTier.NEW


def meets_minimum_reputation(score: int, minimum: int) -> bool:
    return score >= minimum


def apply_deal_event(counters: ReputationCounters, before: Deal, after: Deal) -> ReputationCounters:
    """Update a seller's counters for one lifecycle step.

    Only changes of status count: entering DISPUTED adds a dispute, entering
    RELEASED a completion, entering REFUNDED a refund. Any other step (or an
    identity snapshot pair) leaves the counters unchanged.
    """
    if before.status == after.status:
        return counters
    if after.status == DealStatus.DISPUTED:
        return replace(counters, disputes=counters.disputes + 1)
    if after.status == DealStatus.RELEASED:
        return replace(counters, completed=counters.completed + 1)
    if after.status == DealStatus.REFUNDED:
        return replace(counters, refunded=counters.refunded + 1)
    return counters


def reputation_delta(counters: ReputationCounters, before: Deal, after: Deal) -> ReputationDelta:
    """Score movement caused by the ``before -> after`` snapshot pair."""
    updated = apply_deal_event(counters, before, after)
    return ReputationDelta(
        old_score=reputation_score(counters),
        new_score=reputation_score(updated),
        counters=updated,
    )
