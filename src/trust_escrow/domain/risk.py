"""Domain-level risk assessment for escrow deals.

An additive, explainable score (0-100, higher is riskier) built from four
contributions, so weights can change without touching callers:

    amount at risk        up to 30
    counterparty quality  up to 40
    pair dispute history  up to 20
    category              up to 10
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta

from trust_escrow.domain.enums import DealCategory, RiskLevel

_AMOUNT_BANDS: tuple[tuple[int, int], ...] = (
    (10_000_000, 30),
    (1_000_000, 20),
    (100_000, 10),
    (1, 5),
)

_CATEGORY_POINTS: dict[DealCategory, int] = {
    DealCategory.PHYSICAL: 7,  # shipping and damage
    DealCategory.SERVICE: 5,  # expectation mismatch
    DealCategory.DIGITAL: 3,
}
_UNKNOWN_CATEGORY_POINTS = 5

_HOLD_FOR_LEVEL: dict[RiskLevel, timedelta] = {
    RiskLevel.LOW: timedelta(days=1),
    RiskLevel.MEDIUM: timedelta(days=3),
    RiskLevel.HIGH: timedelta(days=7),
}


@dataclass(frozen=True, slots=True)
class RiskInput:
    """
    Attributes:
        amount: Deal amount in smallest units.
        buyer_reputation: 0-100, higher is better.
        seller_reputation: 0-100, higher is better.
        prior_disputes_between_pair: Disputes already seen between this buyer and seller.
        category: Broad category of the item or service.
    """

    amount: int
    buyer_reputation: float
    seller_reputation: float
    prior_disputes_between_pair: int
    category: DealCategory | str


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    score: int
    level: RiskLevel
    recommended_hold: timedelta

    @property
    def is_high_risk(self) -> bool:
        return self.level == RiskLevel.HIGH


def _clamp_score(value: float) -> int:
    if math.isnan(value):
        return 0
    # Half-up rounding, not banker's rounding.
    return int(math.floor(max(0.0, min(100.0, value)) + 0.5))


def assess_risk(risk_input: RiskInput) -> RiskAssessment:
    score = 0.0

    amount = abs(risk_input.amount)
    for threshold, points in _AMOUNT_BANDS:
        if amount >= threshold:
            score += points
            break

    avg_reputation = (risk_input.buyer_reputation + risk_input.seller_reputation) / 2
    score += (100 - avg_reputation) / 100 * 40

    if risk_input.prior_disputes_between_pair > 0:
        score += min(risk_input.prior_disputes_between_pair, 5) * 4

    try:
        score += _CATEGORY_POINTS[DealCategory(risk_input.category)]
    except ValueError:
        score += _UNKNOWN_CATEGORY_POINTS

    final_score = _clamp_score(score)
    if final_score <= 30:
        level = RiskLevel.LOW
    elif final_score <= 60:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.HIGH

    return RiskAssessment(score=final_score, level=level, recommended_hold=_HOLD_FOR_LEVEL[level])
