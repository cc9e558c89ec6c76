"""Dispute claims and the automatic first pass over them.

Each side files a DisputeClaim; ``preliminary_outcome`` applies the
auto-arbitration rules in order and either settles the obvious cases or sends
the dispute to a human jury. The arbiter's signed ResolveTicket
(domain/resolution.py) remains the only thing that moves a deal to RESOLVED.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from trust_escrow.domain.enums import DisputeReason, PreliminaryOutcome
from trust_escrow.domain.exceptions import ClaimInvalidError
from trust_escrow.domain.result import Err, Ok, Result

HIGH_VALUE_THRESHOLD_USD = Decimal("10000")
SPLIT_TARGET_PERCENT = 50
SPLIT_MARGIN_PERCENT = 5


class DisputeClaim(BaseModel):
    """One party's side of a dispute."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    claimant_id: str = Field(..., min_length=1)
    reason: DisputeReason
    description: str = Field(..., min_length=20, max_length=500)
    evidence_count: int = Field(..., ge=0)
    requested_refund_percentage: float = Field(..., ge=0, le=100)


def parse_claim(raw: DisputeClaim | Mapping[str, Any]) -> Result[DisputeClaim]:
    """Validate a raw claim payload.

    Returns:
        Ok(DisputeClaim), or Err(CLAIM_INVALID) listing each field problem.
    """
    if isinstance(raw, DisputeClaim):
        return Ok(raw)
    if not isinstance(raw, Mapping):
        return Err(ClaimInvalidError("Dispute claim must be a mapping"))
    try:
        return Ok(DisputeClaim.model_validate(dict(raw)))
    except ValidationError as exc:
        errors = [
            {
                "loc": ".".join(str(part) for part in error["loc"]),
                "msg": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        return Err(ClaimInvalidError("Dispute claim failed validation", errors))


def _near_half(percentage: float) -> bool:
    return abs(percentage - SPLIT_TARGET_PERCENT) < SPLIT_MARGIN_PERCENT


def preliminary_outcome(
    buyer_claim: DisputeClaim,
    seller_claim: DisputeClaim,
    deal_value_usd: Decimal,
) -> PreliminaryOutcome:
    """Decide the automatic outcome for a pair of claims.

    Rules, first match wins:
        1. Deals above 10,000 USD always go to a human jury.
        2. Buyer claims non-delivery and the seller has no evidence: buyer wins.
        3. Both sides ask for roughly half (within 5 points of 50%): split.
        4. Anything else goes to the jury.
    """
    if deal_value_usd > HIGH_VALUE_THRESHOLD_USD:
        return PreliminaryOutcome.ESCALATE_TO_JURY

    if buyer_claim.reason == DisputeReason.NON_DELIVERY and seller_claim.evidence_count == 0:
        return PreliminaryOutcome.BUYER_WINS

    if _near_half(buyer_claim.requested_refund_percentage) and _near_half(
        seller_claim.requested_refund_percentage
    ):
        return PreliminaryOutcome.SPLIT_50_50

    return PreliminaryOutcome.ESCALATE_TO_JURY
