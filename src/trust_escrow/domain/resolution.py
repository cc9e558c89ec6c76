"""Arbiter ticket validation and mapping to an execution intent.

A ResolveTicket is an external arbiter's decision on a disputed deal. This
module checks its shape and coherence, moves the deal to RESOLVED, and says
what should happen to the funds. It never moves funds itself: the intent is
handed to the payout calculator.

Signatures are not verified here; ``signer`` is carried through untouched.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from trust_escrow.domain.enums import DealStatus, ResolutionKind, TicketDecision
from trust_escrow.domain.evidence import classify_cid
from trust_escrow.domain.exceptions import TicketInvalidError, TimeWindowError
from trust_escrow.domain.payouts import BPS_DIVISOR, DealResolution
from trust_escrow.domain.result import Err, Ok
from trust_escrow.domain.state_machine import apply_status
from trust_escrow.domain.types import is_aware
from trust_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from trust_escrow.domain.deal import Deal
    from trust_escrow.domain.result import Result

logger = get_logger(__name__)

TICKET_CLOCK_SKEW = timedelta(minutes=5)

_RESOLUTION_FOR_DECISION: dict[TicketDecision, ResolutionKind] = {
    TicketDecision.RELEASE: ResolutionKind.RELEASE_TO_SELLER,
    TicketDecision.REFUND: ResolutionKind.REFUND_TO_BUYER,
    TicketDecision.SPLIT: ResolutionKind.SPLIT,
}


class ResolveTicket(BaseModel):
    """Signed verdict from an external arbiter.

    Accepts both snake_case and camelCase keys (``percentToSeller``,
    ``rationaleCid``, ``issuedAt``) so payloads from the signing service
    validate unchanged.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    decision: TicketDecision
    percent_to_seller: float | None = Field(
        default=None,
        ge=0,
        le=100,
        description="Seller share in percent. Required for split, absent otherwise.",
    )
    rationale_cid: str = Field(..., description="Immutable anchor of the written rationale")
    confidence: float = Field(..., ge=0, le=1)
    signer: str = Field(..., min_length=1, description="Arbiter public key")
    issued_at: datetime

    @field_validator("rationale_cid")
    @classmethod
    def validate_rationale_anchor(cls, value: str) -> str:
        if classify_cid(value) is None:
            raise ValueError("rationale_cid must be a CIDv0, CIDv1 or Arweave id")
        return value

    @field_validator("issued_at")
    @classmethod
    def validate_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("issued_at must be timezone-aware")
        return value

    @model_validator(mode="after")
    def validate_split_percentage(self) -> ResolveTicket:
        if self.decision == TicketDecision.SPLIT and self.percent_to_seller is None:
            raise ValueError("percent_to_seller is required for a split decision")
        if self.decision != TicketDecision.SPLIT and self.percent_to_seller is not None:
            raise ValueError(f"percent_to_seller is only allowed for split, got {self.decision}")
        return self


@dataclass(frozen=True)
class ExecutionIntent:
    """What to do with the escrow once a ticket has been accepted.

    Attributes:
        deal: The deal, now in RESOLVED.
        kind: release, refund or split.
        split_pct: Seller percentage for a split, otherwise None.
        ticket: The accepted ticket, for audit.
    """

    deal: Deal
    kind: TicketDecision
    split_pct: float | None = None
    ticket: ResolveTicket | None = None

    @property
    def resolution(self) -> DealResolution:
        """Payout calculator input for this intent."""
        if self.kind == TicketDecision.SPLIT and self.split_pct is not None:
            seller_bps = int((Decimal(str(self.split_pct)) * 100).to_integral_value())
            return DealResolution(ResolutionKind.SPLIT, buyer_share_bps=BPS_DIVISOR - seller_bps)
        return DealResolution(_RESOLUTION_FOR_DECISION[self.kind])

    @property
    def target_status(self) -> DealStatus:
        """Terminal status reached when the intent is executed.

        Any split pays the seller something out of escrow, so it closes as
        RELEASED; only a full refund closes as REFUNDED.
        """
        if self.kind == TicketDecision.REFUND:
            return DealStatus.REFUNDED
        return DealStatus.RELEASED


def _pydantic_errors(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "loc": ".".join(str(part) for part in error["loc"]),
            "msg": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def validate_ticket(raw: ResolveTicket | Mapping[str, Any]) -> Result[ResolveTicket]:
    """Check a ticket's schema and coherence.

    Returns:
        Ok(ResolveTicket), or Err(TICKET_INVALID) whose details list every
        field problem pydantic found.
    """
    if isinstance(raw, ResolveTicket):
        return Ok(raw)
    if not isinstance(raw, Mapping):
        return Err(TicketInvalidError("Ticket must be a mapping"))
    try:
        return Ok(ResolveTicket.model_validate(dict(raw)))
    except ValidationError as exc:
        errors = _pydantic_errors(exc)
        logger.info("ticket.rejected", error_count=len(errors))
        return Err(
            TicketInvalidError(f"Ticket failed validation with {len(errors)} error(s)", errors)
        )


def resolve_dispute(
    deal: Deal, ticket: ResolveTicket | Mapping[str, Any], now: datetime
) -> Result[ExecutionIntent]:
    """Accept an arbiter ticket for a disputed deal.

    The ticket must validate and must not be issued more than five minutes
    after ``now``. The deal moves DISPUTED -> RESOLVED through apply_status,
    so a deal in any other status fails with TRANSITION_BLOCKED. A naive
    ``now`` fails with TIME_WINDOW before the ticket is looked at.
    """
    if not is_aware(now):
        return Err(TimeWindowError("Current time must be a timezone-aware datetime"))
    validated = validate_ticket(ticket)
    if not validated.is_ok:
        return validated
    accepted = validated.value

    if accepted.issued_at > now + TICKET_CLOCK_SKEW:
        return Err(
            TicketInvalidError(
                "Ticket is issued in the future",
                [{"loc": "issued_at", "msg": "issued after current time", "type": "future"}],
            )
        )

    # RESOLVED -> RESOLVED is an idempotent no-op in the table; a ticket needs a live dispute.
    if deal.status == DealStatus.RESOLVED:
        return Err(
            TicketInvalidError(
                "Deal is already resolved",
                [{"loc": "deal.status", "msg": "already resolved", "type": "already_resolved"}],
            )
        )

    moved = apply_status(deal, DealStatus.RESOLVED, now)
    if not moved.is_ok:
        return moved

    intent = ExecutionIntent(
        deal=moved.value,
        kind=accepted.decision,
        split_pct=accepted.percent_to_seller,
        ticket=accepted,
    )
    logger.info(
        "ticket.accepted",
        deal_id=deal.id,
        decision=accepted.decision,
        split_pct=accepted.percent_to_seller,
        confidence=accepted.confidence,
    )
    return Ok(intent)
