"""Escrow Service: the deal lifecycle composed from the pure domain pieces.

Coordinates:
    - Structural validation and the state machine guard
    - Evidence policy (anchors attached to a deal)
    - Arbiter ticket acceptance
    - Payout calculation on settlement

Every method takes the current deal and an explicit ``now`` and returns a
Result holding a fresh deal (or settlement outcome). Nothing is stored: the
calling service persists whatever comes back.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from trust_escrow.config import get_settings
from trust_escrow.domain.deal import validate_deal
from trust_escrow.domain.enums import DealStatus, ResolutionKind
from trust_escrow.domain.evidence import merge_evidence_cids
from trust_escrow.domain.exceptions import (
    DealInvalidError,
    EvidencePolicyError,
    TransitionBlockedError,
    UnsupportedActionError,
)
from trust_escrow.domain.payouts import DealResolution, settle_payouts
from trust_escrow.domain.result import Err, Ok
from trust_escrow.domain.resolution import resolve_dispute
from trust_escrow.domain.state_machine import apply_status
from trust_escrow.logging_config import deal_context, get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime
    from decimal import Decimal

    from trust_escrow.domain.deal import Deal
    from trust_escrow.domain.evidence import EvidencePolicy
    from trust_escrow.domain.payouts import FeeConfig, Settlement
    from trust_escrow.domain.resolution import ExecutionIntent, ResolveTicket
    from trust_escrow.domain.result import Result
    from trust_escrow.domain.types import UserId

logger = get_logger(__name__)


@dataclass(frozen=True)
class SettlementOutcome:
    """A deal in a terminal status together with how its escrow was split."""

    deal: Deal
    settlement: Settlement


class EscrowService:
    """Manages the deal lifecycle on top of the pure domain functions."""

    def __init__(
        self,
        fee_config: FeeConfig | None = None,
        evidence_policy: EvidencePolicy | None = None,
    ) -> None:
        if fee_config is None or evidence_policy is None:
            settings = get_settings()
            fee_config = fee_config or settings.fee_config()
            evidence_policy = evidence_policy or settings.evidence_policy()
        self._fee_config = fee_config
        self._evidence_policy = evidence_policy

    @property
    def fee_config(self) -> FeeConfig:
        return self._fee_config

    @property
    def evidence_policy(self) -> EvidencePolicy:
        return self._evidence_policy

    # ------------------------------------------------------------------
    # Funding
    # ------------------------------------------------------------------

    def fund(
        self,
        deal: Deal,
        buyer: UserId,
        funded_price_usd: Decimal,
        now: datetime,
    ) -> Result[Deal]:
        """Record the buyer and the escrowed amount, then move INIT -> FUNDED.

        Under the baseline policy the funded amount must equal the price;
        a mismatch fails validation inside apply_status with DEAL_INVALID.
        """
        if deal.buyer is not None and deal.buyer != buyer:
            return Err(
                DealInvalidError(
                    "Deal already has a different buyer", field="buyer", deal_id=deal.id
                )
            )
        candidate = dataclasses.replace(deal, buyer=buyer, funded_price_usd=funded_price_usd)
        result = apply_status(candidate, DealStatus.FUNDED, now)
        if result.is_ok:
            logger.info(
                "escrow.funded", deal_id=deal.id, buyer=buyer, amount=str(funded_price_usd)
            )
        return result

    # ------------------------------------------------------------------
    # Delivery & evidence
    # ------------------------------------------------------------------

    def mark_delivered(self, deal: Deal, now: datetime) -> Result[Deal]:
        result = apply_status(deal, DealStatus.DELIVERED, now)
        if result.is_ok:
            logger.info("escrow.delivered", deal_id=deal.id)
        return result

    def attach_evidence(self, deal: Deal, cids: Sequence[str], now: datetime) -> Result[Deal]:
        """Add evidence anchors to a deal that is still open.

        Terminal deals are closed to new evidence.
        """
        validated = validate_deal(deal)
        if not validated.is_ok:
            return validated
        if DealStatus(deal.status).is_terminal:
            return Err(
                UnsupportedActionError(
                    "attach_evidence", f"Cannot attach evidence to a {deal.status} deal"
                )
            )
        merged = merge_evidence_cids(deal.evidence_cids, cids)
        if not merged.is_ok:
            logger.info("escrow.evidence_rejected", deal_id=deal.id, **merged.error.details)
            return merged
        if len(merged.value) > self._evidence_policy.max_items:
            return Err(
                EvidencePolicyError(
                    f"Deal cannot carry more than {self._evidence_policy.max_items} evidence items",
                    deal_id=deal.id,
                    count=len(merged.value),
                )
            )
        updated = dataclasses.replace(deal, evidence_cids=merged.value, updated_at=now)
        logger.info(
            "escrow.evidence_attached",
            deal_id=deal.id,
            added=len(merged.value) - len(deal.evidence_cids),
        )
        return Ok(updated)

    # ------------------------------------------------------------------
    # Disputes
    # ------------------------------------------------------------------

    def open_dispute(
        self, deal: Deal, now: datetime, evidence_cids: Sequence[str] = ()
    ) -> Result[Deal]:
        """Move FUNDED/DELIVERED -> DISPUTED, attaching any opening evidence."""
        if evidence_cids:
            with_evidence = self.attach_evidence(deal, evidence_cids, now)
            if not with_evidence.is_ok:
                return with_evidence
            deal = with_evidence.value
        with deal_context(deal.id):
            result = apply_status(deal, DealStatus.DISPUTED, now)
            if result.is_ok:
                logger.info("escrow.dispute_opened")
            else:
                logger.info("escrow.dispute_rejected", **result.error.to_dict())
        return result

    def resolve(
        self, deal: Deal, ticket: ResolveTicket | Mapping[str, Any], now: datetime
    ) -> Result[ExecutionIntent]:
        with deal_context(deal.id):
            result = resolve_dispute(deal, ticket, now)
            if result.is_ok:
                logger.info("escrow.resolved", decision=result.value.kind)
        return result

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def execute(
        self, intent: ExecutionIntent, now: datetime, has_affiliate: bool = False
    ) -> Result[SettlementOutcome]:
        """Carry out an accepted arbiter decision: compute payouts, close the deal.

        The intent's deal must still be RESOLVED. A deal that has already
        closed fails with TRANSITION_BLOCKED, so an intent settles once.
        """
        status = DealStatus(intent.deal.status)
        if status != DealStatus.RESOLVED:
            return Err(TransitionBlockedError(status, intent.target_status))
        return self._settle(
            intent.deal, intent.target_status, intent.resolution, now, has_affiliate
        )

    def release(
        self, deal: Deal, now: datetime, has_affiliate: bool = False
    ) -> Result[SettlementOutcome]:
        """Release a delivered, undisputed deal to the seller.

        Only DELIVERED deals qualify. A RESOLVED deal settles through
        execute() with its arbiter decision, and any other status fails
        with TRANSITION_BLOCKED.
        """
        validated = validate_deal(deal)
        if not validated.is_ok:
            return validated
        status = DealStatus(deal.status)
        if status == DealStatus.RESOLVED:
            return Err(
                UnsupportedActionError("release", "Resolved deals settle through execute()")
            )
        if status != DealStatus.DELIVERED:
            return Err(TransitionBlockedError(status, DealStatus.RELEASED))
        return self._settle(
            deal,
            DealStatus.RELEASED,
            DealResolution(ResolutionKind.RELEASE_TO_SELLER),
            now,
            has_affiliate,
        )

    def _settle(
        self,
        deal: Deal,
        target: DealStatus,
        resolution: DealResolution,
        now: datetime,
        has_affiliate: bool,
    ) -> Result[SettlementOutcome]:
        with deal_context(deal.id):
            moved = apply_status(deal, target, now)
            if not moved.is_ok:
                return moved
            closed = moved.value

            payouts = settle_payouts(
                closed.funded_cents, self._fee_config, resolution, has_affiliate
            )
            if not payouts.is_ok:
                return payouts

            settlement = payouts.value
            logger.info(
                "escrow.settled",
                status=closed.status,
                resolution=resolution.kind,
                **settlement.to_dict(),
            )
        return Ok(SettlementOutcome(deal=closed, settlement=settlement))
