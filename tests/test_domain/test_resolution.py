"""Tests for arbiter ticket validation and execution intents."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from trust_escrow.domain.enums import DealStatus, ErrorCode, ResolutionKind, TicketDecision
from trust_escrow.domain.resolution import (
    ExecutionIntent,
    ResolveTicket,
    resolve_dispute,
    validate_ticket,
)

NOW = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def ticket(anchor):
    """Factory for camelCase ticket payloads as sent by the signing service."""

    def _make(**overrides):
        payload = {
            "decision": "split",
            "percentToSeller": 70,
            "rationaleCid": anchor.v1(7),
            "confidence": 0.9,
            "signer": "arbiter-pubkey-01",
            "issuedAt": NOW - timedelta(minutes=1),
        }
        payload.update(overrides)
        return {key: value for key, value in payload.items() if value is not None}

    return _make


def _locs(result) -> set[str]:
    return {error["loc"] for error in result.error.details["errors"]}


class TestValidateTicket:
    def test_camel_case_payload(self, ticket) -> None:
        result = validate_ticket(ticket())
        assert result.is_ok
        assert result.value.percent_to_seller == 70
        assert result.value.decision == TicketDecision.SPLIT

    def test_snake_case_payload(self, anchor) -> None:
        result = validate_ticket(
            {
                "decision": "release",
                "rationale_cid": anchor.v0(7),
                "confidence": 1,
                "signer": "arbiter-pubkey-01",
                "issued_at": NOW,
            }
        )
        assert result.is_ok

    def test_model_passes_through(self, ticket) -> None:
        model = ResolveTicket.model_validate(ticket())
        assert validate_ticket(model).value is model

    def test_split_requires_percentage(self, ticket) -> None:
        result = validate_ticket(ticket(percentToSeller=None))
        assert result.code == ErrorCode.TICKET_INVALID

    def test_release_rejects_percentage(self, ticket) -> None:
        result = validate_ticket(ticket(decision="release"))
        assert result.code == ErrorCode.TICKET_INVALID

    @pytest.mark.parametrize("pct", [-1, 100.5])
    def test_percentage_range(self, ticket, pct) -> None:
        assert _locs(validate_ticket(ticket(percentToSeller=pct))) == {"percentToSeller"}

    def test_percentage_bounds_inclusive(self, ticket) -> None:
        assert validate_ticket(ticket(percentToSeller=0)).is_ok
        assert validate_ticket(ticket(percentToSeller=100)).is_ok

    def test_every_problem_reported(self, ticket) -> None:
        result = validate_ticket(
            ticket(decision="burn", rationaleCid="ipfs://nope", confidence=1.5, signer="")
        )
        assert _locs(result) == {"decision", "rationaleCid", "confidence", "signer"}

    def test_naive_issue_time(self, ticket) -> None:
        result = validate_ticket(ticket(issuedAt=datetime(2024, 1, 10)))
        assert _locs(result) == {"issuedAt"}

    def test_unknown_field_rejected(self, ticket) -> None:
        assert validate_ticket(ticket(bonus=1)).code == ErrorCode.TICKET_INVALID

    def test_non_mapping(self) -> None:
        assert validate_ticket(["split"]).code == ErrorCode.TICKET_INVALID


class TestExecutionIntent:
    def test_split_maps_to_buyer_share(self, make_deal) -> None:
        intent = ExecutionIntent(make_deal(), TicketDecision.SPLIT, split_pct=70)
        assert intent.resolution.kind == ResolutionKind.SPLIT
        assert intent.resolution.buyer_share_bps == 3_000
        assert intent.target_status == DealStatus.RELEASED

    def test_fractional_split(self, make_deal) -> None:
        intent = ExecutionIntent(make_deal(), TicketDecision.SPLIT, split_pct=33.33)
        assert intent.resolution.buyer_share_bps == 6_667

    def test_refund(self, make_deal) -> None:
        intent = ExecutionIntent(make_deal(), TicketDecision.REFUND)
        assert intent.resolution.kind == ResolutionKind.REFUND_TO_BUYER
        assert intent.target_status == DealStatus.REFUNDED

    def test_release(self, make_deal) -> None:
        intent = ExecutionIntent(make_deal(), TicketDecision.RELEASE)
        assert intent.resolution.kind == ResolutionKind.RELEASE_TO_SELLER
        assert intent.target_status == DealStatus.RELEASED


class TestResolveDispute:
    def test_disputed_deal_moves_to_resolved(self, make_deal, ticket) -> None:
        deal = make_deal(status=DealStatus.DISPUTED)
        result = resolve_dispute(deal, ticket(), NOW)

        assert result.is_ok
        intent = result.value
        assert intent.deal.status == DealStatus.RESOLVED
        assert intent.deal.updated_at == NOW
        assert intent.kind == TicketDecision.SPLIT
        assert intent.split_pct == 70
        assert intent.ticket.signer == "arbiter-pubkey-01"

    def test_invalid_ticket_leaves_deal_alone(self, make_deal, ticket) -> None:
        deal = make_deal(status=DealStatus.DISPUTED)
        result = resolve_dispute(deal, ticket(confidence=2), NOW)
        assert result.code == ErrorCode.TICKET_INVALID
        assert deal.status == DealStatus.DISPUTED

    def test_future_ticket(self, make_deal, ticket) -> None:
        deal = make_deal(status=DealStatus.DISPUTED)
        result = resolve_dispute(deal, ticket(issuedAt=NOW + timedelta(minutes=6)), NOW)
        assert result.code == ErrorCode.TICKET_INVALID

    def test_small_clock_skew_tolerated(self, make_deal, ticket) -> None:
        deal = make_deal(status=DealStatus.DISPUTED)
        assert resolve_dispute(deal, ticket(issuedAt=NOW + timedelta(minutes=4)), NOW).is_ok

    @pytest.mark.parametrize("status", [DealStatus.FUNDED, DealStatus.DELIVERED, DealStatus.RELEASED])
    def test_undisputed_deal_is_blocked(self, make_deal, ticket, status) -> None:
        result = resolve_dispute(make_deal(status=status), ticket(), NOW)
        assert result.code == ErrorCode.TRANSITION_BLOCKED

    def test_naive_clock(self, make_deal, ticket) -> None:
        deal = make_deal(status=DealStatus.DISPUTED)
        result = resolve_dispute(deal, ticket(), NOW.replace(tzinfo=None))
        assert result.code == ErrorCode.TIME_WINDOW
        assert deal.status == DealStatus.DISPUTED

    def test_already_resolved(self, make_deal, ticket) -> None:
        result = resolve_dispute(make_deal(status=DealStatus.RESOLVED), ticket(), NOW)
        assert result.code == ErrorCode.TICKET_INVALID
        assert result.error.message == "Deal is already resolved"
