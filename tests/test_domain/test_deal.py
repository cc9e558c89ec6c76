"""Tests for deal structural validation.

validate_deal is fail-fast (first violation only); collect_deal_violations
reports everything.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from trust_escrow.domain.deal import collect_deal_violations, validate_deal
from trust_escrow.domain.enums import DealStatus, ErrorCode
from trust_escrow.domain.types import Amount


def _field(result) -> str:
    assert not result.is_ok
    assert result.code == ErrorCode.DEAL_INVALID
    return result.error.details["field"]


class TestValidDeals:
    def test_funded_deal_is_valid(self, make_deal) -> None:
        deal = make_deal()
        result = validate_deal(deal)
        assert result.is_ok
        assert result.value is deal

    def test_init_deal_without_buyer_is_valid(self, make_deal) -> None:
        assert validate_deal(make_deal(status=DealStatus.INIT, buyer=None)).is_ok

    def test_funded_price_equal_to_price(self, make_deal) -> None:
        assert validate_deal(make_deal(funded_price_usd=Decimal("100.00"))).is_ok

    def test_price_cents(self, make_deal) -> None:
        assert make_deal(price_usd=Decimal("12.34")).price_cents == 1234

    def test_funded_cents_falls_back_to_price(self, make_deal) -> None:
        assert make_deal().funded_cents == 10_000


class TestIdentifiers:
    def test_empty_id(self, make_deal) -> None:
        assert _field(validate_deal(make_deal(id=""))) == "id"

    def test_blank_seller(self, make_deal) -> None:
        assert _field(validate_deal(make_deal(seller="   "))) == "seller"


class TestPrice:
    @pytest.mark.parametrize("price", [Decimal("0"), Decimal("-5.00"), Decimal("NaN")])
    def test_non_positive_price(self, make_deal, price) -> None:
        assert _field(validate_deal(make_deal(price_usd=price))) == "price_usd"

    def test_sub_cent_price(self, make_deal) -> None:
        assert _field(validate_deal(make_deal(price_usd=Decimal("10.005")))) == "price_usd"

    def test_float_price_rejected(self, make_deal) -> None:
        assert _field(validate_deal(make_deal(price_usd=10.5))) == "price_usd"

    def test_funded_price_mismatch(self, make_deal) -> None:
        result = validate_deal(make_deal(funded_price_usd=Decimal("99.99")))
        assert _field(result) == "funded_price_usd"
        assert result.error.details["price_usd"] == "100.00"

    def test_funded_price_must_be_positive(self, make_deal) -> None:
        assert _field(validate_deal(make_deal(funded_price_usd=Decimal("0")))) == "funded_price_usd"

    def test_price_beyond_decimal_context_precision(self, make_deal) -> None:
        deal = make_deal(price_usd=Decimal("1E+27"))
        assert validate_deal(deal).is_ok
        assert deal.price_cents == 10**29

    def test_long_price_with_sub_cent_digit(self, make_deal) -> None:
        price = Decimal("1234567890123456789012345678.915")
        assert _field(validate_deal(make_deal(price_usd=price))) == "price_usd"

    def test_trailing_zeros_below_cent_are_whole_cents(self, make_deal) -> None:
        assert validate_deal(make_deal(price_usd=Decimal("100.0000"))).is_ok

    def test_integer_price(self, make_deal) -> None:
        deal = make_deal(price_usd=100)
        assert validate_deal(deal).is_ok
        assert deal.price_cents == 10_000


class TestTiming:
    def test_naive_deadline(self, make_deal) -> None:
        deal = make_deal(delivery_deadline=datetime(2024, 1, 10))
        assert _field(validate_deal(deal)) == "delivery_deadline"

    def test_string_deadline(self, make_deal) -> None:
        deal = make_deal(delivery_deadline="2024-01-10T00:00:00Z")
        assert _field(validate_deal(deal)) == "delivery_deadline"

    @pytest.mark.parametrize("window", [0, -1, True, 3.5])
    def test_bad_dispute_window(self, make_deal, window) -> None:
        assert _field(validate_deal(make_deal(dispute_window_secs=window))) == "dispute_window_secs"


class TestStatusAndParties:
    def test_unknown_status(self, make_deal) -> None:
        assert _field(validate_deal(make_deal(status="PENDING"))) == "status"

    def test_raw_string_status_accepted(self, make_deal) -> None:
        assert validate_deal(make_deal(status="FUNDED")).is_ok

    @pytest.mark.parametrize("status", [s for s in DealStatus if s != DealStatus.INIT])
    def test_buyer_required_after_init(self, make_deal, status) -> None:
        assert _field(validate_deal(make_deal(status=status, buyer=None))) == "buyer"


class TestEvidence:
    def test_duplicate_evidence(self, make_deal, anchors) -> None:
        deal = make_deal(evidence_cids=(anchors[0], anchors[1], anchors[0]))
        result = validate_deal(deal)
        assert _field(result) == "evidence_cids"
        assert result.error.details["index"] == 2

    def test_empty_evidence_entry(self, make_deal, anchors) -> None:
        assert _field(validate_deal(make_deal(evidence_cids=(anchors[0], "")))) == "evidence_cids"

    def test_unique_evidence_is_valid(self, make_deal, anchors) -> None:
        assert validate_deal(make_deal(evidence_cids=tuple(anchors))).is_ok


class TestReportingPolicy:
    def test_first_violation_wins(self, make_deal) -> None:
        deal = make_deal(id="", price_usd=Decimal("0"), dispute_window_secs=0)
        assert _field(validate_deal(deal)) == "id"

    def test_collect_reports_everything(self, make_deal) -> None:
        deal = make_deal(id="", price_usd=Decimal("0"), dispute_window_secs=0)
        violations = collect_deal_violations(deal)
        assert len(violations) == 3

    def test_collect_empty_for_valid_deal(self, make_deal) -> None:
        assert collect_deal_violations(make_deal()) == []


class TestAmount:
    def test_usd_cents_exact(self) -> None:
        assert Amount.usd_cents(Decimal("1234.56")).value == 123_456

    def test_usd_cents_rejects_sub_cent(self) -> None:
        with pytest.raises(ValueError, match="sub-cent"):
            Amount.usd_cents(Decimal("0.001"))

    def test_usd_cents_long_value_is_exact(self) -> None:
        price = Decimal("1234567890123456789012345678.91")
        assert Amount.usd_cents(price).value == 123456789012345678901234567891

    def test_usd_cents_rejects_non_finite(self) -> None:
        with pytest.raises(ValueError, match="finite"):
            Amount.usd_cents(Decimal("Infinity"))

    def test_positive(self) -> None:
        assert Amount(1).is_positive
        assert not Amount(0).is_positive
