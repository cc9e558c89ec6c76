"""Deterministic payout and fee calculator. No chain, no DB, no I/O.

All amounts are integers in the smallest currency unit. Every division is
floor division on non-negative integers, and every remainder is absorbed by a
named party, so the parts of a settlement always add back up to the escrowed
amount.

One calculator, ``settle_payouts``, supports base fee extraction, an optional
affiliate carve-out of that fee, and a release/refund/split of the net.
``calculate_payouts`` and ``compute_payouts`` are the two narrower views on it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from trust_escrow.domain.enums import ResolutionKind
from trust_escrow.domain.exceptions import PayoutInvalidError, UnsupportedActionError
from trust_escrow.domain.result import Err, Ok
from trust_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from trust_escrow.domain.result import Result

logger = get_logger(__name__)

# 1 basis point = 0.01%
BPS_DIVISOR = 10_000
DEFAULT_BUYER_SHARE_BPS = 5_000


@dataclass(frozen=True, slots=True)
class FeeConfig:
    """Platform fee schedule.

    Attributes:
        base_rate_bps: Fee rate on the gross amount, e.g. 100 (1%).
        min_fee_cents: Fee floor, e.g. 500 ($5.00).
        max_fee_cents: Fee ceiling, e.g. 100000 ($1000.00). None for no ceiling.
        affiliate_share_bps: Share of the fee paid to an affiliate, e.g. 2000
            (20% of the platform fee).
    """

    base_rate_bps: int
    min_fee_cents: int = 0
    max_fee_cents: int | None = None
    affiliate_share_bps: int = 0


@dataclass(frozen=True, slots=True)
class DealFunding:
    amount_total: int
    protocol_fee_bps: int


@dataclass(frozen=True, slots=True)
class DealResolution:
    """How the net amount is divided.

    ``buyer_share_bps`` is only read for SPLIT; the seller gets the rest.
    """

    kind: ResolutionKind
    buyer_share_bps: int | None = None


@dataclass(frozen=True, slots=True)
class Settlement:
    """Full result of the unified calculator."""

    total: int
    protocol_fee: int
    platform_net: int
    affiliate_reward: int
    seller_payout: int
    buyer_refund: int

    @property
    def net(self) -> int:
        return self.total - self.protocol_fee

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "protocol_fee": self.protocol_fee,
            "platform_net": self.platform_net,
            "affiliate_reward": self.affiliate_reward,
            "seller_payout": self.seller_payout,
            "buyer_refund": self.buyer_refund,
        }


@dataclass(frozen=True, slots=True)
class PayoutDistribution:
    total_escrow: int
    platform_net: int
    affiliate_reward: int
    seller_receivable: int


@dataclass(frozen=True, slots=True)
class PayoutBreakdown:
    buyer_refund: int
    seller_payout: int
    protocol_fee: int


# ---------------------------------------------------------------------------
# Input checks
# ---------------------------------------------------------------------------


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_bps(value: object, name: str) -> PayoutInvalidError | None:
    if not _is_int(value) or not 0 <= value <= BPS_DIVISOR:
        return PayoutInvalidError(
            f"{name} must be an integer between 0 and {BPS_DIVISOR}", field=name, value=value
        )
    return None


def _check_amount(amount: object) -> PayoutInvalidError | None:
    if not _is_int(amount) or amount < 0:
        return PayoutInvalidError(
            "amount must be a non-negative integer of smallest units", value=str(amount)
        )
    return None


def _check_fee_config(config: FeeConfig) -> PayoutInvalidError | None:
    for name in ("base_rate_bps", "affiliate_share_bps"):
        error = _check_bps(getattr(config, name), name)
        if error is not None:
            return error
    if not _is_int(config.min_fee_cents) or config.min_fee_cents < 0:
        return PayoutInvalidError("min_fee_cents must be a non-negative integer")
    if config.max_fee_cents is not None:
        if not _is_int(config.max_fee_cents) or config.max_fee_cents < config.min_fee_cents:
            return PayoutInvalidError(
                "max_fee_cents must be an integer no smaller than min_fee_cents",
                min_fee_cents=config.min_fee_cents,
                max_fee_cents=config.max_fee_cents,
            )
    return None


def _fee_for(amount: int, config: FeeConfig) -> int:
    fee = amount * config.base_rate_bps // BPS_DIVISOR
    fee = max(fee, config.min_fee_cents)
    if config.max_fee_cents is not None:
        fee = min(fee, config.max_fee_cents)
    # Fee stays within [min_fee_cents, max_fee_cents] only while amount >= min_fee_cents.
    # Below that the whole amount becomes the fee and both payouts are 0.
    return min(fee, amount)


# ---------------------------------------------------------------------------
# Calculators
# ---------------------------------------------------------------------------


def settle_payouts(
    amount: int,
    fee_config: FeeConfig,
    resolution: DealResolution,
    has_affiliate: bool = False,
) -> Result[Settlement]:
    """Split an escrowed amount between seller, buyer, platform and affiliate.

    Steps:
        1. fee = floor(amount * base_rate_bps / 10000), clamped to
           [min_fee_cents, max_fee_cents] and never above the amount.
        2. affiliate_reward = floor(fee * affiliate_share_bps / 10000) when an
           affiliate is attached; platform_net = fee - affiliate_reward.
        3. net = amount - fee goes to the seller (release), the buyer (refund),
           or is split with the buyer taking floor(net * buyer_share_bps / 10000)
           and the seller the remainder.

    Returns:
        Ok(Settlement) where buyer_refund + seller_payout + protocol_fee == amount,
        Err(PAYOUT_INVALID) for bad inputs, Err(UNSUPPORTED_ACTION) for an
        unknown resolution kind.
    """
    error = _check_amount(amount) or _check_fee_config(fee_config)
    if error is not None:
        return Err(error)

    try:
        kind = ResolutionKind(resolution.kind)
    except ValueError:
        return Err(UnsupportedActionError(str(resolution.kind), "Unhandled resolution kind"))

    fee = _fee_for(amount, fee_config)
    affiliate_reward = fee * fee_config.affiliate_share_bps // BPS_DIVISOR if has_affiliate else 0
    net = amount - fee

    if kind == ResolutionKind.RELEASE_TO_SELLER:
        seller_payout, buyer_refund = net, 0
    elif kind == ResolutionKind.REFUND_TO_BUYER:
        seller_payout, buyer_refund = 0, net
    elif kind == ResolutionKind.SPLIT:
        buyer_share_bps = resolution.buyer_share_bps
        if buyer_share_bps is None:
            buyer_share_bps = DEFAULT_BUYER_SHARE_BPS
        error = _check_bps(buyer_share_bps, "buyer_share_bps")
        if error is not None:
            return Err(error)
        buyer_refund = net * buyer_share_bps // BPS_DIVISOR
        seller_payout = net - buyer_refund
    else:
        return Err(UnsupportedActionError(str(kind), "Unhandled resolution kind"))

    settlement = Settlement(
        total=amount,
        protocol_fee=fee,
        platform_net=fee - affiliate_reward,
        affiliate_reward=affiliate_reward,
        seller_payout=seller_payout,
        buyer_refund=buyer_refund,
    )
    logger.debug("payout.settled", kind=kind, **settlement.to_dict())
    return Ok(settlement)


def calculate_payouts(
    amount_cents: int, config: FeeConfig, has_affiliate: bool
) -> Result[PayoutDistribution]:
    """Fee-with-affiliate view: who gets what when a deal completes normally.

    The seller pays the fee out of the gross amount, and the affiliate reward
    is carved out of the fee, so
    platform_net + affiliate_reward + seller_receivable == amount_cents.
    """
    result = settle_payouts(
        amount_cents, config, DealResolution(ResolutionKind.RELEASE_TO_SELLER), has_affiliate
    )
    if not result.is_ok:
        return result
    settlement = result.value
    return Ok(
        PayoutDistribution(
            total_escrow=settlement.total,
            platform_net=settlement.platform_net,
            affiliate_reward=settlement.affiliate_reward,
            seller_receivable=settlement.seller_payout,
        )
    )


def compute_payouts(funding: DealFunding, resolution: DealResolution) -> Result[PayoutBreakdown]:
    """Three-way release/refund/split view with a flat protocol fee.

    Example:
        amount_total=10000, protocol_fee_bps=500, split with buyer_share_bps=3000
        -> fee 500, net 9500, buyer_refund 2850, seller_payout 6650.
    """
    error = _check_bps(funding.protocol_fee_bps, "protocol_fee_bps")
    if error is not None:
        return Err(error)
    result = settle_payouts(
        funding.amount_total, FeeConfig(base_rate_bps=funding.protocol_fee_bps), resolution
    )
    if not result.is_ok:
        return result
    settlement = result.value
    return Ok(
        PayoutBreakdown(
            buyer_refund=settlement.buyer_refund,
            seller_payout=settlement.seller_payout,
            protocol_fee=settlement.protocol_fee,
        )
    )
