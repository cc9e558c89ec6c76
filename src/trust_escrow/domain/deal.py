"""Deal record and structural validation.

A Deal is plain immutable data. It is created once in INIT and only ever
"changed" by producing a new, validated copy through
``state_machine.apply_status``.

Validation policy:
    ``validate_deal`` is fail-fast and reports the first violation as a single
    DEAL_INVALID error. ``collect_deal_violations`` runs every check and returns
    all messages, for callers that show field errors together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from trust_escrow.domain.enums import DealStatus
from trust_escrow.domain.exceptions import DealInvalidError
from trust_escrow.domain.result import Err, Ok
from trust_escrow.domain.types import Amount, DealId, UserId, has_sub_cent_precision, is_aware

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from trust_escrow.domain.result import Result


@dataclass(frozen=True)
class Deal:
    """An escrow agreement between a buyer and a seller.

    Attributes:
        id: Deal identifier.
        seller: Seller user id.
        buyer: Buyer user id. May be None only while status is INIT.
        price_usd: Agreed price in dollars. Must be positive, whole cents.
        delivery_deadline: Timezone-aware deadline for delivery.
        dispute_window_secs: Seconds after the deadline during which a
            dispute may still be opened.
        status: Current lifecycle status.
        evidence_cids: Ordered, unique content anchors attached to the deal.
        funded_price_usd: Amount actually escrowed. Equals price_usd once set.
    """

    id: DealId
    seller: UserId
    price_usd: Decimal
    delivery_deadline: datetime
    dispute_window_secs: int
    status: DealStatus = DealStatus.INIT
    buyer: UserId | None = None
    evidence_cids: tuple[str, ...] = field(default_factory=tuple)
    funded_price_usd: Decimal | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def price_cents(self) -> int:
        """Exact price in integer cents. Only meaningful on a validated deal."""
        return Amount.usd_cents(self.price_usd).value

    @property
    def funded_cents(self) -> int:
        """Escrowed amount in cents, falling back to the price when unset."""
        funded = self.funded_price_usd if self.funded_price_usd is not None else self.price_usd
        return Amount.usd_cents(funded).value


# ---------------------------------------------------------------------------
# Individual checks. Each yields a DealInvalidError per violation found.
# ---------------------------------------------------------------------------


def _check_identifiers(deal: Deal) -> Iterator[DealInvalidError]:
    if not isinstance(deal.id, str) or not deal.id.strip():
        yield DealInvalidError("Deal id must be a non-empty string", field="id")
    if not isinstance(deal.seller, str) or not deal.seller.strip():
        yield DealInvalidError("Seller must be a non-empty string", field="seller")


def _check_money(value: object, name: str) -> DealInvalidError | None:
    if not isinstance(value, Decimal | int) or isinstance(value, bool):
        return DealInvalidError(f"{name} must be a Decimal", field=name)
    value = Decimal(value)
    if not value.is_finite() or value <= 0:
        return DealInvalidError(f"{name} must be greater than 0", field=name, value=str(value))
    if has_sub_cent_precision(value):
        return DealInvalidError(
            f"{name} cannot have sub-cent precision", field=name, value=str(value)
        )
    return None


def _check_price(deal: Deal) -> Iterator[DealInvalidError]:
    error = _check_money(deal.price_usd, "price_usd")
    if error is not None:
        yield error
        return
    if deal.funded_price_usd is None:
        return
    error = _check_money(deal.funded_price_usd, "funded_price_usd")
    if error is not None:
        yield error
    elif Decimal(deal.funded_price_usd) != Decimal(deal.price_usd):
        yield DealInvalidError(
            "Funded price must equal the deal price",
            field="funded_price_usd",
            price_usd=str(deal.price_usd),
            funded_price_usd=str(deal.funded_price_usd),
        )


def _check_deadline(deal: Deal) -> Iterator[DealInvalidError]:
    deadline = deal.delivery_deadline
    if not isinstance(deadline, datetime):
        yield DealInvalidError("Delivery deadline must be a datetime", field="delivery_deadline")
    elif not is_aware(deadline):
        yield DealInvalidError(
            "Delivery deadline must be timezone-aware", field="delivery_deadline"
        )


def _check_window(deal: Deal) -> Iterator[DealInvalidError]:
    window = deal.dispute_window_secs
    if not isinstance(window, int) or isinstance(window, bool) or window <= 0:
        yield DealInvalidError(
            "Dispute window must be a positive integer number of seconds",
            field="dispute_window_secs",
        )


def _check_status(deal: Deal) -> Iterator[DealInvalidError]:
    if deal.status not in DealStatus.__members__.values():
        yield DealInvalidError(
            f"Unknown status '{deal.status}'", field="status", status=str(deal.status)
        )


def _check_evidence(deal: Deal) -> Iterator[DealInvalidError]:
    cids = deal.evidence_cids
    if cids is None:
        return
    if not isinstance(cids, tuple | list):
        yield DealInvalidError("Evidence CIDs must be a sequence", field="evidence_cids")
        return
    seen: set[str] = set()
    for index, cid in enumerate(cids):
        if not isinstance(cid, str) or not cid:
            yield DealInvalidError(
                f"Evidence CID at index {index} must be a non-empty string",
                field="evidence_cids",
                index=index,
            )
        elif cid in seen:
            yield DealInvalidError(
                f"Duplicate evidence CID at index {index}",
                field="evidence_cids",
                index=index,
                cid=cid,
            )
        else:
            seen.add(cid)


def _check_buyer(deal: Deal) -> Iterator[DealInvalidError]:
    if deal.status == DealStatus.INIT:
        if deal.buyer is not None and (not isinstance(deal.buyer, str) or not deal.buyer.strip()):
            yield DealInvalidError("Buyer must be a non-empty string when set", field="buyer")
        return
    if not isinstance(deal.buyer, str) or not deal.buyer.strip():
        yield DealInvalidError(
            f"Buyer must be set once a deal leaves INIT (status {deal.status})",
            field="buyer",
        )


_CHECKS: tuple[Callable[[Deal], Iterator[DealInvalidError]], ...] = (
    _check_identifiers,
    _check_price,
    _check_deadline,
    _check_window,
    _check_status,
    _check_evidence,
    _check_buyer,
)


def validate_deal(deal: Deal) -> Result[Deal]:
    """Check a deal's structural invariants, stopping at the first violation.

    Order: identifiers, price (and funded price), deadline, dispute window,
    status, evidence references, buyer presence after INIT.
    """
    for check in _CHECKS:
        for error in check(deal):
            return Err(error)
    return Ok(deal)


def collect_deal_violations(deal: Deal) -> list[str]:
    """Run every check and return all violation messages (empty when valid)."""
    return [error.message for check in _CHECKS for error in check(deal)]
