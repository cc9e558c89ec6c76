"""Price negotiation before a deal is funded.

Parties trade offers on a fixed set of terms, identified by ``terms_hash``;
only the amount moves. Every offer carries its own expiry, and a counter-offer
restarts the clock. Offers are immutable: each operation returns new values.
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from trust_escrow.domain.enums import OfferState
from trust_escrow.domain.exceptions import (
    DealInvalidError,
    TimeWindowError,
    UnsupportedActionError,
)
from trust_escrow.domain.result import Err, Ok, Result
from trust_escrow.domain.types import is_aware
from trust_escrow.logging_config import get_logger

logger = get_logger(__name__)

# Set by a party and never changed by the clock.
_SETTLED_STATES = frozenset({OfferState.COUNTERED, OfferState.ACCEPTED, OfferState.REJECTED})


@dataclass(frozen=True, slots=True)
class Offer:
    """
    Attributes:
        id: Offer identifier.
        amount_cents: Proposed price in cents.
        terms_hash: Digest of the deal terms the amount applies to.
        created_at: When the offer was made.
        expires_at: Last instant the offer can be accepted.
        state: OPEN until a party acts on it.
    """

    id: str
    amount_cents: int
    terms_hash: str
    created_at: datetime
    expires_at: datetime
    state: OfferState = OfferState.OPEN


@dataclass(frozen=True, slots=True)
class CounterOffer:
    """The original offer marked COUNTERED, and the offer that replaces it."""

    superseded: Offer
    offer: Offer


def _clock_error(now: object) -> TimeWindowError | None:
    if not is_aware(now):
        return TimeWindowError("Current time must be a timezone-aware datetime")
    return None


def _check_terms(amount_cents: object, duration_secs: object) -> DealInvalidError | None:
    if not isinstance(amount_cents, int) or isinstance(amount_cents, bool) or amount_cents <= 0:
        return DealInvalidError(
            "Offer amount must be a positive number of cents",
            field="amount_cents",
            value=str(amount_cents),
        )
    if not isinstance(duration_secs, int) or isinstance(duration_secs, bool) or duration_secs <= 0:
        return DealInvalidError(
            "Offer duration must be a positive number of seconds",
            field="duration_secs",
            value=str(duration_secs),
        )
    return None


def offer_status(offer: Offer, now: datetime) -> Result[OfferState]:
    """State of ``offer`` at ``now``.

    COUNTERED, ACCEPTED and REJECTED stand regardless of time. An OPEN offer
    reads as EXPIRED once ``now`` is past ``expires_at``.
    """
    error = _clock_error(now)
    if error is not None:
        return Err(error)
    if offer.state in _SETTLED_STATES:
        return Ok(offer.state)
    if now > offer.expires_at:
        return Ok(OfferState.EXPIRED)
    return Ok(OfferState.OPEN)


def make_offer(
    amount_cents: int,
    terms_hash: str,
    duration_secs: int,
    now: datetime,
    offer_id: str | None = None,
) -> Result[Offer]:
    error = _clock_error(now) or _check_terms(amount_cents, duration_secs)
    if error is None and (not isinstance(terms_hash, str) or not terms_hash.strip()):
        error = DealInvalidError("Terms hash must be a non-empty string", field="terms_hash")
    if error is not None:
        return Err(error)
    return Ok(
        Offer(
            id=offer_id or str(uuid.uuid4()),
            amount_cents=amount_cents,
            terms_hash=terms_hash,
            created_at=now,
            expires_at=now + timedelta(seconds=duration_secs),
        )
    )


def counter_offer(
    original: Offer,
    new_amount_cents: int,
    duration_secs: int,
    now: datetime,
    offer_id: str | None = None,
) -> Result[CounterOffer]:
    """Answer ``original`` with a new amount on the same terms.

    The new offer keeps ``terms_hash``, gets a fresh id, and expires
    ``duration_secs`` after ``now``. An expired offer can still be countered;
    an accepted, rejected or already countered one cannot.
    """
    status = offer_status(original, now)
    if not status.is_ok:
        return status
    if status.value in _SETTLED_STATES:
        return Err(
            UnsupportedActionError(
                "counter_offer", f"Cannot counter a {status.value.lower()} offer"
            )
        )

    created = make_offer(new_amount_cents, original.terms_hash, duration_secs, now, offer_id)
    if not created.is_ok:
        return created

    logger.info(
        "offer.countered",
        offer_id=original.id,
        counter_id=created.value.id,
        amount_cents=new_amount_cents,
    )
    return Ok(
        CounterOffer(
            superseded=dataclasses.replace(original, state=OfferState.COUNTERED),
            offer=created.value,
        )
    )


def accept_offer(offer: Offer, now: datetime) -> Result[Offer]:
    """Accept an open offer. Accepting an accepted offer is a no-op."""
    status = offer_status(offer, now)
    if not status.is_ok:
        return status
    if status.value == OfferState.ACCEPTED:
        return Ok(offer)
    if status.value == OfferState.EXPIRED:
        return Err(
            TimeWindowError(
                "Offer has expired", offer_id=offer.id, expires_at=offer.expires_at.isoformat()
            )
        )
    if status.value != OfferState.OPEN:
        return Err(
            UnsupportedActionError("accept_offer", f"Cannot accept a {status.value.lower()} offer")
        )
    logger.info("offer.accepted", offer_id=offer.id, amount_cents=offer.amount_cents)
    return Ok(dataclasses.replace(offer, state=OfferState.ACCEPTED))


def reject_offer(offer: Offer, now: datetime) -> Result[Offer]:
    status = offer_status(offer, now)
    if not status.is_ok:
        return status
    if status.value == OfferState.REJECTED:
        return Ok(offer)
    if status.value in _SETTLED_STATES:
        return Err(
            UnsupportedActionError("reject_offer", f"Cannot reject a {status.value.lower()} offer")
        )
    return Ok(dataclasses.replace(offer, state=OfferState.REJECTED))
