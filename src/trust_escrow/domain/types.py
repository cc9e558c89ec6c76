"""Identifier and money types.

DealId and UserId are NewTypes: a static type checker refuses to pass a plain
``str`` (or a DealId) where a UserId is expected, while at runtime they are
ordinary strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import NewType

from trust_escrow.domain.enums import Currency

DealId = NewType("DealId", str)
UserId = NewType("UserId", str)

@dataclass(frozen=True, slots=True)
class Amount:
    """Money in the smallest unit of its currency (cents, lamports, ...).

    Never a float. Python ints are arbitrary precision, so arithmetic on
    ``value`` is exact.
    """

    value: int
    currency: Currency = Currency.USD

    @property
    def is_positive(self) -> bool:
        return self.value > 0

    @classmethod
    def usd_cents(cls, dollars: Decimal) -> Amount:
        """Convert a dollar price to exact integer cents.

        Raises:
            ValueError: If the price is not finite or has sub-cent precision.
        """
        dollars = Decimal(dollars)
        if not dollars.is_finite():
            raise ValueError(f"price is not a finite number: {dollars}")
        if has_sub_cent_precision(dollars):
            raise ValueError(f"price has sub-cent precision: {dollars}")
        sign, digits, exponent = dollars.as_tuple()
        coefficient = int("".join(map(str, digits)))
        shift = exponent + 2
        # Integer arithmetic only: Decimal multiplication rounds past 28 digits.
        if shift >= 0:
            cents = coefficient * 10**shift
        else:
            cents = coefficient // 10**-shift
        return cls(value=-cents if sign else cents, currency=Currency.USD)


def is_aware(value: object) -> bool:
    """True for a datetime that carries a UTC offset."""
    return isinstance(value, datetime) and value.utcoffset() is not None


def has_digits_below(value: Decimal, places: int) -> bool:
    """True when a finite Decimal has a non-zero digit past ``places`` decimals.

    Reads the digit tuple directly, so it is exact at any magnitude.
    """
    _, digits, exponent = value.as_tuple()
    if not isinstance(exponent, int) or exponent >= -places:
        return False
    return any(digits[-(-places - exponent) :])


def has_sub_cent_precision(dollars: Decimal) -> bool:
    return has_digits_below(dollars, 2)
