"""Tagged success/failure container returned by every public core function.

Usage:
    result = apply_status(deal, DealStatus.FUNDED, now)
    if not result.is_ok:
        logger.info("deal.rejected", **result.error.to_dict())
        return result
    deal = result.value

Callers that prefer exceptions can call ``result.unwrap()``, which raises the
carried EscrowError on failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, NoReturn, TypeVar, Union

if TYPE_CHECKING:
    from trust_escrow.domain.enums import ErrorCode
    from trust_escrow.domain.exceptions import EscrowError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err:
    error: EscrowError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    def unwrap(self) -> NoReturn:
        raise self.error


Result = Union[Ok[T], Err]
