"""Domain errors for the escrow core.

These classes represent business rule violations. Core functions do not raise
them: they are constructed and returned inside an ``Err`` (see domain/result.py)
so callers branch on the stable ``code``. ``Err.unwrap()`` is the only place
one is raised.
"""

from __future__ import annotations

from typing import Any

from trust_escrow.domain.enums import ErrorCode


class EscrowError(Exception):
    """Base error value for all domain failures."""

    code: ErrorCode = ErrorCode.DEAL_INVALID

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode | None = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Loggable shape for API/UI layers. Never carries stack traces."""
        return {"code": str(self.code), "message": self.message, "details": self.details}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EscrowError):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = Exception.__hash__


# --- Deal Errors ---


class DealInvalidError(EscrowError):
    """A deal record breaks a structural invariant (bad price, missing id, ...)."""

    code = ErrorCode.DEAL_INVALID

    def __init__(self, message: str, field: str | None = None, **details: Any) -> None:
        if field is not None:
            details["field"] = field
        super().__init__(message=message, details=details)


# --- State Machine Errors ---


class TransitionBlockedError(EscrowError):
    """Raised-as-value when a status change is not in the transition table.

    Example: INIT -> RELEASED (must be funded and delivered first)
    """

    code = ErrorCode.TRANSITION_BLOCKED

    def __init__(self, from_status: str, to_status: str) -> None:
        super().__init__(
            message=f"Transition not allowed: {from_status} -> {to_status}",
            details={"from": str(from_status), "to": str(to_status)},
        )
        self.from_status = from_status
        self.to_status = to_status


class TimeWindowError(EscrowError):
    """A transition was requested outside its permitted temporal window."""

    code = ErrorCode.TIME_WINDOW

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message=message, details=details)


# --- Evidence / Ticket Errors ---


class EvidencePolicyError(EscrowError):
    """Evidence reference fails anchor-format, MIME, or size checks."""

    code = ErrorCode.EVIDENCE_POLICY

    def __init__(self, message: str, errors: list[str] | None = None, **details: Any) -> None:
        if errors is not None:
            details["errors"] = errors
        super().__init__(message=message, details=details)


class TicketInvalidError(EscrowError):
    """Arbiter ticket fails schema or coherence checks."""

    code = ErrorCode.TICKET_INVALID

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message=message, details={"errors": errors or []})


class ClaimInvalidError(EscrowError):
    """A party's dispute claim fails schema checks."""

    code = ErrorCode.CLAIM_INVALID

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message=message, details={"errors": errors or []})


# --- Payout Errors ---


class PayoutInvalidError(EscrowError):
    """Payout calculator input is out of range (negative amount, bad bps)."""

    code = ErrorCode.PAYOUT_INVALID

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message=message, details=details)


class UnsupportedActionError(EscrowError):
    """Caller requested an operation with no defined semantics."""

    code = ErrorCode.UNSUPPORTED_ACTION

    def __init__(self, action: str, message: str | None = None) -> None:
        super().__init__(
            message=message or f"Unsupported action: {action}",
            details={"action": str(action)},
        )
        self.action = action
