"""Deal State Machine Guard.

Uses python-statemachine to enforce legal status transitions at the domain level.
No matter what a calling service asks for, an illegal transition
(e.g., INIT -> RELEASED) comes back as a TRANSITION_BLOCKED error.

The machine is instantiated per call and never holds deal data; deals stay
immutable and every successful transition yields a fresh record.

Transition table:
    INIT       -> FUNDED           (fund)
    FUNDED     -> DELIVERED        (deliver)
    FUNDED     -> DISPUTED         (dispute)
    DELIVERED  -> RELEASED         (release)
    DELIVERED  -> DISPUTED         (dispute)
    DISPUTED   -> RESOLVED         (resolve)
    RESOLVED   -> RELEASED         (release)   executing an arbiter decision
    RESOLVED   -> REFUNDED         (refund)    executing an arbiter decision
    RELEASED, REFUNDED: final

Temporal guards (checked after the table):
    * entering DISPUTED is allowed up to and including
      delivery_deadline + dispute_window_secs;
    * DELIVERED -> REFUNDED after the window has closed is a TIME_WINDOW error,
      while a late release is fine (silence after delivery favours the seller).
"""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta
from functools import lru_cache
from typing import TYPE_CHECKING

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from trust_escrow.domain.deal import validate_deal
from trust_escrow.domain.enums import DealStatus
from trust_escrow.domain.exceptions import TimeWindowError, TransitionBlockedError
from trust_escrow.domain.result import Err, Ok
from trust_escrow.domain.types import is_aware
from trust_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from trust_escrow.domain.deal import Deal
    from trust_escrow.domain.result import Result

logger = get_logger(__name__)


class DealStateMachine(StateMachine):
    """State machine that guards deal lifecycle transitions.

    Usage:
        sm = DealStateMachine(current_status="FUNDED")
        sm.deliver()         # transitions to DELIVERED
        sm.status            # "DELIVERED"
    """

    # --- States ---
    INIT = State("INIT", initial=True)
    FUNDED = State("FUNDED")
    DELIVERED = State("DELIVERED")
    DISPUTED = State("DISPUTED")
    RESOLVED = State("RESOLVED")
    RELEASED = State("RELEASED", final=True)
    REFUNDED = State("REFUNDED", final=True)

    # --- Events / Transitions ---

    fund = INIT.to(FUNDED)
    deliver = FUNDED.to(DELIVERED)
    dispute = FUNDED.to(DISPUTED) | DELIVERED.to(DISPUTED)
    resolve = DISPUTED.to(RESOLVED)

    # Settlement
    release = DELIVERED.to(RELEASED) | RESOLVED.to(RELEASED)
    refund = RESOLVED.to(REFUNDED)

    def __init__(self, current_status: str = "INIT") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current DealStatus value (e.g., "FUNDED").

        Raises:
            ValueError: If the status is not one of the machine's states.
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(f"Unknown status '{current_status}'. Valid states: {valid}")
        super().__init__(start_value=str(current_status))

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches DealStatus)."""
        return str(self.current_state.value)


# Each target status is reached by exactly one event.
EVENT_FOR_TARGET: dict[DealStatus, str] = {
    DealStatus.FUNDED: "fund",
    DealStatus.DELIVERED: "deliver",
    DealStatus.DISPUTED: "dispute",
    DealStatus.RESOLVED: "resolve",
    DealStatus.RELEASED: "release",
    DealStatus.REFUNDED: "refund",
}


def validate_transition(current_status: str, event_name: str) -> str:
    """Fire ``event_name`` on a temporary machine and return the new status.

    Raises:
        TransitionNotAllowed: If the event cannot fire from current_status.
        ValueError: If the status or event name is unknown.
    """
    sm = DealStateMachine(current_status=current_status)
    event_method = None
    if event_name in EVENT_FOR_TARGET.values():
        event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. Known events: {sorted(EVENT_FOR_TARGET.values())}"
        )
    event_method()
    return sm.status


@lru_cache(maxsize=None)
def allowed_transitions(status: DealStatus) -> frozenset[DealStatus]:
    """Statuses reachable from ``status`` in one step (identity excluded)."""
    reachable: set[DealStatus] = set()
    for event_name in sorted(set(EVENT_FOR_TARGET.values())):
        try:
            reachable.add(DealStatus(validate_transition(str(status), event_name)))
        except TransitionNotAllowed:
            continue
    return frozenset(reachable)


# ---------------------------------------------------------------------------
# Temporal guards
# ---------------------------------------------------------------------------


def dispute_window_end(deal: Deal) -> datetime:
    """Last instant (inclusive) at which a dispute may be opened."""
    return deal.delivery_deadline + timedelta(seconds=deal.dispute_window_secs)


def is_dispute_window_open(deal: Deal, now: datetime) -> bool:
    return now <= dispute_window_end(deal)


def check_time_window(deal: Deal, next_status: DealStatus, now: datetime) -> TimeWindowError | None:
    """Return the temporal violation for ``deal.status -> next_status``, if any.

    Two rules: DISPUTED cannot be entered after the window closes, and a
    DELIVERED deal cannot go straight to REFUNDED after it either. The second
    rule is unreachable through ``apply_status``, which rejects
    DELIVERED -> REFUNDED with TRANSITION_BLOCKED at the table check first; it
    is kept here so callers with a wider table get the same temporal answer.
    """
    window_end = dispute_window_end(deal)
    if next_status == DealStatus.DISPUTED and now > window_end:
        return TimeWindowError(
            "Dispute window has expired",
            window_end=window_end.isoformat(),
            now=now.isoformat(),
        )
    if (
        deal.status == DealStatus.DELIVERED
        and next_status == DealStatus.REFUNDED
        and now > window_end
    ):
        return TimeWindowError(
            "Refund without resolution is not allowed after the dispute window",
            window_end=window_end.isoformat(),
            now=now.isoformat(),
        )
    return None


# ---------------------------------------------------------------------------
# Transition function
# ---------------------------------------------------------------------------


def apply_status(deal: Deal, next_status: DealStatus | str, now: datetime) -> Result[Deal]:
    """Move a deal to ``next_status`` at time ``now``.

    Steps:
        1. Validate the deal structurally.
        2. Same status: return an unchanged copy.
        3. Reject targets outside the transition table (TRANSITION_BLOCKED).
        4-5. Apply the dispute-window guards (TIME_WINDOW).
        6. Return a new deal with the new status and ``updated_at = now``.

    Args:
        deal: The current deal record. Never modified.
        next_status: Requested status.
        now: Current time, timezone-aware. Never read from a clock here.
    """
    validated = validate_deal(deal)
    if not validated.is_ok:
        return validated

    current = DealStatus(deal.status)
    try:
        target = DealStatus(next_status)
    except ValueError:
        logger.debug("deal.unknown_target", deal_id=deal.id, target=str(next_status))
        return Err(TransitionBlockedError(current, str(next_status)))

    if target == current:
        return Ok(dataclasses.replace(deal))

    if not is_aware(now):
        return Err(TimeWindowError("Current time must be a timezone-aware datetime"))

    if target not in allowed_transitions(current):
        logger.debug(
            "deal.transition_blocked", deal_id=deal.id, current=current, attempted=target
        )
        return Err(TransitionBlockedError(current, target))

    window_error = check_time_window(deal, target, now)
    if window_error is not None:
        logger.debug(
            "deal.time_window_rejected",
            deal_id=deal.id,
            current=current,
            attempted=target,
            **window_error.details,
        )
        return Err(window_error)

    new_status = DealStatus(validate_transition(current, EVENT_FOR_TARGET[target]))
    return Ok(dataclasses.replace(deal, status=new_status, updated_at=now))
