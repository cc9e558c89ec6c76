"""Milestone schedules for deals paid out in stages.

A deal's value can be split into milestones numbered 1..n. The set must add
up to the deal value exactly, and work proceeds strictly in order: milestone
k may start only once milestone k-1 has been approved.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from trust_escrow.domain.enums import MilestoneStatus
from trust_escrow.domain.exceptions import DealInvalidError, TransitionBlockedError
from trust_escrow.domain.result import Err, Ok, Result
from trust_escrow.logging_config import get_logger

logger = get_logger(__name__)


class Milestone(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, extra="forbid"
    )

    id: str = Field(..., min_length=1)
    title: str
    amount_cents: int = Field(..., gt=0, strict=True)
    status: MilestoneStatus = MilestoneStatus.PENDING
    order: int = Field(..., strict=True)


def parse_milestones(
    raw: Sequence[Milestone | Mapping[str, Any]],
) -> Result[tuple[Milestone, ...]]:
    """Build Milestone models from payloads, reporting every bad entry.

    Mappings may use camelCase (``amountCents``) or snake_case keys.
    """
    parsed: list[Milestone] = []
    errors: list[str] = []
    for index, item in enumerate(raw):
        if isinstance(item, Milestone):
            parsed.append(item)
            continue
        if not isinstance(item, Mapping):
            errors.append(f"Milestone {index}: must be a mapping")
            continue
        try:
            parsed.append(Milestone.model_validate(dict(item)))
        except ValidationError as exc:
            errors.extend(
                f"Milestone {index}: {'.'.join(str(p) for p in error['loc'])} {error['msg']}"
                for error in exc.errors()
            )
    if errors:
        return Err(
            DealInvalidError("Milestones failed validation", field="milestones", errors=errors)
        )
    return Ok(tuple(parsed))


def validate_milestone_set(
    milestones: Sequence[Milestone], total_cents: int
) -> Result[tuple[Milestone, ...]]:
    """Check a schedule against the deal value.

    Rules:
        - amounts sum to ``total_cents`` exactly
        - orders, once sorted, run 1, 2, ..., n with no gaps or repeats

    Returns:
        Ok(milestones sorted by order), or Err(DEAL_INVALID) listing each rule broken.
    """
    if not milestones:
        return Err(DealInvalidError("Milestone schedule cannot be empty", field="milestones"))

    errors: list[str] = []
    total = sum(m.amount_cents for m in milestones)
    if total != total_cents:
        errors.append(f"Milestones sum to {total} cents, deal value is {total_cents}")

    ordered = tuple(sorted(milestones, key=lambda m: m.order))
    for expected, milestone in enumerate(ordered, start=1):
        if milestone.order != expected:
            errors.append(
                f"Milestone {milestone.id} has order {milestone.order}, expected {expected}"
            )
            break

    if errors:
        logger.info("milestones.rejected", error_count=len(errors))
        return Err(
            DealInvalidError("Milestone schedule rejected", field="milestones", errors=errors)
        )
    return Ok(ordered)


def can_activate_milestone(target: Milestone, milestones: Sequence[Milestone]) -> bool:
    """The first milestone can always start; later ones need their predecessor approved."""
    if target.order == 1:
        return True
    previous = next((m for m in milestones if m.order == target.order - 1), None)
    return previous is not None and previous.status == MilestoneStatus.APPROVED


def activate_milestone(target: Milestone, milestones: Sequence[Milestone]) -> Result[Milestone]:
    """Return ``target`` moved to ACTIVE.

    Activating an ACTIVE milestone is a no-op. Only PENDING milestones whose
    predecessor is approved can start; anything else is TRANSITION_BLOCKED.
    """
    if target.status == MilestoneStatus.ACTIVE:
        return Ok(target)
    if target.status != MilestoneStatus.PENDING or not can_activate_milestone(target, milestones):
        logger.info("milestones.activation_blocked", milestone_id=target.id, order=target.order)
        return Err(TransitionBlockedError(target.status, MilestoneStatus.ACTIVE))
    return Ok(target.model_copy(update={"status": MilestoneStatus.ACTIVE}))
