"""Tests for milestone schedules."""

from __future__ import annotations

import pytest

from trust_escrow.domain.enums import ErrorCode, MilestoneStatus
from trust_escrow.domain.milestones import (
    Milestone,
    activate_milestone,
    can_activate_milestone,
    parse_milestones,
    validate_milestone_set,
)


def _milestone(order: int, amount: int = 5_000, status=MilestoneStatus.PENDING) -> Milestone:
    return Milestone(
        id=f"ms-{order}", title=f"Stage {order}", amount_cents=amount, status=status, order=order
    )


@pytest.fixture
def schedule() -> tuple[Milestone, ...]:
    return (
        _milestone(1, 2_000, MilestoneStatus.APPROVED),
        _milestone(2, 3_000),
        _milestone(3, 5_000),
    )


class TestParseMilestones:
    def test_camel_case_payload(self) -> None:
        result = parse_milestones(
            [{"id": "ms-1", "title": "Design", "amountCents": 2_500, "order": 1}]
        )
        assert result.is_ok
        assert result.value[0].amount_cents == 2_500
        assert result.value[0].status == MilestoneStatus.PENDING

    def test_models_pass_through(self, schedule) -> None:
        assert parse_milestones(schedule).value == schedule

    def test_every_bad_entry_reported(self) -> None:
        result = parse_milestones(
            [
                {"id": "ms-1", "title": "Design", "amountCents": 0, "order": 1},
                "ms-2",
                {"id": "ms-3", "title": "Ship", "amountCents": 10.5, "order": 3},
            ]
        )
        assert result.code == ErrorCode.DEAL_INVALID
        assert result.error.details["field"] == "milestones"
        errors = result.error.details["errors"]
        assert len(errors) == 3
        assert errors[0].startswith("Milestone 0: amountCents")
        assert errors[1] == "Milestone 1: must be a mapping"

    def test_unknown_status_rejected(self) -> None:
        result = parse_milestones(
            [{"id": "ms-1", "title": "Design", "amountCents": 1, "order": 1, "status": "PAID"}]
        )
        assert result.code == ErrorCode.DEAL_INVALID


class TestValidateMilestoneSet:
    def test_valid_schedule_is_sorted(self, schedule) -> None:
        shuffled = (schedule[2], schedule[0], schedule[1])
        result = validate_milestone_set(shuffled, 10_000)
        assert result.value == schedule

    def test_sum_must_match_deal_value(self, schedule) -> None:
        result = validate_milestone_set(schedule, 10_001)
        assert result.code == ErrorCode.DEAL_INVALID
        assert result.error.details["errors"] == [
            "Milestones sum to 10000 cents, deal value is 10001"
        ]

    @pytest.mark.parametrize("orders", [(0, 1, 2), (1, 2, 4), (1, 1, 2)])
    def test_orders_must_run_from_one_without_gaps(self, orders) -> None:
        milestones = [_milestone(order, 1_000) for order in orders]
        result = validate_milestone_set(milestones, 3_000)
        assert result.code == ErrorCode.DEAL_INVALID
        assert len(result.error.details["errors"]) == 1

    def test_both_rules_reported(self) -> None:
        result = validate_milestone_set([_milestone(2, 1_000)], 5_000)
        assert len(result.error.details["errors"]) == 2

    def test_empty_schedule(self) -> None:
        assert validate_milestone_set([], 0).code == ErrorCode.DEAL_INVALID


class TestActivation:
    def test_first_milestone_always_startable(self) -> None:
        first = _milestone(1)
        assert can_activate_milestone(first, [first])

    def test_next_after_approved(self, schedule) -> None:
        assert can_activate_milestone(schedule[1], schedule)

    def test_blocked_until_previous_approved(self, schedule) -> None:
        assert not can_activate_milestone(schedule[2], schedule)

    def test_missing_predecessor(self) -> None:
        assert not can_activate_milestone(_milestone(3), [_milestone(3)])

    def test_activate_returns_copy(self, schedule) -> None:
        activated = activate_milestone(schedule[1], schedule).unwrap()
        assert activated.status == MilestoneStatus.ACTIVE
        assert activated.id == "ms-2"
        assert schedule[1].status == MilestoneStatus.PENDING

    def test_activate_out_of_order(self, schedule) -> None:
        result = activate_milestone(schedule[2], schedule)
        assert result.code == ErrorCode.TRANSITION_BLOCKED
        assert result.error.details == {"from": "PENDING", "to": "ACTIVE"}

    def test_activate_is_idempotent(self) -> None:
        active = _milestone(1, status=MilestoneStatus.ACTIVE)
        assert activate_milestone(active, [active]).value is active

    def test_approved_cannot_restart(self, schedule) -> None:
        result = activate_milestone(schedule[0], schedule)
        assert result.code == ErrorCode.TRANSITION_BLOCKED
