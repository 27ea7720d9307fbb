"""
Unit Tests for Savings Goals

Tests cover:
1. Goal creation and frozen points reward
2. Contribution and capping at the target
3. One-time completion credit
4. Edit / delete
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import UUID

from rewards.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from rewards.models import (
    CreateGoalRequest,
    EditGoalRequest,
    GoalPriority,
    GoalStatus,
    PointSource,
)


MISSING_GOAL_ID = UUID("00000000-0000-0000-0000-000000000000")


def create(service, target, title="Emergency Fund", **kwargs):
    request = CreateGoalRequest(title=title, target_amount=Decimal(str(target)), **kwargs)
    return service.create_goal(request).goal


class TestCreateGoal:
    """Tests for goal creation."""

    def test_create_goal_defaults(self, make_service, clock):
        """Test that a new goal starts empty, active, with a computed reward."""
        service = make_service()

        goal = create(service, 2500, deadline=date(2026, 12, 31), priority=GoalPriority.HIGH)

        assert goal.current_amount == 0
        assert goal.status == GoalStatus.ACTIVE
        assert goal.points_reward == 25
        assert goal.created_at == clock.now
        assert goal.completed_at is None
        assert service.get_goal(goal.id) == goal

    def test_points_reward_floors(self, make_service):
        """Test that partial hundreds do not earn a point."""
        service = make_service()

        assert create(service, "1999.99").points_reward == 19
        assert create(service, 99).points_reward == 0

    def test_non_positive_target_rejected(self, make_service):
        """Test that a zero target is a validation error."""
        service = make_service()

        with pytest.raises(ValidationError):
            create(service, 0)


class TestContribute:
    """Tests for contributions and completion."""

    def test_reaching_target_completes_and_credits(self, make_service, clock):
        """Test the 2490 + 10 example: completion and a 25 point credit."""
        service = make_service(balance=850)
        goal = create(service, 2500)
        service.contribute(goal.id, 2490)

        result = service.contribute(goal.id, 10)

        assert result.completed
        assert result.goal.status == GoalStatus.COMPLETED
        assert result.goal.current_amount == Decimal("2500")
        assert result.goal.completed_at == clock.now
        assert result.points_awarded == 25
        assert service.get_balance().balance == 875

        entry = service.get_ledger_history().entries[0]
        assert entry.source == PointSource.GOAL_COMPLETION
        assert entry.amount == 25

    def test_completion_credit_is_paid_once(self, make_service):
        """Test that contributing to a completed goal is rejected and pays nothing."""
        service = make_service(balance=850)
        goal = create(service, 2500)
        service.contribute(goal.id, 2500)
        balance_after_completion = service.get_balance().balance

        with pytest.raises(InvalidStateTransitionError):
            service.contribute(goal.id, 1)

        assert service.get_balance().balance == balance_after_completion
        completion_entries = [
            e for e in service.get_ledger_history().entries
            if e.source == PointSource.GOAL_COMPLETION
        ]
        assert len(completion_entries) == 1

    def test_partial_contribution(self, make_service):
        """Test that a contribution below target accumulates without credit."""
        service = make_service(balance=0)
        goal = create(service, 1000)

        result = service.contribute(goal.id, Decimal("250.50"))

        assert not result.completed
        assert result.goal.current_amount == Decimal("250.50")
        assert result.points_awarded == 0
        assert service.get_balance().balance == 0

    def test_overflow_is_capped_and_discarded(self, make_service):
        """Test that the excess over the target is discarded and reported."""
        service = make_service(balance=0)
        goal = create(service, 1000)

        result = service.contribute(goal.id, 1500)

        assert result.goal.current_amount == Decimal("1000")
        assert result.accepted_amount == Decimal("1000")
        assert result.discarded_amount == Decimal("500")
        assert result.completed
        assert service.get_balance().balance == 10

    def test_non_positive_amount_rejected(self, make_service):
        """Test that zero and negative contributions are validation errors."""
        service = make_service()
        goal = create(service, 1000)

        with pytest.raises(ValidationError):
            service.contribute(goal.id, 0)
        with pytest.raises(ValidationError):
            service.contribute(goal.id, -5)
        with pytest.raises(ValidationError):
            service.contribute(goal.id, "abc")

        assert service.get_goal(goal.id).current_amount == 0

    def test_unknown_goal(self, make_service):
        """Test that contributing to a missing goal is NotFound."""
        service = make_service()

        with pytest.raises(NotFoundError):
            service.contribute(MISSING_GOAL_ID, 10)


class TestEditAndDelete:
    """Tests for editing, deleting and listing goals."""

    def test_edit_does_not_recompute_reward(self, make_service):
        """Test that raising the target keeps the reward fixed at creation."""
        service = make_service()
        goal = create(service, 2500)

        edited = service.edit_goal(
            goal.id, EditGoalRequest(target_amount=Decimal("5000"), title="Bigger Fund")
        ).goal

        assert edited.target_amount == Decimal("5000")
        assert edited.title == "Bigger Fund"
        assert edited.points_reward == 25

    def test_edit_keeps_unspecified_fields(self, make_service):
        """Test that a partial edit only touches the given fields."""
        service = make_service()
        goal = create(service, 2500, description="Rainy day", priority=GoalPriority.LOW)

        edited = service.edit_goal(goal.id, EditGoalRequest(priority=GoalPriority.HIGH)).goal

        assert edited.priority == GoalPriority.HIGH
        assert edited.description == "Rainy day"
        assert edited.target_amount == Decimal("2500")

    def test_edit_target_below_saved_rejected(self, make_service):
        """Test that the target cannot drop under the amount already saved."""
        service = make_service()
        goal = create(service, 2500)
        service.contribute(goal.id, 1000)

        with pytest.raises(ValidationError):
            service.edit_goal(goal.id, EditGoalRequest(target_amount=Decimal("999")))

    def test_edit_target_to_saved_amount_rejected(self, make_service):
        """Test that an active goal cannot be edited into a full but uncompleted state."""
        service = make_service(balance=0)
        goal = create(service, 2500)
        service.contribute(goal.id, 1000)

        with pytest.raises(ValidationError):
            service.edit_goal(goal.id, EditGoalRequest(target_amount=Decimal("1000")))

        unchanged = service.get_goal(goal.id)
        assert unchanged.status == GoalStatus.ACTIVE
        assert unchanged.target_amount == Decimal("2500")
        result = service.contribute(goal.id, 50)
        assert result.accepted_amount == Decimal("50")
        assert not result.completed

    def test_completed_goal_target_is_frozen(self, make_service):
        """Test that raising a completed goal's target is an invalid transition."""
        service = make_service(balance=0)
        goal = create(service, 500)
        service.contribute(goal.id, 500)

        with pytest.raises(InvalidStateTransitionError):
            service.edit_goal(goal.id, EditGoalRequest(target_amount=Decimal("900")))

        done = service.get_goal(goal.id)
        assert done.status == GoalStatus.COMPLETED
        assert done.current_amount == done.target_amount == Decimal("500")

    def test_completed_goal_other_fields_editable(self, make_service):
        """Test that a completed goal can still be renamed."""
        service = make_service()
        goal = create(service, 500)
        service.contribute(goal.id, 500)

        edited = service.edit_goal(goal.id, EditGoalRequest(title="Done and dusted")).goal

        assert edited.title == "Done and dusted"
        assert edited.status == GoalStatus.COMPLETED

    def test_edit_clears_deadline(self, make_service):
        """Test that an explicit null deadline removes it."""
        service = make_service()
        goal = create(service, 2500, deadline=date(2026, 12, 31))

        edited = service.edit_goal(goal.id, EditGoalRequest(deadline=None)).goal

        assert edited.deadline is None
        assert service.get_goal(goal.id).deadline is None

    def test_edit_cannot_clear_required_fields(self, make_service):
        """Test that only the deadline may be set back to null."""
        service = make_service()
        goal = create(service, 2500)

        with pytest.raises(ValidationError):
            service.edit_goal(goal.id, EditGoalRequest(title=None))
        with pytest.raises(ValidationError):
            service.edit_goal(goal.id, EditGoalRequest(target_amount=None))

        assert service.get_goal(goal.id).title == "Emergency Fund"

    def test_returned_goal_is_a_copy(self, make_service):
        """Test that mutating a returned goal does not touch the ledger."""
        service = make_service()
        goal = create(service, 2500)

        fetched = service.get_goal(goal.id)
        fetched.current_amount = Decimal("2500")
        service.list_goals()[0].title = "Hijacked"
        goal.status = GoalStatus.COMPLETED

        stored = service.get_goal(goal.id)
        assert stored.current_amount == 0
        assert stored.title == "Emergency Fund"
        assert stored.status == GoalStatus.ACTIVE

    def test_edit_missing_goal(self, make_service):
        """Test that editing a missing goal is NotFound."""
        service = make_service()

        with pytest.raises(NotFoundError):
            service.edit_goal(MISSING_GOAL_ID, EditGoalRequest(title="x"))

    def test_delete_goal(self, make_service):
        """Test that a deleted goal is gone and deleting again fails."""
        service = make_service()
        goal = create(service, 2500)

        service.delete_goal(goal.id)

        with pytest.raises(NotFoundError):
            service.get_goal(goal.id)
        with pytest.raises(NotFoundError):
            service.delete_goal(goal.id)

    def test_list_goals_by_status(self, make_service):
        """Test filtering goals by status, in creation order."""
        service = make_service()
        first = create(service, 100, title="Small")
        second = create(service, 5000, title="Large")
        service.contribute(first.id, 100)

        assert [g.id for g in service.list_goals()] == [first.id, second.id]
        assert [g.id for g in service.list_goals(GoalStatus.COMPLETED)] == [first.id]
        assert [g.id for g in service.list_goals(GoalStatus.ACTIVE)] == [second.id]
