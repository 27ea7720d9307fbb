"""
Pure state transitions for the rewards economy.

Every public operation is a single call to :func:`apply_command`, which takes
the current :class:`RewardsState` and a command and returns a new state plus
a result. The input state is never modified, so a failed precondition leaves
no partial effect behind.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID, uuid4

from .allowance import new_allowance, refresh_allowance
from .exceptions import (
    InsufficientPointsError,
    InsufficientResourcesError,
    InvalidStateTransitionError,
    InvariantViolationError,
    ItemInactiveError,
    ItemSoldOutError,
    NotFoundError,
    ValidationError,
)
from .lottery import PrizeTable, draw
from .models import (
    AdjustmentResult,
    AllowanceResult,
    ContributionResult,
    CreateGoalRequest,
    EditGoalRequest,
    Goal,
    GoalResult,
    GoalStatus,
    LedgerEntry,
    PointSource,
    PrizeCategory,
    RedeemResult,
    RedemptionRecord,
    RewardsState,
    SpinRecord,
    SpinResult,
)


POINTS_PER_CURRENCY_UNIT = 100
CLEARABLE_GOAL_FIELDS = {"deadline"}


@dataclass(frozen=True)
class EconomyRules:
    prize_table: PrizeTable
    tz: tzinfo
    spin_cost: int = 50
    max_free_spins: int = 2


@dataclass(frozen=True)
class RefreshAllowance:
    now: datetime


@dataclass(frozen=True)
class Spin:
    now: datetime
    roll: float


@dataclass(frozen=True)
class Redeem:
    item_id: str
    now: datetime


@dataclass(frozen=True)
class CreateGoal:
    request: CreateGoalRequest
    now: datetime
    goal_id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class EditGoal:
    goal_id: UUID
    request: EditGoalRequest
    now: datetime


@dataclass(frozen=True)
class DeleteGoal:
    goal_id: UUID


@dataclass(frozen=True)
class Contribute:
    goal_id: UUID
    amount: Decimal
    now: datetime


@dataclass(frozen=True)
class AdjustPoints:
    delta: int
    reason: str
    now: datetime


Command = Union[
    RefreshAllowance, Spin, Redeem, CreateGoal, EditGoal, DeleteGoal, Contribute, AdjustPoints
]
Result = Union[
    AllowanceResult, SpinResult, RedeemResult, GoalResult, ContributionResult, AdjustmentResult
]


def initial_state(rules: EconomyRules, now: datetime, balance: int = 0) -> RewardsState:
    state = RewardsState(allowance=new_allowance(rules.max_free_spins, now, rules.tz))
    if balance:
        _post_entry(state, PointSource.MANUAL_ADJUSTMENT, balance, "Opening balance", now)
    return state


def points_reward_for(target_amount: Decimal) -> int:
    """One point per full 100 of currency in the target, fixed at creation."""
    return int(target_amount // POINTS_PER_CURRENCY_UNIT)


def apply_command(
    state: RewardsState, command: Command, rules: EconomyRules
) -> tuple[RewardsState, Result]:
    try:
        handler, touched = _HANDLERS[type(command)]
    except KeyError:
        raise ValidationError(f"Unknown command {type(command).__name__}")
    # Containers a handler writes to are copied; everything else is shared.
    # Handlers replace goals, items and the allowance rather than mutating them.
    working = state.model_copy(
        update={name: copy.copy(getattr(state, name)) for name in touched}
    )
    result = handler(working, command, rules)
    working.revision = state.revision + 1
    return working, result


def _post_entry(
    state: RewardsState,
    source: PointSource,
    amount: int,
    description: str,
    now: datetime,
    metadata: Optional[dict] = None,
) -> LedgerEntry:
    new_balance = state.balance + amount
    if new_balance < 0:
        raise InvariantViolationError(
            f"{source.value} of {amount} would leave balance at {new_balance}"
        )
    entry = LedgerEntry(
        source=source,
        amount=amount,
        balance_after=new_balance,
        description=description,
        created_at=now,
        metadata=metadata or {},
    )
    state.balance = new_balance
    state.entries.append(entry)
    return entry


def _get_goal(state: RewardsState, goal_id: UUID) -> Goal:
    goal = state.goals.get(goal_id)
    if goal is None:
        raise NotFoundError(f"Goal {goal_id} not found")
    return goal


def _refresh(state: RewardsState, command: RefreshAllowance, rules: EconomyRules) -> AllowanceResult:
    state.allowance = refresh_allowance(state.allowance, rules.max_free_spins, command.now, rules.tz)
    return AllowanceResult(
        allowance=state.allowance,
        max_free_spins=rules.max_free_spins,
        spin_cost=rules.spin_cost,
    )


def _spin(state: RewardsState, command: Spin, rules: EconomyRules) -> SpinResult:
    allowance = refresh_allowance(state.allowance, rules.max_free_spins, command.now, rules.tz)
    use_free_spin = allowance.free_spins_remaining > 0
    if not use_free_spin and state.balance < rules.spin_cost:
        raise InsufficientResourcesError(
            f"No free spins left and balance {state.balance} is below spin cost {rules.spin_cost}"
        )

    prize = draw(rules.prize_table, command.roll)

    cost_paid = 0
    if use_free_spin:
        allowance = allowance.model_copy(
            update={"free_spins_remaining": allowance.free_spins_remaining - 1}
        )
    else:
        cost_paid = rules.spin_cost
        _post_entry(state, PointSource.SPIN_COST, -cost_paid, "Lucky draw spin", command.now)
    state.allowance = allowance

    points_awarded = 0
    if prize.category == PrizeCategory.POINTS:
        points_awarded = prize.points_value or 0
        if points_awarded:
            _post_entry(
                state,
                PointSource.SPIN_PRIZE,
                points_awarded,
                f"Lucky draw prize: {prize.name}",
                command.now,
                {"prize_id": prize.id},
            )

    state.spins.append(SpinRecord(
        prize_id=prize.id,
        prize_name=prize.name,
        category=prize.category,
        used_free_spin=use_free_spin,
        cost_paid=cost_paid,
        points_awarded=points_awarded,
        timestamp=command.now,
    ))

    return SpinResult(
        prize=prize,
        used_free_spin=use_free_spin,
        cost_paid=cost_paid,
        points_awarded=points_awarded,
        balance=state.balance,
        free_spins_remaining=allowance.free_spins_remaining,
    )


def _redeem(state: RewardsState, command: Redeem, rules: EconomyRules) -> RedeemResult:
    item = state.shop.get(command.item_id)
    if item is None:
        raise NotFoundError(f"Shop item {command.item_id} not found")
    if not item.is_active:
        raise ItemInactiveError(f"Shop item {command.item_id} is not available")
    if not item.in_stock():
        raise ItemSoldOutError(f"Shop item {command.item_id} is sold out")
    price = item.effective_price
    if state.balance < price:
        raise InsufficientPointsError(
            f"Balance {state.balance} is below price {price} for {item.name}"
        )

    _post_entry(
        state,
        PointSource.REDEMPTION,
        -price,
        f"Redeemed {item.name}",
        command.now,
        {"item_id": item.id},
    )
    if not item.is_unlimited:
        item = item.model_copy(update={"stock": item.stock - 1})
        state.shop[item.id] = item

    record = RedemptionRecord(
        item_id=item.id, item_name=item.name, price_paid=price, timestamp=command.now
    )
    state.redemptions.append(record)
    return RedeemResult(item=item, record=record, balance=state.balance)


def _create_goal(state: RewardsState, command: CreateGoal, rules: EconomyRules) -> GoalResult:
    request = command.request
    if request.target_amount <= 0:
        raise ValidationError("Goal target amount must be positive")
    if command.goal_id in state.goals:
        raise ValidationError(f"Goal {command.goal_id} already exists")

    goal = Goal(
        id=command.goal_id,
        title=request.title,
        description=request.description,
        category=request.category,
        target_amount=request.target_amount,
        current_amount=Decimal("0"),
        deadline=request.deadline,
        priority=request.priority,
        points_reward=points_reward_for(request.target_amount),
        status=GoalStatus.ACTIVE,
        created_at=command.now,
        updated_at=command.now,
    )
    state.goals[goal.id] = goal
    return GoalResult(goal=goal, message="Goal created successfully")


def _edit_goal(state: RewardsState, command: EditGoal, rules: EconomyRules) -> GoalResult:
    goal = _get_goal(state, command.goal_id)
    updates = command.request.model_dump(exclude_unset=True)

    for name, value in updates.items():
        if value is None and name not in CLEARABLE_GOAL_FIELDS:
            raise ValidationError(f"Goal field {name!r} cannot be cleared")

    if "target_amount" in updates:
        target = updates["target_amount"]
        if goal.is_completed():
            raise InvalidStateTransitionError("Cannot change the target of a completed goal")
        if target <= 0:
            raise ValidationError("Goal target amount must be positive")
        # completion only happens through a contribution
        if target <= goal.current_amount:
            raise ValidationError(
                f"Target {target} must exceed the amount already saved ({goal.current_amount})"
            )

    # points_reward stays as computed at creation
    updates["updated_at"] = command.now
    goal = goal.model_copy(update=updates)
    state.goals[goal.id] = goal
    return GoalResult(goal=goal, message="Goal updated successfully")


def _delete_goal(state: RewardsState, command: DeleteGoal, rules: EconomyRules) -> GoalResult:
    goal = _get_goal(state, command.goal_id)
    del state.goals[goal.id]
    return GoalResult(goal=goal, message="Goal deleted successfully")


def _contribute(state: RewardsState, command: Contribute, rules: EconomyRules) -> ContributionResult:
    if command.amount <= 0:
        raise ValidationError("Contribution amount must be positive")
    goal = _get_goal(state, command.goal_id)
    if not goal.can_contribute():
        raise InvalidStateTransitionError(f"Cannot contribute to goal in {goal.status.value} state")

    accepted = min(command.amount, goal.remaining_amount)
    new_amount = goal.current_amount + accepted
    completed = new_amount == goal.target_amount

    updates = {"current_amount": new_amount, "updated_at": command.now}
    if completed:
        updates["status"] = GoalStatus.COMPLETED
        updates["completed_at"] = command.now
    goal = goal.model_copy(update=updates)
    state.goals[goal.id] = goal

    points_awarded = 0
    if completed and goal.points_reward:
        points_awarded = goal.points_reward
        _post_entry(
            state,
            PointSource.GOAL_COMPLETION,
            points_awarded,
            f"Goal completed: {goal.title}",
            command.now,
            {"goal_id": str(goal.id)},
        )

    return ContributionResult(
        goal=goal,
        accepted_amount=accepted,
        discarded_amount=command.amount - accepted,
        completed=completed,
        points_awarded=points_awarded,
        balance=state.balance,
    )


def _adjust_points(state: RewardsState, command: AdjustPoints, rules: EconomyRules) -> AdjustmentResult:
    if command.delta == 0:
        raise ValidationError("Adjustment must be non-zero")
    if state.balance + command.delta < 0:
        raise InsufficientPointsError(
            f"Cannot deduct {-command.delta} points from balance {state.balance}"
        )
    entry = _post_entry(
        state, PointSource.MANUAL_ADJUSTMENT, command.delta, command.reason, command.now
    )
    return AdjustmentResult(entry=entry, balance=state.balance)


_HANDLERS = {
    RefreshAllowance: (_refresh, ()),
    Spin: (_spin, ("entries", "spins")),
    Redeem: (_redeem, ("entries", "shop", "redemptions")),
    CreateGoal: (_create_goal, ("goals",)),
    EditGoal: (_edit_goal, ("goals",)),
    DeleteGoal: (_delete_goal, ("goals",)),
    Contribute: (_contribute, ("entries", "goals")),
    AdjustPoints: (_adjust_points, ("entries",)),
}
