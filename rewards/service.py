import logging
import threading
from datetime import datetime, timedelta, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from random import Random, SystemRandom
from typing import Callable, Iterable, Optional, Union
from uuid import UUID

from .allowance import time_until_reset
from .catalog import (
    DEFAULT_PRIZES,
    DEFAULT_SHOP_ITEMS,
    list_items,
    load_shop_catalog,
    merge_catalog,
)
from .config import EconomySettings, get_settings
from .exceptions import NotFoundError, ValidationError
from .lottery import PrizeTable, angle_for, load_prize_table, roll
from .models import (
    AdjustmentResult,
    AllowanceResult,
    ContributionResult,
    CreateGoalRequest,
    EditGoalRequest,
    Goal,
    GoalResult,
    GoalStatus,
    LedgerHistoryResponse,
    PointsBalance,
    Prize,
    RedeemResult,
    RedemptionRecord,
    RewardsState,
    ShopCategory,
    ShopItem,
    SpinRecord,
    SpinResult,
)
from .storage import InMemoryStorage, Storage
from .transitions import (
    AdjustPoints,
    Command,
    Contribute,
    CreateGoal,
    DeleteGoal,
    EconomyRules,
    EditGoal,
    Redeem,
    RefreshAllowance,
    Result,
    Spin,
    apply_command,
    initial_state,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RewardsService:
    def __init__(
        self,
        storage: Optional[Storage] = None,
        prizes: Optional[Iterable[Union[Prize, dict]]] = None,
        shop_items: Optional[Iterable[Union[ShopItem, dict]]] = None,
        settings: Optional[EconomySettings] = None,
        tz: Optional[tzinfo] = None,
        rng: Optional[Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_settings()
        self.storage = storage or InMemoryStorage()
        self.rng = rng or SystemRandom()
        self.clock = clock or utcnow
        self.rules = EconomyRules(
            prize_table=load_prize_table(
                DEFAULT_PRIZES if prizes is None else prizes,
                normalize=self.settings.normalize_prize_table,
            ),
            tz=tz or self.settings.tz,
            spin_cost=self.settings.spin_cost,
            max_free_spins=self.settings.max_free_spins,
        )
        catalog = load_shop_catalog(DEFAULT_SHOP_ITEMS if shop_items is None else shop_items)

        self._lock = threading.RLock()
        state = self.storage.load()
        if state is None:
            state = initial_state(self.rules, self.clock(), self.settings.opening_balance)
            logger.info("Starting new rewards state with balance %s", state.balance)
        state.shop = merge_catalog(state.shop, catalog)
        self._state = state

    @property
    def prize_table(self) -> PrizeTable:
        return self.rules.prize_table

    def snapshot(self) -> RewardsState:
        with self._lock:
            return self._state.model_copy(deep=True)

    def _execute(self, command: Command) -> Result:
        with self._lock:
            new_state, result = apply_command(self._state, command, self.rules)
            self.storage.save(new_state)
            self._state = new_state
            return result.model_copy(deep=True)

    # Lottery

    def spin(self) -> SpinResult:
        result = self._execute(Spin(now=self.clock(), roll=roll(self.rng)))
        angle = angle_for(
            self.prize_table, result.prize.id, self.rng.random(), self.settings.wheel_turns
        )
        logger.info(
            "Spin won %s (%s), free=%s, balance=%s",
            result.prize.name, result.prize.value, result.used_free_spin, result.balance,
        )
        return result.model_copy(update={"angle": angle})

    def get_allowance(self) -> AllowanceResult:
        now = self.clock()
        with self._lock:
            if now >= self._state.allowance.next_reset_at:
                logger.info("Resetting free spins to %s", self.rules.max_free_spins)
                return self._execute(RefreshAllowance(now=now))
            return AllowanceResult(
                allowance=self._state.allowance.model_copy(),
                max_free_spins=self.rules.max_free_spins,
                spin_cost=self.rules.spin_cost,
            )

    def time_until_reset(self) -> timedelta:
        allowance = self.get_allowance().allowance
        return time_until_reset(allowance, self.clock())

    def get_spin_history(self, limit: int = 5) -> list[SpinRecord]:
        with self._lock:
            spins = list(reversed(self._state.spins))[:limit]
        return [s.model_copy() for s in spins]

    # Shop

    def redeem(self, item_id: str) -> RedeemResult:
        result = self._execute(Redeem(item_id=item_id, now=self.clock()))
        logger.info(
            "Redeemed %s for %s points, balance=%s",
            result.item.name, result.record.price_paid, result.balance,
        )
        return result

    def list_shop_items(
        self, category: Optional[ShopCategory] = None, include_inactive: bool = False
    ) -> list[ShopItem]:
        with self._lock:
            items = list_items(self._state.shop, category, include_inactive)
        return [i.model_copy() for i in items]

    def get_shop_item(self, item_id: str) -> ShopItem:
        with self._lock:
            item = self._state.shop.get(item_id)
        if item is None:
            raise NotFoundError(f"Shop item {item_id} not found")
        return item.model_copy()

    def get_redemption_history(self) -> list[RedemptionRecord]:
        with self._lock:
            return [r.model_copy() for r in reversed(self._state.redemptions)]

    # Goals

    def create_goal(self, request: CreateGoalRequest) -> GoalResult:
        result = self._execute(CreateGoal(request=request, now=self.clock()))
        logger.info(
            "Created goal %s (%s) worth %s points",
            result.goal.id, result.goal.title, result.goal.points_reward,
        )
        return result

    def edit_goal(self, goal_id: UUID, request: EditGoalRequest) -> GoalResult:
        return self._execute(EditGoal(goal_id=goal_id, request=request, now=self.clock()))

    def delete_goal(self, goal_id: UUID) -> GoalResult:
        result = self._execute(DeleteGoal(goal_id=goal_id))
        logger.info("Deleted goal %s", goal_id)
        return result

    def contribute(self, goal_id: UUID, amount: Union[Decimal, int, float, str]) -> ContributionResult:
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise ValidationError(f"Invalid contribution amount {amount!r}")
        if not amount.is_finite():
            raise ValidationError(f"Invalid contribution amount {amount!r}")

        result = self._execute(Contribute(goal_id=goal_id, amount=amount, now=self.clock()))
        if result.discarded_amount:
            logger.warning(
                "Contribution to goal %s exceeded target; %s discarded",
                goal_id, result.discarded_amount,
            )
        if result.completed:
            logger.info(
                "Goal %s completed, credited %s points", goal_id, result.points_awarded
            )
        return result

    def get_goal(self, goal_id: UUID) -> Goal:
        with self._lock:
            goal = self._state.goals.get(goal_id)
        if goal is None:
            raise NotFoundError(f"Goal {goal_id} not found")
        return goal.model_copy()

    def list_goals(self, status: Optional[GoalStatus] = None) -> list[Goal]:
        with self._lock:
            goals = [g.model_copy() for g in self._state.goals.values()]
        if status:
            goals = [g for g in goals if g.status == status]
        return goals

    # Points

    def adjust_points(self, delta: int, reason: str) -> AdjustmentResult:
        result = self._execute(AdjustPoints(delta=delta, reason=reason, now=self.clock()))
        logger.info("Manual adjustment of %s points: %s", delta, reason)
        return result

    def get_balance(self) -> PointsBalance:
        with self._lock:
            entries = self._state.entries
            return PointsBalance(
                balance=self._state.balance,
                total_entries=len(entries),
                last_transaction_at=entries[-1].created_at if entries else None,
            )

    def get_ledger_history(self, limit: int = 50, offset: int = 0) -> LedgerHistoryResponse:
        with self._lock:
            entries = list(reversed(self._state.entries))
            balance = self._state.balance
        return LedgerHistoryResponse(
            entries=[e.model_copy(deep=True) for e in entries[offset:offset + limit]],
            total_count=len(entries),
            current_balance=balance,
        )
