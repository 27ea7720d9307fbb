"""
Rewards Economy Engine

This module provides:
- A non-negative points ledger with sourced, auditable entries
- A weighted prize lottery with a daily free-spin allowance
- A points shop with finite or unlimited stock
- Savings goals that pay a one-time reward on completion
- Pure state transitions persisted after every successful mutation
"""

from .exceptions import (
    RewardsEngineError,
    ValidationError,
    InvalidStateTransitionError,
    NotFoundError,
    ItemInactiveError,
    InsufficientResourcesError,
    InsufficientPointsError,
    ItemSoldOutError,
    InvariantViolationError,
)
from .models import (
    PrizeCategory,
    ShopCategory,
    GoalPriority,
    GoalStatus,
    PointSource,
    Prize,
    ShopItem,
    SpinAllowance,
    Goal,
    LedgerEntry,
    RedemptionRecord,
    SpinRecord,
    RewardsState,
)
from .lottery import PrizeTable, load_prize_table, draw, angle_for
from .service import RewardsService

__all__ = [
    "RewardsEngineError",
    "ValidationError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "ItemInactiveError",
    "InsufficientResourcesError",
    "InsufficientPointsError",
    "ItemSoldOutError",
    "InvariantViolationError",
    "PrizeCategory",
    "ShopCategory",
    "GoalPriority",
    "GoalStatus",
    "PointSource",
    "Prize",
    "ShopItem",
    "SpinAllowance",
    "Goal",
    "LedgerEntry",
    "RedemptionRecord",
    "SpinRecord",
    "RewardsState",
    "PrizeTable",
    "load_prize_table",
    "draw",
    "angle_for",
    "RewardsService",
]
