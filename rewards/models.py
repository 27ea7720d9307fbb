import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4
from pydantic import BaseModel, Field, ConfigDict


_LEADING_INT = re.compile(r"^\s*(\d+)")


class PrizeCategory(str, Enum):
    VOUCHER = "voucher"
    POINTS = "points"
    CASHBACK = "cashback"
    GIFT = "gift"


class ShopCategory(str, Enum):
    VOUCHERS = "vouchers"
    CASHBACK = "cashback"
    EXPERIENCES = "experiences"
    DIGITAL = "digital"


class GoalPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class PointSource(str, Enum):
    SPIN_COST = "spin_cost"
    SPIN_PRIZE = "spin_prize"
    REDEMPTION = "redemption"
    GOAL_COMPLETION = "goal_completion"
    MANUAL_ADJUSTMENT = "manual_adjustment"


class Prize(BaseModel):
    id: str
    name: str
    description: str = ""
    category: PrizeCategory
    value: str = Field(..., description="Face value, e.g. 'RM 20' or '100 pts'")
    probability: float = Field(..., ge=0, le=100)
    emoji: str = ""
    is_active: bool = True

    model_config = ConfigDict(frozen=True, json_schema_extra={
        "example": {
            "id": "3",
            "name": "Bonus Points",
            "category": "points",
            "value": "100 pts",
            "probability": 30,
        }
    })

    @property
    def points_value(self) -> Optional[int]:
        """Leading integer of the face value, e.g. 100 for '100 pts'."""
        match = _LEADING_INT.match(self.value)
        return int(match.group(1)) if match else None


class ShopItem(BaseModel):
    id: str
    name: str
    description: str = ""
    category: ShopCategory = ShopCategory.VOUCHERS
    price: int = Field(..., gt=0, description="Price in points before discount")
    stock: Optional[int] = Field(default=None, ge=0, description="None means unlimited")
    discount_percent: int = Field(default=0, ge=0, le=100)
    is_active: bool = True
    original_value: str = ""
    emoji: str = ""
    is_popular: bool = False
    is_limited: bool = False

    @property
    def is_unlimited(self) -> bool:
        return self.stock is None

    @property
    def effective_price(self) -> int:
        # floor(price * (1 - discount/100)) without float rounding
        return self.price * (100 - self.discount_percent) // 100

    def in_stock(self) -> bool:
        return self.is_unlimited or self.stock > 0


class SpinAllowance(BaseModel):
    free_spins_remaining: int = Field(..., ge=0)
    next_reset_at: datetime


class Goal(BaseModel):
    id: UUID
    title: str
    description: str = ""
    category: str = "savings"
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Decimal("0")
    deadline: Optional[date] = None
    priority: GoalPriority = GoalPriority.MEDIUM
    points_reward: int = Field(..., ge=0)
    status: GoalStatus = GoalStatus.ACTIVE
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    def is_completed(self) -> bool:
        return self.status == GoalStatus.COMPLETED

    def can_contribute(self) -> bool:
        return self.status == GoalStatus.ACTIVE

    @property
    def remaining_amount(self) -> Decimal:
        return max(self.target_amount - self.current_amount, Decimal("0"))


class LedgerEntry(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    source: PointSource
    amount: int
    balance_after: int = Field(..., ge=0)
    description: str
    created_at: datetime
    metadata: dict = Field(default_factory=dict)


class RedemptionRecord(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    item_id: str
    item_name: str = ""
    price_paid: int = Field(..., ge=0)
    timestamp: datetime


class SpinRecord(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    prize_id: str
    prize_name: str
    category: PrizeCategory
    used_free_spin: bool
    cost_paid: int = 0
    points_awarded: int = 0
    timestamp: datetime


class RewardsState(BaseModel):
    balance: int = Field(default=0, ge=0)
    allowance: SpinAllowance
    goals: dict[UUID, Goal] = Field(default_factory=dict)
    shop: dict[str, ShopItem] = Field(default_factory=dict)
    entries: list[LedgerEntry] = Field(default_factory=list)
    redemptions: list[RedemptionRecord] = Field(default_factory=list)
    spins: list[SpinRecord] = Field(default_factory=list)
    revision: int = 0


# Requests

class CreateGoalRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    category: str = "savings"
    target_amount: Decimal
    deadline: Optional[date] = None
    priority: GoalPriority = GoalPriority.MEDIUM

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "title": "Emergency Fund",
            "target_amount": 2500.00,
            "deadline": "2026-12-31",
            "priority": "high",
        }
    })


class EditGoalRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    target_amount: Optional[Decimal] = None
    deadline: Optional[date] = None
    priority: Optional[GoalPriority] = None


class ContributeRequest(BaseModel):
    amount: Decimal


class AdjustPointsRequest(BaseModel):
    delta: int
    reason: str = Field(..., min_length=1)


# Responses

class SpinResult(BaseModel):
    prize: Prize
    angle: float = 0.0
    used_free_spin: bool
    cost_paid: int
    points_awarded: int
    balance: int
    free_spins_remaining: int


class RedeemResult(BaseModel):
    item: ShopItem
    record: RedemptionRecord
    balance: int


class ContributionResult(BaseModel):
    goal: Goal
    accepted_amount: Decimal
    discarded_amount: Decimal
    completed: bool
    points_awarded: int
    balance: int


class GoalResult(BaseModel):
    goal: Goal
    message: str


class AdjustmentResult(BaseModel):
    entry: LedgerEntry
    balance: int


class AllowanceResult(BaseModel):
    allowance: SpinAllowance
    max_free_spins: int
    spin_cost: int


class PointsBalance(BaseModel):
    balance: int
    total_entries: int
    last_transaction_at: Optional[datetime] = None


class LedgerHistoryResponse(BaseModel):
    entries: list[LedgerEntry]
    total_count: int
    current_balance: int
