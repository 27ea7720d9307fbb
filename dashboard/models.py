from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionRow(BaseModel):
    id: str
    type: TransactionType
    amount: Decimal = Field(..., ge=0)
    category: str
    description: str = ""
    merchant: Optional[str] = None
    occurred_at: datetime


class BudgetRow(BaseModel):
    id: str
    category: str
    allocated: Decimal = Field(..., ge=0)
    spent: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = True


class GoalSummary(BaseModel):
    total_saved: Decimal
    total_target: Decimal
    progress_percentage: float
    active_count: int
    completed_count: int


class GoalDeadline(BaseModel):
    goal_id: UUID
    title: str
    days_until_deadline: Optional[int] = None
    progress_percentage: float


class HistogramBucket(BaseModel):
    day: date
    count: int


class RankingRow(BaseModel):
    key: str
    label: str
    count: int
    percentage: float


class ShopPerformanceRow(BaseModel):
    item_id: str
    item_name: str
    count: int
    total_points: int


class ActivityItem(BaseModel):
    type: str
    item: str
    value: str
    timestamp: datetime


class TransactionSummary(BaseModel):
    total_income: Decimal
    total_expenses: Decimal
    net: Decimal
    count: int


class CategorySpend(BaseModel):
    category: str
    amount: Decimal
    percentage: float


class BudgetUtilisation(BaseModel):
    category: str
    allocated: Decimal
    spent: Decimal
    remaining: Decimal
    percent_used: float
    over_budget: bool


class DashboardSnapshot(BaseModel):
    generated_at: datetime
    points_balance: int
    free_spins_remaining: int
    goals: GoalSummary
    goal_deadlines: list[GoalDeadline]
    spins_per_day: list[HistogramBucket]
    redemptions_per_day: list[HistogramBucket]
    prize_distribution: list[RankingRow]
    shop_performance: list[ShopPerformanceRow]
    recent_activity: list[ActivityItem]
    transactions: TransactionSummary
    spending_by_category: list[CategorySpend]
    budgets: list[BudgetUtilisation]
