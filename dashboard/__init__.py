"""
Dashboard Aggregation Package

Provides pure summaries over the rewards ledger and externally supplied
transaction/budget rows, plus an async feed that keeps only the newest
response per data key.
"""

from .aggregates import (
    build_dashboard,
    budget_utilisation,
    daily_histogram,
    days_until_deadline,
    goal_summary,
    prize_distribution,
    rank_by_key,
    recent_activity,
    shop_performance,
    spending_by_category,
    transaction_summary,
)
from .feed import DashboardFeed
from .models import BudgetRow, DashboardSnapshot, TransactionRow

__all__ = [
    "build_dashboard",
    "budget_utilisation",
    "daily_histogram",
    "days_until_deadline",
    "goal_summary",
    "prize_distribution",
    "rank_by_key",
    "recent_activity",
    "shop_performance",
    "spending_by_category",
    "transaction_summary",
    "DashboardFeed",
    "BudgetRow",
    "DashboardSnapshot",
    "TransactionRow",
]
