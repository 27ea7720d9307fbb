"""
Dashboard summaries derived from ledger snapshots.

All functions here are pure: they read the values they are given and never
touch the ledger, so recomputing on every request is always consistent with
the current state.
"""

import math
from collections import Counter
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal
from typing import Iterable, Optional

from rewards.models import Goal, RedemptionRecord, RewardsState, SpinRecord

from .models import (
    ActivityItem,
    BudgetRow,
    BudgetUtilisation,
    CategorySpend,
    DashboardSnapshot,
    GoalDeadline,
    GoalSummary,
    HistogramBucket,
    RankingRow,
    ShopPerformanceRow,
    TransactionRow,
    TransactionSummary,
    TransactionType,
)

SECONDS_PER_DAY = 86400
ZERO = Decimal("0")


def percentage(part, whole) -> float:
    if not whole:
        return 0.0
    return float(part) / float(whole) * 100


def goal_progress(goal: Goal) -> float:
    return min(percentage(goal.current_amount, goal.target_amount), 100.0)


def goal_summary(goals: Iterable[Goal]) -> GoalSummary:
    goals = list(goals)
    total_saved = sum((g.current_amount for g in goals), ZERO)
    total_target = sum((g.target_amount for g in goals), ZERO)
    completed = sum(1 for g in goals if g.is_completed())
    return GoalSummary(
        total_saved=total_saved,
        total_target=total_target,
        progress_percentage=percentage(total_saved, total_target),
        active_count=len(goals) - completed,
        completed_count=completed,
    )


def days_until_deadline(goal: Goal, now: datetime, tz: tzinfo) -> Optional[int]:
    """
    Whole days until the deadline's local midnight, rounded up.

    Incomplete goals that are past due report 0. Completed goals keep the
    raw count, negative when the deadline has passed. Goals without a
    deadline report None.
    """
    if goal.deadline is None:
        return None
    deadline_at = datetime.combine(goal.deadline, time.min, tzinfo=tz)
    days = math.ceil((deadline_at - now).total_seconds() / SECONDS_PER_DAY)
    if goal.is_completed():
        return days
    return max(days, 0)


def goal_deadlines(goals: Iterable[Goal], now: datetime, tz: tzinfo) -> list[GoalDeadline]:
    return [
        GoalDeadline(
            goal_id=g.id,
            title=g.title,
            days_until_deadline=days_until_deadline(g, now, tz),
            progress_percentage=goal_progress(g),
        )
        for g in goals
    ]


def daily_histogram(
    timestamps: Iterable[datetime], tz: tzinfo, limit: int = 30
) -> list[HistogramBucket]:
    """Event counts per local calendar day, most recent ``limit`` days, oldest first."""
    counts = Counter(ts.astimezone(tz).date() for ts in timestamps)
    days = sorted(counts)[-limit:] if limit > 0 else []
    return [HistogramBucket(day=d, count=counts[d]) for d in days]


def daily_series(
    timestamps: Iterable[datetime], tz: tzinfo, today: date, days: int = 7
) -> list[HistogramBucket]:
    """Like :func:`daily_histogram` but over a fixed window, zero-filled."""
    counts = Counter(ts.astimezone(tz).date() for ts in timestamps)
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    return [HistogramBucket(day=d, count=counts.get(d, 0)) for d in window]


def rank_by_key(
    keys: Iterable[str], labels: Optional[dict[str, str]] = None
) -> list[RankingRow]:
    """Count occurrences per key; highest count first, ties by key."""
    counts = Counter(keys)
    total = sum(counts.values())
    labels = labels or {}
    rows = [
        RankingRow(
            key=key,
            label=labels.get(key, key),
            count=count,
            percentage=percentage(count, total),
        )
        for key, count in counts.items()
    ]
    rows.sort(key=lambda r: (-r.count, r.key))
    return rows


def prize_distribution(spins: Iterable[SpinRecord]) -> list[RankingRow]:
    spins = list(spins)
    labels = {s.prize_id: s.prize_name for s in spins}
    return rank_by_key((s.prize_id for s in spins), labels)


def shop_performance(redemptions: Iterable[RedemptionRecord]) -> list[ShopPerformanceRow]:
    rows: dict[str, ShopPerformanceRow] = {}
    for record in redemptions:
        row = rows.get(record.item_id)
        if row is None:
            row = rows[record.item_id] = ShopPerformanceRow(
                item_id=record.item_id, item_name=record.item_name, count=0, total_points=0
            )
        row.count += 1
        row.total_points += record.price_paid
    return sorted(rows.values(), key=lambda r: (-r.count, r.item_id))


def recent_activity(
    spins: Iterable[SpinRecord],
    redemptions: Iterable[RedemptionRecord],
    limit: int = 10,
) -> list[ActivityItem]:
    items = [
        ActivityItem(type="lucky_draw", item=s.prize_name, value=s.category.value, timestamp=s.timestamp)
        for s in spins
    ]
    items += [
        ActivityItem(type="redeem", item=r.item_name or r.item_id, value=f"{r.price_paid} pts", timestamp=r.timestamp)
        for r in redemptions
    ]
    items.sort(key=lambda a: a.timestamp, reverse=True)
    return items[:limit]


def transaction_summary(transactions: Iterable[TransactionRow]) -> TransactionSummary:
    income = expenses = ZERO
    count = 0
    for row in transactions:
        count += 1
        if row.type == TransactionType.INCOME:
            income += row.amount
        else:
            expenses += row.amount
    return TransactionSummary(
        total_income=income, total_expenses=expenses, net=income - expenses, count=count
    )


def spending_by_category(transactions: Iterable[TransactionRow]) -> list[CategorySpend]:
    totals: dict[str, Decimal] = {}
    for row in transactions:
        if row.type == TransactionType.EXPENSE:
            totals[row.category] = totals.get(row.category, ZERO) + row.amount
    grand_total = sum(totals.values(), ZERO)
    rows = [
        CategorySpend(category=c, amount=a, percentage=percentage(a, grand_total))
        for c, a in totals.items()
    ]
    rows.sort(key=lambda r: (-r.amount, r.category))
    return rows


def budget_utilisation(budgets: Iterable[BudgetRow]) -> list[BudgetUtilisation]:
    return [
        BudgetUtilisation(
            category=b.category,
            allocated=b.allocated,
            spent=b.spent,
            remaining=b.allocated - b.spent,
            percent_used=percentage(b.spent, b.allocated),
            over_budget=b.spent > b.allocated,
        )
        for b in budgets
        if b.is_active
    ]


def build_dashboard(
    state: RewardsState,
    now: datetime,
    tz: tzinfo,
    transactions: Iterable[TransactionRow] = (),
    budgets: Iterable[BudgetRow] = (),
    histogram_days: int = 30,
    activity_limit: int = 10,
) -> DashboardSnapshot:
    transactions = list(transactions)
    goals = list(state.goals.values())
    return DashboardSnapshot(
        generated_at=now,
        points_balance=state.balance,
        free_spins_remaining=state.allowance.free_spins_remaining,
        goals=goal_summary(goals),
        goal_deadlines=goal_deadlines(goals, now, tz),
        spins_per_day=daily_histogram((s.timestamp for s in state.spins), tz, histogram_days),
        redemptions_per_day=daily_histogram(
            (r.timestamp for r in state.redemptions), tz, histogram_days
        ),
        prize_distribution=prize_distribution(state.spins),
        shop_performance=shop_performance(state.redemptions),
        recent_activity=recent_activity(state.spins, state.redemptions, activity_limit),
        transactions=transaction_summary(transactions),
        spending_by_category=spending_by_category(transactions),
        budgets=budget_utilisation(budgets),
    )
