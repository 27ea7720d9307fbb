from datetime import datetime, time, timedelta, tzinfo

from .exceptions import ValidationError
from .models import SpinAllowance


def next_local_midnight(now: datetime, tz: tzinfo) -> datetime:
    """First local midnight strictly after ``now`` in ``tz``."""
    if now.tzinfo is None:
        raise ValidationError("now must be timezone-aware")
    local_day = now.astimezone(tz).date()
    return datetime.combine(local_day + timedelta(days=1), time.min, tzinfo=tz)


def new_allowance(max_free_spins: int, now: datetime, tz: tzinfo) -> SpinAllowance:
    return SpinAllowance(
        free_spins_remaining=max_free_spins,
        next_reset_at=next_local_midnight(now, tz),
    )


def refresh_allowance(
    allowance: SpinAllowance, max_free_spins: int, now: datetime, tz: tzinfo
) -> SpinAllowance:
    """
    Lazily apply the daily reset.

    Compares ``now`` against the stored reset time rather than relying on a
    timer, so a process that was asleep across several midnights still
    resets exactly once on its next check.
    """
    if now < allowance.next_reset_at:
        return allowance
    return new_allowance(max_free_spins, now, tz)


def time_until_reset(allowance: SpinAllowance, now: datetime) -> timedelta:
    return max(allowance.next_reset_at - now, timedelta(0))


def format_countdown(remaining: timedelta) -> str:
    total_minutes = int(remaining.total_seconds()) // 60
    return f"{total_minutes // 60}h {total_minutes % 60}m"
