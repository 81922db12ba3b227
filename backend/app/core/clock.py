"""
Wall-clock helpers.

WHY: All persisted instants are naive UTC datetimes (the columns are plain
DateTime). Routing every "now" through one function keeps that convention
in one place and gives tests a single seam to freeze time.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current instant as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def week_start_for(day: date) -> date:
    """Monday of the ISO week containing ``day``."""
    return day - timedelta(days=day.weekday())


def week_end_for(week_start: date) -> date:
    """Sunday closing a Monday-start week."""
    return week_start + timedelta(days=6)


def month_start(now: datetime) -> datetime:
    """First instant of the calendar month containing ``now``."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def format_duration(seconds: int) -> str:
    """
    Render a duration the way entries are shown to users.

    "1h 30m", "2h", "45m", or "30s" for anything under a minute.
    """
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0 and minutes > 0:
        return f"{hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h"
    if minutes > 0:
        return f"{minutes}m"
    return f"{seconds}s"


HOURS_QUANTUM = Decimal("0.01")


def seconds_to_hours(seconds: int) -> Decimal:
    """Convert whole seconds to hours rounded to two decimals."""
    return (Decimal(seconds) / Decimal(3600)).quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)
