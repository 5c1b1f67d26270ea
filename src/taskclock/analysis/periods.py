"""Named reporting periods resolved to inclusive date ranges."""

from datetime import date, timedelta
from enum import Enum
from typing import Optional

from taskclock.core.errors import ValidationError


class Period(str, Enum):
    """Date range presets offered by the report filters."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this_week"
    LAST_WEEK = "last_week"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    CUSTOM = "custom"

    @property
    def label(self) -> str:
        if self is Period.CUSTOM:
            return "Custom Range"
        return self.value.replace("_", " ").title()


def _week_start(day: date, week_start: str) -> date:
    if week_start == "sunday":
        offset = (day.weekday() + 1) % 7
    else:
        offset = day.weekday()
    return day - timedelta(days=offset)


def _month_end(day: date) -> date:
    next_month = (day.replace(day=28) + timedelta(days=4)).replace(day=1)
    return next_month - timedelta(days=1)


def resolve_period(
    period: Period,
    today: Optional[date] = None,
    week_start: str = "monday",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> tuple[date, date]:
    """Resolve a period to its first and last day, both inclusive.

    Args:
        period: Period preset
        today: Reference day. Defaults to the current date.
        week_start: "monday" or "sunday"
        start_date: First day of a custom range
        end_date: Last day of a custom range

    Returns:
        Tuple of (first day, last day)

    Raises:
        ValidationError: If a custom range is incomplete or reversed
    """
    today = today or date.today()

    if period is Period.TODAY:
        return today, today

    if period is Period.YESTERDAY:
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday

    if period is Period.THIS_WEEK:
        first = _week_start(today, week_start)
        return first, first + timedelta(days=6)

    if period is Period.LAST_WEEK:
        first = _week_start(today, week_start) - timedelta(days=7)
        return first, first + timedelta(days=6)

    if period is Period.THIS_MONTH:
        first = today.replace(day=1)
        return first, _month_end(first)

    if period is Period.LAST_MONTH:
        last = today.replace(day=1) - timedelta(days=1)
        return last.replace(day=1), last

    if start_date is None or end_date is None:
        raise ValidationError("A custom range needs both a start and an end date")
    if end_date < start_date:
        raise ValidationError("End date must not be before start date")
    return start_date, end_date
