"""Resolve the effective date range for the assignment board."""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum
from typing import Optional

from ...models.domain import DateRange

DEFAULT_CUSTOM_SPAN_DAYS = 7


class QuickFilter(str, Enum):
    TODAY = "today"
    THIS_WEEK = "week"
    NEXT_7_DAYS = "next7days"
    CUSTOM = "all"

    @classmethod
    def parse(cls, value: "str | QuickFilter | None") -> "QuickFilter":
        if isinstance(value, QuickFilter):
            return value
        if value is None or not str(value).strip():
            return cls.CUSTOM
        normalized = str(value).strip().lower().replace("_", "-")
        aliases = {
            "today": cls.TODAY,
            "week": cls.THIS_WEEK,
            "this-week": cls.THIS_WEEK,
            "next7days": cls.NEXT_7_DAYS,
            "next-7-days": cls.NEXT_7_DAYS,
            "all": cls.CUSTOM,
            "custom": cls.CUSTOM,
        }
        try:
            return aliases[normalized]
        except KeyError as exc:
            raise ValueError(f"Unknown quick filter '{value}'") from exc


def start_of_week(day: date) -> date:
    """Weeks start on Sunday."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def resolve_date_range(
    quick_filter: "str | QuickFilter | None" = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    today: Optional[date] = None,
) -> DateRange:
    """Quick filters override explicit dates; only the custom filter uses ``date_from``/``date_to``.

    A custom range with a missing end spans one week from the end that is given (or from today).
    An inverted range is returned as-is and yields no days.
    """
    today = today or date.today()
    selected = QuickFilter.parse(quick_filter)

    if selected is QuickFilter.TODAY:
        return DateRange(today, today)
    if selected is QuickFilter.THIS_WEEK:
        first = start_of_week(today)
        return DateRange(first, first + timedelta(days=6))
    if selected is QuickFilter.NEXT_7_DAYS:
        return DateRange(today, today + timedelta(days=DEFAULT_CUSTOM_SPAN_DAYS - 1))

    span = timedelta(days=DEFAULT_CUSTOM_SPAN_DAYS - 1)
    if date_from is None and date_to is None:
        return DateRange(today, today + span)
    if date_from is None:
        return DateRange(date_to - span, date_to)
    if date_to is None:
        return DateRange(date_from, date_from + span)
    return DateRange(date_from, date_to)
