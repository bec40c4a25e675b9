"""Date range presets and formatting helpers shared by the retrievers."""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from finance_agent.models.domain import DateRange

DATE_PRESETS = (
    "today",
    "yesterday",
    "this_week",
    "last_week",
    "this_month",
    "last_month",
    "this_quarter",
    "this_year",
    "last_year",
    "ytd",
    "last_30_days",
    "last_90_days",
)


def month_range(year: int, month: int) -> DateRange:
    last_day = calendar.monthrange(year, month)[1]
    start = date(year, month, 1)
    return DateRange(start, date(year, month, last_day), start.strftime("%B %Y"))


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def date_range_preset(preset: str, today: date | None = None) -> DateRange:
    """Resolve a relative period name to concrete dates.

    Unknown presets resolve to the current month.
    """
    today = today or date.today()
    year, month = today.year, today.month

    if preset == "today":
        return DateRange(today, today, "Today")
    if preset == "yesterday":
        day = today - timedelta(days=1)
        return DateRange(day, day, "Yesterday")
    if preset == "this_week":
        # Weeks start on Sunday
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return DateRange(start, today, "This Week")
    if preset == "last_week":
        this_start = today - timedelta(days=(today.weekday() + 1) % 7)
        return DateRange(this_start - timedelta(days=7), this_start - timedelta(days=1), "Last Week")
    if preset == "last_month":
        return month_range(*shift_month(year, month, -1))
    if preset == "this_quarter":
        quarter = (month - 1) // 3
        return DateRange(date(year, quarter * 3 + 1, 1), today, f"Q{quarter + 1} {year}")
    if preset == "this_year":
        return DateRange(date(year, 1, 1), date(year, 12, 31), str(year))
    if preset == "last_year":
        return DateRange(date(year - 1, 1, 1), date(year - 1, 12, 31), str(year - 1))
    if preset == "ytd":
        return DateRange(date(year, 1, 1), today, f"YTD {year}")
    if preset == "last_30_days":
        return DateRange(today - timedelta(days=29), today, "Last 30 Days")
    if preset == "last_90_days":
        return DateRange(today - timedelta(days=89), today, "Last 90 Days")
    return DateRange(date(year, month, 1), today, today.strftime("%B %Y"))


def previous_period(date_range: DateRange) -> DateRange:
    """Equal-length period immediately before ``date_range``."""
    end = date_range.start - timedelta(days=1)
    start = end - timedelta(days=date_range.days - 1)
    return DateRange(start, end, "Previous Period")


def format_currency(amount: float, currency: str = "RM") -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency} {abs(amount):,.2f}"


def percent_change(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / abs(previous) * 100, 1)


def round2(value: float) -> float:
    return round(value, 2)
