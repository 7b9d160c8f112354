"""
Date Range Service

Calendar helpers shared by the metrics engine and the report assembler:
- Preset windows (this month, last quarter, ...) resolved against a clock
- Month keys ("YYYY-MM") and their neighbours
- Human-readable period labels for report headers
"""

import calendar
import logging
from datetime import datetime, time, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from fintrack.exceptions import ValidationError
from fintrack.schemas.reporting import DateRange, DateRangePreset

logger = logging.getLogger(__name__)

# Earliest instant used for the all_time preset
EPOCH = datetime(1970, 1, 1)


def _day_start(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.min)


def _day_end(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.max)


def month_key(dt: datetime) -> str:
    """Calendar month key of an instant, e.g. '2025-03'."""
    return f"{dt.year:04d}-{dt.month:02d}"


def parse_month_key(key: str) -> datetime:
    """First instant of the month named by a 'YYYY-MM' key."""
    return datetime.strptime(key, "%Y-%m")


def previous_month_key(key: str) -> str:
    return month_key(parse_month_key(key) - relativedelta(months=1))


def month_label(key: str) -> str:
    """Long label for a month key ('2025-03' -> 'March 2025')."""
    return parse_month_key(key).strftime("%B %Y")


def days_in_month(dt: datetime) -> int:
    return calendar.monthrange(dt.year, dt.month)[1]


def date_range_from_preset(
    preset: DateRangePreset,
    now: Optional[datetime] = None,
) -> DateRange:
    """
    Resolve a preset into concrete, day-normalized bounds.

    Weeks start on Monday. Quarters are calendar quarters (Jan/Apr/Jul/Oct).
    CUSTOM has no implied bounds and is rejected.
    """
    preset = DateRangePreset(preset)
    now = now or datetime.now()
    today = _day_start(now)

    if preset == DateRangePreset.TODAY:
        start, end = today, today
    elif preset == DateRangePreset.YESTERDAY:
        start = end = today - timedelta(days=1)
    elif preset == DateRangePreset.THIS_WEEK:
        start = today - timedelta(days=today.weekday())
        end = start + timedelta(days=6)
    elif preset == DateRangePreset.LAST_WEEK:
        start = today - timedelta(days=today.weekday() + 7)
        end = start + timedelta(days=6)
    elif preset == DateRangePreset.THIS_MONTH:
        start = today.replace(day=1)
        end = start + relativedelta(months=1) - timedelta(days=1)
    elif preset == DateRangePreset.LAST_MONTH:
        start = today.replace(day=1) - relativedelta(months=1)
        end = today.replace(day=1) - timedelta(days=1)
    elif preset == DateRangePreset.THIS_QUARTER:
        q_month = 3 * ((today.month - 1) // 3) + 1
        start = today.replace(month=q_month, day=1)
        end = start + relativedelta(months=3) - timedelta(days=1)
    elif preset == DateRangePreset.THIS_YEAR:
        start = today.replace(month=1, day=1)
        end = today.replace(month=12, day=31)
    elif preset == DateRangePreset.LAST_YEAR:
        start = today.replace(year=today.year - 1, month=1, day=1)
        end = today.replace(year=today.year - 1, month=12, day=31)
    elif preset == DateRangePreset.ALL_TIME:
        start, end = EPOCH, today
    else:
        raise ValidationError("A custom date range needs explicit start and end dates")

    return DateRange(start=_day_start(start), end=_day_end(end), preset=preset)


def _format_span(start: datetime, end: datetime) -> str:
    """Format a human-readable span between two days."""
    if start.year == end.year:
        if start.month == end.month:
            return (
                f"{start.strftime('%B %d')} - "
                f"{end.strftime('%d, %Y')}"
            )
        return (
            f"{start.strftime('%B %d')} - "
            f"{end.strftime('%B %d, %Y')}"
        )
    return (
        f"{start.strftime('%B %d, %Y')} - "
        f"{end.strftime('%B %d, %Y')}"
    )


def period_label(date_range: DateRange) -> str:
    """Preset title ('Last Month') when one was used, otherwise the explicit span."""
    if date_range.preset and date_range.preset != DateRangePreset.CUSTOM:
        return date_range.preset.value.replace("_", " ").title()
    return _format_span(date_range.start, date_range.end)
