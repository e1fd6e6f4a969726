"""
Date helpers shared by stores and routes.

Dates are stored as ISO strings (``YYYY-MM-DD``), timestamps as ISO
datetimes in UTC.
"""

import math
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple, Union

DateLike = Union[str, date, datetime, None]

# (label, color) thresholds for deadline urgency, checked in order
URGENCY_NONE = ("none", "#9ca3af")
URGENCY_OVERDUE = ("overdue", "#ef4444")
URGENCY_URGENT = ("urgent", "#f87171")
URGENCY_WARNING = ("warning", "#fbbf24")
URGENCY_SAFE = ("safe", "#4ade80")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return utcnow().isoformat()


def today() -> date:
    return utcnow().date()


def parse_date(value: DateLike) -> Optional[date]:
    """
    Parse a date from an ISO string, date or datetime.

    Accepts full ISO datetimes and keeps only the date part. Empty values
    return None.

    Raises:
        ValueError: If the string is not an ISO date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    return date.fromisoformat(text[:10])


def parse_timestamp(value: DateLike) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip().replace("Z", "+00:00")
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def shift_date(value: DateLike, days: int) -> Optional[str]:
    """Move a date by ``days`` and return it as an ISO string."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return (parsed + timedelta(days=days)).isoformat()


def days_until(value: DateLike, reference: Optional[date] = None) -> Optional[int]:
    """Whole days from ``reference`` (default today) until the given date."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return (parsed - (reference or today())).days


def deadline_urgency(value: DateLike, reference: Optional[date] = None) -> Tuple[str, str]:
    """
    Classify a deadline into an urgency label and display color.

    Returns:
        (label, color): none | overdue | urgent (2 days or less) |
        warning (7 days or less) | safe
    """
    remaining = days_until(value, reference)
    if remaining is None:
        return URGENCY_NONE
    if remaining < 0:
        return URGENCY_OVERDUE
    if remaining <= 2:
        return URGENCY_URGENT
    if remaining <= 7:
        return URGENCY_WARNING
    return URGENCY_SAFE


def days_since(value: DateLike, now: Optional[datetime] = None) -> int:
    """Days elapsed since a timestamp, rounded up, never negative."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return 0
    elapsed = ((now or utcnow()) - parsed).total_seconds() / 86400.0
    return max(0, math.ceil(elapsed))


def employment_duration(start: DateLike, end: DateLike = None, reference: Optional[date] = None) -> str:
    """
    Human readable length of a role, e.g. ``"2 yrs 3 mos"``.

    An open-ended role runs until ``reference`` (default today).
    """
    start_date = parse_date(start)
    if start_date is None:
        return ""
    end_date = parse_date(end) or reference or today()

    months = (end_date.year - start_date.year) * 12 + (end_date.month - start_date.month)
    if end_date.day < start_date.day:
        months -= 1
    months = max(0, months)

    years, months = divmod(months, 12)
    parts = []
    if years:
        parts.append(f"{years} yr" + ("s" if years != 1 else ""))
    if months or not years:
        parts.append(f"{months} mo" + ("s" if months != 1 else ""))
    return " ".join(parts)
