"""ISO week helpers used to address reports."""

import re
from datetime import date, datetime, timedelta

_WEEK_PATTERN = re.compile(r"^(\d{4})-W(\d{2})$")


def get_week_string(day: date | datetime | None = None) -> str:
    """Return the ISO week identifier ("YYYY-Www") containing a date.

    Two dates in the same ISO week always map to the same identifier.

    Args:
        day: Date to convert (defaults to today)

    Returns:
        Week identifier, e.g. "2025-W52"
    """
    if day is None:
        day = date.today()
    if isinstance(day, datetime):
        day = day.date()
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def parse_week(week: str) -> tuple[int, int]:
    """Split a week identifier into (iso_year, iso_week).

    Raises:
        ValueError: If the identifier is malformed or the week does not exist
    """
    match = _WEEK_PATTERN.match(week or "")
    if not match:
        raise ValueError(f"Invalid week identifier: {week!r}")
    year, number = int(match.group(1)), int(match.group(2))
    # fromisocalendar rejects week 53 in 52-week years
    date.fromisocalendar(year, number, 1)
    return year, number


def week_sort_key(week: str) -> tuple[int, int]:
    """Sort key that orders week identifiers chronologically."""
    return parse_week(week)


def get_week_date_range(week: str) -> tuple[date, date]:
    """Return the Monday and Sunday of a week identifier."""
    year, number = parse_week(week)
    start = date.fromisocalendar(year, number, 1)
    return start, start + timedelta(days=6)


def get_last_n_weeks(n: int, today: date | None = None) -> list[str]:
    """Return the identifiers of the last n weeks, current week first."""
    today = today or date.today()
    return [get_week_string(today - timedelta(weeks=i)) for i in range(n)]
