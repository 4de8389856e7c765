"""Calendar helpers shared by the closing optimizer and the secondary engine.

All dates in the scheduling core are plain ``datetime.date`` values. Any
time-of-day component is discarded on the way in, so two inputs that fall on
the same calendar day always compare equal regardless of timezone offsets.

The department works a Sunday-based week. The weekend is Thursday, Friday and
Saturday, and the Friday is used as the canonical anchor for a weekend.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

DATE_KEY_FORMAT = "%d/%m/%Y"

THURSDAY = 3
FRIDAY = 4
SATURDAY = 5

DateLike = Union[date, datetime, str]


def date_key(d: date) -> str:
    """Format a date as DD/MM/YYYY."""
    return f"{d.day:02d}/{d.month:02d}/{d.year:04d}"


def parse_date_key(value: str) -> date:
    """Parse a DD/MM/YYYY string.

    Raises:
        ValueError: If the string is not a valid DD/MM/YYYY date.
    """
    parts = value.strip().split("/")
    if len(parts) != 3:
        raise ValueError(f"Expected DD/MM/YYYY date, got {value!r}")
    day, month, year = (int(p) for p in parts)
    return date(year, month, day)


def to_date(value: DateLike) -> date:
    """Normalize a date, datetime or date string to a calendar date.

    Strings may be DD/MM/YYYY, ISO dates (YYYY-MM-DD) or ISO timestamps.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if "/" in value:
        return parse_date_key(value)
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return parse_timestamp(text).date()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp, accepting a trailing ``Z`` for UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def date_range(start: date, end: date) -> list[date]:
    """All dates from start to end, inclusive. Empty if start is after end."""
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def is_friday(d: date) -> bool:
    return d.weekday() == FRIDAY


def is_weekend_day(d: date) -> bool:
    """Thursday, Friday and Saturday form the weekend."""
    return d.weekday() in (THURSDAY, FRIDAY, SATURDAY)


def weekend_friday(d: date) -> Optional[date]:
    """The Friday anchoring the weekend that contains ``d``, if any."""
    weekday = d.weekday()
    if weekday == THURSDAY:
        return d + timedelta(days=1)
    if weekday == FRIDAY:
        return d
    if weekday == SATURDAY:
        return d - timedelta(days=1)
    return None


def weekend_triad(friday: date) -> tuple[date, date, date]:
    """Thursday, Friday and Saturday of the weekend anchored at ``friday``."""
    return (friday - timedelta(days=1), friday, friday + timedelta(days=1))


def fridays_in_range(start: date, end: date) -> list[date]:
    return [d for d in date_range(start, end) if is_friday(d)]


def week_start_sunday(d: date) -> date:
    """The Sunday that opens the calendar week containing ``d``."""
    return d - timedelta(days=(d.weekday() + 1) % 7)


def week_key(d: date) -> str:
    """Key of the Sunday to Saturday week containing ``d``.

    The key is the ISO date of the opening Sunday, so a week that straddles
    New Year keeps a single key.
    """
    return week_start_sunday(d).isoformat()


def weeks_between(later: date, earlier: date) -> int:
    """Whole weeks elapsed from ``earlier`` to ``later`` (floor division)."""
    return (later - earlier).days // 7


@dataclass(frozen=True)
class SemesterWeek:
    """One column of a primary schedule.

    Attributes:
        week_number: Sequential 1-based week number.
        start_date: First day of the week (a Sunday, except for the first week).
        end_date: Last day of the week (a Saturday, except for the last week).
    """

    week_number: int
    start_date: date
    end_date: date

    @property
    def friday(self) -> date:
        """Friday of the calendar week this schedule week belongs to."""
        return week_start_sunday(self.start_date) + timedelta(days=5)

    @property
    def weekend(self) -> tuple[date, date, date]:
        return weekend_triad(self.friday)

    @property
    def date_range_label(self) -> str:
        return (
            f"{self.start_date.day:02d}/{self.start_date.month:02d} - "
            f"{self.end_date.day:02d}/{self.end_date.month:02d}"
        )


def calculate_weeks(start: date, end: date) -> list[SemesterWeek]:
    """Split a schedule period into Sunday to Saturday weeks.

    The first week runs from ``start`` to the first Saturday, middle weeks are
    full Sunday to Saturday weeks and the last week ends on ``end``.
    """
    if start > end:
        return []

    weeks = []
    week_number = 1
    current = start
    while current <= end:
        days_to_saturday = (SATURDAY - current.weekday()) % 7
        saturday = current + timedelta(days=days_to_saturday)
        week_end = min(saturday, end)
        weeks.append(SemesterWeek(week_number, current, week_end))
        week_number += 1
        current = saturday + timedelta(days=1)
    return weeks


def semester_fridays(start: date, end: date) -> list[date]:
    """Ordered Friday anchors for every week of the period."""
    return [week.friday for week in calculate_weeks(start, end)]
