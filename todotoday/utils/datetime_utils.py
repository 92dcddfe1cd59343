"""
Calendar-day and timestamp utilities.

Calendar dates are compared by their local year/month/day, never by elapsed
hours, and are rendered as YYYY-MM-DD keys. Timestamps (createdAt, updatedAt,
completedAt) are timezone-aware UTC datetimes.
"""

from datetime import date, datetime, timezone
from typing import Optional, Protocol, Union

# UTC timezone constant
UTC = timezone.utc

DATE_KEY_FORMAT = "%Y-%m-%d"


class TimedEvent(Protocol):
    """Anything with a date and an end time (Event and EventOccurrence)."""

    date: date

    @property
    def end_time(self): ...


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def parse_iso_to_utc(iso_string: str) -> datetime:
    """
    Parse ISO datetime string to UTC timezone-aware datetime.

    Handles:
    - ISO strings with 'Z' suffix (UTC): "2024-01-20T09:00:00Z"
    - ISO strings with timezone offset: "2024-01-20T09:00:00+09:00"
    - Naive ISO strings (assumes UTC): "2024-01-20T09:00:00"

    Raises:
        ValueError: If the string cannot be parsed
    """
    normalized = iso_string.replace("Z", "+00:00")
    dt = datetime.fromisoformat(normalized)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware and in UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _local_date(value: Union[date, datetime]) -> date:
    # datetime is a subclass of date; keep its own wall-clock day
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def format_date(value: Union[date, datetime]) -> str:
    """
    Render the local calendar day as YYYY-MM-DD.

    Aware datetimes are converted to local time first, so the key is never
    UTC-shifted relative to what the user sees.
    """
    d = _local_date(value)
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_date_key(key: str) -> date:
    """Parse a YYYY-MM-DD key into a date (inverse of format_date)."""
    return datetime.strptime(key, DATE_KEY_FORMAT).date()


def local_today() -> date:
    return datetime.now().date()


def days_until(due_date: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """Calendar days from today until due_date (negative when past), or None."""
    if due_date is None:
        return None
    today = today or local_today()
    return (_local_date(due_date) - today).days


def is_overdue(due_date: Optional[date], today: Optional[date] = None) -> bool:
    """True iff due_date is strictly before today."""
    if due_date is None:
        return False
    today = today or local_today()
    return _local_date(due_date) < today


def was_completed_on_date(completed_at: Optional[datetime], on: date) -> bool:
    """True iff completed_at falls on the given local calendar day."""
    if completed_at is None:
        return False
    return _local_date(completed_at) == on


def was_completed_today(
    completed_at: Optional[datetime], today: Optional[date] = None
) -> bool:
    return was_completed_on_date(completed_at, today or local_today())


def is_event_ended(event: TimedEvent, now: Optional[datetime] = None) -> bool:
    """
    True iff the event's date is in the past, or it is today and the
    wall-clock time has reached the event's end time.

    `now` is a naive local datetime.
    """
    now = now or datetime.now()
    today = now.date()
    if event.date < today:
        return True
    if event.date > today:
        return False
    return now.time() >= event.end_time
