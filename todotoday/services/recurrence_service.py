"""
Recurrence engine.

Decides whether a date is an occurrence of a recurrence pattern anchored at a
given date, and enumerates occurrences up to a range end. Everything here is a
pure function of (anchor, pattern, date).
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from todotoday.models.enums import RecurrenceFrequency
from todotoday.models.recurrence import RecurrencePattern

# Upper bound for next_occurrence scans (a weekly pattern with interval 52 on a
# single weekday still repeats well within this window).
MAX_SCAN_DAYS = 366 * 5


def js_weekday(d: date) -> int:
    """Weekday number with 0=Sunday ... 6=Saturday."""
    return (d.weekday() + 1) % 7


def _months_between(anchor: date, candidate: date) -> int:
    return (candidate.year - anchor.year) * 12 + (candidate.month - anchor.month)


def matches_recurrence(
    candidate: date, anchor: date, pattern: RecurrencePattern
) -> bool:
    """
    Check whether `candidate` is an occurrence of `pattern` anchored at `anchor`.

    `end_after` is not checked here: counting occurrences needs the ordered
    walk done by enumerate_occurrences.
    """
    if candidate < anchor:
        return False
    if pattern.end_date is not None and candidate > pattern.end_date:
        return False
    if not pattern.is_valid:
        # Malformed interval behaves as no recurrence at all
        return candidate == anchor

    days = (candidate - anchor).days
    freq = pattern.frequency

    if freq == RecurrenceFrequency.DAILY:
        return days % pattern.interval == 0

    elif freq == RecurrenceFrequency.WEEKLY:
        if not pattern.days_of_week or js_weekday(candidate) not in pattern.days_of_week:
            return False
        # Elapsed whole weeks, not calendar-week aligned
        weeks = days // 7
        return weeks % pattern.interval == 0

    elif freq == RecurrenceFrequency.MONTHLY:
        # Day 29-31 anchors are skipped in months that lack that day
        if candidate.day != anchor.day:
            return False
        return _months_between(anchor, candidate) % pattern.interval == 0

    return False


def enumerate_occurrences(
    anchor: date, pattern: RecurrencePattern, range_end: date
) -> list[date]:
    """
    List every occurrence from `anchor` through `range_end` inclusive.

    Stops early once `pattern.end_after` occurrences were collected or the walk
    passes `pattern.end_date`.
    """
    dates: list[date] = []
    if pattern.end_after is not None and pattern.end_after <= 0:
        return dates

    last = range_end
    if pattern.end_date is not None and pattern.end_date < last:
        last = pattern.end_date
    if not pattern.is_valid:
        return [anchor] if anchor <= last else dates

    current = anchor
    while current <= last:
        if matches_recurrence(current, anchor, pattern):
            dates.append(current)
            if pattern.end_after is not None and len(dates) >= pattern.end_after:
                break
        current += timedelta(days=1)
    return dates


def next_occurrence(
    anchor: date, pattern: RecurrencePattern, after: date
) -> Optional[date]:
    """
    First occurrence strictly after `after`, honouring both end bounds.

    Returns None when the pattern is exhausted or nothing falls inside the scan window.
    """
    start = max(anchor, after + timedelta(days=1))
    horizon = start + timedelta(days=MAX_SCAN_DAYS)
    if pattern.end_after is not None:
        # The count cap needs the walk from the anchor
        for occurrence in enumerate_occurrences(anchor, pattern, horizon):
            if occurrence > after:
                return occurrence
        return None

    current = start
    while current <= horizon:
        if pattern.end_date is not None and current > pattern.end_date:
            return None
        if matches_recurrence(current, anchor, pattern):
            return current
        current += timedelta(days=1)
    return None
