"""
Unit tests for calendar-day utilities.
"""

from datetime import date, datetime, timezone

import pytest

from todotoday.models.event import Event
from todotoday.utils.datetime_utils import (
    days_until,
    ensure_utc,
    format_date,
    is_event_ended,
    is_overdue,
    parse_date_key,
    parse_iso_to_utc,
    was_completed_on_date,
    was_completed_today,
)


def _event(day: date, hour: int, **kwargs) -> Event:
    return Event(
        id="e1",
        text="Standup",
        date=day,
        hour=hour,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        **kwargs,
    )


class TestFormatDate:
    """Tests for format_date / parse_date_key."""

    def test_zero_padded(self):
        assert format_date(date(2024, 3, 5)) == "2024-03-05"

    def test_naive_datetime_uses_its_own_day(self):
        assert format_date(datetime(2024, 3, 5, 23, 59)) == "2024-03-05"

    @pytest.mark.parametrize(
        "d",
        [date(2024, 1, 1), date(2024, 2, 29), date(1999, 12, 31), date(2030, 7, 4)],
    )
    def test_round_trip(self, d):
        assert parse_date_key(format_date(d)) == d


class TestDaysUntil:
    """Tests for days_until / is_overdue."""

    def test_none_when_absent(self):
        assert days_until(None) is None
        assert is_overdue(None) is False

    def test_counts_calendar_days(self):
        today = date(2024, 3, 1)
        assert days_until(date(2024, 3, 1), today) == 0
        assert days_until(date(2024, 3, 8), today) == 7
        assert days_until(date(2024, 2, 28), today) == -2

    def test_overdue_is_strictly_before_today(self):
        today = date(2024, 3, 1)
        assert is_overdue(date(2024, 2, 29), today) is True
        assert is_overdue(date(2024, 3, 1), today) is False
        assert is_overdue(date(2024, 3, 2), today) is False


class TestIsEventEnded:
    """Tests for is_event_ended."""

    def test_past_day_has_ended(self):
        assert is_event_ended(_event(date(2024, 3, 1), 9), now=datetime(2024, 3, 2, 0, 0))

    def test_future_day_has_not_ended(self):
        assert not is_event_ended(_event(date(2024, 3, 3), 9), now=datetime(2024, 3, 2, 23, 0))

    def test_default_end_is_one_hour_after_start(self):
        event = _event(date(2024, 3, 2), 9, minutes=30)
        assert not is_event_ended(event, now=datetime(2024, 3, 2, 9, 59))
        assert is_event_ended(event, now=datetime(2024, 3, 2, 10, 0))

    def test_explicit_end_time(self):
        event = _event(date(2024, 3, 2), 9, end_hour=11, end_minutes=15)
        assert not is_event_ended(event, now=datetime(2024, 3, 2, 11, 14))
        assert is_event_ended(event, now=datetime(2024, 3, 2, 11, 15))


class TestCompletion:
    """Tests for was_completed_on_date / was_completed_today."""

    def test_same_day(self):
        assert was_completed_on_date(datetime(2024, 3, 2, 8, 0), date(2024, 3, 2))
        assert not was_completed_on_date(datetime(2024, 3, 1, 23, 0), date(2024, 3, 2))

    def test_absent_completion(self):
        assert not was_completed_today(None, date(2024, 3, 2))


class TestTimestamps:
    """Tests for UTC helpers."""

    def test_parse_iso_z_suffix(self):
        assert parse_iso_to_utc("2024-01-20T09:00:00Z") == datetime(
            2024, 1, 20, 9, 0, tzinfo=timezone.utc
        )

    def test_ensure_utc_assumes_naive_is_utc(self):
        assert ensure_utc(datetime(2024, 1, 1, 0, 0)).tzinfo == timezone.utc
        assert ensure_utc(None) is None
