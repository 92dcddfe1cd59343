"""
Event model definitions.

Events are timed (or all-day) calendar entries. As with tasks, a stored Event
is a template whose `date` is the anchor of its recurrence, and
EventOccurrence is its projection onto a concrete date.
"""

import datetime as dt
from typing import Optional

from pydantic import Field

from todotoday.models.base import CamelModel
from todotoday.models.recurrence import RecurrencePattern


class EventBase(CamelModel):
    """Base event fields shared across create/read."""

    text: str = Field(..., min_length=1)
    date: dt.date
    hour: int = Field(0, ge=0, le=23)
    minutes: int = Field(0, ge=0, le=59)
    # Callers must keep the end strictly after the start; it is not validated.
    end_hour: Optional[int] = Field(None, ge=0, le=23)
    end_minutes: Optional[int] = Field(None, ge=0, le=59)
    all_day: bool = False
    location: Optional[str] = None
    recurrence: Optional[RecurrencePattern] = None
    source_task_id: Optional[str] = None


class EventCreate(EventBase):
    """Schema for creating a new event."""

    pass


class EventUpdate(CamelModel):
    """Field mask for updating an event (explicitly set fields overwrite)."""

    text: Optional[str] = Field(None, min_length=1)
    date: Optional[dt.date] = None
    hour: Optional[int] = Field(None, ge=0, le=23)
    minutes: Optional[int] = Field(None, ge=0, le=59)
    end_hour: Optional[int] = Field(None, ge=0, le=23)
    end_minutes: Optional[int] = Field(None, ge=0, le=59)
    all_day: Optional[bool] = None
    location: Optional[str] = None
    recurrence: Optional[RecurrencePattern] = None


class Event(EventBase):
    """Stored event template."""

    id: str
    parent_event_id: Optional[str] = None
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None

    @property
    def is_occurrence(self) -> bool:
        return self.parent_event_id is not None

    @property
    def template_id(self) -> str:
        return self.parent_event_id or self.id

    @property
    def end_time(self) -> dt.time:
        """End of the event; defaults to one hour after the start hour."""
        end_hour = self.end_hour if self.end_hour is not None else self.hour + 1
        end_minutes = self.end_minutes if self.end_minutes is not None else 0
        if end_hour >= 24:
            return dt.time.max
        return dt.time(end_hour, end_minutes)


class EventOccurrence(Event):
    """A recurring event projected onto one concrete date."""

    parent_event_id: str
    occurrence_date: dt.date
