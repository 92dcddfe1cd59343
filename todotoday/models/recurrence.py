"""
Recurrence pattern model.

A pattern is always paired with an anchor date (the template's dueDate/date).
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import Field

from todotoday.models.base import CamelModel
from todotoday.models.enums import RecurrenceFrequency


class RecurrencePattern(CamelModel):
    """How a task or event repeats from its anchor date."""

    frequency: RecurrenceFrequency = RecurrenceFrequency.WEEKLY
    # Not range-checked so malformed stored patterns still load; the
    # recurrence engine treats interval <= 0 as "no recurrence".
    interval: int = 1
    end_date: Optional[date] = Field(None, description="Inclusive last date")
    end_after: Optional[int] = Field(None, description="Maximum number of occurrences")
    days_of_week: Optional[list[int]] = Field(
        None, description="0=Sunday ... 6=Saturday, for WEEKLY"
    )

    @property
    def is_valid(self) -> bool:
        return self.interval > 0
