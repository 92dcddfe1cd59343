"""
Journal entry model.

The journal is a mapping keyed by the entry's date (YYYY-MM-DD), one entry per day.
"""

import datetime as dt

from todotoday.models.base import CamelModel


class JournalEntry(CamelModel):
    """One day's journal text."""

    date: dt.date
    content: str = ""
    updated_at: dt.datetime

    @property
    def key(self) -> str:
        return self.date.isoformat()
