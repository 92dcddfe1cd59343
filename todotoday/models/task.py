"""
Task model definitions.

A stored Task is a template: for a recurring task its due_date is the anchor
date and per-occurrence completion lives in completed_dates. TaskOccurrence is
the computed, never-persisted realization of a template on one date.
"""

from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from pydantic import Field

from todotoday.models.base import CamelModel
from todotoday.models.enums import TaskPriority
from todotoday.models.recurrence import RecurrencePattern


class Subtask(CamelModel):
    """Checklist item inside a task."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    text: str
    completed: bool = False


class TaskCreate(CamelModel):
    """Schema for creating a new task."""

    text: str = Field(..., min_length=1)
    due_date: Optional[date] = None
    priority: Optional[TaskPriority] = None
    recurrence: Optional[RecurrencePattern] = None
    subtasks: list[Subtask] = Field(default_factory=list)


class TaskUpdate(CamelModel):
    """
    Field mask for updating a task.

    Fields that were explicitly set (None included) overwrite the stored value;
    fields left unset are untouched. `order` is deliberately absent: it only
    changes through LocalStore.reorder_tasks.
    """

    text: Optional[str] = Field(None, min_length=1)
    completed: Optional[bool] = None
    due_date: Optional[date] = None
    priority: Optional[TaskPriority] = None
    recurrence: Optional[RecurrencePattern] = None
    subtasks: Optional[list[Subtask]] = None
    completed_dates: Optional[list[date]] = None


class Task(CamelModel):
    """Stored task template."""

    id: str
    text: str
    completed: bool = False
    completed_at: Optional[datetime] = None
    due_date: Optional[date] = None
    priority: Optional[TaskPriority] = None
    recurrence: Optional[RecurrencePattern] = None
    completed_dates: list[date] = Field(default_factory=list)
    parent_task_id: Optional[str] = None
    order: int = 0
    subtasks: list[Subtask] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    @property
    def is_occurrence(self) -> bool:
        return self.parent_task_id is not None

    @property
    def template_id(self) -> str:
        """Id of the stored template this task (or occurrence) belongs to."""
        return self.parent_task_id or self.id

    def is_completed_on(self, occurrence_date: date) -> bool:
        return occurrence_date in self.completed_dates


class TaskOccurrence(Task):
    """A recurring task projected onto one concrete date."""

    parent_task_id: str
    occurrence_date: date
