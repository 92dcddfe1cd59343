"""
Occurrence projector.

Expands stored task/event templates into the instances visible on a date or a
date range. Occurrences are rebuilt on every query and never stored; to
complete one, pass its occurrence_date as `instance_date` to
LocalStore.update_task on the template.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Callable, Iterable, Optional, Union

from todotoday.core.config import get_settings
from todotoday.models.event import Event, EventOccurrence
from todotoday.models.task import Task, TaskOccurrence
from todotoday.services.recurrence_service import matches_recurrence
from todotoday.utils.datetime_utils import is_overdue

TaskInstance = Union[Task, TaskOccurrence]
EventInstance = Union[Event, EventOccurrence]


def _date_range(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def project_task(task: Task, on: date) -> Optional[TaskInstance]:
    """Instance of `task` on `on`, or None when the task does not occur that day."""
    if task.is_occurrence or task.due_date is None:
        return None
    if task.due_date == on:
        return task
    if task.recurrence is None or not matches_recurrence(on, task.due_date, task.recurrence):
        return None
    data = task.model_dump(exclude={"due_date", "parent_task_id", "completed"})
    return TaskOccurrence(
        **data,
        due_date=on,
        parent_task_id=task.id,
        completed=task.is_completed_on(on),
        occurrence_date=on,
    )


def project_event(event: Event, on: date) -> Optional[EventInstance]:
    """Instance of `event` on `on`, or None when the event does not occur that day."""
    if event.is_occurrence:
        return None
    if event.date == on:
        return event
    if event.recurrence is None or not matches_recurrence(on, event.date, event.recurrence):
        return None
    data = event.model_dump(exclude={"date", "parent_event_id"})
    return EventOccurrence(
        **data,
        date=on,
        parent_event_id=event.id,
        occurrence_date=on,
    )


def tasks_on_date(tasks: Iterable[Task], on: date) -> list[TaskInstance]:
    """All task instances on a date, at most one per template."""
    result: list[TaskInstance] = []
    for task in tasks:
        instance = project_task(task, on)
        if instance is not None:
            result.append(instance)
    return result


def events_on_date(events: Iterable[Event], on: date) -> list[EventInstance]:
    """All event instances on a date, at most one per template."""
    result: list[EventInstance] = []
    for event in events:
        instance = project_event(event, on)
        if instance is not None:
            result.append(instance)
    return result


def _instance_date(instance: Union[TaskInstance, EventInstance]) -> date:
    if isinstance(instance, (Task, TaskOccurrence)):
        return instance.due_date
    return instance.date


def _parent_id(instance: Union[TaskInstance, EventInstance]) -> Optional[str]:
    return getattr(instance, "parent_task_id", None) or getattr(instance, "parent_event_id", None)


def _pair_key(instance) -> tuple:
    # The anchor (no parent) and the occurrences (parent set) are listed apart
    return (instance.id, _parent_id(instance))


def _dated_key(instance) -> tuple:
    return (instance.id, _parent_id(instance), _instance_date(instance))


def _template_key(instance) -> str:
    return instance.template_id


def _range_key(distinct_templates: bool, every_day: bool) -> Callable:
    if distinct_templates:
        return _template_key
    if every_day:
        return _dated_key
    return _pair_key


def _collect_range(per_day, templates, start: date, end: date, key: Callable) -> list:
    templates = list(templates)
    seen: set = set()
    result = []
    for day in _date_range(start, end):
        for instance in per_day(templates, day):
            instance_key = key(instance)
            if instance_key in seen:
                continue
            seen.add(instance_key)
            result.append(instance)
    return result


def tasks_in_range(
    tasks: Iterable[Task],
    start: date,
    end: date,
    distinct_templates: bool = False,
    every_day: bool = False,
) -> list[TaskInstance]:
    """
    Task instances for the days in [start, end], ordered by date.

    By default instances are de-duplicated by (id, parent id): a template
    shows up on its anchor date and at its first occurrence in the range.
    every_day keeps one instance per template per day; distinct_templates
    keeps only the first instance of each template.
    """
    return _collect_range(
        tasks_on_date, tasks, start, end, _range_key(distinct_templates, every_day)
    )


def events_in_range(
    events: Iterable[Event],
    start: date,
    end: date,
    distinct_templates: bool = False,
    every_day: bool = False,
) -> list[EventInstance]:
    """Event instances for the days in [start, end]; same de-duplication as tasks_in_range."""
    return _collect_range(
        events_on_date, events, start, end, _range_key(distinct_templates, every_day)
    )


def upcoming_tasks(
    tasks: Iterable[Task], today: date, days: Optional[int] = None
) -> list[TaskInstance]:
    """
    Incomplete task instances due in the `days` days after today
    (default: the configured UPCOMING_DAYS), nearest first.

    Templates that already have an instance today are left out. The rest are
    de-duplicated by (id, parent id) after dropping completed instances, so a
    recurring template anchored inside the window is listed at its anchor and
    at its next open occurrence.
    """
    if days is None:
        days = get_settings().UPCOMING_DAYS
    tasks = list(tasks)
    due_today = {instance.template_id for instance in tasks_on_date(tasks, today)}
    listed: set[tuple] = set()
    upcoming: list[TaskInstance] = []
    for instance in tasks_in_range(
        tasks, today + timedelta(days=1), today + timedelta(days=days), every_day=True
    ):
        if instance.completed or is_overdue(instance.due_date, today):
            continue
        if instance.template_id in due_today or _pair_key(instance) in listed:
            continue
        listed.add(_pair_key(instance))
        upcoming.append(instance)
    return upcoming
