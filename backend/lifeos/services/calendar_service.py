"""Calendar view over routine occurrences and tasks, plus manual rescheduling."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lifeos.db.models.routine_instance import RoutineInstance
from lifeos.db.models.task import Task
from lifeos.services.allocation.base import DEFAULT_DURATION_MINUTES
from lifeos.services.conflict_detector import CalendarEvent
from lifeos.services.time_utils import MINUTES_PER_DAY, format_hhmm, minutes_to_time, parse_hhmm

logger = logging.getLogger(__name__)

DEFAULT_ROUTINE_START = "09:00"
DEFAULT_ROUTINE_MINUTES = 60
HIDDEN_TASK_STATUSES = ("cancelled", "archived")
MOVABLE_ENTITY_TYPES = ("routine_instance", "task")


@dataclass
class MovedEvent:
    entity_type: str
    entity_id: UUID
    date: date
    start: str
    end: str
    previous_date: Optional[date] = None


def build_calendar_events(db: Session, user_id: UUID, start: date, end: date) -> List[CalendarEvent]:
    """Events for ``start``..``end`` inclusive, ordered by start time."""
    if end < start:
        raise ValueError("end date must not be before start date")

    events: List[CalendarEvent] = []
    occurrences = (
        db.query(RoutineInstance)
        .filter(
            RoutineInstance.user_id == user_id,
            RoutineInstance.scheduled_date >= start,
            RoutineInstance.scheduled_date <= end,
            RoutineInstance.status != "skipped",
        )
        .order_by(RoutineInstance.scheduled_date.asc())
        .all()
    )
    for occurrence in occurrences:
        events.append(_occurrence_event(occurrence))

    tasks = (
        db.query(Task)
        .filter(
            Task.user_id == user_id,
            Task.status.notin_(HIDDEN_TASK_STATUSES),
            or_(
                and_(Task.scheduled_date >= start, Task.scheduled_date <= end),
                and_(Task.scheduled_date.is_(None), Task.due_date >= start, Task.due_date <= end),
            ),
        )
        .all()
    )
    for task in tasks:
        events.append(_task_event(task))

    events.sort(key=lambda event: (event.start, event.id))
    return events


def _occurrence_event(occurrence: RoutineInstance) -> CalendarEvent:
    start_minutes = parse_hhmm(occurrence.scheduled_start or DEFAULT_ROUTINE_START)
    duration = DEFAULT_ROUTINE_MINUTES
    if occurrence.scheduled_start and occurrence.scheduled_end:
        span = parse_hhmm(occurrence.scheduled_end) - start_minutes
        if span > 0:
            duration = span
    day_start = datetime.combine(occurrence.scheduled_date, time.min)
    begins = day_start + timedelta(minutes=start_minutes)
    template = occurrence.template
    return CalendarEvent(
        id=f"routine-{occurrence.id}",
        title=template.name if template else "Routine",
        event_type="routine",
        start=begins,
        end=begins + timedelta(minutes=duration),
        entity_type="routine_instance",
        entity_id=occurrence.id,
        status=occurrence.status,
    )


def _task_event(task: Task) -> CalendarEvent:
    day = task.scheduled_date or task.due_date
    at = task.scheduled_time if task.scheduled_date else task.due_time
    # a task with no time shows as all-day
    begins = datetime.combine(day, at or time.min)
    duration = task.estimated_minutes or DEFAULT_DURATION_MINUTES
    return CalendarEvent(
        id=f"task-{task.id}",
        title=task.title,
        event_type="task",
        start=begins,
        end=begins + timedelta(minutes=duration),
        all_day=at is None,
        entity_type="task",
        entity_id=task.id,
        status=task.status,
    )


def move_event(
    db: Session,
    *,
    user_id: UUID,
    entity_type: str,
    entity_id: UUID,
    new_start: str,
    new_date: Optional[date] = None,
) -> MovedEvent:
    """
    Move a routine occurrence or task to ``new_start`` (and optionally ``new_date``).

    The item keeps its duration. A moved occurrence is locked so plan
    generation leaves it where the user put it. Raises ``ValueError`` for bad
    input, ``LookupError`` for unknown items and ``PermissionError`` when the
    item belongs to someone else.
    """
    if entity_type not in MOVABLE_ENTITY_TYPES:
        raise ValueError(f"Unsupported entity type {entity_type!r}")
    start_minutes = parse_hhmm(new_start)
    if start_minutes >= MINUTES_PER_DAY:
        raise ValueError("new_start must be before 24:00")

    if entity_type == "routine_instance":
        moved = _move_occurrence(db, user_id, entity_id, start_minutes, new_date)
    else:
        moved = _move_task(db, user_id, entity_id, start_minutes, new_date)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValueError("The routine already has an occurrence on that date") from exc
    except Exception:
        db.rollback()
        raise
    logger.info("Moved %s %s to %s %s", entity_type, entity_id, moved.date, moved.start)
    return moved


def _move_occurrence(
    db: Session,
    user_id: UUID,
    occurrence_id: UUID,
    start_minutes: int,
    new_date: Optional[date],
) -> MovedEvent:
    occurrence = db.get(RoutineInstance, occurrence_id)
    if occurrence is None:
        raise LookupError("Routine occurrence not found")
    if occurrence.user_id != user_id:
        raise PermissionError("Routine occurrence does not belong to user")

    duration = DEFAULT_ROUTINE_MINUTES
    if occurrence.scheduled_start and occurrence.scheduled_end:
        span = parse_hhmm(occurrence.scheduled_end) - parse_hhmm(occurrence.scheduled_start)
        if span > 0:
            duration = span
    end_minutes = start_minutes + duration
    if end_minutes > MINUTES_PER_DAY:
        raise ValueError("The moved occurrence would run past midnight")

    previous_date = occurrence.scheduled_date
    occurrence.scheduled_start = format_hhmm(start_minutes)
    occurrence.scheduled_end = format_hhmm(end_minutes)
    occurrence.time_locked = True
    if new_date is not None:
        occurrence.scheduled_date = new_date
    return MovedEvent(
        entity_type="routine_instance",
        entity_id=occurrence.id,
        date=occurrence.scheduled_date,
        start=occurrence.scheduled_start,
        end=occurrence.scheduled_end,
        previous_date=previous_date,
    )


def _move_task(
    db: Session,
    user_id: UUID,
    task_id: UUID,
    start_minutes: int,
    new_date: Optional[date],
) -> MovedEvent:
    task = db.get(Task, task_id)
    if task is None:
        raise LookupError("Task not found")
    if task.user_id != user_id:
        raise PermissionError("Task does not belong to user")

    end_minutes = start_minutes + (task.estimated_minutes or DEFAULT_DURATION_MINUTES)
    if end_minutes > MINUTES_PER_DAY:
        raise ValueError("The moved task would run past midnight")

    # the deadline stays; only the planned placement changes
    previous_date = task.scheduled_date
    task.scheduled_time = minutes_to_time(start_minutes)
    task.scheduled_date = new_date or task.scheduled_date or task.due_date or date.today()
    return MovedEvent(
        entity_type="task",
        entity_id=task.id,
        date=task.scheduled_date,
        start=format_hhmm(start_minutes),
        end=format_hhmm(end_minutes),
        previous_date=previous_date,
    )
