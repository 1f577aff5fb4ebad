"""Daily plan generation: occurrences -> allocation -> persisted plan."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lifeos.db.models.action_log import ActionLog
from lifeos.db.models.generated_plan import GeneratedPlan, PlanSlot
from lifeos.db.models.routine_instance import RoutineInstance
from lifeos.db.models.task import Task
from lifeos.services.allocation.base import (
    TERMINAL_TASK_STATUSES,
    AllocationRequest,
    AllocationResult,
    RoutineItem,
    SlotAllocator,
    TaskItem,
    TimeInterval,
    normalize_constraints,
)
from lifeos.services.allocation.factory import get_slot_allocator
from lifeos.services.preferences_service import scheduling_preferences
from lifeos.services.routine_occurrences import generate_for_date
from lifeos.services.time_utils import format_hhmm, parse_hhmm, time_to_minutes
from lifeos.services.user_service import get_or_create_user

logger = logging.getLogger(__name__)

PLAN_ACTIVE = "active"
PLAN_STALE = "draft"


class PlanningError(RuntimeError):
    """A plan could not be produced; nothing partial was stored."""


@dataclass
class PinnedItem:
    """An occurrence or task whose time the user fixed; it blocks time and is copied into the plan."""

    entity_type: str
    entity_id: UUID
    interval: TimeInterval
    label: str


@dataclass
class DayInputs:
    request: AllocationRequest
    pinned: List[PinnedItem] = field(default_factory=list)
    occurrences: List[RoutineInstance] = field(default_factory=list)


def get_plan_for_date(db: Session, user_id: UUID, plan_date: date) -> Optional[GeneratedPlan]:
    return (
        db.query(GeneratedPlan)
        .filter(GeneratedPlan.user_id == user_id, GeneratedPlan.date == plan_date)
        .one_or_none()
    )


def mark_plan_stale(db: Session, user_id: UUID, plan_date: date) -> bool:
    """Flag the day's plan for regeneration. Returns False when no plan exists."""
    plan = get_plan_for_date(db, user_id, plan_date)
    if plan is None:
        return False
    plan.status = PLAN_STALE
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return True


def generate_plan(
    db: Session,
    user_id: UUID,
    plan_date: date,
    *,
    regenerate: bool = False,
    allocator: Optional[SlotAllocator] = None,
    request_id: Optional[str] = None,
) -> GeneratedPlan:
    """
    Return the stored plan for ``plan_date`` or build a new one.

    A stored plan is reused unless it was marked stale or ``regenerate`` is set.
    Building runs occurrence generation first (committed on its own), then the
    allocator, then replaces the plan and its slots in one transaction. Any
    failure is raised as ``PlanningError`` after a rollback.
    """
    existing = get_plan_for_date(db, user_id, plan_date)
    if existing is not None and existing.status != PLAN_STALE and not regenerate:
        return existing

    try:
        get_or_create_user(db, user_id)
        occurrences = generate_for_date(db, user_id, plan_date)
        inputs = collect_day_inputs(db, user_id, plan_date, occurrences)
    except (SQLAlchemyError, ValueError) as exc:
        db.rollback()
        raise PlanningError(f"Cannot plan {plan_date.isoformat()}: {exc}") from exc

    strategy = allocator or get_slot_allocator()
    try:
        result = strategy.allocate(inputs.request)
    except ValueError as exc:
        db.rollback()
        raise PlanningError(f"Cannot allocate {plan_date.isoformat()}: {exc}") from exc
    logger.info(
        "Allocated plan for user %s on %s via %s: %s",
        user_id,
        plan_date,
        result.strategy,
        result.summary,
    )

    try:
        plan = _store_plan(db, user_id, plan_date, existing, inputs, result, request_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PlanningError(f"Could not store the plan for {plan_date.isoformat()}: {exc}") from exc
    db.refresh(plan)
    return plan


def collect_day_inputs(
    db: Session,
    user_id: UUID,
    plan_date: date,
    occurrences: List[RoutineInstance],
) -> DayInputs:
    """Turn the day's rows into an allocation request. Raises ValueError on unusable preferences."""
    preferences = scheduling_preferences(db, user_id)
    day_bounds = preferences.day_bounds()
    pinned: List[PinnedItem] = []
    routines: List[RoutineItem] = []

    for occurrence in occurrences:
        template = occurrence.template
        constraints = normalize_constraints(template.constraints if template else None)
        name = template.name if template else "Routine"
        placed = _placed_interval(occurrence)
        if occurrence.status == "completed" and placed is not None:
            pinned.append(PinnedItem("routine_instance", occurrence.id, placed, f'Routine "{name}" already completed'))
            continue
        if occurrence.status != "pending":
            continue
        if occurrence.time_locked and placed is not None:
            pinned.append(PinnedItem("routine_instance", occurrence.id, placed, f'Routine "{name}" moved here manually'))
            continue
        routines.append(
            RoutineItem(
                occurrence_id=occurrence.id,
                name=name,
                priority=template.priority if template else "medium",
                is_flexible=bool(template.is_flexible) if template else True,
                constraints=constraints,
            )
        )

    tasks: List[TaskItem] = []
    for task in _open_tasks(db, user_id):
        if task.scheduled_date is not None and task.scheduled_date != plan_date:
            continue
        item = TaskItem(
            task_id=task.id,
            title=task.title,
            priority=task.priority,
            status=task.status,
            estimated_minutes=task.estimated_minutes,
            due_date=task.due_date,
        )
        if task.scheduled_date == plan_date and task.scheduled_time is not None:
            start = time_to_minutes(task.scheduled_time)
            interval = TimeInterval(start, min(start + item.duration_minutes, 24 * 60))
            pinned.append(PinnedItem("task", task.id, interval, f'Task "{task.title}" has a fixed time'))
            continue
        tasks.append(item)

    request = AllocationRequest(
        date=plan_date,
        routines=routines,
        tasks=tasks,
        preoccupied=[item.interval for item in pinned],
        day_bounds=day_bounds,
        preferences=preferences,
    )
    return DayInputs(request=request, pinned=pinned, occurrences=list(occurrences))


def _open_tasks(db: Session, user_id: UUID) -> List[Task]:
    return (
        db.query(Task)
        .filter(Task.user_id == user_id, Task.status.notin_(sorted(TERMINAL_TASK_STATUSES)))
        .order_by(Task.created_at.asc())
        .all()
    )


def _placed_interval(occurrence: RoutineInstance) -> Optional[TimeInterval]:
    if not occurrence.scheduled_start or not occurrence.scheduled_end:
        return None
    try:
        return TimeInterval.from_hhmm(occurrence.scheduled_start, occurrence.scheduled_end)
    except ValueError:
        logger.warning("Ignoring malformed placement on occurrence %s", occurrence.id)
        return None


def _store_plan(
    db: Session,
    user_id: UUID,
    plan_date: date,
    existing: Optional[GeneratedPlan],
    inputs: DayInputs,
    result: AllocationResult,
    request_id: Optional[str],
) -> GeneratedPlan:
    plan = existing or GeneratedPlan(user_id=user_id, date=plan_date)
    plan.status = PLAN_ACTIVE
    plan.strategy = result.strategy
    plan.summary = result.summary
    plan.unscheduled = [item.to_payload() for item in result.unscheduled]
    plan.slots.clear()
    if existing is None:
        db.add(plan)
    db.flush()

    rows: List[PlanSlot] = []
    for pinned in inputs.pinned:
        rows.append(
            PlanSlot(
                user_id=user_id,
                slot_type="routine" if pinned.entity_type == "routine_instance" else "task",
                entity_type=pinned.entity_type,
                entity_id=pinned.entity_id,
                start_time=format_hhmm(pinned.interval.start),
                end_time=format_hhmm(pinned.interval.end),
                is_locked=True,
                reasoning=f"{pinned.label}.",
            )
        )
    for slot in result.slots:
        rows.append(
            PlanSlot(
                user_id=user_id,
                slot_type=slot.item_type,
                entity_type="routine_instance" if slot.item_type == "routine" else "task",
                entity_id=slot.item_id,
                start_time=format_hhmm(slot.interval.start),
                end_time=format_hhmm(slot.interval.end),
                is_locked=slot.is_fixed,
                reasoning=slot.reasoning,
            )
        )
    rows.sort(key=lambda row: (parse_hhmm(row.start_time), parse_hhmm(row.end_time)))
    for index, row in enumerate(rows):
        row.sort_order = index
        plan.slots.append(row)

    _write_back_placements(inputs.occurrences, result)
    db.add(
        ActionLog(
            user_id=user_id,
            action_type="plan_generated",
            action_payload={
                "plan_date": plan_date.isoformat(),
                "strategy": result.strategy,
                "slots": len(rows),
                "unscheduled": len(result.unscheduled),
                "regenerated": existing is not None,
                "request_id": request_id or "",
            },
            reason=result.summary,
        )
    )
    return plan


def _write_back_placements(occurrences: List[RoutineInstance], result: AllocationResult) -> None:
    """Copy allocated times onto pending occurrences; clear stale times on the ones left out."""
    placed = {
        str(slot.item_id): slot.interval for slot in result.slots if slot.item_type == "routine"
    }
    for occurrence in occurrences:
        if occurrence.status != "pending" or occurrence.time_locked:
            continue
        interval = placed.get(str(occurrence.id))
        occurrence.scheduled_start = format_hhmm(interval.start) if interval else None
        occurrence.scheduled_end = format_hhmm(interval.end) if interval else None
