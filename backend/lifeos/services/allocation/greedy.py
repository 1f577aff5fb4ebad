"""Deterministic greedy slot allocator."""
from __future__ import annotations

import bisect
import logging
from datetime import date
from typing import Iterable, List, Optional, Tuple

from lifeos.services.allocation.base import (
    REASON_DAY_FULL,
    REASON_PREFERRED_WINDOW,
    AllocationRequest,
    AllocationResult,
    PlannedSlot,
    RoutineItem,
    SlotAllocator,
    TaskItem,
    TimeInterval,
    UnscheduledItem,
    priority_rank,
    summarize,
)

logger = logging.getLogger(__name__)

# Fixed search resolution, not a tunable.
SEARCH_STEP_MINUTES = 15


class OccupiedIntervals:
    """Intervals already taken for the day, kept sorted by start."""

    def __init__(self, intervals: Iterable[TimeInterval] = ()) -> None:
        self._intervals: List[TimeInterval] = sorted(intervals)

    def is_free(self, candidate: TimeInterval) -> bool:
        for taken in self._intervals:
            if taken.start >= candidate.end:
                break
            if taken.overlaps(candidate):
                return False
        return True

    def add(self, interval: TimeInterval) -> None:
        bisect.insort(self._intervals, interval)

    def first_fit(self, duration: int, window: TimeInterval) -> Optional[TimeInterval]:
        """First ``[t, t+duration)`` inside ``window`` on the step grid that is free."""
        offset = window.start
        while offset + duration <= window.end:
            candidate = TimeInterval(offset, offset + duration)
            if self.is_free(candidate):
                return candidate
            offset += SEARCH_STEP_MINUTES
        return None


class GreedySlotAllocator(SlotAllocator):
    """
    Place fixed routines, then flexible routines, then open tasks.

    Each group is ordered by priority (critical first); equal priorities keep
    their input order. Tasks additionally order by due date, undated last.
    Fixed routines never leave their declared window; flexible routines fall
    back to the whole day once when their window is full.
    """

    name = "greedy"

    def allocate(self, request: AllocationRequest) -> AllocationResult:
        occupied = OccupiedIntervals(request.reserved_intervals())
        day = request.day_bounds
        slots: List[PlannedSlot] = []
        unscheduled: List[UnscheduledItem] = []

        fixed = [item for item in request.routines if not item.is_flexible]
        flexible = [item for item in request.routines if item.is_flexible]
        ordered_routines = _by_priority(fixed) + _by_priority(flexible)

        for routine in ordered_routines:
            window = _preferred_window(routine, day)
            placed, reason = _place(
                occupied,
                routine.constraints.duration_minutes,
                window,
                day,
                allow_day_fallback=routine.is_flexible,
            )
            if placed is None:
                unscheduled.append(UnscheduledItem(item_id=routine.occurrence_id, item_type="routine", reason=reason))
                continue
            occupied.add(placed)
            slots.append(
                PlannedSlot(
                    item_type="routine",
                    item_id=routine.occurrence_id,
                    interval=placed,
                    is_fixed=not routine.is_flexible,
                    reasoning=_routine_reasoning(routine, placed),
                )
            )

        for task in _tasks_in_order(request.open_tasks):
            placed, reason = _place(occupied, task.duration_minutes, day, day, allow_day_fallback=False)
            if placed is None:
                unscheduled.append(UnscheduledItem(item_id=task.task_id, item_type="task", reason=reason))
                continue
            occupied.add(placed)
            slots.append(
                PlannedSlot(
                    item_type="task",
                    item_id=task.task_id,
                    interval=placed,
                    is_fixed=False,
                    reasoning=_task_reasoning(task, request.date),
                )
            )

        logger.debug(
            "Greedy allocation for %s: %s placed, %s unscheduled",
            request.date,
            len(slots),
            len(unscheduled),
        )
        return AllocationResult(
            slots=slots,
            unscheduled=unscheduled,
            summary=summarize(len(slots), len(unscheduled)),
            strategy=self.name,
        )


def _by_priority(routines: List[RoutineItem]) -> List[RoutineItem]:
    return sorted(routines, key=lambda item: priority_rank(item.priority))


def _tasks_in_order(tasks: List[TaskItem]) -> List[TaskItem]:
    return sorted(
        tasks,
        key=lambda task: (
            priority_rank(task.priority),
            task.due_date is None,
            task.due_date or date.max,
        ),
    )


def _preferred_window(routine: RoutineItem, day: TimeInterval) -> Optional[TimeInterval]:
    """The routine's window clipped to the day; None when they do not meet."""
    window = routine.constraints.window
    if window is None:
        return day
    return window.intersection(day)


def _place(
    occupied: OccupiedIntervals,
    duration: int,
    window: Optional[TimeInterval],
    day: TimeInterval,
    *,
    allow_day_fallback: bool,
) -> Tuple[Optional[TimeInterval], str]:
    narrower = window != day
    if window is not None:
        placed = occupied.first_fit(duration, window)
        if placed is not None:
            return placed, ""
    if narrower and allow_day_fallback:
        placed = occupied.first_fit(duration, day)
        if placed is not None:
            return placed, ""
    return None, REASON_PREFERRED_WINDOW if narrower else REASON_DAY_FULL


def _routine_reasoning(routine: RoutineItem, placed: TimeInterval) -> str:
    window = routine.constraints.window
    if not routine.is_flexible:
        if window is not None:
            return f'Fixed routine "{routine.name}" placed in its {window.label()} window.'
        return f'Fixed routine "{routine.name}" placed at the first free slot.'
    if window is not None and window.contains(placed):
        return f'Flexible routine "{routine.name}" placed within its preferred {window.label()} window.'
    if window is not None:
        return f'Flexible routine "{routine.name}" moved outside its full {window.label()} window.'
    return f'Flexible routine "{routine.name}" placed at the first free slot.'


def _task_reasoning(task: TaskItem, plan_date: date) -> str:
    reasoning = f'Task "{task.title}"'
    if task.due_date is not None:
        if task.due_date == plan_date:
            reasoning += " - due today"
        elif task.due_date < plan_date:
            reasoning += " - overdue"
    return f"{reasoning}, priority {task.priority}."
