"""Slot allocation types and the allocator interface.

Everything here is in-memory and side-effect free. Times are minutes from
midnight; conversion to ``HH:MM`` happens only when a result is serialized.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Union
from uuid import UUID

from lifeos.services.time_utils import MINUTES_PER_DAY, format_hhmm, parse_hhmm

ItemId = Union[UUID, str]

PRIORITY_ORDER = ("critical", "high", "medium", "low")
PRIORITY_RANK = {name: rank for rank, name in enumerate(PRIORITY_ORDER)}
TERMINAL_TASK_STATUSES = frozenset({"done", "cancelled", "archived"})
DEFAULT_DURATION_MINUTES = 30

# Legacy string time slots stored before structured windows existed.
LEGACY_MOMENT_WINDOWS = {
    "morning": (6 * 60, 12 * 60),
    "afternoon": (12 * 60, 18 * 60),
    "evening": (18 * 60, 22 * 60),
    "night": (22 * 60, 24 * 60),
}

REASON_PREFERRED_WINDOW = "no slot in preferred window"
REASON_DAY_FULL = "day fully booked"


def priority_rank(priority: str | None) -> int:
    """Rank for sorting; unknown priorities sort after ``low``."""
    return PRIORITY_RANK.get((priority or "").lower(), len(PRIORITY_ORDER))


@dataclass(frozen=True, order=True)
class TimeInterval:
    """Half-open ``[start, end)`` in minutes from midnight."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if not (0 <= self.start < MINUTES_PER_DAY):
            raise ValueError(f"Interval start {self.start} outside the day")
        if not (self.start < self.end <= MINUTES_PER_DAY):
            raise ValueError(f"Interval end {self.end} must be after start {self.start} and within the day")

    @classmethod
    def from_hhmm(cls, start: str, end: str) -> "TimeInterval":
        return cls(parse_hhmm(start), parse_hhmm(end))

    @property
    def minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeInterval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def intersection(self, other: "TimeInterval") -> Optional["TimeInterval"]:
        start, end = max(self.start, other.start), min(self.end, other.end)
        if start >= end:
            return None
        return TimeInterval(start, end)

    def label(self) -> str:
        return f"{format_hhmm(self.start)}-{format_hhmm(self.end)}"


@dataclass(frozen=True)
class TargetValue:
    value: float
    unit: Optional[str] = None


@dataclass(frozen=True)
class RoutineConstraints:
    """Canonical routine constraints after :func:`normalize_constraints`."""

    duration_minutes: int = DEFAULT_DURATION_MINUTES
    window: Optional[TimeInterval] = None
    target: Optional[TargetValue] = None


def normalize_constraints(raw: Mapping[str, Any] | None) -> RoutineConstraints:
    """
    Collapse the stored constraint shapes into :class:`RoutineConstraints`.

    Accepts both ``{"duration": 45, "timeSlot": "morning"}`` and
    ``{"duration": {"minutes": 45}, "timeSlot": {"startTime": .., "endTime": ..}}``.
    Shapes that cannot be read are treated as absent.
    """
    raw = raw or {}
    return RoutineConstraints(
        duration_minutes=_read_duration(raw.get("duration")),
        window=_read_window(raw.get("timeSlot")),
        target=_read_target(raw.get("targetValue"), raw.get("targetUnit")),
    )


def _read_duration(value: Any) -> int:
    if isinstance(value, Mapping):
        value = value.get("minutes")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_DURATION_MINUTES
    minutes = int(value)
    # less than a whole minute cannot occupy a slot
    return minutes if minutes >= 1 else DEFAULT_DURATION_MINUTES


def _read_window(value: Any) -> Optional[TimeInterval]:
    if isinstance(value, str):
        bounds = LEGACY_MOMENT_WINDOWS.get(value.lower())
        return TimeInterval(*bounds) if bounds else None
    if isinstance(value, Mapping) and value.get("startTime") and value.get("endTime"):
        try:
            return TimeInterval.from_hhmm(value["startTime"], value["endTime"])
        except ValueError:
            return None
    return None


def _read_target(value: Any, legacy_unit: Any = None) -> Optional[TargetValue]:
    if isinstance(value, Mapping):
        amount, unit = value.get("value"), value.get("unit")
    else:
        amount, unit = value, legacy_unit
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
        return None
    return TargetValue(value=float(amount), unit=unit if isinstance(unit, str) else None)


@dataclass
class RoutineItem:
    """A due routine occurrence together with the definition fields allocation needs."""

    occurrence_id: ItemId
    name: str
    priority: str = "medium"
    is_flexible: bool = True
    constraints: RoutineConstraints = field(default_factory=RoutineConstraints)


@dataclass
class TaskItem:
    task_id: ItemId
    title: str
    priority: str = "medium"
    status: str = "todo"
    estimated_minutes: Optional[int] = None
    due_date: Optional[date] = None

    @property
    def is_open(self) -> bool:
        return self.status not in TERMINAL_TASK_STATUSES

    @property
    def duration_minutes(self) -> int:
        if not self.estimated_minutes or self.estimated_minutes <= 0:
            return DEFAULT_DURATION_MINUTES
        return self.estimated_minutes


@dataclass(frozen=True)
class SchedulingPreferences:
    wake_time: str = "07:00"
    sleep_time: str = "22:00"
    lunch_break_start: Optional[str] = None
    lunch_break_duration: Optional[int] = None

    def day_bounds(self) -> TimeInterval:
        end = parse_hhmm(self.sleep_time)
        # a 00:00 bedtime means the day runs until midnight
        return TimeInterval(parse_hhmm(self.wake_time), end or MINUTES_PER_DAY)

    def lunch_interval(self) -> Optional[TimeInterval]:
        if not self.lunch_break_start or not self.lunch_break_duration or self.lunch_break_duration <= 0:
            return None
        start = parse_hhmm(self.lunch_break_start)
        if start >= MINUTES_PER_DAY:
            return None
        return TimeInterval(start, min(start + self.lunch_break_duration, MINUTES_PER_DAY))


@dataclass
class AllocationRequest:
    date: date
    routines: List[RoutineItem] = field(default_factory=list)
    tasks: List[TaskItem] = field(default_factory=list)
    preoccupied: List[TimeInterval] = field(default_factory=list)
    day_bounds: TimeInterval = field(default_factory=lambda: TimeInterval(7 * 60, 22 * 60))
    preferences: Optional[SchedulingPreferences] = None

    @property
    def open_tasks(self) -> List[TaskItem]:
        return [task for task in self.tasks if task.is_open]

    def is_empty(self) -> bool:
        return not self.routines and not self.open_tasks

    def reserved_intervals(self) -> List[TimeInterval]:
        """Pre-occupied intervals plus the lunch break when configured."""
        reserved = list(self.preoccupied)
        lunch = self.preferences.lunch_interval() if self.preferences else None
        if lunch is not None:
            reserved.append(lunch)
        return reserved


@dataclass
class PlannedSlot:
    item_type: str
    item_id: ItemId
    interval: TimeInterval
    is_fixed: bool
    reasoning: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "itemType": self.item_type,
            "itemId": str(self.item_id),
            "startTime": format_hhmm(self.interval.start),
            "endTime": format_hhmm(self.interval.end),
            "isFixed": self.is_fixed,
            "reasoning": self.reasoning,
        }


@dataclass
class UnscheduledItem:
    item_id: ItemId
    item_type: str
    reason: str

    def to_payload(self) -> Dict[str, Any]:
        return {"itemId": str(self.item_id), "itemType": self.item_type, "reason": self.reason}


@dataclass
class AllocationResult:
    slots: List[PlannedSlot] = field(default_factory=list)
    unscheduled: List[UnscheduledItem] = field(default_factory=list)
    summary: str = ""
    strategy: str = "greedy"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "slots": [slot.to_payload() for slot in self.slots],
            "unscheduled": [item.to_payload() for item in self.unscheduled],
            "summary": self.summary,
        }


def summarize(placed: int, unplaced: int) -> str:
    return f"Planned {placed} item(s), {unplaced} unscheduled."


class SlotAllocator:
    """Interface shared by every placement strategy."""

    name = "base"

    def allocate(self, request: AllocationRequest) -> AllocationResult:
        raise NotImplementedError
