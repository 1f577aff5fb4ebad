"""Overlap detection for timed calendar events."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional
from uuid import UUID


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    title: str
    event_type: str
    start: datetime
    end: datetime
    all_day: bool = False
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class Conflict:
    event_a: CalendarEvent
    event_b: CalendarEvent
    overlap_minutes: int
    date: date

    @property
    def id(self) -> str:
        return f"conflict-{self.event_a.id}-{self.event_b.id}"


def detect_conflicts(events: Iterable[CalendarEvent]) -> List[Conflict]:
    """
    Report every pair of overlapping timed events once.

    All-day events are ignored. Events are ordered by (start, end, id) so the
    result does not depend on input order; the inner scan stops at the first
    event starting at or after the current one's end.
    """
    timed = sorted(
        (event for event in events if not event.all_day),
        key=lambda event: (event.start, event.end, event.id),
    )
    conflicts: List[Conflict] = []
    for i, current in enumerate(timed):
        for other in timed[i + 1:]:
            if other.start >= current.end:
                break
            overlap = min(current.end, other.end) - max(current.start, other.start)
            minutes = round(overlap.total_seconds() / 60)
            if minutes <= 0:
                continue
            conflicts.append(
                Conflict(
                    event_a=current,
                    event_b=other,
                    overlap_minutes=minutes,
                    date=other.start.date(),
                )
            )
    return conflicts
