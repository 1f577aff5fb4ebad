from __future__ import annotations

from datetime import datetime

from lifeos.services.conflict_detector import CalendarEvent, detect_conflicts


def _event(event_id: str, start: str, end: str, *, day: str = "2026-01-05", all_day: bool = False) -> CalendarEvent:
    return CalendarEvent(
        id=event_id,
        title=event_id,
        event_type="task",
        start=datetime.fromisoformat(f"{day}T{start}"),
        end=datetime.fromisoformat(f"{day}T{end}"),
        all_day=all_day,
    )


def test_single_overlap_is_reported_once() -> None:
    conflicts = detect_conflicts([_event("a", "09:00", "09:30"), _event("b", "09:15", "09:45")])

    assert len(conflicts) == 1
    assert conflicts[0].overlap_minutes == 15
    assert conflicts[0].id == "conflict-a-b"
    assert conflicts[0].date.isoformat() == "2026-01-05"


def test_input_order_does_not_change_pairs() -> None:
    forward = detect_conflicts([_event("a", "09:00", "09:30"), _event("b", "09:00", "09:30")])
    backward = detect_conflicts([_event("b", "09:00", "09:30"), _event("a", "09:00", "09:30")])

    assert [conflict.id for conflict in forward] == [conflict.id for conflict in backward] == ["conflict-a-b"]
    assert forward[0].overlap_minutes == 30


def test_touching_events_do_not_conflict() -> None:
    assert detect_conflicts([_event("a", "09:00", "09:30"), _event("b", "09:30", "10:00")]) == []


def test_all_day_events_are_ignored() -> None:
    events = [_event("allday", "00:00", "23:59", all_day=True), _event("a", "09:00", "10:00")]

    assert detect_conflicts(events) == []


def test_long_event_conflicts_with_each_contained_event() -> None:
    events = [
        _event("long", "08:00", "12:00"),
        _event("x", "09:00", "09:30"),
        _event("y", "10:00", "11:00"),
        _event("z", "12:00", "12:30"),
    ]

    conflicts = detect_conflicts(events)

    assert sorted((c.event_a.id, c.event_b.id, c.overlap_minutes) for c in conflicts) == [
        ("long", "x", 30),
        ("long", "y", 60),
    ]


def test_events_on_different_days_carry_their_own_date() -> None:
    events = [
        _event("a", "09:00", "10:00", day="2026-01-05"),
        _event("b", "09:30", "10:30", day="2026-01-06"),
        _event("c", "09:45", "10:15", day="2026-01-06"),
    ]

    conflicts = detect_conflicts(events)

    assert [(c.id, c.date.isoformat()) for c in conflicts] == [("conflict-b-c", "2026-01-06")]
