"""Recurrence rules for routine definitions.

A routine's ``recurrence_config`` JSON is parsed into a :class:`RecurrenceRule`
and evaluated against a calendar date with :func:`occurs_on`. Evaluation is
pure and works on calendar dates only: no timezone conversion happens here,
callers pass dates already normalized to the user's local day.

Weekdays follow the stored convention ``0 = Sunday .. 6 = Saturday``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, FrozenSet, Mapping, Optional

RECURRENCE_TYPES = ("daily", "weekly", "monthly", "custom")
SATURDAY = 6
SUNDAY = 0


class InvalidRecurrenceError(ValueError):
    """Raised when a recurrence descriptor cannot be evaluated."""


@dataclass(frozen=True)
class RecurrenceRule:
    type: str = "daily"
    interval: int = 1
    exclude_weekends: bool = False
    days_of_week: Optional[FrozenSet[int]] = None
    days_of_month: Optional[FrozenSet[int]] = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "RecurrenceRule":
        """Build and validate a rule from the stored camelCase JSON shape."""
        config = config or {}
        rule = cls(
            type=config.get("type") or "daily",
            interval=1 if config.get("interval") is None else config["interval"],
            exclude_weekends=bool(config.get("excludeWeekends", False)),
            days_of_week=_as_day_set(config.get("daysOfWeek"), "daysOfWeek"),
            days_of_month=_as_day_set(config.get("daysOfMonth"), "daysOfMonth"),
        )
        validate_rule(rule)
        return rule


def _as_day_set(raw: Any, field: str) -> Optional[FrozenSet[int]]:
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple, set, frozenset)):
        raise InvalidRecurrenceError(f"{field} must be a list of integers")
    values = []
    for item in raw:
        if isinstance(item, bool) or not isinstance(item, int):
            raise InvalidRecurrenceError(f"{field} must contain integers, got {item!r}")
        values.append(item)
    return frozenset(values)


def validate_rule(rule: RecurrenceRule) -> None:
    """Reject rules that would otherwise need silent coercion."""
    if rule.type not in RECURRENCE_TYPES:
        raise InvalidRecurrenceError(f"Unknown recurrence type {rule.type!r}")
    if isinstance(rule.interval, bool) or not isinstance(rule.interval, int) or rule.interval < 1:
        raise InvalidRecurrenceError(f"Recurrence interval must be an integer >= 1, got {rule.interval!r}")
    if rule.days_of_week is not None:
        if not rule.days_of_week:
            raise InvalidRecurrenceError("daysOfWeek must not be empty")
        if any(day < 0 or day > 6 for day in rule.days_of_week):
            raise InvalidRecurrenceError("daysOfWeek values must be within 0..6")
    if rule.days_of_month is not None:
        if not rule.days_of_month:
            raise InvalidRecurrenceError("daysOfMonth must not be empty")
        if any(day < 1 or day > 31 for day in rule.days_of_month):
            raise InvalidRecurrenceError("daysOfMonth values must be within 1..31")


def occurs_on(rule: RecurrenceRule, anchor: date | datetime, target: date | datetime) -> bool:
    """Return True when ``rule`` anchored at ``anchor`` produces an occurrence on ``target``."""
    validate_rule(rule)
    anchor_day = _calendar_day(anchor)
    target_day = _calendar_day(target)
    days_between = (target_day - anchor_day).days
    weekday = sunday_based_weekday(target_day)

    if rule.type == "weekly":
        if rule.interval > 1 and (days_between // 7) % rule.interval != 0:
            return False
        if rule.days_of_week:
            return weekday in rule.days_of_week
        return weekday == sunday_based_weekday(anchor_day)

    if rule.type == "monthly":
        if rule.interval > 1:
            months_between = (target_day.year - anchor_day.year) * 12 + (target_day.month - anchor_day.month)
            if months_between % rule.interval != 0:
                return False
        if rule.days_of_month:
            return target_day.day in rule.days_of_month
        return target_day.day == anchor_day.day

    # daily, and custom which shares daily semantics for now
    if days_between % rule.interval != 0:
        return False
    if rule.type == "daily" and rule.exclude_weekends and weekday in (SATURDAY, SUNDAY):
        return False
    return True


def sunday_based_weekday(day: date) -> int:
    """Weekday with Sunday as 0, matching the stored ``daysOfWeek`` convention."""
    return (day.weekday() + 1) % 7


def _calendar_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value
