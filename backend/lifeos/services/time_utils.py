"""HH:MM <-> minutes-from-midnight helpers."""
from __future__ import annotations

import re
from datetime import time

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^([01]\d|2[0-4]):([0-5]\d)(?::[0-5]\d)?$")


def parse_hhmm(value: str) -> int:
    """Parse ``HH:MM`` (seconds tolerated) into minutes from midnight; ``24:00`` is 1440."""
    match = _HHMM.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    minutes = int(match.group(1)) * 60 + int(match.group(2))
    if minutes > MINUTES_PER_DAY:
        raise ValueError(f"Invalid time {value!r}, past end of day")
    return minutes


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    # 1440 has no datetime.time equivalent
    minutes = min(minutes, MINUTES_PER_DAY - 1)
    return time(hour=minutes // 60, minute=minutes % 60)
