"""User scheduling preferences."""
from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

from sqlalchemy.orm import Session

from lifeos.core.config import settings
from lifeos.db.models.user_preferences import UserPreferences
from lifeos.services.allocation.base import SchedulingPreferences
from lifeos.services.user_service import get_or_create_user

DEFAULT_LUNCH_START = "12:00"
DEFAULT_LUNCH_MINUTES = 60


def get_or_create_preferences(db: Session, user_id: UUID) -> UserPreferences:
    prefs = db.get(UserPreferences, user_id)
    if prefs is not None:
        return prefs

    get_or_create_user(db, user_id)
    prefs = UserPreferences(
        user_id=user_id,
        wake_time=settings.default_day_start,
        sleep_time=settings.default_day_end,
        lunch_break_start=DEFAULT_LUNCH_START,
        lunch_break_duration=DEFAULT_LUNCH_MINUTES,
    )
    db.add(prefs)
    db.commit()
    db.refresh(prefs)
    return prefs


def update_preferences(db: Session, user_id: UUID, changes: Dict[str, Any]) -> UserPreferences:
    """Apply non-None ``changes``; the caller validates formats beforehand."""
    prefs = get_or_create_preferences(db, user_id)
    for field_name in ("wake_time", "sleep_time", "lunch_break_start", "lunch_break_duration"):
        if changes.get(field_name) is not None:
            setattr(prefs, field_name, changes[field_name])
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(prefs)
    return prefs


def scheduling_preferences(db: Session, user_id: UUID) -> SchedulingPreferences:
    """Preferences as the allocator sees them; defaults apply when the user has none stored."""
    prefs = db.get(UserPreferences, user_id)
    if prefs is None:
        return SchedulingPreferences(wake_time=settings.default_day_start, sleep_time=settings.default_day_end)
    return SchedulingPreferences(
        wake_time=prefs.wake_time or settings.default_day_start,
        sleep_time=prefs.sleep_time or settings.default_day_end,
        lunch_break_start=prefs.lunch_break_start,
        lunch_break_duration=prefs.lunch_break_duration,
    )
