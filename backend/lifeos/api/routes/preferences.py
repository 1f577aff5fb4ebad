"""Scheduling preference endpoints."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from lifeos.api.schemas.preferences import PreferencesResponse, PreferencesUpdateRequest
from lifeos.db.deps import get_db
from lifeos.db.models.user_preferences import UserPreferences
from lifeos.observability.metrics import log_metric
from lifeos.observability.tracing import trace
from lifeos.services.allocation.base import SchedulingPreferences
from lifeos.services.preferences_service import get_or_create_preferences, update_preferences

router = APIRouter()


@router.get("/preferences", response_model=PreferencesResponse, tags=["preferences"])
def read_preferences(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> PreferencesResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("preferences.get", metadata={"request_id": request_id}, user_id=str(user_id), request_id=request_id):
        prefs = get_or_create_preferences(db, user_id)
    return _serialize(prefs, request_id)


@router.put("/preferences", response_model=PreferencesResponse, tags=["preferences"])
def write_preferences(
    request: Request,
    payload: PreferencesUpdateRequest,
    db: Session = Depends(get_db),
) -> PreferencesResponse:
    request_id = getattr(request.state, "request_id", None)
    changes = payload.model_dump(exclude={"user_id"}, exclude_none=True)
    metadata = {"fields": sorted(changes), "request_id": request_id}
    with trace("preferences.update", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        current = get_or_create_preferences(db, payload.user_id)
        merged = SchedulingPreferences(
            wake_time=changes.get("wake_time", current.wake_time),
            sleep_time=changes.get("sleep_time", current.sleep_time),
            lunch_break_start=changes.get("lunch_break_start", current.lunch_break_start),
            lunch_break_duration=changes.get("lunch_break_duration", current.lunch_break_duration),
        )
        try:
            merged.day_bounds()
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="wake_time must be earlier than sleep_time",
            )
        prefs = update_preferences(db, payload.user_id, changes)

    log_metric("preferences.update.success", 1, metadata={"fields": ",".join(sorted(changes))})
    return _serialize(prefs, request_id)


def _serialize(prefs: UserPreferences, request_id: str | None) -> PreferencesResponse:
    return PreferencesResponse(
        user_id=prefs.user_id,
        wake_time=prefs.wake_time,
        sleep_time=prefs.sleep_time,
        lunch_break_start=prefs.lunch_break_start,
        lunch_break_duration=prefs.lunch_break_duration,
        request_id=request_id or "",
    )
