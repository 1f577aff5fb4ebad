"""Calendar conflict and rescheduling endpoints."""
from __future__ import annotations

from datetime import date, timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from lifeos.api.schemas.calendar import (
    CalendarEventItem,
    ConflictItem,
    ConflictListResponse,
    EventMoveRequest,
    EventMoveResponse,
)
from lifeos.db.deps import get_db
from lifeos.observability.metrics import log_metric
from lifeos.observability.tracing import trace
from lifeos.services.calendar_service import build_calendar_events, move_event
from lifeos.services.conflict_detector import CalendarEvent, Conflict, detect_conflicts
from lifeos.services.planning_service import mark_plan_stale

router = APIRouter()

MAX_RANGE_DAYS = 62


@router.get("/calendar/conflicts", response_model=ConflictListResponse, tags=["calendar"])
def list_conflicts(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_db),
) -> ConflictListResponse:
    if end < start:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="end must not be before start")
    if end - start > timedelta(days=MAX_RANGE_DAYS):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Range is limited to {MAX_RANGE_DAYS} days",
        )

    request_id = getattr(request.state, "request_id", None)
    metadata = {
        "user_id": str(user_id),
        "start": start.isoformat(),
        "end": end.isoformat(),
        "request_id": request_id,
    }
    with trace("calendar.conflicts", metadata=metadata, user_id=str(user_id), request_id=request_id):
        conflicts = detect_conflicts(build_calendar_events(db, user_id, start, end))

    log_metric("calendar.conflicts.count", len(conflicts), metadata={"user_id": str(user_id)})
    return ConflictListResponse(
        user_id=user_id,
        start=start,
        end=end,
        conflicts=[_conflict_item(conflict) for conflict in conflicts],
        request_id=request_id or "",
    )


@router.post("/calendar/events/move", response_model=EventMoveResponse, tags=["calendar"])
def move_calendar_event(
    request: Request,
    payload: EventMoveRequest,
    db: Session = Depends(get_db),
) -> EventMoveResponse:
    request_id = getattr(request.state, "request_id", None)
    metadata = {
        "user_id": str(payload.user_id),
        "entity_type": payload.entity_type,
        "entity_id": str(payload.entity_id),
        "new_start": payload.new_start,
        "request_id": request_id,
    }
    with trace("calendar.move", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        try:
            moved = move_event(
                db,
                user_id=payload.user_id,
                entity_type=payload.entity_type,
                entity_id=payload.entity_id,
                new_start=payload.new_start,
                new_date=payload.new_date,
            )
        except LookupError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
        except PermissionError as exc:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

        for affected in {moved.date, moved.previous_date} - {None}:
            mark_plan_stale(db, payload.user_id, affected)
        conflicts = detect_conflicts(build_calendar_events(db, payload.user_id, moved.date, moved.date))

    log_metric("calendar.move.success", 1, metadata={"entity_type": payload.entity_type})
    log_metric("calendar.move.conflicts", len(conflicts), metadata={"entity_type": payload.entity_type})
    return EventMoveResponse(
        entity_type=moved.entity_type,
        entity_id=moved.entity_id,
        date=moved.date,
        start=moved.start,
        end=moved.end,
        conflicts=[_conflict_item(conflict) for conflict in conflicts],
        request_id=request_id or "",
    )


def _event_item(event: CalendarEvent) -> CalendarEventItem:
    return CalendarEventItem(
        id=event.id,
        title=event.title,
        event_type=event.event_type,
        start=event.start,
        end=event.end,
        all_day=event.all_day,
        entity_type=event.entity_type,
        entity_id=event.entity_id,
        status=event.status,
    )


def _conflict_item(conflict: Conflict) -> ConflictItem:
    return ConflictItem(
        id=conflict.id,
        event_a=_event_item(conflict.event_a),
        event_b=_event_item(conflict.event_b),
        overlap_minutes=conflict.overlap_minutes,
        date=conflict.date,
    )
