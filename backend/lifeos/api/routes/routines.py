"""Routine occurrence endpoints."""
from __future__ import annotations

from time import perf_counter
from typing import Callable
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from lifeos.api.schemas.routines import (
    OccurrenceCompleteRequest,
    OccurrenceGenerateRequest,
    OccurrenceItem,
    OccurrenceListResponse,
    OccurrenceSkipRequest,
    OccurrenceUpdateResponse,
)
from lifeos.db.deps import get_db
from lifeos.db.models.routine_instance import RoutineInstance
from lifeos.observability.metrics import elapsed_ms, log_metric
from lifeos.observability.tracing import trace
from lifeos.services.routine_occurrences import complete_occurrence, generate_for_date, skip_occurrence
from lifeos.services.user_service import get_or_create_user

router = APIRouter()


@router.post("/routines/occurrences/generate", response_model=OccurrenceListResponse, tags=["routines"])
def generate_routine_occurrences(
    request: Request,
    payload: OccurrenceGenerateRequest,
    db: Session = Depends(get_db),
) -> OccurrenceListResponse:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(payload.user_id), "date": payload.date.isoformat(), "request_id": request_id}
    start = perf_counter()
    with trace("routines.generate", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        get_or_create_user(db, payload.user_id)
        occurrences = generate_for_date(db, payload.user_id, payload.date)

    log_metric("routines.generate.success", 1, metadata={"user_id": str(payload.user_id)})
    log_metric("routines.generate.count", len(occurrences), metadata={"user_id": str(payload.user_id)})
    log_metric("routines.generate.latency_ms", elapsed_ms(start), metadata={"user_id": str(payload.user_id)})
    return OccurrenceListResponse(
        user_id=payload.user_id,
        date=payload.date,
        occurrences=[serialize_occurrence(item) for item in occurrences],
        request_id=request_id or "",
    )


@router.post(
    "/routine-occurrences/{occurrence_id}/complete",
    response_model=OccurrenceUpdateResponse,
    tags=["routines"],
)
def complete_routine_occurrence(
    occurrence_id: UUID,
    request: Request,
    payload: OccurrenceCompleteRequest,
    db: Session = Depends(get_db),
) -> OccurrenceUpdateResponse:
    return _update_occurrence(
        request,
        "routines.complete",
        occurrence_id,
        payload.user_id,
        lambda: complete_occurrence(
            db,
            user_id=payload.user_id,
            occurrence_id=occurrence_id,
            actual_value=payload.actual_value,
            notes=payload.notes,
        ),
    )


@router.post(
    "/routine-occurrences/{occurrence_id}/skip",
    response_model=OccurrenceUpdateResponse,
    tags=["routines"],
)
def skip_routine_occurrence(
    occurrence_id: UUID,
    request: Request,
    payload: OccurrenceSkipRequest,
    db: Session = Depends(get_db),
) -> OccurrenceUpdateResponse:
    return _update_occurrence(
        request,
        "routines.skip",
        occurrence_id,
        payload.user_id,
        lambda: skip_occurrence(db, user_id=payload.user_id, occurrence_id=occurrence_id, reason=payload.reason),
    )


def _update_occurrence(
    request: Request,
    trace_name: str,
    occurrence_id: UUID,
    user_id: UUID,
    action: Callable[[], RoutineInstance],
) -> OccurrenceUpdateResponse:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(user_id), "occurrence_id": str(occurrence_id), "request_id": request_id}
    with trace(trace_name, metadata=metadata, user_id=str(user_id), request_id=request_id):
        try:
            instance = action()
        except LookupError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Routine occurrence not found")
        except PermissionError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Routine occurrence does not belong to user",
            )

    log_metric(f"{trace_name}.success", 1, metadata={"user_id": str(user_id)})
    return OccurrenceUpdateResponse(occurrence=serialize_occurrence(instance), request_id=request_id or "")


def serialize_occurrence(instance: RoutineInstance) -> OccurrenceItem:
    return OccurrenceItem(
        id=instance.id,
        template_id=instance.template_id,
        name=instance.template.name if instance.template else None,
        scheduled_date=instance.scheduled_date,
        scheduled_start=instance.scheduled_start,
        scheduled_end=instance.scheduled_end,
        time_locked=bool(instance.time_locked),
        status=instance.status,
        completion_score=instance.completion_score,
        completed_at=instance.completed_at,
    )
