"""Daily plan endpoints."""
from __future__ import annotations

from datetime import date
from time import perf_counter
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from lifeos.api.schemas.planning import (
    PlanGenerateRequest,
    PlanResponse,
    PlanSlotItem,
    PlanStaleRequest,
    PlanStaleResponse,
    UnscheduledEntry,
)
from lifeos.db.deps import get_db
from lifeos.db.models.generated_plan import GeneratedPlan
from lifeos.observability.metrics import elapsed_ms, log_metric
from lifeos.observability.tracing import trace
from lifeos.services.planning_service import (
    PlanningError,
    generate_plan,
    get_plan_for_date,
    mark_plan_stale,
)

router = APIRouter()


@router.post("/plans/generate", response_model=PlanResponse, tags=["plans"])
def generate_daily_plan(
    request: Request,
    payload: PlanGenerateRequest,
    db: Session = Depends(get_db),
) -> PlanResponse:
    request_id = getattr(request.state, "request_id", None)
    metadata = {
        "user_id": str(payload.user_id),
        "date": payload.date.isoformat(),
        "regenerate": payload.regenerate,
        "request_id": request_id,
    }
    start = perf_counter()
    with trace("plans.generate", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        try:
            plan = generate_plan(
                db,
                payload.user_id,
                payload.date,
                regenerate=payload.regenerate,
                request_id=request_id,
            )
        except PlanningError as exc:
            log_metric("plans.generate.success", 0, metadata={"user_id": str(payload.user_id)})
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))

    log_metric("plans.generate.success", 1, metadata={"user_id": str(payload.user_id)})
    log_metric(
        "plans.generate.unscheduled",
        len(plan.unscheduled or []),
        metadata={"user_id": str(payload.user_id), "strategy": plan.strategy},
    )
    log_metric("plans.generate.latency_ms", elapsed_ms(start), metadata={"user_id": str(payload.user_id)})
    return _serialize_plan(plan, request_id)


@router.get("/plans/{plan_date}", response_model=PlanResponse, tags=["plans"])
def get_daily_plan(
    plan_date: date,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> PlanResponse:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(user_id), "date": plan_date.isoformat(), "request_id": request_id}
    with trace("plans.get", metadata=metadata, user_id=str(user_id), request_id=request_id):
        plan = get_plan_for_date(db, user_id, plan_date)
        if plan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No plan for this date")

    log_metric("plans.get.success", 1, metadata={"user_id": str(user_id)})
    return _serialize_plan(plan, request_id)


@router.post("/plans/{plan_date}/stale", response_model=PlanStaleResponse, tags=["plans"])
def mark_daily_plan_stale(
    plan_date: date,
    request: Request,
    payload: PlanStaleRequest,
    db: Session = Depends(get_db),
) -> PlanStaleResponse:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(payload.user_id), "date": plan_date.isoformat(), "request_id": request_id}
    with trace("plans.stale", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        marked = mark_plan_stale(db, payload.user_id, plan_date)
        if not marked:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No plan for this date")

    log_metric("plans.stale.success", 1, metadata={"user_id": str(payload.user_id)})
    return PlanStaleResponse(date=plan_date, stale=True, request_id=request_id or "")


def _serialize_plan(plan: GeneratedPlan, request_id: str | None) -> PlanResponse:
    slots = [
        PlanSlotItem(
            id=slot.id,
            slot_type=slot.slot_type,
            entity_type=slot.entity_type,
            entity_id=slot.entity_id,
            start_time=slot.start_time,
            end_time=slot.end_time,
            is_locked=bool(slot.is_locked),
            reasoning=slot.reasoning,
            sort_order=slot.sort_order,
        )
        for slot in plan.slots
    ]
    unscheduled = [
        UnscheduledEntry(
            item_id=str(entry.get("itemId", "")),
            item_type=str(entry.get("itemType", "")),
            reason=str(entry.get("reason", "")),
        )
        for entry in plan.unscheduled or []
        if isinstance(entry, dict)
    ]
    return PlanResponse(
        id=plan.id,
        user_id=plan.user_id,
        date=plan.date,
        status=plan.status,
        strategy=plan.strategy,
        summary=plan.summary,
        slots=slots,
        unscheduled=unscheduled,
        created_at=plan.created_at,
        request_id=request_id or "",
    )
