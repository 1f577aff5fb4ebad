"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from lifeos.api.schemas.jobs import JobRunRequest, JobRunResponse
from lifeos.core.config import settings
from lifeos.db.deps import get_db
from lifeos.observability.metrics import log_metric
from lifeos.observability.tracing import trace
from lifeos.services.job_runner import planning_date, run_daily_plan_for_all_users, run_daily_plan_for_user
from lifeos.services.planning_service import PlanningError

router = APIRouter()


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("jobs.config", metadata={"request_id": request_id}, request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "daily_time": f"{settings.planning_job_hour:02d}:{settings.planning_job_minute:02d}",
            },
            "allocator_strategy": settings.allocator_strategy,
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    db: Session = Depends(get_db),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    request_id = getattr(request.state, "request_id", None)
    target = payload.plan_date or planning_date()
    metadata = {"job": payload.job, "date": target.isoformat(), "request_id": request_id}
    start = perf_counter()
    with trace("jobs.run_now", metadata=metadata, request_id=request_id):
        if payload.user_id:
            try:
                created = run_daily_plan_for_user(db, payload.user_id, target, force=payload.force)
            except PlanningError as exc:
                raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
            result = {"users_processed": 1, "plans_written": 1 if created else 0, "users_failed": 0}
        else:
            res = run_daily_plan_for_all_users(db, target, force=payload.force)
            result = {
                "users_processed": res.users_processed,
                "plans_written": res.plans_written,
                "users_failed": res.users_failed,
            }

    latency_ms = (perf_counter() - start) * 1000
    log_metric(
        "jobs.run_now.success",
        1,
        metadata={"job": payload.job},
    )
    log_metric(
        "jobs.run_now.latency_ms",
        latency_ms,
        metadata={"job": payload.job},
    )

    return JobRunResponse(
        job=payload.job,
        plan_date=target,
        request_id=request_id or "",
        **result,
    )
