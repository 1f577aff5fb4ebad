"""Schemas for job operations endpoints."""
from __future__ import annotations

from datetime import date
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["daily_plan"] = "daily_plan"
    user_id: Optional[UUID] = None
    plan_date: Optional[date] = None
    force: bool = False


class JobRunResponse(BaseModel):
    job: str
    plan_date: date
    users_processed: int
    plans_written: int
    users_failed: int
    request_id: str
