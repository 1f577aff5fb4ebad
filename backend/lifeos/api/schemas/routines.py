"""Schemas for routine occurrence endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class OccurrenceGenerateRequest(BaseModel):
    user_id: UUID
    date: date


class OccurrenceItem(BaseModel):
    id: UUID
    template_id: UUID
    name: Optional[str]
    scheduled_date: date
    scheduled_start: Optional[str]
    scheduled_end: Optional[str]
    time_locked: bool
    status: str
    completion_score: Optional[int]
    completed_at: Optional[datetime]


class OccurrenceListResponse(BaseModel):
    user_id: UUID
    date: date
    occurrences: List[OccurrenceItem]
    request_id: str


class OccurrenceCompleteRequest(BaseModel):
    user_id: UUID
    actual_value: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class OccurrenceSkipRequest(BaseModel):
    user_id: UUID
    reason: Optional[str] = None


class OccurrenceUpdateResponse(BaseModel):
    occurrence: OccurrenceItem
    request_id: str
