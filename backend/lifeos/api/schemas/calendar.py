"""Schemas for calendar endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from lifeos.services.time_utils import parse_hhmm


class CalendarEventItem(BaseModel):
    id: str
    title: str
    event_type: str
    start: datetime
    end: datetime
    all_day: bool
    entity_type: Optional[str]
    entity_id: Optional[UUID]
    status: Optional[str]


class ConflictItem(BaseModel):
    id: str
    event_a: CalendarEventItem
    event_b: CalendarEventItem
    overlap_minutes: int
    date: date


class ConflictListResponse(BaseModel):
    user_id: UUID
    start: date
    end: date
    conflicts: List[ConflictItem]
    request_id: str


class EventMoveRequest(BaseModel):
    user_id: UUID
    entity_type: Literal["routine_instance", "task"]
    entity_id: UUID
    new_start: str
    new_date: Optional[date] = None

    @field_validator("new_start")
    @classmethod
    def _check_start(cls, value: str) -> str:
        if parse_hhmm(value) >= 24 * 60:
            raise ValueError("new_start must be before 24:00")
        return value


class EventMoveResponse(BaseModel):
    entity_type: str
    entity_id: UUID
    date: date
    start: str
    end: str
    conflicts: List[ConflictItem]
    request_id: str
