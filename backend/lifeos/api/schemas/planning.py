"""Schemas for daily plan endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class PlanGenerateRequest(BaseModel):
    user_id: UUID
    date: date
    regenerate: bool = False


class PlanStaleRequest(BaseModel):
    user_id: UUID


class PlanSlotItem(BaseModel):
    id: UUID
    slot_type: str
    entity_type: Optional[str]
    entity_id: Optional[UUID]
    start_time: str
    end_time: str
    is_locked: bool
    reasoning: Optional[str]
    sort_order: int


class UnscheduledEntry(BaseModel):
    item_id: str
    item_type: str
    reason: str


class PlanResponse(BaseModel):
    id: UUID
    user_id: UUID
    date: date
    status: str
    strategy: str
    summary: Optional[str]
    slots: List[PlanSlotItem]
    unscheduled: List[UnscheduledEntry]
    created_at: Optional[datetime]
    request_id: str


class PlanStaleResponse(BaseModel):
    date: date
    stale: bool
    request_id: str
