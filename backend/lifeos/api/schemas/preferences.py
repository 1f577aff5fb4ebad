"""Schemas for scheduling preferences."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from lifeos.services.time_utils import parse_hhmm


class PreferencesResponse(BaseModel):
    user_id: UUID
    wake_time: str
    sleep_time: str
    lunch_break_start: Optional[str]
    lunch_break_duration: Optional[int]
    request_id: str


class PreferencesUpdateRequest(BaseModel):
    user_id: UUID
    wake_time: Optional[str] = None
    sleep_time: Optional[str] = None
    lunch_break_start: Optional[str] = None
    lunch_break_duration: Optional[int] = Field(default=None, ge=0, le=240)

    @field_validator("wake_time", "sleep_time", "lunch_break_start")
    @classmethod
    def _check_time(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        parse_hhmm(value)
        return value[:5]

    @model_validator(mode="after")
    def _check_order(self) -> "PreferencesUpdateRequest":
        if self.wake_time and self.sleep_time:
            end = parse_hhmm(self.sleep_time) or 24 * 60
            if parse_hhmm(self.wake_time) >= end:
                raise ValueError("wake_time must be earlier than sleep_time")
        return self
