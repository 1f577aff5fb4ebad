"""Per-user scheduling preferences."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from lifeos.db.base import Base


class UserPreferences(Base):
    __tablename__ = "user_preferences"

    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    # HH:MM strings, local time
    wake_time = Column(String(length=5), nullable=False, server_default=sa_text("'07:00'"))
    sleep_time = Column(String(length=5), nullable=False, server_default=sa_text("'22:00'"))
    lunch_break_start = Column(String(length=5), nullable=True, server_default=sa_text("'12:00'"))
    lunch_break_duration = Column(Integer, nullable=True, server_default=sa_text("60"))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
