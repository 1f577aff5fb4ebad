"""Routine definition (recurring template) ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from lifeos.db.base import Base
from lifeos.db.types import JSONBCompat


class RoutineTemplate(Base):
    __tablename__ = "routine_templates"
    __table_args__ = (
        Index("ix_routine_templates_user_id", "user_id"),
        Index("ix_routine_templates_user_active", "user_id", "is_active"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(length=20), nullable=False, server_default=sa_text("'medium'"))
    is_flexible = Column(Boolean, nullable=False, server_default=sa_text("true"))
    is_active = Column(Boolean, nullable=False, server_default=sa_text("true"))
    constraints = Column(JSONBCompat, nullable=False, default=dict)
    recurrence_config = Column(JSONBCompat, nullable=False, default=lambda: {"type": "daily"})
    # created_at doubles as the recurrence anchor date
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
