"""Routine occurrence ORM model (one row per definition per date)."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text as sa_text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from lifeos.db.base import Base


class RoutineInstance(Base):
    __tablename__ = "routine_instances"
    __table_args__ = (
        UniqueConstraint("template_id", "scheduled_date", name="uq_routine_instances_template_date"),
        Index("ix_routine_instances_user_date", "user_id", "scheduled_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    template_id = Column(
        UUID(as_uuid=True),
        ForeignKey("routine_templates.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    scheduled_date = Column(Date, nullable=False)
    # placed HH:MM times, filled in by plan generation or a manual move
    scheduled_start = Column(String(length=5), nullable=True)
    scheduled_end = Column(String(length=5), nullable=True)
    # set when the user moved the occurrence by hand; plan generation keeps it in place
    time_locked = Column(Boolean, nullable=False, server_default=sa_text("false"))
    status = Column(String(length=20), nullable=False, server_default=sa_text("'pending'"))
    actual_value = Column(Float, nullable=True)
    completion_score = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    template = relationship("RoutineTemplate", lazy="joined")
