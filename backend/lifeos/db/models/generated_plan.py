"""Generated day plan and its slots."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
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
from lifeos.db.types import JSONBCompat


class GeneratedPlan(Base):
    __tablename__ = "generated_plans"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_generated_plans_user_date"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(length=20), nullable=False, server_default=sa_text("'draft'"))
    strategy = Column(String(length=20), nullable=False, server_default=sa_text("'greedy'"))
    summary = Column(Text, nullable=True)
    unscheduled = Column(JSONBCompat, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    slots = relationship(
        "PlanSlot",
        order_by="PlanSlot.sort_order",
        cascade="all, delete-orphan",
        back_populates="plan",
    )


class PlanSlot(Base):
    __tablename__ = "plan_slots"
    __table_args__ = (Index("ix_plan_slots_plan_id", "plan_id"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("generated_plans.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    slot_type = Column(String(length=20), nullable=False)
    entity_type = Column(String(length=20), nullable=True)
    entity_id = Column(UUID(as_uuid=True), nullable=True)
    start_time = Column(String(length=5), nullable=False)
    end_time = Column(String(length=5), nullable=False)
    is_locked = Column(Boolean, nullable=False, server_default=sa_text("false"))
    reasoning = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, server_default=sa_text("0"))
    was_executed = Column(Boolean, nullable=False, server_default=sa_text("false"))

    plan = relationship("GeneratedPlan", back_populates="slots")
