"""Routine occurrence generation and lifecycle."""
from __future__ import annotations

import logging
import zlib
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lifeos.core.config import settings
from lifeos.db.models.action_log import ActionLog
from lifeos.db.models.routine_instance import RoutineInstance
from lifeos.db.models.routine_template import RoutineTemplate
from lifeos.services.allocation.base import ItemId, normalize_constraints
from lifeos.services.recurrence import InvalidRecurrenceError, RecurrenceRule, occurs_on

logger = logging.getLogger(__name__)


class _HasTemplateId(Protocol):
    template_id: ItemId


@dataclass(frozen=True)
class RoutineDefinition:
    id: ItemId
    rule: RecurrenceRule
    anchor: date
    is_active: bool = True


@dataclass(frozen=True)
class NewOccurrence:
    template_id: ItemId
    scheduled_date: date
    status: str = "pending"


def generate_occurrences(
    definitions: Iterable[RoutineDefinition],
    target_date: date,
    existing: Iterable[_HasTemplateId],
) -> List[NewOccurrence]:
    """
    Return the occurrences still missing for ``target_date``.

    Definitions already represented in ``existing`` are skipped, which makes
    repeated calls for the same date safe. Output follows input order and never
    names a definition twice.
    """
    represented = {occurrence.template_id for occurrence in existing}
    created: List[NewOccurrence] = []
    for definition in definitions:
        if not definition.is_active or definition.id in represented:
            continue
        if not occurs_on(definition.rule, definition.anchor, target_date):
            continue
        represented.add(definition.id)
        created.append(NewOccurrence(template_id=definition.id, scheduled_date=target_date))
    return created


def definition_from_template(template: RoutineTemplate) -> RoutineDefinition:
    """Raises InvalidRecurrenceError when the stored descriptor is unusable."""
    return RoutineDefinition(
        id=template.id,
        rule=RecurrenceRule.from_config(template.recurrence_config),
        anchor=anchor_date(template.created_at),
        is_active=bool(template.is_active),
    )


def anchor_date(created_at: Optional[datetime]) -> date:
    """Calendar day a routine was created on, in the scheduler's timezone.

    Timestamps are stored in UTC; naive values (SQLite) are read as UTC.
    """
    moment = created_at or datetime.now(timezone.utc)
    if not isinstance(moment, datetime):
        return moment
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(settings.scheduler_timezone)).date()


def occurrences_for_date(db: Session, user_id: UUID, target_date: date) -> List[RoutineInstance]:
    return (
        db.query(RoutineInstance)
        .filter(RoutineInstance.user_id == user_id, RoutineInstance.scheduled_date == target_date)
        .order_by(RoutineInstance.created_at.asc())
        .all()
    )


def generate_for_date(db: Session, user_id: UUID, target_date: date) -> List[RoutineInstance]:
    """
    Materialize the user's due routines for ``target_date`` and return all of the day's occurrences.

    Storage errors propagate unchanged after a rollback; a unique-constraint
    clash from a concurrent run is absorbed by re-reading the winner's rows.
    """
    try:
        _lock_generation(db, user_id, target_date)
        templates = (
            db.query(RoutineTemplate)
            .filter(RoutineTemplate.user_id == user_id, RoutineTemplate.is_active.is_(True))
            .order_by(RoutineTemplate.created_at.asc())
            .all()
        )
        definitions: List[RoutineDefinition] = []
        for template in templates:
            try:
                definitions.append(definition_from_template(template))
            except InvalidRecurrenceError as exc:
                logger.warning("Skipping routine %s with invalid recurrence: %s", template.id, exc)

        existing = occurrences_for_date(db, user_id, target_date)
        pending = generate_occurrences(definitions, target_date, existing)
        for occurrence in pending:
            db.add(
                RoutineInstance(
                    user_id=user_id,
                    template_id=occurrence.template_id,
                    scheduled_date=occurrence.scheduled_date,
                    status=occurrence.status,
                )
            )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Occurrences for user %s on %s were created concurrently; re-reading", user_id, target_date)
    except Exception:
        db.rollback()
        raise
    else:
        if pending:
            logger.info("Created %s routine occurrence(s) for user %s on %s", len(pending), user_id, target_date)

    return occurrences_for_date(db, user_id, target_date)


def _lock_generation(db: Session, user_id: UUID, target_date: date) -> None:
    """Serialize generation per (user, date) on PostgreSQL; other dialects rely on the unique constraint."""
    if db.get_bind().dialect.name != "postgresql":
        return
    key = zlib.crc32(f"routine-generation:{user_id}:{target_date.isoformat()}".encode("utf-8"))
    db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})


def complete_occurrence(
    db: Session,
    *,
    user_id: UUID,
    occurrence_id: UUID,
    actual_value: Optional[float] = None,
    notes: Optional[str] = None,
) -> RoutineInstance:
    instance = _owned_occurrence(db, user_id, occurrence_id)
    target = normalize_constraints(instance.template.constraints if instance.template else None).target
    score = 100
    if target is not None and actual_value is not None:
        score = min(100, round(actual_value / target.value * 100))

    instance.status = "completed"
    instance.completed_at = datetime.now(timezone.utc)
    instance.actual_value = actual_value
    instance.completion_score = score
    instance.notes = notes
    _record(db, user_id, "routine_completed", instance, "Routine occurrence completed", score=score)
    return _save(db, instance)


def skip_occurrence(db: Session, *, user_id: UUID, occurrence_id: UUID, reason: Optional[str] = None) -> RoutineInstance:
    instance = _owned_occurrence(db, user_id, occurrence_id)
    instance.status = "skipped"
    instance.completed_at = datetime.now(timezone.utc)
    instance.completion_score = 0
    instance.notes = reason
    _record(db, user_id, "routine_skipped", instance, reason or "Routine occurrence skipped")
    return _save(db, instance)


def _owned_occurrence(db: Session, user_id: UUID, occurrence_id: UUID) -> RoutineInstance:
    instance = db.get(RoutineInstance, occurrence_id)
    if instance is None:
        raise LookupError("Routine occurrence not found")
    if instance.user_id != user_id:
        raise PermissionError("Routine occurrence does not belong to user")
    return instance


def _record(db: Session, user_id: UUID, action_type: str, instance: RoutineInstance, reason: str, **extra) -> None:
    db.add(
        ActionLog(
            user_id=user_id,
            action_type=action_type,
            action_payload={
                "occurrence_id": str(instance.id),
                "template_id": str(instance.template_id),
                "date": instance.scheduled_date.isoformat(),
                **extra,
            },
            reason=reason,
        )
    )


def _save(db: Session, instance: RoutineInstance) -> RoutineInstance:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(instance)
    return instance
