"""Batch job runner for the daily planning pass."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from lifeos.core.config import settings
from lifeos.db.models.routine_template import RoutineTemplate
from lifeos.services.planning_service import PLAN_STALE, generate_plan, get_plan_for_date


logger = logging.getLogger(__name__)


@dataclass
class JobRunResult:
    users_processed: int
    plans_written: int
    users_failed: int = 0


def planning_date() -> date:
    """Today in the scheduler's timezone."""
    return datetime.now(ZoneInfo(settings.scheduler_timezone)).date()


def _active_user_ids(db: Session) -> List[UUID]:
    rows = (
        db.query(RoutineTemplate.user_id)
        .filter(RoutineTemplate.is_active.is_(True))
        .distinct()
        .all()
    )
    return [row[0] for row in rows]


def run_daily_plan_for_user(db: Session, user_id: UUID, plan_date: date, *, force: bool = False) -> bool:
    """Generate occurrences and the plan for one user. Returns True when a plan was (re)built."""
    existing = get_plan_for_date(db, user_id, plan_date)
    rebuild = force or existing is None or existing.status == PLAN_STALE
    generate_plan(db, user_id, plan_date, regenerate=force)
    return rebuild


def run_daily_plan_for_all_users(
    db: Session,
    plan_date: date,
    *,
    user_ids: Optional[Iterable[UUID]] = None,
    force: bool = False,
) -> JobRunResult:
    ids = _normalize_user_ids(user_ids, db)
    users_processed = 0
    plans_written = 0
    failed = 0
    for uid in ids:
        try:
            created = run_daily_plan_for_user(db, uid, plan_date, force=force)
        except Exception:
            failed += 1
            logger.exception("Daily planning failed for user %s on %s", uid, plan_date)
            db.rollback()
            continue
        users_processed += 1
        if created:
            plans_written += 1
    return JobRunResult(users_processed=users_processed, plans_written=plans_written, users_failed=failed)


def _normalize_user_ids(user_ids: Optional[Iterable[UUID]], db: Session) -> List[UUID]:
    if user_ids is None:
        ids = _active_user_ids(db)
    else:
        ids = list(dict.fromkeys(user_ids))
    return ids
