"""Helpers for working with users."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lifeos.db.models.user import User


def get_or_create_user(db: Session, user_id: UUID) -> User:
    """Return the user row, inserting it first when missing (race-safe)."""
    user = db.get(User, user_id)
    if user is not None:
        return user

    user = User(id=user_id)
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing is None:
            raise
        return existing
    return user
