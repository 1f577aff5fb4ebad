"""Database base, session helpers and models."""

from lifeos.db.base import Base
from lifeos.db import models  # noqa: F401  (registers tables on Base.metadata)

__all__ = ["Base"]
