"""Lazy Opik client used by tracing and metrics."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from lifeos.core.config import settings

try:
    from opik import Opik
except ImportError:  # pragma: no cover - opik is an optional runtime backend
    Opik = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

_client: Optional["Opik"] = None
_init_attempted = False
_lock = Lock()


def init_opik() -> Optional["Opik"]:
    """Create the Opik client on first use; later calls return the cached result."""
    global _client, _init_attempted

    with _lock:
        if _init_attempted:
            return _client
        _init_attempted = True

        if Opik is None or not settings.opik_enabled:
            return None
        if not settings.opik_api_key:
            logger.warning("Opik is enabled but OPIK_API_KEY is not set; tracing stays off.")
            return None

        try:
            _client = Opik(project_name=settings.opik_project, api_key=settings.opik_api_key)
        except Exception as exc:  # pragma: no cover - network/backend failure
            logger.warning("Opik initialization failed, tracing disabled: %s", exc)
            _client = None
            return None

    logger.info("Opik tracing enabled for project %s", settings.opik_project)
    return _client


def get_opik_client() -> Optional["Opik"]:
    """Return the Opik client when tracing is on, otherwise None."""
    return _client if _client is not None else init_opik()


def reset_opik_client() -> None:
    """Forget the cached client so the next call re-reads settings."""
    global _client, _init_attempted

    with _lock:
        _client = None
        _init_attempted = False
