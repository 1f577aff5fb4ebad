"""Opik-backed tracing context manager."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from lifeos.observability.client import get_opik_client

logger = logging.getLogger(__name__)


def _start_trace(name: str, metadata: Dict[str, Any]) -> Any:
    client = get_opik_client()
    if client is None:
        return None
    try:
        return client.trace(name=name, metadata=metadata or None)
    except Exception as exc:  # pragma: no cover - tracing must not break requests
        logger.debug("Could not open trace %s: %s", name, exc)
        return None


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Any]:
    """
    Wrap a block in an Opik trace.

    Yields the trace handle, or None when Opik is disabled. Exceptions raised
    inside the block are attached to the trace and re-raised unchanged.
    """
    payload = dict(metadata or {})
    if user_id:
        payload.setdefault("user_id", str(user_id))
    if request_id:
        payload.setdefault("request_id", request_id)

    handle = _start_trace(name, payload)
    try:
        yield handle
    except Exception as exc:
        if handle is not None:
            try:
                handle.update(error_info={"message": str(exc), "type": type(exc).__name__})
            except Exception:  # pragma: no cover
                logger.debug("Could not attach error to trace %s", name, exc_info=True)
        raise
    finally:
        if handle is not None:
            try:
                handle.end()
            except Exception:  # pragma: no cover
                logger.debug("Could not close trace %s", name, exc_info=True)
