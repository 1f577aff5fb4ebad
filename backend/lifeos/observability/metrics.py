"""Metric helpers recorded as single-point Opik traces."""
from __future__ import annotations

from time import perf_counter
from typing import Any, Dict, Optional

from lifeos.observability.tracing import trace


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record ``value`` under ``metric:<name>``; a no-op when Opik is off."""
    payload: Dict[str, Any] = {"value": value}
    payload.update(metadata or {})
    with trace(f"metric:{name}", metadata=payload):
        pass


def elapsed_ms(started: float) -> float:
    """Milliseconds since a ``perf_counter()`` reading."""
    return (perf_counter() - started) * 1000
