"""OpenAI-backed allocation strategy with a deterministic fallback.

The model receives the same inputs as the greedy allocator and must answer
with the allocator's output contract. Nothing it returns is trusted until it
passes :func:`parse_allocation_payload`; any failure, timeout or contract
violation hands the request to the fallback allocator instead.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Literal, Optional

import openai
from pydantic import BaseModel, ConfigDict, ValidationError

from lifeos.observability.metrics import log_metric
from lifeos.services.allocation.base import (
    AllocationRequest,
    AllocationResult,
    PlannedSlot,
    SlotAllocator,
    TimeInterval,
    UnscheduledItem,
)
from lifeos.services.allocation.greedy import GreedySlotAllocator, OccupiedIntervals
from lifeos.services.time_utils import parse_hhmm

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a daily planning assistant. You place routines and tasks into "
    "non-overlapping time slots and answer with JSON only."
)


class AugmentationError(RuntimeError):
    """The external scheduling service could not produce a usable plan."""


class _StrictPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


class SlotPayload(_StrictPayload):
    itemType: Literal["routine", "task"]
    itemId: str
    startTime: str
    endTime: str
    isFixed: bool
    reasoning: str


class UnscheduledPayload(_StrictPayload):
    itemId: str
    itemType: Literal["routine", "task"]
    reason: str


class AllocationPayload(_StrictPayload):
    slots: List[SlotPayload]
    unscheduled: List[UnscheduledPayload]
    summary: str


class LLMSlotAllocator(SlotAllocator):
    name = "llm"

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str,
        timeout_seconds: float,
        fallback: Optional[SlotAllocator] = None,
        client_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.fallback = fallback or GreedySlotAllocator()
        self._client_factory = client_factory

    def allocate(self, request: AllocationRequest) -> AllocationResult:
        if request.is_empty():
            return self.fallback.allocate(request)
        try:
            payload = self._request_payload(request)
            result = parse_allocation_payload(payload, request)
        except Exception as exc:
            logger.warning("Scheduling augmentation unavailable for %s, using %s: %s", request.date, self.fallback.name, exc)
            log_metric("allocation.llm.fallback", 1, metadata={"error": type(exc).__name__})
            return self.fallback.allocate(request)

        result.strategy = self.name
        log_metric("allocation.llm.success", 1, metadata={"slots": len(result.slots)})
        return result

    def _client(self) -> Any:
        if self._client_factory is not None:
            return self._client_factory()
        if not self.api_key:
            raise AugmentationError("OPENAI_API_KEY is not configured")
        return openai.OpenAI(api_key=self.api_key, timeout=self.timeout_seconds, max_retries=0)

    def _request_payload(self, request: AllocationRequest) -> Dict[str, Any]:
        completion = self._client().chat.completions.create(
            model=self.model,
            response_format={"type": "json_object"},
            temperature=0.2,
            timeout=self.timeout_seconds,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(request)},
            ],
        )
        content = completion.choices[0].message.content
        if not content:
            raise AugmentationError("Empty response from scheduling service")
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise AugmentationError(f"Response is not valid JSON: {exc}") from exc


def build_prompt(request: AllocationRequest) -> str:
    routines = [
        {
            "id": str(item.occurrence_id),
            "name": item.name,
            "priority": item.priority,
            "isFlexible": item.is_flexible,
            "durationMinutes": item.constraints.duration_minutes,
            "window": item.constraints.window.label() if item.constraints.window else None,
        }
        for item in request.routines
    ]
    tasks = [
        {
            "id": str(task.task_id),
            "title": task.title,
            "priority": task.priority,
            "durationMinutes": task.duration_minutes,
            "dueDate": task.due_date.isoformat() if task.due_date else None,
        }
        for task in request.open_tasks
    ]
    blocked = [interval.label() for interval in request.reserved_intervals()]
    return (
        f"Plan the day {request.date.isoformat()} between {request.day_bounds.label()}.\n"
        f"Blocked intervals (never overlap them): {json.dumps(blocked)}\n"
        f"Routines: {json.dumps(routines)}\n"
        f"Tasks: {json.dumps(tasks)}\n"
        "Rules: non-flexible routines stay inside their window; higher priority "
        "(critical > high > medium > low) wins contested time; each slot lasts "
        "exactly the item's durationMinutes; no two slots overlap.\n"
        'Answer with {"slots": [{"itemType": "routine"|"task", "itemId": str, '
        '"startTime": "HH:MM", "endTime": "HH:MM", "isFixed": bool, "reasoning": str}], '
        '"unscheduled": [{"itemId": str, "itemType": "routine"|"task", "reason": str}], '
        '"summary": str}. Every item must appear exactly once.'
    )


def parse_allocation_payload(payload: Any, request: AllocationRequest) -> AllocationResult:
    """Validate an external answer against the allocator contract and convert it."""
    try:
        parsed = AllocationPayload.model_validate(payload)
    except ValidationError as exc:
        raise AugmentationError(f"Response does not match the allocation schema: {exc}") from exc

    routines = {str(item.occurrence_id): item for item in request.routines}
    tasks = {str(task.task_id): task for task in request.open_tasks}
    seen: set[str] = set()

    def claim(item_id: str, item_type: str) -> None:
        known = routines if item_type == "routine" else tasks
        if item_id not in known:
            raise AugmentationError(f"Unknown {item_type} id {item_id}")
        if item_id in seen:
            raise AugmentationError(f"Item {item_id} appears more than once")
        seen.add(item_id)

    occupied = OccupiedIntervals(request.reserved_intervals())
    slots: List[PlannedSlot] = []
    for entry in parsed.slots:
        claim(entry.itemId, entry.itemType)
        try:
            interval = TimeInterval(parse_hhmm(entry.startTime), parse_hhmm(entry.endTime))
        except ValueError as exc:
            raise AugmentationError(f"Bad times for {entry.itemId}: {exc}") from exc
        if not request.day_bounds.contains(interval):
            raise AugmentationError(f"Slot {interval.label()} for {entry.itemId} is outside the day")
        if not occupied.is_free(interval):
            raise AugmentationError(f"Slot {interval.label()} for {entry.itemId} overlaps another placement")

        if entry.itemType == "routine":
            routine = routines[entry.itemId]
            expected_minutes = routine.constraints.duration_minutes
            expected_fixed = not routine.is_flexible
            window = routine.constraints.window
            if expected_fixed and window is not None and not window.contains(interval):
                raise AugmentationError(f"Fixed routine {entry.itemId} left its {window.label()} window")
            source = routine.occurrence_id
        else:
            expected_minutes = tasks[entry.itemId].duration_minutes
            expected_fixed = False
            source = tasks[entry.itemId].task_id
        if interval.minutes != expected_minutes:
            raise AugmentationError(
                f"Slot for {entry.itemId} lasts {interval.minutes} min, expected {expected_minutes}"
            )
        if entry.isFixed != expected_fixed:
            raise AugmentationError(f"isFixed mismatch for {entry.itemId}")

        occupied.add(interval)
        slots.append(
            PlannedSlot(
                item_type=entry.itemType,
                item_id=source,
                interval=interval,
                is_fixed=entry.isFixed,
                reasoning=entry.reasoning,
            )
        )

    unscheduled: List[UnscheduledItem] = []
    for entry in parsed.unscheduled:
        claim(entry.itemId, entry.itemType)
        known = routines[entry.itemId].occurrence_id if entry.itemType == "routine" else tasks[entry.itemId].task_id
        unscheduled.append(UnscheduledItem(item_id=known, item_type=entry.itemType, reason=entry.reason))

    missing = (set(routines) | set(tasks)) - seen
    if missing:
        raise AugmentationError(f"{len(missing)} item(s) missing from the response")

    logger.debug("Accepted external allocation for %s (%s slots)", request.date, len(slots))
    return AllocationResult(slots=slots, unscheduled=unscheduled, summary=parsed.summary, strategy="llm")
