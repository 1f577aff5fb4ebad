from __future__ import annotations

import json
from datetime import date
from types import SimpleNamespace

import pytest

from lifeos.services.allocation import llm as llm_module
from lifeos.services.allocation.base import (
    AllocationRequest,
    RoutineConstraints,
    RoutineItem,
    TaskItem,
    TimeInterval,
)
from lifeos.services.allocation.factory import build_slot_allocator
from lifeos.services.allocation.greedy import GreedySlotAllocator
from lifeos.services.allocation.llm import (
    AugmentationError,
    LLMSlotAllocator,
    build_prompt,
    parse_allocation_payload,
)


def _request() -> AllocationRequest:
    return AllocationRequest(
        date=date(2026, 1, 5),
        day_bounds=TimeInterval.from_hhmm("07:00", "22:00"),
        preoccupied=[TimeInterval.from_hhmm("12:00", "13:00")],
        routines=[
            RoutineItem(
                occurrence_id="r1",
                name="Meditate",
                priority="high",
                is_flexible=False,
                constraints=RoutineConstraints(duration_minutes=20, window=TimeInterval.from_hhmm("07:00", "08:00")),
            )
        ],
        tasks=[TaskItem(task_id="t1", title="Write report", estimated_minutes=60)],
    )


def _valid_payload() -> dict:
    return {
        "slots": [
            {
                "itemType": "routine",
                "itemId": "r1",
                "startTime": "07:30",
                "endTime": "07:50",
                "isFixed": True,
                "reasoning": "Quiet morning",
            },
            {
                "itemType": "task",
                "itemId": "t1",
                "startTime": "09:00",
                "endTime": "10:00",
                "isFixed": False,
                "reasoning": "Deep work block",
            },
        ],
        "unscheduled": [],
        "summary": "All set.",
    }


class _FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _fake_client(completions: _FakeCompletions):
    return lambda: SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _allocator(completions: _FakeCompletions) -> LLMSlotAllocator:
    return LLMSlotAllocator(
        api_key="test-key",
        model="gpt-test",
        timeout_seconds=5,
        client_factory=_fake_client(completions),
    )


def test_valid_response_is_used() -> None:
    completions = _FakeCompletions(content=json.dumps(_valid_payload()))

    result = _allocator(completions).allocate(_request())

    assert result.strategy == "llm"
    assert [(slot.item_id, slot.interval.label()) for slot in result.slots] == [
        ("r1", "07:30-07:50"),
        ("t1", "09:00-10:00"),
    ]
    assert completions.calls[0]["model"] == "gpt-test"
    assert completions.calls[0]["response_format"] == {"type": "json_object"}


def test_transport_error_falls_back_to_greedy() -> None:
    completions = _FakeCompletions(error=TimeoutError("slow"))

    result = _allocator(completions).allocate(_request())

    assert result.strategy == "greedy"
    assert result.to_payload() == GreedySlotAllocator().allocate(_request()).to_payload()


def test_garbage_response_falls_back() -> None:
    result = _allocator(_FakeCompletions(content="not json")).allocate(_request())

    assert result.strategy == "greedy"


def test_fallback_records_metric(monkeypatch) -> None:
    recorded = []
    monkeypatch.setattr(llm_module, "log_metric", lambda name, value, metadata=None: recorded.append((name, metadata)))

    _allocator(_FakeCompletions(content="{}")).allocate(_request())

    assert recorded == [("allocation.llm.fallback", {"error": "AugmentationError"})]


def test_missing_api_key_falls_back_without_calling_out() -> None:
    allocator = LLMSlotAllocator(api_key=None, model="gpt-test", timeout_seconds=5)

    assert allocator.allocate(_request()).strategy == "greedy"


def test_empty_request_skips_the_service() -> None:
    completions = _FakeCompletions(content=json.dumps(_valid_payload()))
    empty = AllocationRequest(date=date(2026, 1, 5))

    result = _allocator(completions).allocate(empty)

    assert completions.calls == []
    assert result.slots == []


def _mutated(**changes) -> dict:
    payload = _valid_payload()
    for index, fields in changes.items():
        payload["slots"][int(index[1:])].update(fields)
    return payload


@pytest.mark.parametrize(
    "payload",
    [
        _mutated(s0={"startTime": "08:30", "endTime": "08:50"}),
        _mutated(s1={"startTime": "12:30", "endTime": "13:30"}),
        _mutated(s1={"startTime": "07:40", "endTime": "08:40"}),
        _mutated(s1={"endTime": "09:45"}),
        _mutated(s1={"startTime": "21:30", "endTime": "22:30"}),
        _mutated(s0={"isFixed": False}),
        _mutated(s1={"itemId": "ghost"}),
        _mutated(s1={"itemId": "r1", "itemType": "routine"}),
        _mutated(s1={"startTime": "9am"}),
        _mutated(s0={"isFixed": "yes"}),
        {**_valid_payload(), "slots": _valid_payload()["slots"][:1]},
        {**_valid_payload(), "extra": True},
    ],
    ids=[
        "fixed-outside-window",
        "overlaps-blocked",
        "overlaps-slot",
        "wrong-duration",
        "outside-day",
        "fixed-flag",
        "unknown-id",
        "duplicate-id",
        "bad-time",
        "non-bool",
        "missing-item",
        "extra-field",
    ],
)
def test_contract_violations_are_rejected(payload) -> None:
    with pytest.raises(AugmentationError):
        parse_allocation_payload(payload, _request())


def test_unscheduled_entries_are_accepted() -> None:
    payload = _valid_payload()
    payload["slots"] = payload["slots"][:1]
    payload["unscheduled"] = [{"itemId": "t1", "itemType": "task", "reason": "day fully booked"}]

    result = parse_allocation_payload(payload, _request())

    assert [(item.item_id, item.reason) for item in result.unscheduled] == [("t1", "day fully booked")]


def test_prompt_lists_items_and_blocked_time() -> None:
    prompt = build_prompt(_request())

    assert "2026-01-05" in prompt
    assert "12:00-13:00" in prompt
    assert '"id": "r1"' in prompt
    assert '"title": "Write report"' in prompt


def test_factory_selects_strategy() -> None:
    assert isinstance(build_slot_allocator("greedy"), GreedySlotAllocator)
    assert isinstance(build_slot_allocator("LLM"), LLMSlotAllocator)
    assert isinstance(build_slot_allocator("quantum"), GreedySlotAllocator)
