"""Allocator selection."""
from __future__ import annotations

import logging
from functools import lru_cache

from lifeos.core.config import settings
from lifeos.services.allocation.base import SlotAllocator
from lifeos.services.allocation.greedy import GreedySlotAllocator
from lifeos.services.allocation.llm import LLMSlotAllocator

logger = logging.getLogger(__name__)


def build_slot_allocator(strategy: str) -> SlotAllocator:
    strategy = (strategy or "greedy").lower()
    if strategy == "llm":
        return LLMSlotAllocator(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout_seconds=settings.augmentation_timeout_seconds,
            fallback=GreedySlotAllocator(),
        )
    if strategy != "greedy":
        logger.warning("Unknown allocator strategy %r, using greedy", strategy)
    return GreedySlotAllocator()


@lru_cache
def get_slot_allocator() -> SlotAllocator:
    return build_slot_allocator(settings.allocator_strategy)
