"""Fixed-delay throttle for sequential calls to one rate-limited upstream."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


class Throttle:
    """Yields items one at a time, sleeping `delay_seconds` between them.

    The first item is released immediately; every later item waits for the
    delay. One Throttle instance belongs to one adapter for one run.
    """

    def __init__(self, delay_seconds: float, *, name: str = "", sleep: SleepFn | None = None):
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.delay_seconds = delay_seconds
        self.name = name
        self._sleep = sleep or asyncio.sleep

    async def iterate(self, items: Iterable[T]) -> AsyncIterator[T]:
        for index, item in enumerate(items):
            if index and self.delay_seconds:
                logger.debug("Throttle[%s]: waiting %.2fs", self.name, self.delay_seconds)
                await self._sleep(self.delay_seconds)
            yield item
