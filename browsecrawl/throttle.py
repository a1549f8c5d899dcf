"""Politeness delay between consecutive page visits."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

LOGGER = logging.getLogger(__name__)


class ThrottleGate:
    """Fixed delay applied before each child-link visit."""

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._sleep = sleep

    async def wait(self, ms: int) -> None:
        if ms <= 0:
            return
        LOGGER.debug("Sleeping %dms before next visit", ms)
        await self._sleep(ms / 1000)
