from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class Countdown:
    """Calls ``tick`` once per second until it returns False.

    Each tick is scheduled against a monotonic origin (``origin + n`` seconds)
    so a slow tick does not push every later one back, and a tick never starts
    before the previous one has returned.
    """

    def __init__(
        self,
        tick: Callable[[], bool],
        *,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._tick = tick
        self._interval = float(interval)
        self._clock = clock
        self._sleep = sleep
        self.ticks = 0

    async def run(self) -> None:
        origin = self._clock()
        while True:
            deadline = origin + (self.ticks + 1) * self._interval
            delay = deadline - self._clock()
            if delay > 0:
                await self._sleep(delay)
            self.ticks += 1
            # tick() may submit, which talks to the database.
            keep_going = await asyncio.to_thread(self._tick)
            if not keep_going:
                logger.debug("countdown stopped after %s ticks", self.ticks)
                return
