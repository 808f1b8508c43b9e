from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Schedules a callback after ``delay_s`` seconds and returns a cancellable handle."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Scheduler backed by an asyncio event loop (the running one by default)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_s, callback)


def _now_ms() -> int:
    return int(time.time() * 1000)
