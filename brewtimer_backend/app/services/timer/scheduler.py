# brewtimer_backend/app/services/timer/scheduler.py
from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Protocol

__all__ = [
    "TickCallback",
    "TickHandle",
    "TickScheduler",
    "AsyncioTickScheduler",
    "ManualTickScheduler",
]

# Receives the elapsed wall-clock delta since the previous tick, in seconds.
TickCallback = Callable[[float], None]


class TickHandle(Protocol):
    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class TickScheduler(Protocol):
    def call_every(self, interval_s: float, callback: TickCallback) -> TickHandle: ...


# ===================== asyncio =====================

class _AsyncioHandle:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval_s: float, callback: TickCallback):
        self._loop = loop
        self._interval = interval_s
        self._callback = callback
        self._last = loop.time()
        self._pending: Optional[asyncio.TimerHandle] = loop.call_later(interval_s, self._fire)
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _fire(self) -> None:
        if not self._active:
            return
        now = self._loop.time()
        dt = now - self._last
        self._last = now
        # re-arm first so a slow callback doesn't push the next tick out
        self._pending = self._loop.call_later(self._interval, self._fire)
        self._callback(dt)


class AsyncioTickScheduler:
    """Recurring ticks on an asyncio loop via chained call_later (no sleeping tasks)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def call_every(self, interval_s: float, callback: TickCallback) -> _AsyncioHandle:
        return _AsyncioHandle(self._get_loop(), interval_s, callback)


# ===================== manual (tests / simulation) =====================

class _ManualHandle:
    def __init__(self, owner: "ManualTickScheduler", interval_s: float, callback: TickCallback):
        self._owner = owner
        self.interval = interval_s
        self.callback = callback
        self.next_due = owner.now + interval_s
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False


class ManualTickScheduler:
    """
    Deterministic clock. Nothing fires until advance() is called; each armed
    handle then fires once per interval that elapses, in due-time order.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: List[_ManualHandle] = []

    def call_every(self, interval_s: float, callback: TickCallback) -> _ManualHandle:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        handle = _ManualHandle(self, interval_s, callback)
        self._handles.append(handle)
        return handle

    @property
    def active_handles(self) -> List[_ManualHandle]:
        self._handles = [h for h in self._handles if h.active]
        return list(self._handles)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.active_handles if h.next_due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.next_due)
            self.now = handle.next_due
            handle.next_due += handle.interval
            handle.callback(handle.interval)
        self.now = target

    def tick(self, count: int = 1) -> None:
        """advance() by `count` intervals of the single armed handle (1s when idle)."""
        handles = self.active_handles
        step = handles[0].interval if handles else 1.0
        for _ in range(count):
            self.advance(step)
