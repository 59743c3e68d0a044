"""Clock and timer service.

Every delay in the duel (windup, strike, combo gaps, posture ticks, visual
flashes) goes through a Clock so the same engine code runs against the real
asyncio loop or against virtual time in tests.

Times are float milliseconds.
"""
from __future__ import annotations
import asyncio
import heapq
import itertools
import time
from typing import Callable, List, Optional, Tuple

# Quanti giri di event loop concedere ai coroutine risvegliati
SETTLE_ROUNDS = 5


class TimerHandle:
    """Handle returned by call_later / call_every. cancel() is idempotent."""

    def __init__(self, callback: Callable[[], None], due: float, interval: Optional[float] = None):
        self.callback = callback
        self.due = due
        self.interval = interval
        self.cancelled = False
        self.fired = False
        self._inner: Optional[asyncio.TimerHandle] = None

    @property
    def active(self) -> bool:
        return not self.cancelled and (self.interval is not None or not self.fired)

    def cancel(self):
        self.cancelled = True
        if self._inner is not None:
            self._inner.cancel()
            self._inner = None

    def _run(self):
        if self.cancelled:
            return
        if self.interval is None:
            self.fired = True
        self.callback()


class Clock:
    """Scheduling interface shared by LoopClock and VirtualClock."""

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError

    async def sleep(self, delay_ms: float) -> None:
        raise NotImplementedError


class LoopClock(Clock):
    """Real-time clock backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return time.monotonic() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        delay_ms = max(0.0, delay_ms)
        handle = TimerHandle(callback, self.now() + delay_ms)
        handle._inner = self.loop.call_later(delay_ms / 1000.0, handle._run)
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError(f"interval must be positive, got {interval_ms}")
        handle = TimerHandle(callback, self.now() + interval_ms, interval_ms)
        loop = self.loop

        def _fire():
            if handle.cancelled:
                return
            # Riprogramma prima del callback: il callback può cancellare l'handle
            handle.due += interval_ms
            handle._inner = loop.call_later(interval_ms / 1000.0, _fire)
            handle._run()

        handle._inner = loop.call_later(interval_ms / 1000.0, _fire)
        return handle

    async def sleep(self, delay_ms: float) -> None:
        await asyncio.sleep(max(0.0, delay_ms) / 1000.0)


class VirtualClock(Clock):
    """Deterministic clock: time only moves when tick() or advance() is called.

    tick(ms) runs due callbacks synchronously in due order. advance(ms) does
    the same from inside a running event loop, yielding between callbacks so
    coroutines suspended in sleep() resume at the right virtual instant.
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def _push(self, handle: TimerHandle):
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback, self._now + max(0.0, delay_ms))
        self._push(handle)
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError(f"interval must be positive, got {interval_ms}")
        handle = TimerHandle(callback, self._now + interval_ms, interval_ms)
        self._push(handle)
        return handle

    async def sleep(self, delay_ms: float) -> None:
        fut = asyncio.get_running_loop().create_future()

        def _wake():
            if not fut.done():
                fut.set_result(None)

        self.call_later(delay_ms, _wake)
        await fut

    def _pop_due(self, target: float) -> Optional[TimerHandle]:
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, due)
            if handle.interval is not None:
                handle.due = due + handle.interval
                self._push(handle)
            return handle
        return None

    def tick(self, ms: float = 0.0):
        """Advance virtual time synchronously, firing due callbacks."""
        target = self._now + max(0.0, ms)
        handle = self._pop_due(target)
        while handle is not None:
            handle._run()
            handle = self._pop_due(target)
        self._now = target

    async def advance(self, ms: float = 0.0):
        """Advance virtual time from inside the event loop."""
        target = self._now + max(0.0, ms)
        await self._settle()
        handle = self._pop_due(target)
        while handle is not None:
            handle._run()
            await self._settle()
            handle = self._pop_due(target)
        self._now = target
        await self._settle()

    @staticmethod
    async def _settle():
        for _ in range(SETTLE_ROUNDS):
            await asyncio.sleep(0)
