import asyncio
import heapq
import itertools
import logging
import time
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


def _on_loop_thread(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


class TimerHandle:
    """Handle of a one-shot or repeating timer; cancel() is idempotent and thread-safe."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.cancelled = False
        self._loop = loop
        self._loop_handle: asyncio.TimerHandle | None = None

    def cancel(self) -> None:
        self.cancelled = True
        loop_handle, self._loop_handle = self._loop_handle, None
        if loop_handle is None:
            return
        if self._loop is None or _on_loop_thread(self._loop):
            loop_handle.cancel()
        else:
            self._loop.call_soon_threadsafe(loop_handle.cancel)


class Scheduler(Protocol):
    def now_ms(self) -> float: ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle: ...


def _run_callback(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception:
        logger.exception("Timer callback falhou")


class AsyncioScheduler:
    """
    Timers cooperativos sobre o event loop que criou o scheduler.
    Pode ser armado a partir de uma thread de trabalho (asyncio.to_thread):
    os callbacks sempre rodam no loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop or asyncio.get_running_loop()

    def now_ms(self) -> float:
        return time.monotonic() * 1000

    def _arm(self, handle: TimerHandle, delay_ms: float, fire: Callable[[], None]) -> None:
        def arm() -> None:
            if not handle.cancelled:
                handle._loop_handle = self.loop.call_later(delay_ms / 1000, fire)

        if _on_loop_thread(self.loop):
            arm()
        else:
            self.loop.call_soon_threadsafe(arm)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self.loop)

        def _fire() -> None:
            handle._loop_handle = None
            if not handle.cancelled:
                _run_callback(callback)

        self._arm(handle, delay_ms, _fire)
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self.loop)

        def _tick() -> None:
            if handle.cancelled:
                return
            _run_callback(callback)
            if not handle.cancelled:
                handle._loop_handle = self.loop.call_later(interval_ms / 1000, _tick)

        self._arm(handle, interval_ms, _tick)
        return handle


class ManualScheduler:
    """
    Relógio virtual: os timers só disparam quando advance() é chamado.
    Usado na demonstração de linha de comando e nos testes.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._seq = itertools.count()
        self._queue: list[tuple[float, int, TimerHandle, Callable[[], None], float | None]] = []

    def now_ms(self) -> float:
        return self._now

    def _push(self, due: float, handle: TimerHandle, callback: Callable[[], None], interval: float | None) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback, interval))

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()
        self._push(self._now + delay_ms, handle, callback, None)
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()
        self._push(self._now + interval_ms, handle, callback, interval_ms)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _, _ in self._queue if not handle.cancelled)

    def advance(self, ms: float) -> None:
        target = self._now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback, interval = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            _run_callback(callback)
            if interval is not None and not handle.cancelled:
                self._push(due + interval, handle, callback, interval)
        self._now = target
