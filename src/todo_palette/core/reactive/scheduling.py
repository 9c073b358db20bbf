"""Timer schedulers and fetch runners for the query engine.

The engine never sleeps or spawns work on its own. It asks a scheduler for
delayed callbacks (debounce) and a runner for fetch execution, so the whole
pipeline stays deterministic under a virtual clock.
"""

import asyncio
import heapq
import itertools
from collections.abc import Callable
from concurrent.futures import Executor, Future
from typing import TypeVar

T = TypeVar("T")


class AsyncioScheduler:
    """Delayed callbacks on an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)


class ManualTimer:
    """Timer handle issued by ManualScheduler."""

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock: timers fire only when the owner advances time."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, ManualTimer]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.due, next(self._seq), timer))
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due timers in order. Returns how many fired."""
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = due
            timer.callback()
            fired += 1
        self.now = target
        return fired

    def run_pending(self) -> int:
        """Fire every outstanding timer regardless of its due time."""
        fired = 0
        while self.pending:
            due = max(timer.due for _, _, timer in self._queue if not timer.cancelled)
            fired += self.advance(max(0.0, due - self.now))
        return fired


class InlineRunner:
    """Runs the fetch synchronously on the calling thread."""

    def run(self, job: Callable[[], T], on_done: Callable[["Future[T]"], None]) -> None:
        future: Future[T] = Future()
        try:
            future.set_result(job())
        except Exception as exc:
            future.set_exception(exc)
        on_done(future)


class ExecutorRunner:
    """Runs the fetch on an executor and posts completion back.

    ``post`` must schedule its callable on the controlling thread, e.g.
    ``loop.call_soon_threadsafe``.
    """

    def __init__(self, executor: Executor, post: Callable[..., object]) -> None:
        self._executor = executor
        self._post = post

    def run(self, job: Callable[[], T], on_done: Callable[["Future[T]"], None]) -> None:
        future = self._executor.submit(job)
        future.add_done_callback(lambda done: self._post(on_done, done))
