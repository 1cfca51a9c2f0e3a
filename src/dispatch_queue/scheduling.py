"""
Module: scheduling.py
Description: Timer and task primitives used by the dispatch queue.

The queue manager never touches the event loop directly. It asks a
Scheduler for the current time, for cancellable delayed callbacks and
for background tasks, which lets the same code run on asyncio or on a
virtual clock that tests advance by hand.

Key Components:
- Scheduler: Abstract clock/timer/task interface
- AsyncioScheduler: Implementation on the running asyncio loop
- VirtualScheduler: Deterministic virtual-time implementation
- TimerSlot: Single-slot timer holder enforcing cancel-and-replace

Dependencies: asyncio, heapq
Author: Webhook Relay Team
"""

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Awaitable, Callable, Coroutine, List, Optional, Protocol


class TimerHandle(Protocol):
    """Handle returned by Scheduler.call_later."""

    def cancel(self) -> None:
        ...

    def cancelled(self) -> bool:
        ...


class Scheduler(ABC):
    """Clock, delayed callbacks and background tasks."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on a monotonic clock."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run callback(*args) once after delay seconds."""

    @abstractmethod
    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Any:
        """
        Run a coroutine in the background.

        Returns a future-like object supporting add_done_callback(),
        done(), cancelled(), result() and exception().
        """

    @abstractmethod
    def sleep(self, delay: float) -> Awaitable[None]:
        """Awaitable that completes after delay seconds."""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback, *args)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        return self.loop.create_task(coro)

    def sleep(self, delay: float) -> Awaitable[None]:
        return asyncio.sleep(delay)


class VirtualTimer:
    """Timer registered on a VirtualScheduler."""

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple):
        self.when = when
        self._callback = callback
        self._args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def _run(self) -> None:
        if not self._cancelled:
            self._cancelled = True
            self._callback(*self._args)


class _VirtualSleep:
    def __init__(self, delay: float):
        self.delay = max(0.0, delay)

    def __await__(self):
        yield self


class VirtualTask:
    """
    Coroutine driven by a VirtualScheduler.

    The coroutine may only suspend on VirtualScheduler.sleep(); anything
    else it awaits must complete without yielding.
    """

    def __init__(self, scheduler: "VirtualScheduler", coro: Coroutine[Any, Any, Any]):
        self._scheduler = scheduler
        self._coro = coro
        self._done = False
        self._cancelled = False
        self._result: Any = None
        self._exception: Optional[BaseException] = None
        self._callbacks: List[Callable[["VirtualTask"], None]] = []

    def done(self) -> bool:
        return self._done

    def cancelled(self) -> bool:
        return self._cancelled

    def result(self) -> Any:
        if not self._done:
            raise RuntimeError("task is not done")
        if self._cancelled:
            raise asyncio.CancelledError()
        if self._exception is not None:
            raise self._exception
        return self._result

    def exception(self) -> Optional[BaseException]:
        if not self._done:
            raise RuntimeError("task is not done")
        if self._cancelled:
            raise asyncio.CancelledError()
        return self._exception

    def cancel(self) -> bool:
        if self._done:
            return False
        self._coro.close()
        self._cancelled = True
        self._finish()
        return True

    def add_done_callback(self, callback: Callable[["VirtualTask"], None]) -> None:
        if self._done:
            callback(self)
        else:
            self._callbacks.append(callback)

    def _finish(self) -> None:
        self._done = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self)

    def _step(self) -> None:
        if self._done:
            return
        try:
            yielded = self._coro.send(None)
        except StopIteration as stop:
            self._result = stop.value
            self._finish()
            return
        except Exception as e:
            self._exception = e
            self._finish()
            return

        if isinstance(yielded, _VirtualSleep):
            self._scheduler.call_later(yielded.delay, self._scheduler._make_ready, self)
        else:
            self._coro.close()
            self._exception = RuntimeError(
                "virtual tasks can only suspend on VirtualScheduler.sleep()"
            )
            self._finish()


class VirtualScheduler(Scheduler):
    """
    Scheduler on a manually advanced clock.

    Nothing happens until advance() is called: spawned tasks start on the
    next advance(), and timers fire in deadline order as the clock passes
    them, with ready tasks run after every timer.
    """

    def __init__(self, start: float = 1000.0):
        self._now = start
        self._timers: List[tuple] = []
        self._ready: deque = deque()
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> VirtualTimer:
        timer = VirtualTimer(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._timers, (timer.when, next(self._sequence), timer))
        return timer

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> VirtualTask:
        task = VirtualTask(self, coro)
        self._make_ready(task)
        return task

    def sleep(self, delay: float) -> Awaitable[None]:
        return _VirtualSleep(delay)

    def _make_ready(self, task: VirtualTask) -> None:
        self._ready.append(task)

    def pending_timers(self) -> List[VirtualTimer]:
        """Timers that are neither fired nor cancelled, earliest first."""
        return [timer for _, _, timer in sorted(self._timers) if not timer.cancelled()]

    def run_ready(self) -> None:
        while self._ready:
            self._ready.popleft()._step()

    def advance(self, seconds: float = 0.0) -> None:
        """Move the clock forward, firing every timer that falls due."""
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")

        target = self._now + seconds
        self.run_ready()
        while self._timers:
            when, _, timer = self._timers[0]
            if timer.cancelled():
                heapq.heappop(self._timers)
                continue
            if when > target:
                break
            heapq.heappop(self._timers)
            self._now = max(self._now, when)
            timer._run()
            self.run_ready()
        self._now = target


class TimerSlot:
    """
    Holds at most one armed timer.

    Arming always cancels the previously armed timer first, so a slot can
    never have two live timers.
    """

    def __init__(self):
        self._handle: Optional[TimerHandle] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None and not self._handle.cancelled()

    def arm(self, scheduler: Scheduler, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        self.cancel()

        def fire() -> None:
            self._handle = None
            callback(*args)

        self._handle = scheduler.call_later(delay, fire)
        return self._handle

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
