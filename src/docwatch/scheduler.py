"""Timers that drive the polling loop."""
from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class ScheduledTask(ABC):
    """Handle for a recurring callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop future invocations."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        """True once :meth:`cancel` has been called."""


class Scheduler(ABC):
    """Runs a callback every ``interval`` seconds until the task is cancelled."""

    @abstractmethod
    def schedule(self, interval: float, callback: Callback) -> ScheduledTask:
        """Start calling ``callback`` every ``interval`` seconds."""


class _ThreadTask(ScheduledTask):
    def __init__(self, interval: float, callback: Callback, name: str):
        self._interval = interval
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    def cancel(self) -> None:
        self._stop_event.set()
        if threading.current_thread() is not self._thread and self._thread.is_alive():
            self._thread.join()

    def _run(self) -> None:
        started_at = time.monotonic()
        while not self._wait_until_next_cycle(started_at):
            started_at = time.monotonic()
            try:
                self._callback()
            except Exception:
                logger.exception("Scheduled callback %r failed", self._callback)

    def _wait_until_next_cycle(self, started_at: float) -> bool:
        """Wait out the rest of the interval; True once the task is cancelled."""
        elapsed = time.monotonic() - started_at
        remaining = max(self._interval - elapsed, 0.0)
        return self._stop_event.wait(remaining)


class ThreadScheduler(Scheduler):
    """Runs each scheduled callback on its own daemon worker thread.

    A task's callbacks run sequentially on that thread, so two invocations
    never overlap.
    """

    def __init__(self, thread_name: str = "docwatch-poll"):
        self._thread_name = thread_name

    def schedule(self, interval: float, callback: Callback) -> ScheduledTask:
        if interval <= 0:
            raise ValueError("interval must be positive")
        task = _ThreadTask(interval, callback, self._thread_name)
        task.start()
        return task


class _ManualTask(ScheduledTask):
    def __init__(self, interval: float, callback: Callback, due_at: float):
        self.interval = interval
        self.callback = callback
        self.due_at = due_at
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ManualScheduler(Scheduler):
    """Virtual clock: callbacks fire only when :meth:`advance` moves time forward."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._tasks: List[_ManualTask] = []

    @property
    def now(self) -> float:
        return self._now

    @property
    def active_tasks(self) -> int:
        return sum(1 for task in self._tasks if not task.cancelled)

    def schedule(self, interval: float, callback: Callback) -> ScheduledTask:
        if interval <= 0:
            raise ValueError("interval must be positive")
        task = _ManualTask(interval, callback, self._now + interval)
        self._tasks.append(task)
        return task

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every callback that falls due. Returns the fire count."""

        target = self._now + seconds
        fired = 0
        while True:
            task = self._next_due(target)
            if task is None:
                break
            self._now = task.due_at
            task.due_at += task.interval
            task.callback()
            fired += 1
        self._now = target
        self._tasks = [task for task in self._tasks if not task.cancelled]
        return fired

    def _next_due(self, target: float) -> Optional[_ManualTask]:
        due = [task for task in self._tasks if not task.cancelled and task.due_at <= target]
        if not due:
            return None
        return min(due, key=lambda task: task.due_at)
