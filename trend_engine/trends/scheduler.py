"""
Interval scheduler for the engine's periodic background tasks.

Each registered task runs on its own daemon thread:

  while not stop.wait(interval):
      callback()

The per-task Event doubles as the sleep and the stop signal, so stop()
and deregister() interrupt a sleeping task immediately. A callback that
raises is logged and the task keeps its schedule.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ScheduledTask:
    name: str
    interval_seconds: float
    callback: Callable[[], object]
    run_count: int = 0
    error_count: int = 0
    stop_event: threading.Event = field(default_factory=threading.Event)
    thread: Optional[threading.Thread] = None


class IntervalScheduler:
    """Registers callbacks at startup and cancels them at shutdown."""

    def __init__(self, join_timeout: float = 2.0):
        self.join_timeout = join_timeout
        self._tasks: Dict[str, ScheduledTask] = {}
        self._lock = threading.Lock()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def task_names(self) -> List[str]:
        with self._lock:
            return sorted(self._tasks)

    def get_task(self, name: str) -> Optional[ScheduledTask]:
        with self._lock:
            return self._tasks.get(name)

    def register(self, name: str, interval_seconds: float, callback: Callable[[], object]) -> ScheduledTask:
        if interval_seconds <= 0:
            raise ValueError(f"interval for '{name}' must be positive, got {interval_seconds}")
        with self._lock:
            if name in self._tasks:
                raise ValueError(f"task '{name}' is already registered")
            task = ScheduledTask(name=name, interval_seconds=interval_seconds, callback=callback)
            self._tasks[name] = task
            if self._running:
                self._launch(task)
        logger.info(f"Registered task '{name}' every {interval_seconds:g}s")
        return task

    def deregister(self, name: str) -> bool:
        with self._lock:
            task = self._tasks.pop(name, None)
        if task is None:
            return False
        self._halt(task)
        logger.info(f"Deregistered task '{name}'")
        return True

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            for task in self._tasks.values():
                self._launch(task)
        logger.info(f"Scheduler started with {len(self._tasks)} tasks")

    def stop(self) -> None:
        with self._lock:
            self._running = False
            tasks = list(self._tasks.values())
        for task in tasks:
            self._halt(task)
        logger.info("Scheduler stopped")

    def run_now(self, name: str) -> None:
        """Run one task synchronously on the caller's thread."""
        task = self.get_task(name)
        if task is None:
            raise KeyError(name)
        self._execute(task)

    # ── Internals ────────────────────────────────────────────────────────

    def _launch(self, task: ScheduledTask) -> None:
        # Caller holds the lock
        task.stop_event = threading.Event()
        task.thread = threading.Thread(
            target=self._loop, args=(task,), name=f"sched-{task.name}", daemon=True,
        )
        task.thread.start()

    def _halt(self, task: ScheduledTask) -> None:
        task.stop_event.set()
        if task.thread is not None and task.thread is not threading.current_thread():
            task.thread.join(timeout=self.join_timeout)
        task.thread = None

    def _loop(self, task: ScheduledTask) -> None:
        stop = task.stop_event
        while not stop.wait(task.interval_seconds):
            self._execute(task)

    def _execute(self, task: ScheduledTask) -> None:
        try:
            task.callback()
            task.run_count += 1
        except Exception as e:
            task.error_count += 1
            logger.error(f"Scheduled task '{task.name}' failed: {e}", exc_info=True)
