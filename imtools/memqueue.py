"""A bounded in-memory task queue served by a fixed pool of worker threads."""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import CancelledError
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator

Task = Callable[[], object]

PUSH_WAIT = 3.0
_POLL_INTERVAL = 0.05
_STOP = object()

_log = logging.getLogger(__name__)


class QueueStoppedError(RuntimeError):
    """Raised when pushing to a queue that has been stopped."""

    def __init__(self, message: str = "push failed: queue is stopped") -> None:
        super().__init__(message)


class QueueFullError(RuntimeError):
    """Raised when the queue has no room for a task in time."""

    def __init__(self, message: str = "push failed: queue is full") -> None:
        super().__init__(message)


class MemoryQueue:
    """Runs pushed callables on ``worker_count`` threads with a buffer of ``buffer_size``."""

    def __init__(self, worker_count: int, buffer_size: int) -> None:
        if worker_count < 1 or buffer_size < 1:
            raise ValueError("worker_count and buffer_size must be greater than 0")
        self._queue: queue.Queue = queue.Queue(maxsize=buffer_size)
        self._cond = threading.Condition()
        self._stopped = False
        self._inflight = 0
        self._workers = [
            threading.Thread(target=self._work, daemon=True) for _ in range(worker_count)
        ]
        for worker in self._workers:
            worker.start()

    def _work(self) -> None:
        while True:
            task = self._queue.get()
            if task is _STOP:
                return
            try:
                task()
            except Exception:
                _log.exception("queued task failed")

    @contextmanager
    def _pushing(self) -> Iterator[None]:
        with self._cond:
            if self._stopped:
                raise QueueStoppedError()
            self._inflight += 1
        try:
            yield
        finally:
            with self._cond:
                self._inflight -= 1
                if self._inflight == 0:
                    self._cond.notify_all()

    def _put_until(self, task: Task, cancel: threading.Event) -> None:
        while True:
            if cancel.is_set():
                raise CancelledError("push cancelled")
            try:
                self._queue.put(task, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                continue

    def push(self, task: Task) -> None:
        """Queue a task, waiting up to PUSH_WAIT seconds for room."""
        with self._pushing():
            try:
                self._queue.put(task, timeout=PUSH_WAIT)
            except queue.Full:
                raise QueueFullError() from None

    def push_until(self, task: Task, cancel: threading.Event) -> None:
        """Queue a task, waiting for room until ``cancel`` is set."""
        with self._pushing():
            self._put_until(task, cancel)

    def batch_push_until(self, tasks: Iterable[Task], cancel: threading.Event) -> int:
        """Queue tasks in order until ``cancel`` is set; return how many were queued.

        On cancellation the raised CancelledError carries the count in ``pushed``.
        """
        with self._pushing():
            pushed = 0
            for task in tasks:
                try:
                    self._put_until(task, cancel)
                except CancelledError as exc:
                    exc.pushed = pushed
                    raise
                pushed += 1
            return pushed

    def push_nowait(self, task: Task) -> None:
        """Queue a task only if there is room right now."""
        with self._pushing():
            try:
                self._queue.put_nowait(task)
            except queue.Full:
                raise QueueFullError() from None

    def stop(self) -> None:
        """Refuse new tasks, finish the queued ones and end the workers."""
        with self._cond:
            if self._stopped:
                return
            self._stopped = True
            self._cond.wait_for(lambda: self._inflight == 0)
        for _ in self._workers:
            self._queue.put(_STOP)
        for worker in self._workers:
            worker.join()

    def __enter__(self) -> "MemoryQueue":
        return self

    def __exit__(self, *args) -> None:
        self.stop()