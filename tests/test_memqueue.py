import threading
import time
from concurrent.futures import CancelledError

import pytest

from imtools import memqueue
from imtools.memqueue import MemoryQueue, QueueFullError, QueueStoppedError


def _blocked_queue(buffer_size):
    """A single-worker queue whose worker is held until the returned gate is set."""
    q = MemoryQueue(1, buffer_size)
    started = threading.Event()
    gate = threading.Event()

    def hold():
        started.set()
        gate.wait(5)

    q.push(hold)
    assert started.wait(2)
    return q, gate


def test_push_and_stop():
    q = MemoryQueue(1, 5)
    done = threading.Event()

    def task():
        time.sleep(0.05)
        done.set()

    q.push(task)
    q.stop()
    assert done.is_set()
    with pytest.raises(QueueStoppedError):
        q.push(lambda: None)


def test_second_push_fits_in_buffer():
    q = MemoryQueue(1, 1)
    results = []
    q.push(lambda: (time.sleep(0.2), results.append(1)))
    q.push(lambda: results.append(2))
    q.stop()
    assert results == [1, 2]


def test_many_pushers_every_accepted_task_runs():
    q = MemoryQueue(4, 64)
    executed = []
    accepted = []
    lock = threading.Lock()

    def task():
        with lock:
            executed.append(1)

    def pusher():
        count = 0
        while True:
            try:
                q.push(task)
            except QueueStoppedError:
                break
            except QueueFullError:
                continue
            count += 1
        with lock:
            accepted.append(count)

    threads = [threading.Thread(target=pusher) for _ in range(8)]
    for t in threads:
        t.start()
    time.sleep(0.3)
    q.stop()
    for t in threads:
        t.join(5)
    assert len(accepted) == 8
    assert len(executed) == sum(accepted)
    assert len(executed) > 0
    with pytest.raises(QueueStoppedError):
        q.push(task)
    with pytest.raises(QueueStoppedError):
        q.push_nowait(task)


def test_push_nowait_full():
    q, gate = _blocked_queue(1)
    q.push_nowait(lambda: None)
    with pytest.raises(QueueFullError):
        q.push_nowait(lambda: None)
    gate.set()
    q.stop()


def test_push_times_out(monkeypatch):
    monkeypatch.setattr(memqueue, "PUSH_WAIT", 0.05)
    q, gate = _blocked_queue(1)
    q.push(lambda: None)
    with pytest.raises(QueueFullError):
        q.push(lambda: None)
    gate.set()
    q.stop()


def test_push_until_cancelled():
    q, gate = _blocked_queue(1)
    q.push_nowait(lambda: None)
    cancel = threading.Event()
    threading.Timer(0.05, cancel.set).start()
    with pytest.raises(CancelledError):
        q.push_until(lambda: None, cancel)
    gate.set()
    q.stop()


def test_push_until_succeeds():
    q = MemoryQueue(1, 2)
    done = threading.Event()
    q.push_until(done.set, threading.Event())
    q.stop()
    assert done.is_set()


def test_batch_push_until_reports_partial_count():
    q, gate = _blocked_queue(2)
    cancel = threading.Event()
    threading.Timer(0.1, cancel.set).start()
    with pytest.raises(CancelledError) as info:
        q.batch_push_until([lambda: None] * 3, cancel)
    assert info.value.pushed == 2
    gate.set()
    q.stop()


def test_batch_push_until_all():
    q = MemoryQueue(2, 8)
    results = []
    lock = threading.Lock()

    def make(i):
        def task():
            with lock:
                results.append(i)
        return task

    assert q.batch_push_until([make(i) for i in range(5)], threading.Event()) == 5
    q.stop()
    assert sorted(results) == [0, 1, 2, 3, 4]


def test_stopped_queue_rejects_every_push_kind():
    q = MemoryQueue(1, 1)
    q.stop()
    q.stop()
    with pytest.raises(QueueStoppedError):
        q.push_nowait(lambda: None)
    with pytest.raises(QueueStoppedError):
        q.push_until(lambda: None, threading.Event())
    with pytest.raises(QueueStoppedError):
        q.batch_push_until([lambda: None], threading.Event())


def test_context_manager_stops():
    ran = threading.Event()
    with MemoryQueue(2, 4) as q:
        q.push(ran.set)
    assert ran.is_set()
    with pytest.raises(QueueStoppedError):
        q.push(lambda: None)


@pytest.mark.parametrize("workers, size", [(0, 1), (1, 0), (-1, 5)])
def test_invalid_parameters(workers, size):
    with pytest.raises(ValueError):
        MemoryQueue(workers, size)