"""
Unit tests for the worker pool.
"""

import threading
import time

import pytest

from pocketserve.core.thread_pool import ThreadPool, Worker


@pytest.fixture
def pool():
    p = ThreadPool(num_workers=3, name_prefix="test-worker")
    p.start()
    yield p
    p.shutdown(wait=True, timeout=5.0)


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_tasks(self, pool):
        done = threading.Event()

        pool.submit(done.set)

        assert done.wait(timeout=5.0)

    def test_passes_args_and_kwargs(self, pool):
        results = []
        done = threading.Event()

        def task(a, b, c=None):
            results.append((a, b, c))
            done.set()

        pool.submit(task, args=(1, 2), kwargs={"c": 3})

        assert done.wait(timeout=5.0)
        assert results == [(1, 2, 3)]

    def test_concurrency_bounded_by_workers(self, pool):
        lock = threading.Lock()
        running = 0
        peak = 0
        release = threading.Event()
        finished = threading.Semaphore(0)

        def task():
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            release.wait(timeout=5.0)
            with lock:
                running -= 1
            finished.release()

        for _ in range(8):
            pool.submit(task)

        time.sleep(0.3)
        assert peak == 3
        assert pool.queue_size == 5  # The rest wait, they are not refused

        release.set()
        for _ in range(8):
            assert finished.acquire(timeout=5.0)

    def test_worker_survives_failing_task(self, pool):
        done = threading.Event()

        def boom():
            raise RuntimeError("boom")

        for _ in range(5):
            pool.submit(boom)
        pool.submit(done.set)

        assert done.wait(timeout=5.0)
        assert pool.alive_workers == 3

    def test_queued_tasks_run_after_shutdown(self):
        p = ThreadPool(num_workers=1)
        p.start()
        gate = threading.Event()
        ran = []

        p.submit(gate.wait, args=(5.0,))
        for i in range(3):
            p.submit(ran.append, args=(i,))

        p.shutdown(wait=False)
        gate.set()
        p.shutdown(wait=True)  # Second call is a no-op
        for worker in p._workers:
            worker.join(timeout=5.0)

        assert ran == [0, 1, 2]

    def test_submit_after_shutdown_rejected(self, pool):
        pool.shutdown()

        with pytest.raises(RuntimeError):
            pool.submit(print)

    def test_submit_before_start_rejected(self):
        with pytest.raises(RuntimeError):
            ThreadPool(num_workers=1).submit(print)

    def test_start_twice_is_noop(self, pool):
        pool.start()

        assert len(pool._workers) == 3

    def test_stats(self, pool):
        done = threading.Event()
        pool.submit(done.set)
        done.wait(timeout=5.0)
        time.sleep(0.1)

        stats = pool.stats

        assert stats["workers"]["total"] == 3
        assert stats["tasks"]["completed"] >= 1

    def test_partial_start_failure_stops_started_workers(self, monkeypatch):
        real_start = Worker.start
        calls = []

        def start_two(worker):
            calls.append(worker)
            if len(calls) > 2:
                raise RuntimeError("can't start new thread")
            real_start(worker)

        monkeypatch.setattr(Worker, "start", start_two)
        p = ThreadPool(num_workers=4)

        with pytest.raises(RuntimeError):
            p.start()

        assert len(p._workers) == 2
        for worker in p._workers:
            worker.join(timeout=5.0)
        assert p.alive_workers == 0
        with pytest.raises(RuntimeError):
            p.submit(print)
