"""
=============================================================================
THREAD POOL IMPLEMENTATION
=============================================================================

A fixed set of worker threads pulling tasks from one shared queue.

=============================================================================
WHY A FIXED POOL?
=============================================================================

Thread-per-connection has no ceiling: a page with 60 thumbnails opens 60
connections at once, and every one of them gets a thread and a file handle.
On a phone or a small board that is exactly the wrong failure mode.

    pool = ThreadPool(num_workers=10)
    pool.start()

    for conn in accept_connections():
        pool.submit(handle, args=(conn,))      # never blocks, never rejects

- At most num_workers connections are processed at the same time.
- Extra connections WAIT in the queue (FIFO) instead of being refused.
- Workers are created once and reused.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Thread Pool                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   submit() ──► [Task][Task][Task][None][None]...   (unbounded FIFO) │
    │                          │                                           │
    │                          │ get()                                     │
    │                          ▼                                           │
    │   ┌──────────┐ ┌──────────┐ ┌──────────┐       ┌───────────┐        │
    │   │ Worker 0 │ │ Worker 1 │ │ Worker 2 │  ...  │ Worker 9  │        │
    │   └──────────┘ └──────────┘ └──────────┘       └───────────┘        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SHUTDOWN: THE POISON PILL
=============================================================================

shutdown() stops new submissions, then puts one None per worker at the END
of the queue. Because the queue is FIFO, every task submitted before the
shutdown still runs; a worker exits when it finally pulls its None.

=============================================================================
"""

import threading
import queue
import time
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states, used for monitoring."""

    IDLE = "idle"        # Waiting for a task
    BUSY = "busy"        # Executing a task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call: "call func(*args, **kwargs) later".

    Attributes:
        func: The function to execute.
        args: Positional arguments.
        kwargs: Keyword arguments.
        submitted_at: When the task was queued (for wait-time logging).
    """

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Worker Loop                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. task = queue.get()            (blocks)                         │
    │   2. task is None? → exit                                           │
    │   3. task.func(*args, **kwargs)    (exceptions logged, not raised)  │
    │   4. queue.task_done(), back to 1                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, name_prefix: str = "Worker"):
        # daemon=True: a stuck client can never keep the host process alive
        super().__init__(name=f"{name_prefix}-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break  # Poison pill
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """
        Execute one task.

        Every exception is caught and logged: one bad connection must not
        take a worker, and with it a tenth of the server's capacity, down.
        """
        self.state = WorkerState.BUSY
        start_time = time.time()
        waited = start_time - task.submitted_at

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s "
                f"(queued {waited:.3f}s)"
            )
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Fixed-size thread pool with an unbounded task queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ThreadPool Usage                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   pool = ThreadPool(num_workers=10)                                 │
    │   pool.start()                                                       │
    │   pool.submit(handle_connection, args=(conn,))                      │
    │   print(pool.stats)                                                  │
    │   pool.shutdown()            # returns at once, queue still drains  │
    │   pool.shutdown(wait=True)   # ...or wait for the workers to exit   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, num_workers: int = 10, name_prefix: str = "Worker"):
        """
        Args:
            num_workers: Number of worker threads (the concurrency limit).
            name_prefix: Thread name prefix, handy in thread dumps.
        """
        if num_workers < 1:
            raise ValueError("num_workers must be >= 1")

        self.num_workers = num_workers
        self.name_prefix = name_prefix

        # Unbounded: put() never blocks, so the accept loop never stalls
        self._task_queue: queue.Queue = queue.Queue()

        self._workers: list = []
        self._lock = threading.Lock()  # Guards _started / _shutdown / _workers
        self._started = False
        self._shutdown = False

    def start(self):
        """
        Create and start all workers. Calling it twice is a no-op.

        Raises:
            RuntimeError: A worker thread could not be started. Workers
                already running are told to exit and the pool cannot be
                started again.
        """
        with self._lock:
            if self._started:
                return

            logger.info(f"Starting thread pool with {self.num_workers} workers")
            try:
                for worker_id in range(self.num_workers):
                    worker = Worker(self._task_queue, worker_id, self.name_prefix)
                    worker.start()
                    self._workers.append(worker)
            except Exception:
                for _ in self._workers:
                    self._task_queue.put(None)
                self._started = True
                self._shutdown = True
                raise

            self._started = True

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None):
        """
        Queue a task for execution.

        Never blocks: if every worker is busy the task waits in the queue.

        Raises:
            RuntimeError: The pool was not started or is shutting down.
        """
        with self._lock:
            if not self._started:
                raise RuntimeError("Thread pool not started")
            if self._shutdown:
                raise RuntimeError("Thread pool is shutting down")

            self._task_queue.put(Task(func=func, args=args, kwargs=kwargs or {}))

    def shutdown(self, wait: bool = False, timeout: Optional[float] = None):
        """
        Stop accepting tasks and let the workers finish.

        Tasks already queued still run. Running tasks are never interrupted.

        Args:
            wait: Block until every worker has exited.
            timeout: Per-worker join timeout when wait=True (None = forever).
        """
        with self._lock:
            if not self._started or self._shutdown:
                return

            logger.info("Shutting down thread pool...")
            self._shutdown = True

            # Pills go behind everything already queued
            for _ in self._workers:
                self._task_queue.put(None)

            workers = list(self._workers)

        if wait:
            for worker in workers:
                worker.join(timeout=timeout)
            logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def alive_workers(self) -> int:
        return sum(1 for w in self._workers if w.is_alive())

    @property
    def queue_size(self) -> int:
        """Tasks waiting for a worker (poison pills included after shutdown)."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counters, e.g. for a status screen."""
        return {
            "workers": {
                "total": len(self._workers),
                "alive": self.alive_workers,
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self.queue_size,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
