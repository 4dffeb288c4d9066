"""
Document Worker Pool

Processes several documents concurrently with a bounded set of worker
threads. Bookkeeping (pending queue, in-flight map, completed map, worker
health) is the only shared state and every transition happens under one
lock.

Cancellation is honoured only while a task is still queued. Once a worker
has picked a task up it runs to completion: processing is not preemptible.
"""

import itertools
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .errors import ExtractionCancelledError

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 4
MIN_WORKERS = 1
MAX_WORKERS = 8

MIN_PRIORITY = 0
MAX_PRIORITY = 10
DEFAULT_PRIORITY = 5

DEFAULT_FAILURE_THRESHOLD = 3


class TaskStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class WorkerHealth(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class PoolTask:
    """A document queued for processing."""
    task_id: str
    source: Any
    priority: int = DEFAULT_PRIORITY
    options: Dict[str, Any] = field(default_factory=dict)
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    error: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    worker_id: Optional[int] = None
    sequence: int = 0

    @property
    def duration(self) -> Optional[float]:
        if self.started_at is None or self.completed_at is None:
            return None
        return self.completed_at - self.started_at

    @property
    def is_done(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED)


@dataclass
class WorkerStatus:
    """Per-worker health record."""
    worker_id: int
    is_active: bool = False
    current_task_id: Optional[str] = None
    completed_tasks: int = 0
    failed_tasks: int = 0
    consecutive_failures: int = 0
    total_time: float = 0.0
    last_error: Optional[str] = None
    health: WorkerHealth = WorkerHealth.HEALTHY


@dataclass
class PoolStatus:
    total_workers: int
    active_workers: int
    failed_workers: int
    pending_tasks: int
    running_tasks: int
    completed_tasks: int
    workers: List[WorkerStatus]


def clamp_workers(count: int) -> int:
    return max(MIN_WORKERS, min(MAX_WORKERS, count))


def clamp_priority(priority: int) -> int:
    return max(MIN_PRIORITY, min(MAX_PRIORITY, priority))


class WorkerPool:
    """
    Bounded pool of document workers.

    Tasks are served by descending priority, then creation order. A worker
    whose consecutive failures exceed ``failure_threshold`` becomes
    degraded; one more failure while degraded marks it failed. Failed
    workers take no further tasks until ``reset_worker`` or ``reset``.

    Args:
        processor: Called as processor(task) in a worker thread; its return
            value becomes the task result, an exception fails the task and
            ExtractionCancelledError cancels it
        max_workers: Number of workers, clamped to 1..8
        failure_threshold: Consecutive failures tolerated before degrading
    """

    def __init__(
        self,
        processor: Callable[[PoolTask], Any],
        max_workers: int = DEFAULT_WORKERS,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ):
        self.processor = processor
        self.max_workers = clamp_workers(max_workers)
        self.failure_threshold = failure_threshold

        self._condition = threading.Condition()
        self._pending: List[PoolTask] = []
        self._in_flight: Dict[str, PoolTask] = {}
        self._completed: Dict[str, PoolTask] = {}
        self._workers: Dict[int, WorkerStatus] = {
            i: WorkerStatus(worker_id=i) for i in range(self.max_workers)
        }
        self._sequence = itertools.count()
        self._shutdown = False

        self._threads = [
            threading.Thread(target=self._run_worker, args=(i,), name=f"boq-worker-{i}", daemon=True)
            for i in range(self.max_workers)
        ]
        for thread in self._threads:
            thread.start()
        logger.debug(f"Worker pool started with {self.max_workers} workers")

    # ------------------------------------------------------------------
    # Task API
    # ------------------------------------------------------------------

    def add_task(self, source: Any, priority: int = DEFAULT_PRIORITY, options: Optional[Dict[str, Any]] = None) -> str:
        with self._condition:
            if self._shutdown:
                raise RuntimeError("Worker pool is shut down")
            task = PoolTask(
                task_id=uuid.uuid4().hex,
                source=source,
                priority=clamp_priority(priority),
                options=dict(options or {}),
                sequence=next(self._sequence),
            )
            self._pending.append(task)
            self._pending.sort(key=lambda t: (-t.priority, t.created_at, t.sequence))
            self._condition.notify_all()
        logger.debug(f"Queued task {task.task_id} (priority {task.priority})")
        return task.task_id

    def cancel_task(self, task_id: str) -> bool:
        """Cancel a queued task. Running or finished tasks are left alone."""
        with self._condition:
            for index, task in enumerate(self._pending):
                if task.task_id == task_id:
                    del self._pending[index]
                    task.status = TaskStatus.CANCELLED
                    task.completed_at = time.time()
                    self._completed[task_id] = task
                    self._condition.notify_all()
                    return True
        return False

    def get_task(self, task_id: str) -> Optional[PoolTask]:
        with self._condition:
            return self._find(task_id)

    def get_all_tasks(self) -> List[PoolTask]:
        with self._condition:
            return list(self._pending) + list(self._in_flight.values()) + list(self._completed.values())

    def wait(self, task_id: str, timeout: Optional[float] = None) -> Optional[PoolTask]:
        """Block until a task finishes; returns None on timeout or unknown id."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while True:
                task = self._find(task_id)
                if task is None or task.is_done:
                    return task
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return None
                self._condition.wait(remaining)

    def wait_all(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is pending or running (or every worker failed)."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while (self._pending and self._has_usable_worker()) or self._in_flight:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._condition.wait(remaining)
            return not self._pending

    def status(self) -> PoolStatus:
        with self._condition:
            workers = [WorkerStatus(**vars(w)) for w in self._workers.values()]
            return PoolStatus(
                total_workers=len(workers),
                active_workers=sum(1 for w in workers if w.is_active),
                failed_workers=sum(1 for w in workers if w.health == WorkerHealth.FAILED),
                pending_tasks=len(self._pending),
                running_tasks=len(self._in_flight),
                completed_tasks=len(self._completed),
                workers=workers,
            )

    def clear_completed(self) -> int:
        with self._condition:
            count = len(self._completed)
            self._completed.clear()
            return count

    def reset_worker(self, worker_id: int) -> None:
        """Return a worker to healthy so the scheduler uses it again."""
        with self._condition:
            worker = self._workers[worker_id]
            worker.health = WorkerHealth.HEALTHY
            worker.consecutive_failures = 0
            worker.last_error = None
            self._condition.notify_all()
        logger.info(f"Worker {worker_id} reset")

    def reset(self) -> None:
        """Drop queued and completed tasks and restore every worker's health."""
        with self._condition:
            for task in self._pending:
                task.status = TaskStatus.CANCELLED
            self._pending.clear()
            self._completed.clear()
            for worker in self._workers.values():
                worker.health = WorkerHealth.HEALTHY
                worker.consecutive_failures = 0
                worker.failed_tasks = 0
                worker.completed_tasks = 0
                worker.total_time = 0.0
                worker.last_error = None
            self._condition.notify_all()
        logger.info("Worker pool reset")

    def shutdown(self, wait: bool = True) -> None:
        with self._condition:
            self._shutdown = True
            for task in self._pending:
                task.status = TaskStatus.CANCELLED
                self._completed[task.task_id] = task
            self._pending.clear()
            self._condition.notify_all()
        if wait:
            for thread in self._threads:
                thread.join()
        logger.debug("Worker pool shut down")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False

    # ------------------------------------------------------------------
    # Internals (callers hold the condition lock)
    # ------------------------------------------------------------------

    def _find(self, task_id: str) -> Optional[PoolTask]:
        if task_id in self._in_flight:
            return self._in_flight[task_id]
        if task_id in self._completed:
            return self._completed[task_id]
        for task in self._pending:
            if task.task_id == task_id:
                return task
        return None

    def _has_usable_worker(self) -> bool:
        return any(w.health != WorkerHealth.FAILED for w in self._workers.values())

    def _run_worker(self, worker_id: int) -> None:
        while True:
            with self._condition:
                worker = self._workers[worker_id]
                while not self._shutdown and (
                    not self._pending or worker.health == WorkerHealth.FAILED
                ):
                    self._condition.wait()
                if self._shutdown:
                    return

                task = self._pending.pop(0)
                task.status = TaskStatus.RUNNING
                task.started_at = time.time()
                task.worker_id = worker_id
                self._in_flight[task.task_id] = task
                worker.is_active = True
                worker.current_task_id = task.task_id

            cancelled = False
            try:
                result = self.processor(task)
                error = None
            except ExtractionCancelledError as e:
                logger.info(f"Worker {worker_id} cancelled task {task.task_id}")
                result = None
                error = str(e) or "Extraction cancelled"
                cancelled = True
            except Exception as e:
                logger.warning(f"Worker {worker_id} failed task {task.task_id}: {e}")
                result = None
                error = str(e) or type(e).__name__

            with self._condition:
                task.completed_at = time.time()
                del self._in_flight[task.task_id]
                self._completed[task.task_id] = task
                worker.is_active = False
                worker.current_task_id = None
                worker.total_time += task.duration or 0.0

                if error is None:
                    task.status = TaskStatus.COMPLETED
                    task.result = result
                    self._record_success(worker)
                elif cancelled:
                    # Cancellation says nothing about the worker's health
                    task.status = TaskStatus.CANCELLED
                    task.error = error
                else:
                    task.status = TaskStatus.FAILED
                    task.error = error
                    self._record_failure(worker, error)
                self._condition.notify_all()

    def _record_success(self, worker: WorkerStatus) -> None:
        worker.completed_tasks += 1
        worker.consecutive_failures = 0
        if worker.health == WorkerHealth.DEGRADED:
            worker.health = WorkerHealth.HEALTHY

    def _record_failure(self, worker: WorkerStatus, error: str) -> None:
        worker.failed_tasks += 1
        worker.consecutive_failures += 1
        worker.last_error = error

        if worker.health == WorkerHealth.DEGRADED:
            worker.health = WorkerHealth.FAILED
            logger.error(f"Worker {worker.worker_id} failed after {worker.consecutive_failures} consecutive errors")
        elif worker.consecutive_failures > self.failure_threshold:
            worker.health = WorkerHealth.DEGRADED
            logger.warning(f"Worker {worker.worker_id} degraded: {worker.consecutive_failures} consecutive errors")
