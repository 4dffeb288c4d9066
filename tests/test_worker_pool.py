"""
Tests for the Document Worker Pool

Scheduling order, cancellation of queued tasks and worker health.
A single worker keeps the ordering deterministic.
"""

import threading
import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from extraction.errors import ExtractionCancelledError
from extraction.worker_pool import (
    TaskStatus, WorkerHealth, WorkerPool, clamp_priority, MAX_WORKERS
)


class GatedProcessor:
    """Blocks on the "gate" task until released; records processing order."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self.order = []

    def __call__(self, task):
        if task.source == "gate":
            self.started.set()
            self.release.wait(5)
        self.order.append(task.source)
        if task.options.get("cancel"):
            raise ExtractionCancelledError("Extraction cancelled")
        if task.options.get("fail"):
            raise RuntimeError(f"cannot read {task.source}")
        return f"done:{task.source}"


@pytest.fixture
def processor():
    return GatedProcessor()


class TestScheduling:
    """Tests for priority ordering and results."""

    def test_priority_then_arrival(self, processor):
        with WorkerPool(processor, max_workers=1) as pool:
            try:
                pool.add_task("gate")
                assert processor.started.wait(5)
                pool.add_task("low", priority=1)
                pool.add_task("high", priority=9)
                pool.add_task("mid-a")
                pool.add_task("mid-b")
            finally:
                processor.release.set()
            assert pool.wait_all(timeout=5)

        assert processor.order == ["gate", "high", "mid-a", "mid-b", "low"]

    def test_result_and_duration(self, processor):
        processor.release.set()
        with WorkerPool(processor, max_workers=2) as pool:
            task_id = pool.add_task("boq.pdf")
            task = pool.wait(task_id, timeout=5)

        assert task.status == TaskStatus.COMPLETED
        assert task.result == "done:boq.pdf"
        assert task.duration is not None

    def test_failure_recorded_on_task(self, processor):
        processor.release.set()
        with WorkerPool(processor, max_workers=1) as pool:
            task = pool.wait(pool.add_task("broken.pdf", options={"fail": True}), timeout=5)

        assert task.status == TaskStatus.FAILED
        assert task.error == "cannot read broken.pdf"

    def test_wait_unknown_task(self, processor):
        with WorkerPool(processor, max_workers=1) as pool:
            assert pool.wait("missing", timeout=0.1) is None

    def test_add_after_shutdown(self, processor):
        pool = WorkerPool(processor, max_workers=1)
        pool.shutdown()
        with pytest.raises(RuntimeError):
            pool.add_task("late.pdf")


class TestCancellation:
    """Tests for cancelling queued work."""

    def test_cancel_pending(self, processor):
        with WorkerPool(processor, max_workers=1) as pool:
            try:
                gate_id = pool.add_task("gate")
                assert processor.started.wait(5)
                queued_id = pool.add_task("queued.pdf")

                assert pool.cancel_task(queued_id)
                assert not pool.cancel_task(gate_id)
                assert not pool.cancel_task("missing")
            finally:
                processor.release.set()
            pool.wait_all(timeout=5)

            assert pool.get_task(queued_id).status == TaskStatus.CANCELLED
        assert "queued.pdf" not in processor.order

    def test_cancelled_processing_keeps_worker_healthy(self, processor):
        processor.release.set()
        with WorkerPool(processor, max_workers=1, failure_threshold=0) as pool:
            ids = [pool.add_task(f"doc-{i}.pdf", options={"cancel": True}) for i in range(3)]
            assert pool.wait_all(timeout=5)

            assert [pool.get_task(i).status for i in ids] == [TaskStatus.CANCELLED] * 3
            assert pool.get_task(ids[0]).error == "Extraction cancelled"
            worker = pool.status().workers[0]
            assert worker.health == WorkerHealth.HEALTHY
            assert worker.failed_tasks == 0
            assert worker.consecutive_failures == 0

    def test_clear_completed(self, processor):
        processor.release.set()
        with WorkerPool(processor, max_workers=1) as pool:
            pool.add_task("a.pdf")
            pool.add_task("b.pdf")
            assert pool.wait_all(timeout=5)
            assert pool.status().completed_tasks == 2
            assert pool.clear_completed() == 2
            assert pool.get_all_tasks() == []


class TestWorkerHealth:
    """Tests for degrade, fail and reset transitions."""

    def test_degrade_then_fail(self, processor):
        processor.release.set()
        with WorkerPool(processor, max_workers=1, failure_threshold=3) as pool:
            for i in range(3):
                pool.add_task(f"bad-{i}", options={"fail": True})
            pool.wait_all(timeout=5)
            assert pool.status().workers[0].health == WorkerHealth.HEALTHY

            pool.add_task("bad-3", options={"fail": True})
            pool.wait_all(timeout=5)
            assert pool.status().workers[0].health == WorkerHealth.DEGRADED

            pool.add_task("bad-4", options={"fail": True})
            pool.wait_all(timeout=5)
            status = pool.status()
            assert status.workers[0].health == WorkerHealth.FAILED
            assert status.failed_workers == 1
            assert status.workers[0].last_error == "cannot read bad-4"

    def test_failed_worker_takes_no_tasks_until_reset(self, processor):
        processor.release.set()
        with WorkerPool(processor, max_workers=1, failure_threshold=0) as pool:
            pool.add_task("bad-0", options={"fail": True})
            pool.add_task("bad-1", options={"fail": True})
            pool.wait_all(timeout=5)
            assert pool.status().workers[0].health == WorkerHealth.FAILED

            task_id = pool.add_task("good.pdf")
            assert not pool.wait_all(timeout=0.5)
            assert pool.get_task(task_id).status == TaskStatus.PENDING

            pool.reset_worker(0)
            assert pool.wait_all(timeout=5)
            assert pool.get_task(task_id).status == TaskStatus.COMPLETED
            assert pool.status().workers[0].health == WorkerHealth.HEALTHY

    def test_success_restores_degraded_worker(self, processor):
        processor.release.set()
        with WorkerPool(processor, max_workers=1, failure_threshold=0) as pool:
            pool.add_task("bad", options={"fail": True})
            pool.wait_all(timeout=5)
            assert pool.status().workers[0].health == WorkerHealth.DEGRADED

            pool.add_task("good.pdf")
            pool.wait_all(timeout=5)
            worker = pool.status().workers[0]
            assert worker.health == WorkerHealth.HEALTHY
            assert worker.consecutive_failures == 0

    def test_reset_pool(self, processor):
        processor.release.set()
        with WorkerPool(processor, max_workers=1, failure_threshold=0) as pool:
            pool.add_task("bad-0", options={"fail": True})
            pool.add_task("bad-1", options={"fail": True})
            pool.wait_all(timeout=5)
            pool.reset()
            status = pool.status()
            assert status.failed_workers == 0
            assert status.completed_tasks == 0
            assert status.workers[0].failed_tasks == 0


class TestClamping:

    def test_worker_count(self, processor):
        with WorkerPool(processor, max_workers=50) as pool:
            assert pool.status().total_workers == MAX_WORKERS
        with WorkerPool(processor, max_workers=0) as pool:
            assert pool.max_workers == 1

    def test_priority(self):
        assert clamp_priority(42) == 10
        assert clamp_priority(-1) == 0
        assert clamp_priority(7) == 7
