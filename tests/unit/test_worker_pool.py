import threading
import time

import pytest

from lexigraph.exceptions import WorkerPoolSaturatedError
from lexigraph.processor.models import ProcessingJob
from lexigraph.worker.pool import WorkerPool


def _make_job(document_id: str = "doc-1") -> ProcessingJob:
    return ProcessingJob(
        document_id=document_id,
        object_key=f"uploads/{document_id}/a.pdf",
        filename="a.pdf",
        size=1,
    )


class TestWorkerPoolSubmit:
    def test_runs_submitted_jobs(self) -> None:
        handled: list[str] = []
        pool = WorkerPool(lambda job: handled.append(job.document_id), 2, 10, 1)
        pool.start()

        for number in range(5):
            pool.submit(_make_job(f"doc-{number}"))
        pool.shutdown(drain=True)

        assert sorted(handled) == [f"doc-{n}" for n in range(5)]

    def test_submit_before_start_raises(self) -> None:
        pool = WorkerPool(lambda job: None, 1, 1, 0.1)

        with pytest.raises(RuntimeError, match="not accepting"):
            pool.submit(_make_job())

    def test_submit_after_shutdown_raises(self) -> None:
        pool = WorkerPool(lambda job: None, 1, 1, 0.1)
        pool.start()
        pool.shutdown()

        with pytest.raises(RuntimeError, match="not accepting"):
            pool.submit(_make_job())

    def test_full_queue_raises_saturated(self) -> None:
        release = threading.Event()
        started = threading.Event()

        def handler(_job: ProcessingJob) -> None:
            started.set()
            release.wait(timeout=5)

        pool = WorkerPool(handler, 1, 1, 0.05)
        pool.start()
        try:
            pool.submit(_make_job("doc-1"))
            assert started.wait(timeout=5)
            pool.submit(_make_job("doc-2"))

            with pytest.raises(WorkerPoolSaturatedError, match="doc-3"):
                pool.submit(_make_job("doc-3"))
        finally:
            release.set()
            pool.shutdown()


class TestWorkerPoolShutdown:
    def test_drain_finishes_queued_jobs(self) -> None:
        handled: list[str] = []

        def handler(job: ProcessingJob) -> None:
            time.sleep(0.01)
            handled.append(job.document_id)

        pool = WorkerPool(handler, 1, 10, 1)
        pool.start()
        for number in range(4):
            pool.submit(_make_job(f"doc-{number}"))

        pool.shutdown(drain=True)

        assert len(handled) == 4
        assert pool.pending == 0

    def test_no_drain_drops_queued_jobs(self) -> None:
        handled: list[str] = []
        release = threading.Event()
        started = threading.Event()

        def handler(job: ProcessingJob) -> None:
            started.set()
            release.wait(timeout=5)
            handled.append(job.document_id)

        pool = WorkerPool(handler, 1, 10, 1)
        pool.start()
        pool.submit(_make_job("doc-0"))
        assert started.wait(timeout=5)
        for number in range(1, 4):
            pool.submit(_make_job(f"doc-{number}"))

        threading.Timer(0.05, release.set).start()
        pool.shutdown(drain=False)

        assert handled == ["doc-0"]

    def test_handler_errors_do_not_kill_workers(self) -> None:
        handled: list[str] = []

        def handler(job: ProcessingJob) -> None:
            if job.document_id == "bad":
                raise RuntimeError("boom")
            handled.append(job.document_id)

        pool = WorkerPool(handler, 1, 10, 1)
        pool.start()
        pool.submit(_make_job("bad"))
        pool.submit(_make_job("good"))
        pool.shutdown(drain=True)

        assert handled == ["good"]

    def test_shutdown_is_idempotent(self) -> None:
        pool = WorkerPool(lambda job: None, 1, 1, 0.1)
        pool.start()
        pool.shutdown()
        pool.shutdown()

    def test_no_drain_hands_dropped_jobs_to_discard_hook(self) -> None:
        discarded: list[str] = []
        release = threading.Event()
        started = threading.Event()

        def handler(_job: ProcessingJob) -> None:
            started.set()
            release.wait(timeout=5)

        pool = WorkerPool(
            handler, 1, 10, 1, on_discard=lambda job: discarded.append(job.document_id)
        )
        pool.start()
        pool.submit(_make_job("doc-0"))
        assert started.wait(timeout=5)
        pool.submit(_make_job("doc-1"))
        pool.submit(_make_job("doc-2"))

        threading.Timer(0.05, release.set).start()
        pool.shutdown(drain=False)

        assert discarded == ["doc-1", "doc-2"]

    def test_discard_hook_errors_are_contained(self) -> None:
        release = threading.Event()
        started = threading.Event()

        def handler(_job: ProcessingJob) -> None:
            started.set()
            release.wait(timeout=5)

        def on_discard(_job: ProcessingJob) -> None:
            raise RuntimeError("database down")

        pool = WorkerPool(handler, 1, 10, 1, on_discard=on_discard)
        pool.start()
        pool.submit(_make_job("doc-0"))
        assert started.wait(timeout=5)
        pool.submit(_make_job("doc-1"))

        threading.Timer(0.05, release.set).start()
        pool.shutdown(drain=False)

        assert pool.pending == 0

    def test_submit_racing_shutdown_is_run_or_rejected(self) -> None:
        handled: list[str] = []
        lock = threading.Lock()

        def handler(job: ProcessingJob) -> None:
            with lock:
                handled.append(job.document_id)

        for _ in range(20):
            handled.clear()
            accepted: list[str] = []
            pool = WorkerPool(handler, 2, 100, 1)
            pool.start()
            barrier = threading.Barrier(2)

            def produce() -> None:
                barrier.wait()
                for number in range(50):
                    try:
                        pool.submit(_make_job(f"doc-{number}"))
                    except RuntimeError:
                        return
                    accepted.append(f"doc-{number}")

            producer = threading.Thread(target=produce)
            producer.start()
            barrier.wait()
            pool.shutdown(drain=True)
            producer.join()

            assert sorted(handled) == sorted(accepted)
