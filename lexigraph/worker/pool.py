import queue
import threading
from collections.abc import Callable

from lexigraph.exceptions import WorkerPoolSaturatedError
from lexigraph.logging.logger import Log
from lexigraph.processor.models import ProcessingJob

_STOP = object()


class WorkerPool:
    """Fixed set of threads consuming a bounded job queue.

    `submit` blocks for at most `submit_timeout` seconds when the queue is
    full and then raises, which pushes back on whoever produces jobs. Jobs
    dropped by a non-draining shutdown are passed to `on_discard`.
    """

    def __init__(
        self,
        handler: Callable[[ProcessingJob], None],
        workers: int,
        queue_size: int,
        submit_timeout: float,
        on_discard: Callable[[ProcessingJob], None] | None = None,
    ) -> None:
        self._handler = handler
        self._on_discard = on_discard
        self._queue: queue.Queue[object] = queue.Queue(maxsize=max(1, queue_size))
        self._submit_timeout = submit_timeout
        self._worker_count = max(1, workers)
        self._threads: list[threading.Thread] = []
        self._state_lock = threading.Lock()
        self._accepting = False

    def start(self) -> None:
        with self._state_lock:
            if self._accepting:
                return
            self._accepting = True
            for number in range(self._worker_count):
                thread = threading.Thread(
                    target=self._work, name=f"lexigraph-worker-{number}", daemon=True
                )
                thread.start()
                self._threads.append(thread)
        Log.info(f"Worker pool started with {self._worker_count} threads")

    def submit(self, job: ProcessingJob) -> None:
        """Queue a job for processing.

        Raises:
            RuntimeError: if the pool is not running.
            WorkerPoolSaturatedError: if the queue stayed full for the whole timeout.
        """
        # Held across the put so no job can land behind the stop sentinels.
        with self._state_lock:
            if not self._accepting:
                raise RuntimeError("Worker pool is not accepting jobs")
            try:
                self._queue.put(job, timeout=self._submit_timeout)
            except queue.Full as exc:
                raise WorkerPoolSaturatedError(
                    f"Processing queue is full, could not queue document {job.document_id}"
                ) from exc
        Log.debug("Queued document", document_id=job.document_id, pending=self.pending)

    def shutdown(self, drain: bool = True) -> None:
        """Stop accepting jobs and wait for the threads to exit.

        With `drain`, queued jobs are processed first; otherwise they are dropped.
        """
        with self._state_lock:
            if not self._accepting:
                return
            self._accepting = False
        if not drain:
            self._discard_pending()
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join()
        self._threads.clear()
        Log.info("Worker pool stopped")

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                if isinstance(item, ProcessingJob):
                    self._handler(item)
            except Exception as exc:
                Log.exception(f"Unhandled error in worker thread: {exc}")
            finally:
                self._queue.task_done()

    def _discard_pending(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            self._queue.task_done()
            if isinstance(item, ProcessingJob):
                Log.warning(f"Dropped queued document {item.document_id} on shutdown")
                self._discard(item)

    def _discard(self, job: ProcessingJob) -> None:
        if self._on_discard is None:
            return
        try:
            self._on_discard(job)
        except Exception as exc:
            Log.error(f"Could not hand back dropped document {job.document_id}: {exc}")
