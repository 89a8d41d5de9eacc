import time

from lexigraph.config.settings import Settings
from lexigraph.database.connection import get_connection
from lexigraph.database.repositories.document_repository import DocumentRepository
from lexigraph.documents.models import Document, DocumentStatus
from lexigraph.exceptions import WorkerPoolSaturatedError
from lexigraph.logging.logger import Log
from lexigraph.processor.models import ProcessingJob
from lexigraph.worker.pool import WorkerPool


class Worker:
    """Poll loop: sleep -> claim uploaded document -> submit to the pool."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        pool: WorkerPool,
        settings: Settings,
    ) -> None:
        self._doc_repo = doc_repo
        self._pool = pool
        self._settings = settings

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_jobs is set, stop after submitting that many documents (for testing).
        """
        Log.info("Worker started, polling for uploaded documents")
        jobs_done = 0
        try:
            while True:
                if max_jobs is not None and jobs_done >= max_jobs:
                    break
                document = self._try_claim_document()
                if document and self._submit(document):
                    jobs_done += 1
                else:
                    Log.debug("No documents submitted, sleeping")
                    time.sleep(self._settings.job_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _try_claim_document(self) -> Document | None:
        """Attempt to claim the next uploaded document. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._doc_repo.claim_next_uploaded(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None

    def _submit(self, document: Document) -> bool:
        job = ProcessingJob(
            document_id=document.id,
            object_key=document.object_key,
            filename=document.filename,
            size=document.size,
            content_type=document.content_type,
        )
        try:
            self._pool.submit(job)
            return True
        except WorkerPoolSaturatedError as exc:
            Log.warning(f"{exc}; returning document to the uploaded queue")
            self._release(document.id)
            return False

    def _release(self, document_id: str) -> None:
        try:
            self._doc_repo.update_status(document_id, DocumentStatus.UPLOADED)
        except Exception as exc:
            Log.error(f"Could not release document {document_id}: {exc}")
