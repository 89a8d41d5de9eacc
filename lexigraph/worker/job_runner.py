from lexigraph.logging.logger import Log
from lexigraph.processor.models import ProcessingJob
from lexigraph.processor.processor import Processor


class JobRunner:
    """Run one processing job and log its outcome. Failed jobs are not retried."""

    def __init__(self, processor: Processor) -> None:
        self._processor = processor

    def run(self, job: ProcessingJob) -> None:
        Log.info(f"Running processing job for document {job.document_id}")
        try:
            self._processor.process(job)
            Log.info(f"Document {job.document_id} processed successfully")
        except Exception as exc:
            Log.error(f"Document {job.document_id} failed: {exc}")
