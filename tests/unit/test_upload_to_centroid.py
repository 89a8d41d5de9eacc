import json
from unittest.mock import MagicMock

from lexigraph.database.repositories.document_repository import DocumentRepository
from lexigraph.processor.processor import build_processor
from lexigraph.upload.manager import UploadSessionManager
from lexigraph.worker.job_runner import JobRunner
from lexigraph.worker.pool import WorkerPool


class TestUploadToCentroid:
    def test_completed_upload_is_processed_in_background(
        self, settings, object_store, graph_store, cache, elephant_pdf_bytes: bytes
    ) -> None:
        doc_repo = MagicMock(spec=DocumentRepository)
        processor = build_processor(settings, doc_repo, object_store, graph_store, cache)
        pool = WorkerPool(JobRunner(processor).run, workers=2, queue_size=4, submit_timeout=1)
        pool.start()
        manager = UploadSessionManager(object_store, cache, pool, doc_repo, settings)

        half = len(elephant_pdf_bytes) // 2 + 1
        started = manager.initiate_upload(
            "herd.pdf", len(elephant_pdf_bytes), "application/pdf", chunk_size=half
        )
        manager.upload_chunk(started.session_id, 2, elephant_pdf_bytes[half:])
        manager.upload_chunk(started.session_id, 1, elephant_pdf_bytes[:half])
        result = manager.complete_upload(started.session_id)
        pool.shutdown(drain=True)
        manager.close()

        assert object_store.objects[result.file_key] == elephant_pdf_bytes
        registered = [c.args[0].id for c in doc_repo.upsert_processing.call_args_list]
        assert registered == [started.session_id, started.session_id]
        doc_repo.update_status.assert_not_called()
        doc_repo.mark_completed.assert_called_once()
        doc_repo.mark_error.assert_not_called()
        payload = json.loads(cache.values[f"centroid:{started.session_id}"])
        assert payload["centroid_node"]["name"] == "elephant"
