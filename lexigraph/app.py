from dataclasses import dataclass

from lexigraph.config.settings import Settings
from lexigraph.database.repositories.document_repository import DocumentRepository
from lexigraph.documents.models import DocumentStatus
from lexigraph.documents.service import DocumentService
from lexigraph.processor.models import ProcessingJob
from lexigraph.processor.processor import build_processor
from lexigraph.storage.base import BaseCache, BaseGraphStore, BaseObjectStore
from lexigraph.storage.neo4j_graph_store import Neo4jGraphStore
from lexigraph.storage.redis_cache import RedisCache
from lexigraph.storage.s3_object_store import S3ObjectStore
from lexigraph.upload.manager import UploadSessionManager
from lexigraph.worker.job_runner import JobRunner
from lexigraph.worker.pool import WorkerPool
from lexigraph.worker.worker import Worker

_app: "Application | None" = None


@dataclass
class Application:
    """Every long-lived collaborator of a running process."""

    settings: Settings
    doc_repo: DocumentRepository
    object_store: BaseObjectStore
    graph_store: BaseGraphStore
    cache: BaseCache
    pool: WorkerPool
    upload_manager: UploadSessionManager
    document_service: DocumentService
    worker: Worker

    def start(self) -> None:
        self.pool.start()

    def close(self) -> None:
        """Stop taking work, finish queued jobs and release the store clients."""
        self.upload_manager.close()
        self.pool.shutdown(drain=True)
        self.cache.close()
        self.graph_store.close()


def build_application(
    settings: Settings,
    doc_repo: DocumentRepository | None = None,
    object_store: BaseObjectStore | None = None,
    graph_store: BaseGraphStore | None = None,
    cache: BaseCache | None = None,
) -> Application:
    """Wire the stores, the processing pool and the services that share them.

    Stores that are not passed in are built from settings.
    """
    doc_repo = doc_repo or DocumentRepository()
    object_store = object_store or S3ObjectStore.from_settings(settings)
    graph_store = graph_store or Neo4jGraphStore.from_settings(settings)
    cache = cache or RedisCache.from_settings(settings)

    def release(job: ProcessingJob) -> None:
        doc_repo.update_status(job.document_id, DocumentStatus.UPLOADED)

    processor = build_processor(settings, doc_repo, object_store, graph_store, cache)
    pool = WorkerPool(
        JobRunner(processor).run,
        workers=settings.processing_workers,
        queue_size=settings.processing_queue_size,
        submit_timeout=settings.submit_timeout_seconds,
        on_discard=release,
    )
    return Application(
        settings=settings,
        doc_repo=doc_repo,
        object_store=object_store,
        graph_store=graph_store,
        cache=cache,
        pool=pool,
        upload_manager=UploadSessionManager(object_store, cache, pool, doc_repo, settings),
        document_service=DocumentService(doc_repo, object_store, graph_store, cache, settings),
        worker=Worker(doc_repo, pool, settings),
    )


def set_application(app: "Application | None") -> None:
    global _app  # noqa: PLW0603
    _app = app


def get_application() -> Application:
    """Return the running application.

    Raises:
        RuntimeError: if no application has been built.
    """
    if _app is None:
        raise RuntimeError("Application not initialized. Call set_application() first.")
    return _app
