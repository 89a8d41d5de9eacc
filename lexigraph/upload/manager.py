import json
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import PurePosixPath
from types import MappingProxyType

from lexigraph.config.settings import Settings
from lexigraph.database.repositories.document_repository import DocumentRepository
from lexigraph.documents.models import Document, DocumentStatus
from lexigraph.exceptions import (
    ConflictError,
    IncompleteError,
    LexigraphError,
    StorageError,
    ValidationError,
    WorkerPoolSaturatedError,
)
from lexigraph.logging.logger import Log
from lexigraph.processor.models import ProcessingJob
from lexigraph.storage.base import BaseCache, BaseObjectStore, CompletedPart, ObjectInfo
from lexigraph.upload.chunking import MAX_PARTS, MIB, calculate_chunk_size, count_chunks
from lexigraph.upload.models import (
    AbortResult,
    ChunkResult,
    CompleteResult,
    InitiateResult,
    SessionStatus,
    UploadProgress,
    UploadSession,
)
from lexigraph.upload.session_store import SessionStore
from lexigraph.worker.pool import WorkerPool


def _now() -> datetime:
    return datetime.now(timezone.utc)


def session_cache_key(session_id: str) -> str:
    return f"upload_session:{session_id}"


class UploadSessionManager:
    """Owns chunked upload sessions and hands finished uploads to the processing pool.

    Session state lives only in the session store. The cache holds a mirror
    of each active session for other readers and is never read back here.
    Sessions that end (completed, failed or aborted) stay queryable for
    `abort_grace_seconds` and are then dropped from the store.
    """

    def __init__(
        self,
        object_store: BaseObjectStore,
        cache: BaseCache,
        worker_pool: WorkerPool,
        doc_repo: DocumentRepository,
        settings: Settings,
        store: SessionStore | None = None,
    ) -> None:
        self._object_store = object_store
        self._doc_repo = doc_repo
        self._cache = cache
        self._worker_pool = worker_pool
        self._settings = settings
        self._store = store if store is not None else SessionStore(settings.session_store_shards)
        self._timers: dict[str, threading.Timer] = {}
        self._timers_lock = threading.Lock()

    @property
    def store(self) -> SessionStore:
        return self._store

    def initiate_upload(
        self,
        filename: str,
        file_size: int,
        content_type: str,
        chunk_size: int | None = None,
        metadata: dict[str, str] | None = None,
    ) -> InitiateResult:
        """Open a multipart upload and create an `active` session for it.

        Raises:
            ValidationError: on a bad size, extension or chunk size.
            StorageError: if the object store cannot open the upload; no session is created.
        """
        name = PurePosixPath(filename.replace("\\", "/")).name
        self._validate_file(name, file_size)

        if chunk_size is None:
            chunk_size = calculate_chunk_size(file_size, self._settings.chunk_size_mb)
        elif chunk_size <= 0:
            raise ValidationError("Chunk size must be positive")
        total_chunks = count_chunks(file_size, chunk_size)
        if total_chunks > MAX_PARTS:
            raise ValidationError(
                f"Chunk size {chunk_size} needs {total_chunks} parts, more than {MAX_PARTS}"
            )

        session_id = str(uuid.uuid4())
        destination_key = f"uploads/{session_id}/{name}"
        upload_id = self._object_store.open_multipart(
            destination_key, content_type, dict(metadata or {})
        )

        now = _now()
        session = UploadSession(
            id=session_id,
            filename=name,
            file_size=file_size,
            content_type=content_type,
            chunk_size=chunk_size,
            total_chunks=total_chunks,
            upload_id=upload_id,
            destination_key=destination_key,
            created_at=now,
            updated_at=now,
        )
        self._store.add(session)
        self._mirror(session)
        Log.info(
            f"Upload session {session_id} initiated for {name} "
            f"({file_size} bytes, {total_chunks} chunks of {chunk_size})"
        )
        return InitiateResult(
            session_id=session_id,
            upload_id=upload_id,
            chunk_size=chunk_size,
            total_chunks=total_chunks,
            destination_key=destination_key,
        )

    def upload_chunk(self, session_id: str, chunk_index: int, data: bytes) -> ChunkResult:
        """Send one part to the object store and record its tag.

        Re-uploading an index replaces its tag. On a storage failure the
        session is left untouched.
        """
        session = self._store.get(session_id)
        self._require_active(session)
        if not 1 <= chunk_index <= session.total_chunks:
            raise ValidationError(
                f"Invalid chunk index {chunk_index}. Expected 1-{session.total_chunks}"
            )

        part_tag = self._object_store.upload_part(
            session.upload_id, session.destination_key, chunk_index, data
        )

        def record(current: UploadSession) -> UploadSession:
            self._require_active(current)
            return replace(
                current,
                chunks=MappingProxyType({**current.chunks, chunk_index: part_tag}),
                updated_at=_now(),
            )

        updated = self._store.update(session_id, record)
        self._mirror(updated)
        Log.debug(
            "Chunk stored",
            session_id=session_id,
            chunk=chunk_index,
            completed=f"{updated.completed_chunks}/{updated.total_chunks}",
        )
        return ChunkResult(
            chunk_index=chunk_index,
            part_tag=part_tag,
            completed_count=updated.completed_chunks,
            total_chunks=updated.total_chunks,
        )

    def complete_upload(self, session_id: str) -> CompleteResult:
        """Assemble the parts and schedule document processing, at most once per session.

        Raises:
            IncompleteError: if any index in 1..total_chunks has no part.
            StorageError: if the object store rejects completion. Any error raised
                while assembling leaves the session `failed`.
        """

        def claim(current: UploadSession) -> UploadSession:
            self._require_active(current)
            if current.missing_chunks():
                raise IncompleteError(current.total_chunks, current.completed_chunks)
            return replace(current, completing=True, updated_at=_now())

        session = self._store.update(session_id, claim)
        parts = [
            CompletedPart(
                part_number=index,
                etag=session.chunks[index],
                size=self._part_size(session, index),
            )
            for index in range(1, session.total_chunks + 1)
        ]

        try:
            info = self._object_store.complete_multipart(
                session.upload_id, session.destination_key, parts
            )
        except Exception as exc:
            self._store.update(session_id, lambda s: self._finish(s, SessionStatus.FAILED))
            self._schedule_removal(session_id)
            Log.error(f"Upload session {session_id} failed to complete: {exc}")
            raise

        self._store.update(session_id, lambda s: self._finish(s, SessionStatus.COMPLETED))
        self._cache.delete(session_cache_key(session_id))
        self._schedule_removal(session_id)
        Log.info(f"Upload session {session_id} completed: {info.key} ({info.size} bytes)")
        self._schedule_processing(session, info)
        return CompleteResult(file_key=info.key, size=info.size, etag=info.etag)

    def abort_upload(self, session_id: str) -> AbortResult:
        """Tear down a session; the record stays queryable for the grace window."""
        previous_status: SessionStatus | None = None

        def mark(current: UploadSession) -> UploadSession:
            nonlocal previous_status
            previous_status = current.status
            if current.completing:
                raise ConflictError("Upload session is completing")
            if current.status is SessionStatus.COMPLETED:
                raise ConflictError("Upload session is completed")
            if current.status is SessionStatus.ACTIVE:
                return self._finish(current, SessionStatus.ABORTED)
            return current

        session = self._store.update(session_id, mark)
        if previous_status is SessionStatus.ABORTED:
            return AbortResult(session_id=session_id)

        try:
            self._object_store.abort_multipart(session.upload_id, session.destination_key)
        except StorageError as exc:
            Log.warning(f"Abort of multipart upload for session {session_id} failed: {exc}")

        self._cache.delete(session_cache_key(session_id))
        self._schedule_removal(session_id)
        Log.info(f"Upload session {session_id} aborted")
        return AbortResult(session_id=session_id)

    def get_progress(self, session_id: str) -> UploadProgress:
        session = self._store.get(session_id)
        completed = session.completed_chunks
        return UploadProgress(
            session_id=session.id,
            completed_chunks=completed,
            total_chunks=session.total_chunks,
            uploaded_bytes=min(completed * session.chunk_size, session.file_size),
            progress_percent=completed / session.total_chunks * 100,
            status=session.status,
        )

    def close(self) -> None:
        """Cancel pending record removals."""
        with self._timers_lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def _validate_file(self, filename: str, file_size: int) -> None:
        max_size_mb = self._settings.upload_max_size_mb
        if file_size <= 0:
            raise ValidationError("File size must be positive")
        if file_size > max_size_mb * MIB:
            raise ValidationError(
                f"File size {file_size} bytes exceeds maximum allowed size of {max_size_mb} MB"
            )
        extension = self._settings.allowed_extension.lower()
        if not filename or not filename.lower().endswith(extension):
            raise ValidationError(f"Only {extension} files are supported")

    @staticmethod
    def _require_active(session: UploadSession) -> None:
        if session.status is not SessionStatus.ACTIVE:
            raise ConflictError(f"Upload session is {session.status.value}")
        if session.completing:
            raise ConflictError("Upload session is completing")

    @staticmethod
    def _finish(session: UploadSession, status: SessionStatus) -> UploadSession:
        return replace(session, status=status, completing=False, updated_at=_now())

    def _mirror(self, session: UploadSession) -> None:
        self._cache.set(
            session_cache_key(session.id),
            json.dumps(session.to_cache_payload()),
            self._settings.session_cache_ttl_seconds,
        )

    @staticmethod
    def _part_size(session: UploadSession, index: int) -> int:
        if index < session.total_chunks:
            return session.chunk_size
        return session.file_size - session.chunk_size * (session.total_chunks - 1)

    def _schedule_processing(self, session: UploadSession, info: ObjectInfo) -> None:
        """Record the document, then hand it to the pool.

        The row is written as `processing` so the poll loop leaves it alone
        while the job is queued. If the pool cannot take the job the row goes
        back to `uploaded` for the poll loop to claim later.
        """
        object_key = info.key or session.destination_key
        document = Document(
            id=session.id,
            filename=session.filename,
            content_type=session.content_type,
            size=info.size,
            object_key=object_key,
            uploaded_at=_now(),
            status=DocumentStatus.PROCESSING,
        )
        try:
            self._doc_repo.upsert_processing(document)
        except StorageError as exc:
            Log.error(f"Could not record document {session.id}: {exc}")

        job = ProcessingJob(
            document_id=session.id,
            object_key=object_key,
            filename=session.filename,
            size=info.size,
            content_type=session.content_type,
        )
        try:
            self._worker_pool.submit(job)
        except (WorkerPoolSaturatedError, RuntimeError) as exc:
            Log.warning(
                f"Could not queue document {session.id}, leaving it for the poll loop: {exc}"
            )
            self._release(session.id)

    def _release(self, document_id: str) -> None:
        try:
            self._doc_repo.update_status(document_id, DocumentStatus.UPLOADED)
        except LexigraphError as exc:
            Log.error(f"Could not return document {document_id} to the uploaded queue: {exc}")

    def _schedule_removal(self, session_id: str) -> None:
        def remove() -> None:
            with self._timers_lock:
                self._timers.pop(session_id, None)
            self._store.remove(session_id)
            Log.debug(f"Upload session {session_id} removed")

        timer = threading.Timer(self._settings.abort_grace_seconds, remove)
        timer.daemon = True
        with self._timers_lock:
            previous = self._timers.pop(session_id, None)
            self._timers[session_id] = timer
        if previous is not None:
            previous.cancel()
        timer.start()
