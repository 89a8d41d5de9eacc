from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from collections.abc import Mapping


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class UploadSession:
    """Immutable snapshot of a chunked upload; the session store swaps whole snapshots."""

    id: str
    filename: str
    file_size: int
    content_type: str
    chunk_size: int
    total_chunks: int
    upload_id: str
    destination_key: str
    created_at: datetime
    updated_at: datetime
    chunks: Mapping[int, str] = field(default_factory=lambda: MappingProxyType({}))
    status: SessionStatus = SessionStatus.ACTIVE
    completing: bool = False

    @property
    def completed_chunks(self) -> int:
        return len(self.chunks)

    def missing_chunks(self) -> list[int]:
        return [i for i in range(1, self.total_chunks + 1) if i not in self.chunks]

    def to_cache_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "filename": self.filename,
            "file_size": self.file_size,
            "chunk_size": self.chunk_size,
            "total_chunks": self.total_chunks,
            "completed_chunks": self.completed_chunks,
            "destination_key": self.destination_key,
            "status": self.status.value,
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class InitiateResult:
    session_id: str
    upload_id: str
    chunk_size: int
    total_chunks: int
    destination_key: str


@dataclass(frozen=True)
class ChunkResult:
    chunk_index: int
    part_tag: str
    completed_count: int
    total_chunks: int


@dataclass(frozen=True)
class CompleteResult:
    file_key: str
    size: int
    etag: str


@dataclass(frozen=True)
class AbortResult:
    session_id: str


@dataclass(frozen=True)
class UploadProgress:
    session_id: str
    completed_chunks: int
    total_chunks: int
    uploaded_bytes: int
    progress_percent: float
    status: SessionStatus
