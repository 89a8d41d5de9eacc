import threading
import zlib
from collections.abc import Callable

from lexigraph.exceptions import SessionNotFoundError
from lexigraph.upload.models import UploadSession


class _Shard:
    __slots__ = ("lock", "sessions")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.sessions: dict[str, UploadSession] = {}


class SessionStore:
    """Concurrent map of upload sessions, sharded by session id.

    Records are immutable snapshots: `update` computes a replacement from the
    current snapshot while holding only that session's shard lock, so writers
    on one session are serialized and sessions on other shards never wait.
    """

    def __init__(self, shards: int = 16) -> None:
        self._shards = [_Shard() for _ in range(max(1, shards))]

    def add(self, session: UploadSession) -> None:
        shard = self._shard(session.id)
        with shard.lock:
            if session.id in shard.sessions:
                raise ValueError(f"Upload session {session.id} already exists")
            shard.sessions[session.id] = session

    def get(self, session_id: str) -> UploadSession:
        shard = self._shard(session_id)
        with shard.lock:
            session = shard.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Upload session {session_id} not found")
        return session

    def update(
        self,
        session_id: str,
        mutate: Callable[[UploadSession], UploadSession],
    ) -> UploadSession:
        """Replace a session with `mutate(current)`; if `mutate` raises, nothing changes."""
        shard = self._shard(session_id)
        with shard.lock:
            current = shard.sessions.get(session_id)
            if current is None:
                raise SessionNotFoundError(f"Upload session {session_id} not found")
            replacement = mutate(current)
            shard.sessions[session_id] = replacement
            return replacement

    def remove(self, session_id: str) -> None:
        shard = self._shard(session_id)
        with shard.lock:
            shard.sessions.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        if not isinstance(session_id, str):
            return False
        shard = self._shard(session_id)
        with shard.lock:
            return session_id in shard.sessions

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.sessions)
        return total

    def _shard(self, session_id: str) -> _Shard:
        return self._shards[zlib.crc32(session_id.encode()) % len(self._shards)]
