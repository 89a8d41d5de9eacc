import io
import threading
import time
import uuid
from typing import Any

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from lexigraph.config.settings import Settings
from lexigraph.exceptions import StorageError
from lexigraph.storage.base import (
    BaseCache,
    BaseGraphStore,
    BaseObjectStore,
    CompletedPart,
    ObjectInfo,
)


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def elephant_pdf_bytes() -> bytes:
    """A one-page PDF whose text yields a small connected noun graph."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "The elephant herd crossed the river near the forest.")
    c.drawString(72, 700, "The elephant herd rested by the river and the forest.")
    c.save()
    return buf.getvalue()


class InMemoryObjectStore(BaseObjectStore):
    """Object store double keeping multipart uploads and objects in dicts."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.uploads: dict[str, dict[int, bytes]] = {}
        self.aborted: list[str] = []
        self.complete_calls = 0
        self.completed_parts: list[CompletedPart] = []
        self.complete_delay = 0.0
        self.fail_on: set[str] = set()
        self._lock = threading.Lock()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"{operation} failed")

    def open_multipart(self, key: str, content_type: str, metadata: dict[str, str]) -> str:
        self._maybe_fail("open_multipart")
        upload_id = f"upload-{uuid.uuid4().hex[:8]}"
        with self._lock:
            self.uploads[upload_id] = {}
        return upload_id

    def upload_part(self, upload_id: str, key: str, part_number: int, data: bytes) -> str:
        self._maybe_fail("upload_part")
        with self._lock:
            self.uploads[upload_id][part_number] = data
        return f'"etag-{part_number}-{len(data)}"'

    def complete_multipart(
        self, upload_id: str, key: str, parts: list[CompletedPart]
    ) -> ObjectInfo:
        with self._lock:
            self.complete_calls += 1
            self.completed_parts = list(parts)
        if self.complete_delay:
            time.sleep(self.complete_delay)
        self._maybe_fail("complete_multipart")
        with self._lock:
            stored = self.uploads.pop(upload_id)
            data = b"".join(stored[part.part_number] for part in parts)
            self.objects[key] = data
        return ObjectInfo(key=key, size=len(data), etag='"final-etag"')

    def abort_multipart(self, upload_id: str, key: str) -> None:
        self._maybe_fail("abort_multipart")
        with self._lock:
            self.uploads.pop(upload_id, None)
            self.aborted.append(upload_id)

    def put_object(self, key: str, data: bytes, content_type: str) -> ObjectInfo:
        self._maybe_fail("put_object")
        self.objects[key] = data
        return ObjectInfo(key=key, size=len(data), etag='"put-etag"', content_type=content_type)

    def get_object(self, key: str) -> tuple[bytes, int]:
        self._maybe_fail("get_object")
        if key not in self.objects:
            raise StorageError(f"Object {key} not found")
        data = self.objects[key]
        return data, len(data)


class InMemoryGraphStore(BaseGraphStore):
    """Graph store double recording nodes and relationships per graph id."""

    def __init__(self) -> None:
        self.nodes: list[dict[str, Any]] = []
        self.relationships: list[dict[str, Any]] = []
        self.centrality: dict[tuple[str, str], float] = {}
        self.deleted: list[str] = []
        self.query_rows: list[dict[str, Any]] = []
        self.queries: list[tuple[str, dict[str, Any]]] = []
        self.fail_on: set[str] = set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"{operation} failed")

    def delete_tagged(self, graph_id: str) -> None:
        self._maybe_fail("delete_tagged")
        self.deleted.append(graph_id)
        self.nodes = [n for n in self.nodes if n["graph_id"] != graph_id]
        self.relationships = [r for r in self.relationships if r["graph_id"] != graph_id]

    def create_node(self, label: str, name: str, properties: dict[str, Any]) -> None:
        self._maybe_fail("create_node")
        self.nodes.append({"label": label, "name": name, **properties})

    def create_relationship(
        self,
        from_name: str,
        to_name: str,
        rel_type: str,
        properties: dict[str, Any],
    ) -> None:
        self._maybe_fail("create_relationship")
        self.relationships.append(
            {"from": from_name, "to": to_name, "type": rel_type, **properties}
        )

    def set_centrality(self, graph_id: str, name: str, centrality: float) -> None:
        self._maybe_fail("set_centrality")
        self.centrality[(graph_id, name)] = centrality

    def query(self, statement: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        self._maybe_fail("query")
        self.queries.append((statement, params))
        return list(self.query_rows)


class InMemoryCache(BaseCache):
    """Cache double remembering values and their TTLs."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.values[key] = value
        self.ttls[key] = ttl_seconds

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def delete(self, key: str) -> None:
        self.values.pop(key, None)
        self.ttls.pop(key, None)


@pytest.fixture()
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture()
def graph_store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture()
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None)
