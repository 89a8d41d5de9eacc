from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CompletedPart:
    """One uploaded part of a multipart upload, identified by its index and tag."""

    part_number: int
    etag: str
    size: int = 0


@dataclass(frozen=True)
class ObjectInfo:
    """Metadata of a stored object."""

    key: str
    size: int
    etag: str
    content_type: str = ""


class BaseObjectStore(ABC):
    """Contract for the multipart-capable object store."""

    @abstractmethod
    def open_multipart(self, key: str, content_type: str, metadata: dict[str, str]) -> str:
        """Start a multipart upload and return its upload id."""

    @abstractmethod
    def upload_part(self, upload_id: str, key: str, part_number: int, data: bytes) -> str:
        """Upload one part and return its tag."""

    @abstractmethod
    def complete_multipart(
        self, upload_id: str, key: str, parts: list[CompletedPart]
    ) -> ObjectInfo:
        """Assemble the parts, in the given order, into a single object."""

    @abstractmethod
    def abort_multipart(self, upload_id: str, key: str) -> None:
        """Discard a multipart upload and every part uploaded so far."""

    @abstractmethod
    def put_object(self, key: str, data: bytes, content_type: str) -> ObjectInfo:
        """Store a whole object in one call."""

    @abstractmethod
    def get_object(self, key: str) -> tuple[bytes, int]:
        """Return an object's bytes and its stored size."""


class BaseGraphStore(ABC):
    """Contract for the property-graph store."""

    @abstractmethod
    def delete_tagged(self, graph_id: str) -> None:
        """Remove every node (and its relationships) tagged with `graph_id`."""

    @abstractmethod
    def create_node(self, label: str, name: str, properties: dict[str, Any]) -> None: ...

    @abstractmethod
    def create_relationship(
        self,
        from_name: str,
        to_name: str,
        rel_type: str,
        properties: dict[str, Any],
    ) -> None:
        """Link two nodes of the graph named by `properties["graph_id"]`."""

    @abstractmethod
    def set_centrality(self, graph_id: str, name: str, centrality: float) -> None: ...

    @abstractmethod
    def query(self, statement: str, params: dict[str, Any]) -> list[dict[str, Any]]: ...

    def close(self) -> None:
        """Release the driver. Stores without one have nothing to do."""


class BaseCache(ABC):
    """Contract for the best-effort key/value cache."""

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    @abstractmethod
    def get(self, key: str) -> str | None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    def close(self) -> None:
        """Release the client. Caches without one have nothing to do."""
