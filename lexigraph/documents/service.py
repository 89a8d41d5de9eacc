import json
import uuid
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

from lexigraph.config.settings import Settings
from lexigraph.database.repositories.document_repository import DocumentRepository
from lexigraph.documents.models import Document, DocumentStatus
from lexigraph.exceptions import ConflictError, NotFoundError, ValidationError
from lexigraph.graph.builder import GraphBuilder
from lexigraph.graph.centrality import CentralityEngine
from lexigraph.graph.models import (
    CentroidResult,
    GraphNetwork,
    GraphType,
    centroid_cache_key,
    centroid_payload,
    graph_id_for,
)
from lexigraph.logging.logger import Log
from lexigraph.nlp.lexical_analyzer import LexicalAnalyzer
from lexigraph.nlp.matrix import RelationshipMatrixBuilder
from lexigraph.storage.base import BaseCache, BaseGraphStore, BaseObjectStore
from lexigraph.upload.chunking import MIB

_CENTROID_QUERY = """
MATCH (n {graph_id: $graph_id})
WHERE n.centrality IS NOT NULL AND n.centrality > 0
RETURN n.name AS name, n.centrality AS centrality, n.frequency AS frequency
ORDER BY n.centrality DESC, n.name ASC
LIMIT 1
"""


class DocumentService:
    """Document operations outside the chunked upload flow."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        object_store: BaseObjectStore,
        graph_store: BaseGraphStore,
        cache: BaseCache,
        settings: Settings,
    ) -> None:
        self._doc_repo = doc_repo
        self._object_store = object_store
        self._graph_store = graph_store
        self._cache = cache
        self._settings = settings
        self._analyzer = LexicalAnalyzer()
        self._matrix_builder = RelationshipMatrixBuilder(self._analyzer)
        self._graph_builder = GraphBuilder(graph_store)
        self._centrality = CentralityEngine(graph_store)

    def upload_document(
        self, filename: str, data: bytes, content_type: str = "application/pdf"
    ) -> Document:
        """Store a small file in one call and queue it for the poll loop.

        Raises:
            ValidationError: on a wrong extension, an empty file or an oversized file.
            StorageError: if the object or the document record cannot be written.
        """
        name = PurePosixPath(filename.replace("\\", "/")).name
        extension = self._settings.allowed_extension.lower()
        if not name or not name.lower().endswith(extension):
            raise ValidationError(f"Only {extension} files are supported")
        if not data:
            raise ValidationError("File is empty")
        max_size_mb = self._settings.single_upload_max_size_mb
        if len(data) > max_size_mb * MIB:
            raise ValidationError(
                f"File size {len(data)} bytes exceeds maximum allowed size of {max_size_mb} MB"
            )

        document_id = str(uuid.uuid4())
        info = self._object_store.put_object(f"documents/{document_id}/{name}", data, content_type)
        document = Document(
            id=document_id,
            filename=name,
            content_type=content_type,
            size=info.size,
            object_key=info.key,
            uploaded_at=datetime.now(timezone.utc),
            status=DocumentStatus.UPLOADED,
        )
        self._doc_repo.insert(document)
        Log.info(f"Document {document_id} uploaded as {info.key} ({info.size} bytes)")
        return document

    def rebuild_graph(
        self, document_id: str, graph_type: GraphType, threshold: int
    ) -> tuple[GraphNetwork, CentroidResult | None]:
        """Rebuild a processed document's graph with a different type or threshold.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            ConflictError: if the document has no extracted text yet.
            ValidationError: if no noun survives the threshold.
        """
        document = self._doc_repo.find_by_id(document_id)
        if document.extracted_text is None:
            raise ConflictError(f"Document {document_id} has no extracted text")
        if graph_type is GraphType.SEQUENCE and threshold < 1:
            threshold = 1

        content = document.extracted_text.content
        processed = self._analyzer.process(content)
        if graph_type is GraphType.SEQUENCE:
            matrix = self._matrix_builder.sequence(processed.nouns, content)
        else:
            matrix = self._matrix_builder.co_occurrence(
                processed.nouns, processed.sentences, self._settings.cooccurrence_window_size
            )
        network = self._graph_builder.build(
            document_id, graph_type, processed.nouns, matrix, threshold
        )
        centroid = self._centrality.find_centroid(network)

        key = centroid_cache_key(document_id)
        if centroid is None:
            self._cache.delete(key)
        else:
            self._cache.set(
                key,
                json.dumps(centroid_payload(document_id, centroid)),
                self._settings.centroid_cache_ttl_seconds,
            )
        Log.info(f"Rebuilt {graph_type.value} graph for document {document_id}")
        return network, centroid

    def get_centroid(self, document_id: str) -> dict[str, Any]:
        """Return the document's centroid summary, from the cache when possible.

        Raises:
            NotFoundError: if no centroid has been computed for the document.
        """
        cached = self._cache.get(centroid_cache_key(document_id))
        if cached is not None:
            try:
                return {**json.loads(cached), "source": "cache"}
            except json.JSONDecodeError:
                Log.warning(f"Discarding unreadable cached centroid for document {document_id}")

        rows = self._graph_store.query(_CENTROID_QUERY, {"graph_id": graph_id_for(document_id)})
        if not rows:
            raise NotFoundError(f"Centroid for document {document_id} not found")
        row = rows[0]
        return {
            "document_id": document_id,
            "centroid_node": {
                "name": row["name"],
                "centrality": row["centrality"],
                "frequency": row.get("frequency"),
            },
            "source": "graph",
        }
