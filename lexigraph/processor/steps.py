import json
from datetime import datetime, timezone

from lexigraph.database.repositories.document_repository import DocumentRepository
from lexigraph.documents.models import Document, DocumentStatus
from lexigraph.graph.builder import GraphBuilder
from lexigraph.graph.centrality import CentralityEngine
from lexigraph.graph.models import GraphType, centroid_cache_key, centroid_payload
from lexigraph.logging.logger import Log
from lexigraph.nlp.lexical_analyzer import LexicalAnalyzer
from lexigraph.nlp.matrix import RelationshipMatrixBuilder
from lexigraph.pdf.base import BasePdfExtractor
from lexigraph.processor.pipeline import PipelineContext, PipelineStep
from lexigraph.storage.base import BaseCache, BaseObjectStore


class RegisterDocumentStep(PipelineStep):
    def __init__(self, doc_repo: DocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        job = context.job
        self._doc_repo.upsert_processing(
            Document(
                id=job.document_id,
                filename=job.filename,
                content_type=job.content_type,
                size=job.size,
                object_key=job.object_key,
                uploaded_at=datetime.now(timezone.utc),
                status=DocumentStatus.PROCESSING,
            )
        )
        Log.info(f"Document {job.document_id} marked as processing")
        return context


class MarkFailedStep(PipelineStep):
    def __init__(self, doc_repo: DocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        self._doc_repo.mark_error(context.document_id, context.error_message)
        Log.error(f"Document {context.document_id} marked as error: {context.error_message}")
        return context


class LoadObjectStep(PipelineStep):
    def __init__(self, object_store: BaseObjectStore) -> None:
        self._object_store = object_store

    def run(self, context: PipelineContext) -> PipelineContext:
        context.raw_bytes, context.stored_size = self._object_store.get_object(
            context.job.object_key
        )
        Log.info(f"Loaded {len(context.raw_bytes)} bytes for document {context.document_id}")
        return context


class ExtractTextStep(PipelineStep):
    def __init__(self, pdf_extractor: BasePdfExtractor) -> None:
        self._pdf_extractor = pdf_extractor

    def run(self, context: PipelineContext) -> PipelineContext:
        context.extracted_text = self._pdf_extractor.extract(
            context.raw_bytes, context.stored_size
        )
        Log.info(
            f"Extracted {len(context.extracted_text.content)} chars from "
            f"{context.extracted_text.page_count} pages of document {context.document_id}"
        )
        return context


class AnalyzeTextStep(PipelineStep):
    def __init__(self, analyzer: LexicalAnalyzer) -> None:
        self._analyzer = analyzer

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.extracted_text is None:
            raise ValueError("PipelineContext.extracted_text must be set before analysis")
        context.processed_text = self._analyzer.process(context.extracted_text.content)
        Log.info(
            f"Document {context.document_id}: {len(context.processed_text.nouns)} nouns, "
            f"{len(context.processed_text.sentences)} sentences"
        )
        return context


class BuildMatrixStep(PipelineStep):
    def __init__(
        self,
        matrix_builder: RelationshipMatrixBuilder,
        graph_type: GraphType,
        window_size: int,
    ) -> None:
        self._matrix_builder = matrix_builder
        self._graph_type = graph_type
        self._window_size = window_size

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.extracted_text is None or context.processed_text is None:
            raise ValueError("PipelineContext text must be analyzed before building a matrix")
        nouns = context.processed_text.nouns
        if self._graph_type is GraphType.SEQUENCE:
            context.matrix = self._matrix_builder.sequence(nouns, context.extracted_text.content)
        else:
            context.matrix = self._matrix_builder.co_occurrence(
                nouns, context.processed_text.sentences, self._window_size
            )
        return context


class BuildGraphStep(PipelineStep):
    def __init__(self, graph_builder: GraphBuilder, graph_type: GraphType, threshold: int) -> None:
        self._graph_builder = graph_builder
        self._graph_type = graph_type
        self._threshold = threshold

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.processed_text is None:
            raise ValueError("PipelineContext.processed_text must be set before building a graph")
        context.network = self._graph_builder.build(
            context.document_id,
            self._graph_type,
            context.processed_text.nouns,
            context.matrix,
            self._threshold,
        )
        return context


class FindCentroidStep(PipelineStep):
    def __init__(self, centrality: CentralityEngine) -> None:
        self._centrality = centrality

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.network is None:
            raise ValueError("PipelineContext.network must be set before centroid search")
        context.centroid = self._centrality.find_centroid(context.network)
        return context


class PersistResultsStep(PipelineStep):
    def __init__(self, doc_repo: DocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        if (
            context.extracted_text is None
            or context.processed_text is None
            or context.network is None
        ):
            raise ValueError("PipelineContext results must be set before persist")
        self._doc_repo.mark_completed(
            context.document_id,
            extracted_text=context.extracted_text,
            processed_text=context.processed_text,
            graph_id=context.network.id,
        )
        Log.info(f"Document {context.document_id} completed with graph {context.network.id}")
        return context


class CacheCentroidStep(PipelineStep):
    def __init__(self, cache: BaseCache, ttl_seconds: int) -> None:
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    def run(self, context: PipelineContext) -> PipelineContext:
        key = centroid_cache_key(context.document_id)
        if context.centroid is None:
            self._cache.delete(key)
            return context
        self._cache.set(
            key,
            json.dumps(centroid_payload(context.document_id, context.centroid)),
            self._ttl_seconds,
        )
        return context
