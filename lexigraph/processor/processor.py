from lexigraph.config.settings import Settings
from lexigraph.database.repositories.document_repository import DocumentRepository
from lexigraph.graph.builder import GraphBuilder
from lexigraph.graph.centrality import CentralityEngine
from lexigraph.graph.models import GraphType
from lexigraph.logging.logger import Log
from lexigraph.nlp.lexical_analyzer import LexicalAnalyzer
from lexigraph.nlp.matrix import RelationshipMatrixBuilder
from lexigraph.pdf.factory import PdfExtractorFactory
from lexigraph.processor.models import ProcessingJob
from lexigraph.processor.pipeline import PipelineContext, PipelineStep
from lexigraph.processor.steps import (
    AnalyzeTextStep,
    BuildGraphStep,
    BuildMatrixStep,
    CacheCentroidStep,
    ExtractTextStep,
    FindCentroidStep,
    LoadObjectStep,
    MarkFailedStep,
    PersistResultsStep,
    RegisterDocumentStep,
)
from lexigraph.storage.base import BaseCache, BaseGraphStore, BaseObjectStore


class Processor:
    """Runs the document pipeline steps in order.

    Pipeline: register -> load -> extract -> analyze -> matrix -> graph ->
    centroid -> persist -> cache. If any step raises, the failure step records
    the error on the document and the exception propagates.
    """

    def __init__(self, steps: list[PipelineStep], failed_step: PipelineStep) -> None:
        self._steps = steps
        self._failed_step = failed_step

    def process(self, job: ProcessingJob) -> PipelineContext:
        Log.info("Processing document", document_id=job.document_id, key=job.object_key)
        context = PipelineContext(job=job)
        try:
            for step in self._steps:
                context = step.run(context)
        except Exception as exc:
            context.error_message = str(exc) or type(exc).__name__
            self._mark_failed(context)
            raise
        return context

    def _mark_failed(self, context: PipelineContext) -> None:
        try:
            self._failed_step.run(context)
        except Exception as exc:
            Log.error(f"Could not record failure of document {context.document_id}: {exc}")


def build_processor(
    settings: Settings,
    doc_repo: DocumentRepository,
    object_store: BaseObjectStore,
    graph_store: BaseGraphStore,
    cache: BaseCache,
) -> Processor:
    """Build a Processor with all required adapters."""
    graph_type = GraphType(settings.default_graph_type)
    analyzer = LexicalAnalyzer()
    steps: list[PipelineStep] = [
        RegisterDocumentStep(doc_repo),
        LoadObjectStep(object_store),
        ExtractTextStep(PdfExtractorFactory.create(settings)),
        AnalyzeTextStep(analyzer),
        BuildMatrixStep(
            RelationshipMatrixBuilder(analyzer),
            graph_type,
            settings.cooccurrence_window_size,
        ),
        BuildGraphStep(GraphBuilder(graph_store), graph_type, settings.graph_threshold),
        FindCentroidStep(CentralityEngine(graph_store)),
        PersistResultsStep(doc_repo),
        CacheCentroidStep(cache, settings.centroid_cache_ttl_seconds),
    ]
    return Processor(steps=steps, failed_step=MarkFailedStep(doc_repo))
