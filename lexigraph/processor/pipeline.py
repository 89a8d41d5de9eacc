from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from lexigraph.graph.models import CentroidResult, GraphNetwork
from lexigraph.nlp.models import ProcessedText, RelationshipMatrix
from lexigraph.pdf.models import ExtractedText
from lexigraph.processor.models import ProcessingJob


@dataclass(slots=True)
class PipelineContext:
    job: ProcessingJob
    raw_bytes: bytes = b""
    stored_size: int = 0
    extracted_text: ExtractedText | None = None
    processed_text: ProcessedText | None = None
    matrix: RelationshipMatrix = field(default_factory=dict)
    network: GraphNetwork | None = None
    centroid: CentroidResult | None = None
    error_message: str = ""

    @property
    def document_id(self) -> str:
        return self.job.document_id


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
