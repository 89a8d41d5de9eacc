from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from lexigraph.nlp.models import ProcessedText
from lexigraph.pdf.models import ExtractedText


class DocumentStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class Document:
    """A stored file and the outcome of its processing."""

    id: str
    filename: str
    content_type: str
    size: int
    object_key: str
    uploaded_at: datetime
    status: DocumentStatus = DocumentStatus.UPLOADED
    processed_at: datetime | None = None
    extracted_text: ExtractedText | None = None
    processed_text: ProcessedText | None = None
    graph_id: str | None = None
    error_message: str | None = None
