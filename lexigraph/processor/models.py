from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessingJob:
    """A stored document waiting to be turned into a graph."""

    document_id: str
    object_key: str
    filename: str
    size: int
    content_type: str = "application/pdf"
