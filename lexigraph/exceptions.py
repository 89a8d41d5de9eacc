class LexigraphError(Exception):
    """Base exception for all lexigraph errors."""


class ValidationError(LexigraphError):
    """Raised when caller input is invalid (size, extension, index, empty graph)."""


class NotFoundError(LexigraphError):
    """Raised when a referenced session or document does not exist."""


class SessionNotFoundError(NotFoundError):
    """Raised when an upload session id is unknown."""


class DocumentNotFoundError(NotFoundError):
    """Raised when a document cannot be found in the database."""


class ConflictError(LexigraphError):
    """Raised when an operation is not valid for the current session or document state."""


class IncompleteError(LexigraphError):
    """Raised when completion is attempted before every chunk has been uploaded."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Not all chunks uploaded. Expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class StorageError(LexigraphError):
    """Raised when an object, graph or document store call fails or times out."""


class ParseError(LexigraphError):
    """Raised when a document cannot be decoded."""


class WorkerPoolSaturatedError(LexigraphError):
    """Raised when a job cannot be queued before the submit timeout expires."""
