from lexigraph.exceptions import ParseError


class PdfExtractionError(ParseError):
    """Raised when a PDF cannot be opened or decoded."""
