from abc import ABC, abstractmethod

from lexigraph.pdf.exceptions import PdfExtractionError
from lexigraph.pdf.models import ExtractedText


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    def extract(self, pdf_bytes: bytes, declared_size: int | None = None) -> ExtractedText:
        """Extract ordered page text from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.
            declared_size: Length reported by the store; must match the bytes read.

        Returns:
            ExtractedText with every decodable page, joined by newlines in `content`.

        Raises:
            PdfExtractionError: if the document structure cannot be decoded.
        """
        if declared_size is not None and declared_size != len(pdf_bytes):
            raise PdfExtractionError(
                f"Declared size {declared_size} does not match {len(pdf_bytes)} bytes read"
            )
        pages = self._extract_pages(pdf_bytes)
        return ExtractedText(content="\n".join(pages), pages=pages, page_count=len(pages))

    @abstractmethod
    def _extract_pages(self, pdf_bytes: bytes) -> list[str]:
        """Return the text of each decodable page; undecodable pages are skipped."""
