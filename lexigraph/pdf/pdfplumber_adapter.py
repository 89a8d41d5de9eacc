import io

import pdfplumber

from lexigraph.logging.logger import Log
from lexigraph.pdf.base import BasePdfExtractor
from lexigraph.pdf.exceptions import PdfExtractionError


class PdfPlumberAdapter(BasePdfExtractor):
    """Extracts text from PDF using pdfplumber."""

    def _extract_pages(self, pdf_bytes: bytes) -> list[str]:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages: list[str] = []
                for number, page in enumerate(pdf.pages, start=1):
                    try:
                        words = page.extract_words()
                    except Exception as exc:
                        Log.warning(f"Skipping undecodable page {number}: {exc}")
                        continue
                    pages.append(" ".join(word["text"] for word in words).strip())
            return pages
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc
