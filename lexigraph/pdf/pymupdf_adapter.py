import pymupdf

from lexigraph.logging.logger import Log
from lexigraph.pdf.base import BasePdfExtractor
from lexigraph.pdf.exceptions import PdfExtractionError

# Index of the text field in the tuples returned by Page.get_text("words").
_WORD_TEXT = 4


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts text from PDF using PyMuPDF."""

    def _extract_pages(self, pdf_bytes: bytes) -> list[str]:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages: list[str] = []
                for number, page in enumerate(doc, start=1):
                    try:
                        words = page.get_text("words")
                    except Exception as exc:
                        Log.warning(f"Skipping undecodable page {number}: {exc}")
                        continue
                    pages.append(" ".join(word[_WORD_TEXT] for word in words).strip())
            return pages
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc
