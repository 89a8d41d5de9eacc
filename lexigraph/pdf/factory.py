from lexigraph.config.settings import Settings
from lexigraph.logging.logger import Log
from lexigraph.pdf.base import BasePdfExtractor
from lexigraph.pdf.pdfplumber_adapter import PdfPlumberAdapter
from lexigraph.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfExtractorFactory:
    """Maps the configured engine name to a text extraction adapter."""

    ENGINES: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        return cls.for_engine(settings.pdf_engine)

    @classmethod
    def for_engine(cls, engine: str) -> BasePdfExtractor:
        name = engine.strip().lower()
        try:
            adapter_cls = cls.ENGINES[name]
        except KeyError:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {sorted(cls.ENGINES)}"
            ) from None
        Log.debug("Using PDF engine", engine=name)
        return adapter_cls()
