from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExtractedText:
    """Text pulled out of a page-structured document."""

    content: str
    pages: list[str] = field(default_factory=list)
    page_count: int = 0
