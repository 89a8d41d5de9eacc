from dataclasses import dataclass, field


@dataclass(frozen=True)
class NounEntity:
    """A noun-like word with its document-wide statistics."""

    word: str
    frequency: int
    positions: list[int] = field(default_factory=list)
    stemmed: str = ""


@dataclass(frozen=True)
class ProcessedText:
    """Lexical features of one document."""

    nouns: list[NounEntity] = field(default_factory=list)
    sentences: list[str] = field(default_factory=list)
    word_count: int = 0


# word -> following/co-occurring word -> count
RelationshipMatrix = dict[str, dict[str, int]]
