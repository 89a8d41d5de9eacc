from lexigraph.nlp.lexical_analyzer import LexicalAnalyzer
from lexigraph.nlp.models import NounEntity, RelationshipMatrix


class RelationshipMatrixBuilder:
    """Counts how noun pairs relate, either within a sentence window or by adjacency."""

    def __init__(self, analyzer: LexicalAnalyzer) -> None:
        self._analyzer = analyzer

    def co_occurrence(
        self,
        nouns: list[NounEntity],
        sentences: list[str],
        window_size: int,
    ) -> RelationshipMatrix:
        """Count ordered pairs (i, j), i != j, at most `window_size` apart in a sentence."""
        matrix = self._empty_matrix(nouns)
        for sentence in sentences:
            sequence = self._analyzer.noun_sequence(sentence)
            for i, first in enumerate(sequence):
                low = max(0, i - window_size)
                high = min(len(sequence), i + window_size + 1)
                for j in range(low, high):
                    if i == j:
                        continue
                    row = matrix.setdefault(first, {})
                    second = sequence[j]
                    row[second] = row.get(second, 0) + 1
        return matrix

    def sequence(self, nouns: list[NounEntity], full_text: str) -> RelationshipMatrix:
        """Count directed "follows" pairs of adjacent nouns across the whole text."""
        matrix = self._empty_matrix(nouns)
        sequence = self._analyzer.noun_sequence(full_text)
        for current, following in zip(sequence, sequence[1:]):
            row = matrix.setdefault(current, {})
            row[following] = row.get(following, 0) + 1
        return matrix

    @staticmethod
    def _empty_matrix(nouns: list[NounEntity]) -> RelationshipMatrix:
        return {noun.word: {} for noun in nouns}
