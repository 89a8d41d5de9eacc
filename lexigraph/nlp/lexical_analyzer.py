import re

import snowballstemmer

from lexigraph.logging.logger import Log
from lexigraph.nlp.lexicon import Lexicon
from lexigraph.nlp.models import NounEntity, ProcessedText

_SENTENCE_BOUNDARY = re.compile(r"[.!?]+")


class LexicalAnalyzer:
    """Turns raw text into sentences and noun-like words.

    Matching is ASCII-only: a word is a run of at least `min_word_length`
    latin letters delimited by ASCII word boundaries.
    """

    def __init__(self, lexicon: Lexicon | None = None) -> None:
        self._lexicon = lexicon or Lexicon()
        self._word_pattern = re.compile(
            rf"\b[a-z]{{{self._lexicon.min_word_length},}}\b", re.ASCII
        )
        self._stemmer = snowballstemmer.stemmer(self._lexicon.stem_language)

    @property
    def lexicon(self) -> Lexicon:
        return self._lexicon

    def process(self, text: str) -> ProcessedText:
        sentences = self.split_sentences(text)
        words = self.extract_words(text)
        nouns = self._extract_nouns(words, text)
        return ProcessedText(nouns=nouns, sentences=sentences, word_count=len(words))

    def split_sentences(self, text: str) -> list[str]:
        sentences = (part.strip() for part in _SENTENCE_BOUNDARY.split(text))
        return [s for s in sentences if len(s) > self._lexicon.min_sentence_length]

    def extract_words(self, text: str) -> list[str]:
        """Lowercased alphabetic words with stopwords removed, in document order."""
        words = self._word_pattern.findall(text.lower())
        return [w for w in words if w not in self._lexicon.stopwords]

    def noun_sequence(self, text: str) -> list[str]:
        """The noun-filtered word sequence of `text`, in document order."""
        return [w for w in self.extract_words(text) if self.is_likely_noun(w)]

    def is_likely_noun(self, word: str) -> bool:
        lexicon = self._lexicon
        if len(word) < lexicon.min_noun_length:
            return False
        if word in lexicon.stopwords:
            return False
        if word.endswith(lexicon.rejected_suffixes):
            return False
        # Words reach here lowercased, so this capitalization signal never fires.
        if word[0].isupper():
            return True
        if word.endswith(lexicon.noun_suffixes):
            return True
        return len(word) >= lexicon.min_plain_noun_length

    def stem(self, word: str) -> str:
        try:
            stemmed = self._stemmer.stemWord(word)
        except Exception as exc:
            Log.debug(f"Stemming failed for '{word}': {exc}")
            return word
        return stemmed or word

    def _extract_nouns(self, words: list[str], text: str) -> list[NounEntity]:
        lowered = text.lower()
        frequencies: dict[str, int] = {}
        for word in words:
            if self.is_likely_noun(word):
                frequencies[word] = frequencies.get(word, 0) + 1

        return [
            NounEntity(
                word=word,
                frequency=frequency,
                positions=self._find_positions(word, lowered),
                stemmed=self.stem(word),
            )
            for word, frequency in frequencies.items()
        ]

    @staticmethod
    def _find_positions(word: str, lowered_text: str) -> list[int]:
        pattern = re.compile(rf"\b{re.escape(word)}\b", re.ASCII)
        return [match.start() for match in pattern.finditer(lowered_text)]
