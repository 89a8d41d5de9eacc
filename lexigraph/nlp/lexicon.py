from dataclasses import dataclass

ENGLISH_STOPWORDS = frozenset(
    """
    the a an and or but in on at to for of with by from up about into through
    during before after above below between among is are was were be been being
    have has had do does did will would could should may might must can this that
    these those i me my myself we our ours ourselves you your yours yourself
    yourselves he him his himself she her hers herself it its itself they them
    their theirs themselves what which who whom whose where when why how all any
    both each few more most other some such no nor not only own same so than too
    very just now
    """.split()
)


@dataclass(frozen=True)
class Lexicon:
    """Immutable word tables and thresholds used by the lexical analyzer."""

    stopwords: frozenset[str] = ENGLISH_STOPWORDS
    rejected_suffixes: tuple[str, ...] = ("ing", "ed", "ly")
    noun_suffixes: tuple[str, ...] = (
        "tion", "sion", "ness", "ment", "ity", "ty", "er", "or", "ist", "ism",
    )
    min_word_length: int = 2
    min_noun_length: int = 3
    min_plain_noun_length: int = 4
    min_sentence_length: int = 10
    stem_language: str = "english"
