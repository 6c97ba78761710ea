# WordRoot Dictionary - Similarity Functions
# ==========================================
"""
Pluggable string similarity for fuzzy root matching.

TrigramSimilarity reproduces PostgreSQL pg_trgm's ``similarity()``; the
RatioSimilarity alternative uses RapidFuzz's normalized Levenshtein ratio.
"""

from enum import Enum
from typing import Protocol

from rapidfuzz import fuzz

from ..text import normalize_term, trigrams


class MatchKind(str, Enum):
    """How a candidate root was matched to a segment."""
    EXACT = "exact"
    SYNONYM = "synonym"
    FUZZY = "fuzzy"


class SimilarityFunction(Protocol):
    """Scores two strings in [0, 1]. Must be symmetric and deterministic."""

    name: str
    uses_trigram_index: bool

    def score(self, a: str, b: str) -> float:
        ...


class TrigramSimilarity:
    """Jaccard similarity over pg_trgm-style trigram sets."""

    name = "trigram"
    # Zero shared trigrams always scores 0, so the trigram index can prefilter
    uses_trigram_index = True

    def score(self, a: str, b: str) -> float:
        grams_a = trigrams(a)
        grams_b = trigrams(b)
        if not grams_a or not grams_b:
            return 0.0
        shared = len(grams_a & grams_b)
        return shared / len(grams_a | grams_b)


class RatioSimilarity:
    """Normalized Levenshtein ratio (RapidFuzz ``fuzz.ratio`` scaled to 0-1)."""

    name = "ratio"
    uses_trigram_index = False

    def score(self, a: str, b: str) -> float:
        left = normalize_term(a)
        right = normalize_term(b)
        if not left or not right:
            return 0.0
        return fuzz.ratio(left, right) / 100.0


SIMILARITY_METHODS = {
    TrigramSimilarity.name: TrigramSimilarity,
    RatioSimilarity.name: RatioSimilarity,
}


def get_similarity(method: str = "trigram") -> SimilarityFunction:
    """Instantiate a similarity function by setting name."""
    try:
        return SIMILARITY_METHODS[method]()
    except KeyError:
        raise ValueError(
            f"Unknown similarity method '{method}'. "
            f"Options: {', '.join(sorted(SIMILARITY_METHODS))}"
        )
