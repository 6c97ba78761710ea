"""
Text Helpers
============

Normalization, synonym-set parsing and trigram extraction shared by the
storage layer and the matcher.

Synonym sets travel through the application as ``frozenset`` objects. The
comma-delimited form only exists in the database column.
"""

import re
import unicodedata
from typing import FrozenSet, Iterable, Optional

# Accepts ASCII comma, full-width comma and the ideographic enumeration comma
TERM_DELIMITERS = re.compile(r"[,，、]")
STORAGE_DELIMITER = ","

_WHITESPACE = re.compile(r"\s+")
_WORD_SPLIT = re.compile(r"[^\w]+|_+")


def normalize_term(text: Optional[str]) -> str:
    """Case- and whitespace-normalize a term for comparison.

    Applies NFKC (full-width → half-width), lowercases and removes all
    whitespace, so ``" Order  ID "`` and ``"orderid"`` compare equal.
    """
    if not text:
        return ""
    folded = unicodedata.normalize("NFKC", text).lower()
    return _WHITESPACE.sub("", folded)


def normalize_phrase(text: Optional[str]) -> str:
    """NFKC + lowercase, keeping whitespace so it can still separate segments."""
    if not text:
        return ""
    return unicodedata.normalize("NFKC", text).lower().strip()


def is_separator(ch: str) -> bool:
    """True for characters that split segments (whitespace, punctuation, underscore)."""
    return ch.isspace() or not ch.isalnum()


def clean_terms(terms: Optional[Iterable[str]]) -> FrozenSet[str]:
    """Split each term on the delimiters, strip the pieces and drop empties.

    Splitting here keeps a stored set identical to what ``parse_terms``
    reads back from the delimited column.
    """
    if not terms:
        return frozenset()
    result = set()
    for term in terms:
        if term is None:
            continue
        for piece in TERM_DELIMITERS.split(str(term)):
            stripped = piece.strip()
            if stripped:
                result.add(stripped)
    return frozenset(result)


def parse_terms(raw: Optional[str]) -> FrozenSet[str]:
    """Parse the stored delimited synonym text into a set."""
    if not raw:
        return frozenset()
    return clean_terms(TERM_DELIMITERS.split(raw))


def serialize_terms(terms: Optional[Iterable[str]]) -> Optional[str]:
    """Serialize a synonym set for storage (sorted for stable output)."""
    cleaned = clean_terms(terms)
    if not cleaned:
        return None
    return STORAGE_DELIMITER.join(sorted(cleaned))


def trigrams(text: Optional[str]) -> FrozenSet[str]:
    """Extract trigrams the way PostgreSQL's pg_trgm does.

    The text is lowercased and split into words on non-alphanumerics; each
    word is padded with two spaces in front and one behind before sliding a
    three-character window over it.
    """
    if not text:
        return frozenset()
    folded = unicodedata.normalize("NFKC", text).lower()
    grams = set()
    for word in _WORD_SPLIT.split(folded):
        if not word:
            continue
        padded = f"  {word} "
        for i in range(len(padded) - 2):
            grams.add(padded[i:i + 3])
    return frozenset(grams)
