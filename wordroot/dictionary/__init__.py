# WordRoot Dictionary Module
# ==========================
"""
Term resolution and composition engine.

Components:
- RootDictionary: Word-root lookups and mutations over NamingDB
- DictionarySnapshot: Immutable per-request view used for segmentation
- Matcher: Greedy segmentation + ranked exact/synonym/fuzzy candidates
- Composer: Segments → standardized English field name
- Similarity: Pluggable fuzzy scorers (pg_trgm trigram, RapidFuzz ratio)
"""

from .similarity import (
    MatchKind,
    SimilarityFunction,
    TrigramSimilarity,
    RatioSimilarity,
    get_similarity,
)

from .snapshot import DictionarySnapshot

from .matcher import (
    Matcher,
    MatchSegment,
    Candidate,
)

from .composer import (
    Composer,
    CompositionResult,
    CompositionPart,
)

from .root_dictionary import (
    RootDictionary,
    SimilarRoot,
)


__all__ = [
    # Similarity
    "MatchKind",
    "SimilarityFunction",
    "TrigramSimilarity",
    "RatioSimilarity",
    "get_similarity",

    # Snapshot
    "DictionarySnapshot",

    # Matcher
    "Matcher",
    "MatchSegment",
    "Candidate",

    # Composer
    "Composer",
    "CompositionResult",
    "CompositionPart",

    # Root Dictionary
    "RootDictionary",
    "SimilarRoot",
]
