# WordRoot Dictionary - Snapshot
# ==============================
"""
Immutable, per-request view of the word-root dictionary.

A resolution reads the dictionary once and segments against this snapshot,
so concurrent root inserts never change the term set halfway through a
phrase.
"""

from collections import defaultdict
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..models import WordRoot
from ..text import normalize_term, trigrams


class DictionarySnapshot:
    """Frozen lookup tables over a fixed set of word roots."""

    def __init__(self, roots: Iterable[WordRoot]):
        self._roots: Tuple[WordRoot, ...] = tuple(sorted(roots, key=lambda r: r.id))
        self._by_id = MappingProxyType({root.id: root for root in self._roots})

        names: Dict[str, List[WordRoot]] = defaultdict(list)
        synonyms: Dict[str, List[WordRoot]] = defaultdict(list)
        grams: Dict[str, List[int]] = defaultdict(list)

        for root in self._roots:
            key = normalize_term(root.cn_name)
            if key:
                names[key].append(root)
            for term in root.associated_terms:
                syn_key = normalize_term(term)
                if syn_key:
                    synonyms[syn_key].append(root)

            root_grams = set()
            for term in root.match_terms:
                root_grams.update(trigrams(term))
            for gram in root_grams:
                grams[gram].append(root.id)

        self._names = MappingProxyType({k: tuple(v) for k, v in names.items()})
        self._synonyms = MappingProxyType({k: tuple(v) for k, v in synonyms.items()})
        self._trigrams = MappingProxyType({k: tuple(v) for k, v in grams.items()})
        self._terms: FrozenSet[str] = frozenset(self._names) | frozenset(self._synonyms)
        self._max_term_length = max((len(t) for t in self._terms), default=0)

    def __len__(self) -> int:
        return len(self._roots)

    @property
    def max_term_length(self) -> int:
        """Length of the longest normalized term; bounds the segmentation window."""
        return self._max_term_length

    def all_roots(self) -> List[WordRoot]:
        """Every root, ordered by id."""
        return list(self._roots)

    def get(self, root_id: int) -> Optional[WordRoot]:
        return self._by_id.get(root_id)

    def is_term(self, text: str) -> bool:
        """True if ``text`` (already normalized) is some root's cn_name or synonym."""
        return text in self._terms

    def lookup_exact(self, token: str) -> Optional[WordRoot]:
        """Root whose normalized cn_name equals the token; lowest id if several."""
        matches = self._names.get(normalize_term(token))
        return matches[0] if matches else None

    def roots_named(self, token: str) -> Tuple[WordRoot, ...]:
        """Every root whose normalized cn_name equals the token, ordered by id."""
        return self._names.get(normalize_term(token), ())

    def lookup_synonym(self, token: str) -> FrozenSet[WordRoot]:
        """Roots listing the token among their synonyms."""
        return frozenset(self._synonyms.get(normalize_term(token), ()))

    def roots_sharing_trigrams(self, text: str) -> List[WordRoot]:
        """Roots sharing at least one trigram with ``text``, ordered by id."""
        ids = set()
        for gram in trigrams(text):
            ids.update(self._trigrams.get(gram, ()))
        return [self._by_id[root_id] for root_id in sorted(ids)]
