# WordRoot Dictionary - Root Dictionary
# =====================================
"""
Word-root dictionary backed by NamingDB.

Lookups read straight from storage. Segmentation never uses these directly:
callers take a ``snapshot()`` once per request and match against that.
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Union

from ..errors import NotFound
from ..models import WordRoot, WordRootCreate
from ..storage import NamingDB
from ..text import trigrams
from .similarity import SimilarityFunction, TrigramSimilarity
from .snapshot import DictionarySnapshot

logger = logging.getLogger(__name__)

RootInput = Union[WordRootCreate, Dict[str, Any]]


@dataclass(frozen=True)
class SimilarRoot:
    """A root returned by similarity search."""
    root: WordRoot
    score: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.root.id,
            "cn_name": self.root.cn_name,
            "en_abbr": self.root.en_abbr,
            "score": round(self.score, 4),
        }


def _as_create(root: RootInput) -> WordRootCreate:
    if isinstance(root, WordRootCreate):
        return root
    return WordRootCreate(**root)


class RootDictionary:
    """Controlled vocabulary of word roots."""

    def __init__(self, db: NamingDB):
        self.db = db

    # ==================== LOOKUPS ====================

    def lookup_exact(self, token: str) -> Optional[WordRoot]:
        """Root whose cn_name equals the token (normalized); lowest id wins."""
        matches = self.db.find_roots_by_term(token, "name")
        return matches[0] if matches else None

    def lookup_synonym(self, token: str) -> FrozenSet[WordRoot]:
        """Roots listing the token among their synonyms."""
        return frozenset(self.db.find_roots_by_term(token, "synonym"))

    def all_roots(self) -> List[WordRoot]:
        return self.db.list_roots()

    def get(self, root_id: int) -> WordRoot:
        root = self.db.get_root(root_id)
        if root is None:
            raise NotFound("word root", root_id)
        return root

    def snapshot(self) -> DictionarySnapshot:
        """Read every root in one transaction and freeze them."""
        return DictionarySnapshot(self.db.list_roots())

    def search_similar(
        self,
        text: str,
        limit: int = 10,
        threshold: float = 0.0,
        similarity: Optional[SimilarityFunction] = None,
    ) -> List[SimilarRoot]:
        """
        Roots most similar to ``text``, best first, ties by lowest id.

        With a trigram scorer only roots sharing a trigram are scored, using
        the root_trigrams index; other scorers consider every root.
        """
        similarity = similarity or TrigramSimilarity()
        if similarity.uses_trigram_index:
            ids = [root_id for root_id, _ in self.db.find_roots_sharing_trigrams(trigrams(text))]
            pool = list(self.db.get_roots(ids).values())
        else:
            pool = self.db.list_roots()

        results = []
        for root in pool:
            score = max(similarity.score(text, term) for term in root.match_terms)
            if score > threshold:
                results.append(SimilarRoot(root=root, score=score))

        results.sort(key=lambda r: (-r.score, r.root.id))
        return results[:limit]

    # ==================== MUTATIONS ====================

    def insert(self, root: RootInput,
               conn: Optional[sqlite3.Connection] = None) -> WordRoot:
        """
        Add a root.

        Raises:
            DuplicateAbbreviation: If en_abbr already exists; nothing is written.
        """
        created = self.db.insert_root(_as_create(root), conn=conn)
        logger.info(f"Created word root {created.id}: {created.cn_name} -> {created.en_abbr}")
        return created

    def insert_many(self, roots: Sequence[RootInput]) -> List[WordRoot]:
        """Add several roots atomically; one duplicate rejects the whole batch."""
        created = self.db.insert_roots([_as_create(r) for r in roots])
        logger.info(f"Created {len(created)} word roots in batch")
        return created

    def update(self, root_id: int, root: RootInput) -> WordRoot:
        """Replace a root's editable attributes; en_abbr uniqueness still applies."""
        updated = self.db.update_root(root_id, _as_create(root))
        logger.info(f"Updated word root {root_id}")
        return updated

    def update_synonyms(self, root_id: int, terms: Iterable[str]) -> WordRoot:
        """Replace a root's synonym set."""
        updated = self.db.update_root_synonyms(root_id, terms)
        logger.info(f"Updated synonyms of word root {root_id}: {sorted(updated.associated_terms)}")
        return updated

    def delete(self, root_id: int) -> None:
        """
        Remove a root.

        Raises:
            NotFound: If the root does not exist.
            RootInUse: If a field's composition chain references it.
        """
        if not self.db.delete_root(root_id):
            raise NotFound("word root", root_id)
        logger.info(f"Deleted word root {root_id}")
