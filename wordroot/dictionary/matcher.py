# WordRoot Dictionary - Matcher
# =============================
"""
Segments a Chinese field description and ranks word-root candidates.

Matching Flow:
1. Normalize the phrase (NFKC, lowercase)
2. Greedy longest-match segmentation against every cn_name and synonym
3. Characters that start no known term accumulate into one unknown span
4. Rank candidates per segment: exact (1.0) → synonym (0.9) → fuzzy (>= threshold)

"No match" is a normal outcome: the segment is returned with an empty
candidate list and ``matched`` False.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..models import WordRoot
from ..text import is_separator, normalize_phrase
from .similarity import MatchKind, SimilarityFunction, TrigramSimilarity
from .snapshot import DictionarySnapshot

logger = logging.getLogger(__name__)

EXACT_SCORE = 1.0
SYNONYM_SCORE = 0.9

# Float slack when comparing score gaps against the ambiguity margin
_EPSILON = 1e-9


@dataclass(frozen=True)
class Candidate:
    """A word root proposed for a segment."""
    root: WordRoot
    score: float          # 0-1
    kind: MatchKind

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "root_id": self.root.id,
            "cn_name": self.root.cn_name,
            "en_abbr": self.root.en_abbr,
            "score": round(self.score, 4),
            "kind": self.kind.value,
        }


@dataclass(frozen=True)
class MatchSegment:
    """One segment of the normalized phrase with its ranked candidates."""
    span: str
    start: int            # offsets into the normalized phrase
    end: int
    candidates: Tuple[Candidate, ...] = field(default_factory=tuple)
    ambiguous: bool = False

    @property
    def matched(self) -> bool:
        return bool(self.candidates)

    @property
    def top(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "span": self.span,
            "start": self.start,
            "end": self.end,
            "matched": self.matched,
            "ambiguous": self.ambiguous,
            "candidates": [c.to_dict() for c in self.candidates],
        }


class Matcher:
    """
    Ranked term matcher over an immutable dictionary snapshot.

    Output is a pure function of (phrase, snapshot, settings): ties in score
    always go to the root with the lowest id.
    """

    def __init__(
        self,
        snapshot: DictionarySnapshot,
        similarity: Optional[SimilarityFunction] = None,
        threshold: float = 0.3,
        max_candidates: int = 5,
        ambiguity_margin: float = 0.05,
    ):
        """
        Initialize the matcher.

        Args:
            snapshot: Dictionary state to match against
            similarity: Fuzzy scorer (default: TrigramSimilarity)
            threshold: Minimum fuzzy score for a candidate (0-1)
            max_candidates: Candidates kept per segment
            ambiguity_margin: Top-two score gap at or below which a segment is ambiguous
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be between 0 and 1, got {threshold}")
        if max_candidates < 1:
            raise ValueError(f"max_candidates must be at least 1, got {max_candidates}")

        self.snapshot = snapshot
        self.similarity = similarity or TrigramSimilarity()
        self.threshold = threshold
        self.max_candidates = max_candidates
        self.ambiguity_margin = ambiguity_margin

    def match(self, phrase: str) -> List[MatchSegment]:
        """
        Segment a phrase and rank candidates for every segment.

        Args:
            phrase: Free-text field description, e.g. "订单金额"

        Returns:
            Segments in phrase order
        """
        text = normalize_phrase(phrase)
        segments = []
        for start, end in self.segment(text):
            span = text[start:end]
            candidates = self.rank(span)
            segments.append(MatchSegment(
                span=span,
                start=start,
                end=end,
                candidates=candidates,
                ambiguous=self._is_ambiguous(candidates),
            ))

        logger.debug(
            f"Matched '{phrase}' into {len(segments)} segments: "
            f"{[(s.span, s.top.root.en_abbr if s.top else None) for s in segments]}"
        )
        return segments

    def segment(self, text: str) -> List[Tuple[int, int]]:
        """
        Split normalized text into (start, end) spans.

        A known term is tried at each position before the character is
        considered as a separator, so terms may contain punctuation.
        """
        spans = []
        unknown_start = None
        i = 0
        n = len(text)

        while i < n:
            end = self._longest_term_at(text, i)
            if end is not None:
                if unknown_start is not None:
                    spans.append((unknown_start, i))
                    unknown_start = None
                spans.append((i, end))
                i = end
                continue

            if is_separator(text[i]):
                if unknown_start is not None:
                    spans.append((unknown_start, i))
                    unknown_start = None
            elif unknown_start is None:
                unknown_start = i
            i += 1

        if unknown_start is not None:
            spans.append((unknown_start, n))
        return spans

    def _longest_term_at(self, text: str, start: int) -> Optional[int]:
        """End offset of the longest dictionary term beginning at ``start``.

        Whitespace inside the window is ignored so "order id" finds "orderid".
        """
        max_len = self.snapshot.max_term_length
        if max_len == 0 or text[start].isspace():
            return None

        best = None
        compact = []
        for j in range(start, len(text)):
            ch = text[j]
            if ch.isspace():
                continue
            compact.append(ch)
            if len(compact) > max_len:
                break
            if self.snapshot.is_term("".join(compact)):
                best = j + 1
        return best

    def rank(self, span: str) -> Tuple[Candidate, ...]:
        """Ranked, de-duplicated, truncated candidates for one span."""
        best: Dict[int, Candidate] = {}

        def offer(root: WordRoot, score: float, kind: MatchKind):
            current = best.get(root.id)
            if current is None or score > current.score:
                best[root.id] = Candidate(root=root, score=score, kind=kind)

        for root in self.snapshot.roots_named(span):
            offer(root, EXACT_SCORE, MatchKind.EXACT)

        for root in self.snapshot.lookup_synonym(span):
            offer(root, SYNONYM_SCORE, MatchKind.SYNONYM)

        if self.similarity.uses_trigram_index:
            pool = self.snapshot.roots_sharing_trigrams(span)
        else:
            pool = self.snapshot.all_roots()

        # Fuzzy scoring only for roots without an exact or synonym hit
        for root in pool:
            if root.id in best:
                continue
            score = max(self.similarity.score(span, term) for term in root.match_terms)
            # A zero score is no evidence, whatever the threshold
            if score > 0 and score >= self.threshold:
                offer(root, score, MatchKind.FUZZY)

        ranked = sorted(best.values(), key=lambda c: (-c.score, c.root.id))
        return tuple(ranked[:self.max_candidates])

    def _is_ambiguous(self, candidates: Tuple[Candidate, ...]) -> bool:
        if len(candidates) < 2:
            return False
        return candidates[0].score - candidates[1].score <= self.ambiguity_margin + _EPSILON
