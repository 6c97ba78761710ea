# WordRoot Dictionary - Composer
# ==============================
"""
Builds a standardized English field name from matched segments.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models import WordRoot
from .matcher import MatchSegment


@dataclass(frozen=True)
class CompositionPart:
    """One token of the composed name."""
    span: str
    token: str                     # en_abbr, or the placeholder for an unmatched span
    root_id: Optional[int] = None

    @property
    def matched(self) -> bool:
        return self.root_id is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"span": self.span, "token": self.token, "root_id": self.root_id}


@dataclass(frozen=True)
class CompositionResult:
    """Result of composing a field name."""
    field_en_name: str
    composition_ids: Tuple[int, ...] = field(default_factory=tuple)
    data_type: Optional[str] = None
    fully_matched: bool = False
    unmatched_spans: Tuple[str, ...] = field(default_factory=tuple)
    parts: Tuple[CompositionPart, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "field_en_name": self.field_en_name,
            "composition_ids": list(self.composition_ids),
            "data_type": self.data_type,
            "fully_matched": self.fully_matched,
            "unmatched_spans": list(self.unmatched_spans),
            "parts": [p.to_dict() for p in self.parts],
        }


class Composer:
    """Joins top-candidate abbreviations into a field name."""

    def __init__(self, separator: str = "_", placeholder_format: str = "[{span}]"):
        if "{span}" not in placeholder_format:
            raise ValueError(
                f"placeholder_format must contain '{{span}}', got '{placeholder_format}'"
            )
        self.separator = separator
        self.placeholder_format = placeholder_format

    def compose(self, segments: Sequence[MatchSegment]) -> CompositionResult:
        """
        Compose segments in order.

        Matched segments contribute their top candidate's en_abbr and id;
        unmatched segments contribute a placeholder and no id. An empty
        segment list is never fully matched.
        """
        parts = []
        chosen: List[WordRoot] = []
        unmatched = []

        for segment in segments:
            top = segment.top
            if top is None:
                parts.append(CompositionPart(
                    span=segment.span,
                    token=self.placeholder_format.format(span=segment.span),
                ))
                unmatched.append(segment.span)
            else:
                parts.append(CompositionPart(
                    span=segment.span,
                    token=top.root.en_abbr,
                    root_id=top.root.id,
                ))
                chosen.append(top.root)

        return CompositionResult(
            field_en_name=self.separator.join(p.token for p in parts),
            composition_ids=tuple(root.id for root in chosen),
            data_type=self.pick_data_type(chosen),
            fully_matched=bool(parts) and not unmatched,
            unmatched_spans=tuple(unmatched),
            parts=tuple(parts),
        )

    def compose_ids(self, roots: Sequence[WordRoot]) -> CompositionResult:
        """Compose from an explicit ordered root chain."""
        parts = tuple(
            CompositionPart(span=root.cn_name, token=root.en_abbr, root_id=root.id)
            for root in roots
        )
        return CompositionResult(
            field_en_name=self.separator.join(p.token for p in parts),
            composition_ids=tuple(root.id for root in roots),
            data_type=self.pick_data_type(roots),
            fully_matched=bool(parts),
            parts=parts,
        )

    @staticmethod
    def pick_data_type(roots: Sequence[WordRoot]) -> Optional[str]:
        """Most common data_type hint; ties go to the earliest in the chain."""
        hints = [root.data_type for root in roots if root.data_type]
        if not hints:
            return None
        counts = Counter(hints)
        best = hints[0]
        for hint in hints:
            if counts[hint] > counts[best]:
                best = hint
        return best
