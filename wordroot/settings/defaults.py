"""
Settings Defaults
=================
Default values and definitions for all naming-engine settings.
"""

from typing import Any, Dict, List, Optional, Tuple

from .schemas import SettingDefinition, SettingType


# Category definitions with display order
SETTING_CATEGORIES = {
    "matching": {
        "name": "Matching",
        "description": "Segment matching and fuzzy similarity",
        "order": 1,
    },
    "composition": {
        "name": "Composition",
        "description": "How field names are assembled from word roots",
        "order": 2,
    },
    "review": {
        "name": "Review Queue",
        "description": "Root requests and field approval policy",
        "order": 3,
    },
}


# All setting definitions grouped by category
SETTING_DEFINITIONS: Dict[str, List[SettingDefinition]] = {
    "matching": [
        SettingDefinition(
            key="fuzzy_threshold",
            label="Fuzzy Threshold",
            description="Minimum similarity (0-1) for a fuzzy candidate",
            value_type=SettingType.NUMBER,
            default_value=0.3,
            min_value=0.0,
            max_value=1.0,
        ),
        SettingDefinition(
            key="similarity_method",
            label="Similarity Method",
            description="Fuzzy scorer: pg_trgm-style trigram Jaccard or Levenshtein ratio",
            value_type=SettingType.ENUM,
            default_value="trigram",
            options=["trigram", "ratio"],
        ),
        SettingDefinition(
            key="max_candidates",
            label="Max Candidates",
            description="Candidates kept per segment",
            value_type=SettingType.INTEGER,
            default_value=5,
            min_value=1,
            max_value=50,
        ),
        SettingDefinition(
            key="ambiguity_margin",
            label="Ambiguity Margin",
            description="Top-two score gap at or below which a segment is flagged ambiguous",
            value_type=SettingType.NUMBER,
            default_value=0.05,
            min_value=0.0,
            max_value=1.0,
        ),
    ],
    "composition": [
        SettingDefinition(
            key="separator",
            label="Separator",
            description="Joins abbreviations in a field name",
            value_type=SettingType.STRING,
            default_value="_",
        ),
        SettingDefinition(
            key="placeholder_format",
            label="Placeholder Format",
            description="Token for an unmatched span; must contain {span}",
            value_type=SettingType.STRING,
            default_value="[{span}]",
            required_token="{span}",
        ),
        SettingDefinition(
            key="duplicate_field_names",
            label="Duplicate Field Names",
            description="version appends _v2, _v3...; reject raises; allow stores duplicates",
            value_type=SettingType.ENUM,
            default_value="version",
            options=["version", "reject", "allow"],
        ),
    ],
    "review": [
        SettingDefinition(
            key="allow_partial_approval",
            label="Allow Partial Approval",
            description="Let administrators approve fields that still have unmatched segments",
            value_type=SettingType.BOOLEAN,
            default_value=False,
        ),
        SettingDefinition(
            key="dedupe_root_requests",
            label="Deduplicate Root Requests",
            description="Reuse an open root request for the same span",
            value_type=SettingType.BOOLEAN,
            default_value=True,
        ),
    ],
}


_DEFINITION_INDEX: Dict[Tuple[str, str], SettingDefinition] = {
    (category, definition.key): definition
    for category, definitions in SETTING_DEFINITIONS.items()
    for definition in definitions
}


def get_definition(category: str, key: str) -> Optional[SettingDefinition]:
    """Definition of a setting, or None if the category/key is unknown."""
    return _DEFINITION_INDEX.get((category, key))


def get_all_defaults() -> Dict[str, Dict[str, Any]]:
    """Default values grouped by category."""
    return {
        category: {d.key: d.default_value for d in definitions}
        for category, definitions in SETTING_DEFINITIONS.items()
    }
