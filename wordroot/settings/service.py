"""
Settings Service
================
Cached, validated access to naming-engine settings.

Other modules read values with ``get(category, key)``; the cache is filled
from the database on first use and updated in place on every write, so a
change applies to the next naming request.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .database import SettingsDB
from .defaults import SETTING_CATEGORIES, SETTING_DEFINITIONS, get_definition
from .schemas import SettingCategory, SettingsResponse, SettingValue

logger = logging.getLogger(__name__)


class SettingsService:
    """Settings for matching, composition and review."""

    def __init__(self, db_path: Optional[str] = None):
        self.db = SettingsDB(db_path)
        self._values: Optional[Dict[Tuple[str, str], Any]] = None

    def _cached(self) -> Dict[Tuple[str, str], Any]:
        if self._values is None:
            self._values = {
                (category, s["key"]): s["value"]
                for category, stored in self.db.get_all_settings().items()
                for s in stored
            }
        return self._values

    # ==================== READS ====================

    def get(self, category: str, key: str, default: Any = None) -> Any:
        """Current value, or ``default`` for an unknown setting."""
        return self._cached().get((category, key), default)

    def get_category_values(self, category: str) -> Dict[str, Any]:
        """``{key: value}`` for one category, defaults filled in for anything missing."""
        values = self._cached()
        return {
            d.key: values.get((category, d.key), d.default_value)
            for d in SETTING_DEFINITIONS.get(category, [])
        }

    def get_category(self, category_id: str) -> Optional[SettingCategory]:
        """One category with values and constraints, or None if unknown."""
        info = SETTING_CATEGORIES.get(category_id)
        if info is None:
            return None

        stored = {s["key"]: s for s in self.db.get_all_settings().get(category_id, [])}
        settings = []
        for definition in SETTING_DEFINITIONS.get(category_id, []):
            row = stored.get(definition.key, {})
            value = row.get("value", definition.default_value)
            settings.append(SettingValue(
                category=category_id,
                key=definition.key,
                value=value,
                value_type=definition.value_type,
                label=definition.label,
                description=definition.description,
                options=definition.options,
                min_value=definition.min_value,
                max_value=definition.max_value,
                is_default=value == definition.default_value,
                updated_at=row.get("updated_at"),
                updated_by=row.get("updated_by"),
            ))

        return SettingCategory(id=category_id, settings=settings, **info)

    def get_all_for_api(self) -> SettingsResponse:
        categories = sorted(
            (self.get_category(category_id) for category_id in SETTING_CATEGORIES),
            key=lambda c: c.order,
        )
        return SettingsResponse(categories=categories)

    def get_audit_history(self, category: Optional[str] = None, key: Optional[str] = None,
                          limit: int = 100) -> List[Dict[str, Any]]:
        return self.db.get_audit_history(category, key, limit)

    # ==================== WRITES ====================

    def update_setting(self, category: str, key: str, value: Any,
                       updated_by: Optional[str] = None) -> bool:
        """
        Validate and store a value.

        Raises:
            ValueError: If the setting is unknown or the value violates its definition
        """
        definition = get_definition(category, key)
        if definition is None:
            raise ValueError(f"Unknown setting: {category}.{key}")
        definition.check(value)

        if not self.db.update_setting(category, key, value, updated_by):
            return False

        self._cached()[(category, key)] = value
        logger.info(f"Setting {category}.{key} = {value!r} (by {updated_by or 'system'})")
        return True

    def reset_category(self, category: str, updated_by: Optional[str] = None) -> bool:
        """Restore one category's defaults. False for an unknown category."""
        if category not in SETTING_CATEGORIES:
            return False
        changed = self.db.reset_to_defaults(category, updated_by)
        self._values = None
        logger.info(f"Settings category {category} reset ({changed} changed)")
        return True

    def reset_all(self, updated_by: Optional[str] = None) -> None:
        changed = self.db.reset_to_defaults(updated_by=updated_by)
        self._values = None
        logger.info(f"All settings reset to defaults ({changed} changed)")


# Singleton instance
_settings_service: Optional[SettingsService] = None


def get_settings_service() -> SettingsService:
    """Get or create the global settings service instance."""
    global _settings_service
    if _settings_service is None:
        _settings_service = SettingsService()
    return _settings_service
