# WordRoot Settings Module
"""
Persisted, validated configuration for matching, composition and review.
"""

from .database import SettingsDB
from .service import SettingsService, get_settings_service
from .schemas import (
    SettingType,
    SettingValue,
    SettingDefinition,
    SettingCategory,
    SettingsResponse,
)

__all__ = [
    "SettingsDB",
    "SettingsService",
    "get_settings_service",
    "SettingType",
    "SettingValue",
    "SettingDefinition",
    "SettingCategory",
    "SettingsResponse",
]
