"""
Settings Schemas
================
Setting definitions carry their own constraints; ``SettingDefinition.check``
is the single place a candidate value is validated.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class SettingType(str, Enum):
    """Value kinds a setting can hold."""
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ENUM = "enum"


class SettingDefinition(BaseModel):
    """A tunable knob of the naming engine and the values it accepts."""
    key: str
    label: str
    description: str
    value_type: SettingType
    default_value: Any
    options: Optional[List[str]] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    required_token: Optional[str] = None  # substring a STRING value must contain

    def check(self, value: Any) -> None:
        """
        Validate a candidate value.

        Raises:
            ValueError: With a message naming the setting and the violated constraint
        """
        kind = self.value_type

        if kind in (SettingType.STRING, SettingType.ENUM) and not isinstance(value, str):
            raise ValueError(f"{self.key}: must be a string")

        if kind == SettingType.STRING:
            if self.required_token and self.required_token not in value:
                raise ValueError(f"{self.key}: must contain {self.required_token}")

        elif kind == SettingType.ENUM:
            if self.options and value not in self.options:
                raise ValueError(f"{self.key}: must be one of {', '.join(self.options)}")

        elif kind == SettingType.BOOLEAN:
            if not isinstance(value, bool):
                raise ValueError(f"{self.key}: must be true or false")

        else:
            # bool passes isinstance(int)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{self.key}: must be a number")
            if kind == SettingType.INTEGER and not isinstance(value, int):
                raise ValueError(f"{self.key}: must be a whole number")
            if self.min_value is not None and value < self.min_value:
                raise ValueError(f"{self.key}: must be >= {self.min_value:g}")
            if self.max_value is not None and value > self.max_value:
                raise ValueError(f"{self.key}: must be <= {self.max_value:g}")


class SettingValue(BaseModel):
    """Current value of a setting together with its definition, for display."""
    category: str
    key: str
    value: Any
    value_type: SettingType
    label: str
    description: Optional[str] = None
    options: Optional[List[str]] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    is_default: bool = True
    updated_at: Optional[str] = None
    updated_by: Optional[str] = None


class SettingCategory(BaseModel):
    """Settings of one area (matching, composition, review)."""
    id: str
    name: str
    description: str
    order: int
    settings: List[SettingValue] = Field(default_factory=list)


class SettingsResponse(BaseModel):
    """Every category, in display order."""
    categories: List[SettingCategory]
