"""
Domain Models
=============

Pydantic models for word roots, standard fields and notification tasks.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .text import clean_terms, parse_terms


def _clean_term_set(value: Any) -> FrozenSet[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        # Callers sometimes hand over the raw "钱,费用" form
        return parse_terms(value)
    return clean_terms(value)


# ==================== WORD ROOTS ====================

class WordRootCreate(BaseModel):
    """Fields supplied when creating or editing a word root."""
    cn_name: str = Field(..., min_length=1, max_length=100)
    en_abbr: str = Field(..., min_length=1, max_length=50)
    en_full_name: Optional[str] = Field(None, max_length=100)
    associated_terms: FrozenSet[str] = Field(default_factory=frozenset)
    data_type: Optional[str] = Field(None, max_length=50)
    remark: Optional[str] = None

    @field_validator("cn_name", "en_abbr")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("associated_terms", mode="before")
    @classmethod
    def _parse_terms(cls, value: Any) -> FrozenSet[str]:
        return _clean_term_set(value)


class WordRoot(BaseModel):
    """A word root record. Frozen so it can live in sets and snapshots."""
    model_config = ConfigDict(frozen=True)

    id: int
    cn_name: str
    en_abbr: str
    en_full_name: Optional[str] = None
    associated_terms: FrozenSet[str] = Field(default_factory=frozenset)
    data_type: Optional[str] = None
    remark: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("associated_terms", mode="before")
    @classmethod
    def _parse_terms(cls, value: Any) -> FrozenSet[str]:
        return _clean_term_set(value)

    @property
    def match_terms(self) -> FrozenSet[str]:
        """cn_name plus every synonym; the strings the matcher compares against."""
        return frozenset({self.cn_name}) | self.associated_terms


# ==================== STANDARD FIELDS ====================

class StandardField(BaseModel):
    """A composed field, standard once an administrator approves it."""
    id: int
    field_cn_name: str
    field_en_name: str
    composition_ids: List[int] = Field(default_factory=list)
    data_type: Optional[str] = None
    is_standard: bool = False
    fully_matched: bool = True
    associated_terms: FrozenSet[str] = Field(default_factory=frozenset)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("associated_terms", mode="before")
    @classmethod
    def _parse_terms(cls, value: Any) -> FrozenSet[str]:
        return _clean_term_set(value)


# ==================== NOTIFICATION TASKS ====================

class TaskType(str, Enum):
    """Kinds of pending administrative work."""
    ROOT_REQUEST = "ROOT_REQUEST"    # a segment matched no word root
    FIELD_UPDATE = "FIELD_UPDATE"    # a new or edited field awaits approval


class TaskStatus(str, Enum):
    """Persisted resolution status."""
    OPEN = "open"
    RESOLVED = "resolved"


class TaskState(str, Enum):
    """Lifecycle state derived from is_read + status."""
    CREATED = "CREATED"
    READ = "READ"
    RESOLVED = "RESOLVED"


class NotificationTask(BaseModel):
    """A queued unit of administrative work. Never deleted."""
    id: int
    task_type: TaskType
    payload: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    status: TaskStatus = TaskStatus.OPEN
    resolution: Optional[Dict[str, Any]] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None

    @property
    def state(self) -> TaskState:
        if self.status == TaskStatus.RESOLVED:
            return TaskState.RESOLVED
        return TaskState.READ if self.is_read else TaskState.CREATED


class TaskFilter(BaseModel):
    """Filters for listing tasks. Unset fields do not constrain."""
    task_type: Optional[TaskType] = None
    is_read: Optional[bool] = None
    status: Optional[TaskStatus] = None
    limit: Optional[int] = Field(None, ge=1)
