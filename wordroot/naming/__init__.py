# WordRoot Naming Module
"""
Field naming service: description → standardized field name, plus field
registry and task administration.
"""

from .service import (
    NamingService,
    get_naming_service,
    TaskAction,
    DuplicateNamePolicy,
    FieldNameSuggestion,
    FieldSubmission,
    FieldDetails,
)

__all__ = [
    "NamingService",
    "get_naming_service",
    "TaskAction",
    "DuplicateNamePolicy",
    "FieldNameSuggestion",
    "FieldSubmission",
    "FieldDetails",
]
