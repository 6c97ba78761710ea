# WordRoot Errors
# ===============
"""
Exception hierarchy for the naming engine.

"No match" is never an exception: unmatched segments are reported in the
match/composition results. Only structural violations are raised here.
"""

from typing import Any, Optional


class NamingError(Exception):
    """Base exception for naming-engine errors."""
    pass


class NotFound(NamingError):
    """Raised when a referenced root, field or task does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class DuplicateAbbreviation(NamingError):
    """Raised when an en_abbr collides with an existing word root."""

    def __init__(self, en_abbr: str, existing_id: Optional[int] = None):
        self.en_abbr = en_abbr
        self.existing_id = existing_id
        detail = f" (root {existing_id})" if existing_id is not None else ""
        super().__init__(
            f"Abbreviation '{en_abbr}' is already used by another word root{detail}. "
            "Choose a different abbreviation."
        )


class DuplicateFieldName(NamingError):
    """Raised when a composed field name exists and duplicates are rejected."""

    def __init__(self, field_en_name: str, existing_id: int):
        self.field_en_name = field_en_name
        self.existing_id = existing_id
        super().__init__(
            f"Field name '{field_en_name}' is already used by field {existing_id}"
        )


class RootInUse(NamingError):
    """Raised when deleting a root that appears in a field's composition chain."""

    def __init__(self, root_id: int, field_ids=None):
        self.root_id = root_id
        self.field_ids = list(field_ids or [])
        super().__init__(
            f"Word root {root_id} is referenced by fields {self.field_ids} and cannot be deleted"
        )


class InvalidTaskState(NamingError):
    """Raised when a task transition is not allowed from its current state."""

    def __init__(self, task_id: int, state: str, reason: str):
        self.task_id = task_id
        self.state = state
        self.reason = reason
        super().__init__(f"Task {task_id} is {state}: {reason}")


class PartialMatchApproval(NamingError):
    """Raised when approving a field that still contains unmatched segments."""

    def __init__(self, field_id: int, field_en_name: str):
        self.field_id = field_id
        self.field_en_name = field_en_name
        super().__init__(
            f"Field {field_id} ('{field_en_name}') has unresolved segments. "
            "Create the missing word roots before approving it."
        )


class StorageUnavailable(NamingError):
    """Raised when the storage backend cannot be reached or fails."""

    def __init__(self, location: str, original_error: Optional[BaseException] = None):
        self.location = location
        self.original_error = original_error
        super().__init__(
            f"Storage at {location} is unavailable: {original_error or 'unknown error'}"
        )
