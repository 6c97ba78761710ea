"""
Review Queue
============

Durable queue of administrative work: word roots that need creating and
fields awaiting standardization approval.

Task lifecycle::

    CREATED --mark_read--> READ --resolve--> RESOLVED
       \\_______________resolve_______________/

RESOLVED is terminal. Tasks are never deleted.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from ..errors import InvalidTaskState, NotFound, PartialMatchApproval
from ..models import (
    NotificationTask,
    StandardField,
    TaskFilter,
    TaskState,
    TaskStatus,
    TaskType,
    WordRoot,
    WordRootCreate,
)
from ..dictionary.root_dictionary import RootDictionary
from ..storage import NamingDB
from ..text import normalize_term

logger = logging.getLogger(__name__)


class ReviewQueue:
    """Notification task queue with read/unread tracking and admin resolution."""

    def __init__(
        self,
        db: NamingDB,
        dedupe_root_requests: bool = True,
        allow_partial_approval: bool = False,
    ):
        """
        Initialize the queue.

        Args:
            db: Shared naming database
            dedupe_root_requests: Reuse an open ROOT_REQUEST for the same span
            allow_partial_approval: Let admins approve fields with unmatched segments
        """
        self.db = db
        self.dictionary = RootDictionary(db)
        self.dedupe_root_requests = dedupe_root_requests
        self.allow_partial_approval = allow_partial_approval

    # ==================== ENQUEUE ====================

    def enqueue(self, task_type: TaskType, payload: Dict[str, Any],
                dedupe_key: Optional[str] = None, conn=None) -> NotificationTask:
        """Add a task. With a dedupe_key an open task of the same type and key is returned instead."""
        with self.db.connection(conn, immediate=True) as c:
            if dedupe_key is not None:
                existing = self.db.find_open_task(task_type, dedupe_key, conn=c)
                if existing is not None:
                    logger.debug(f"Reusing open {task_type.value} task {existing.id} for '{dedupe_key}'")
                    return existing

            task = self.db.insert_task(task_type, payload, dedupe_key=dedupe_key, conn=c)

        logger.info(f"Enqueued {task_type.value} task {task.id}")
        return task

    def enqueue_root_request(self, span: str, payload: Dict[str, Any],
                             conn=None) -> NotificationTask:
        """Request a new word root for an unmatched span."""
        body = dict(payload)
        body["unmatched_span"] = span
        dedupe_key = normalize_term(span) if self.dedupe_root_requests else None
        return self.enqueue(TaskType.ROOT_REQUEST, body, dedupe_key=dedupe_key, conn=conn)

    def enqueue_field_update(self, field: StandardField, payload: Optional[Dict[str, Any]] = None,
                             conn=None) -> NotificationTask:
        """Ask an administrator to review a new or edited field."""
        body = {
            "field_id": field.id,
            "field_cn_name": field.field_cn_name,
            "field_en_name": field.field_en_name,
            "composition_ids": list(field.composition_ids),
            "fully_matched": field.fully_matched,
        }
        body.update(payload or {})
        return self.enqueue(TaskType.FIELD_UPDATE, body, conn=conn)

    # ==================== QUERIES ====================

    def get(self, task_id: int) -> NotificationTask:
        task = self.db.get_task(task_id)
        if task is None:
            raise NotFound("task", task_id)
        return task

    def list(self, filters: Optional[TaskFilter] = None) -> List[NotificationTask]:
        """Tasks matching the filters, ordered by created_at then id."""
        return self.db.list_tasks(filters)

    def unread_count(self) -> int:
        return self.db.count_unread()

    # ==================== TRANSITIONS ====================

    def mark_read(self, task_id: int) -> NotificationTask:
        """
        Mark a task as read.

        No-op for tasks already read or resolved.

        Raises:
            NotFound: If the task does not exist.
        """
        with self.db.transaction() as conn:
            task = self.db.get_task(task_id, conn=conn)
            if task is None:
                raise NotFound("task", task_id)
            if self.db.mark_task_read(task_id, conn=conn):
                logger.info(f"Task {task_id} marked read")
                task = self.db.get_task(task_id, conn=conn)
            return task

    def resolve_as_new_root(self, task_id: int,
                            root_fields: Union[WordRootCreate, Dict[str, Any]],
                            resolved_by: str = "admin") -> WordRoot:
        """
        Create the requested word root and resolve the task atomically.

        ``cn_name`` defaults to the task's unmatched span.

        Raises:
            NotFound: If the task does not exist.
            InvalidTaskState: If the task is resolved or is not a ROOT_REQUEST.
            DuplicateAbbreviation: If en_abbr is taken; task and dictionary are unchanged.
        """
        with self.db.transaction() as conn:
            task = self._open_task(task_id, TaskType.ROOT_REQUEST, conn)

            if isinstance(root_fields, WordRootCreate):
                data = root_fields
            else:
                values = dict(root_fields)
                values.setdefault("cn_name", task.payload.get("unmatched_span"))
                data = WordRootCreate(**values)

            root = self.dictionary.insert(data, conn=conn)
            self.db.resolve_task(task_id, {
                "action": "create_root",
                "root_id": root.id,
                "resolved_by": resolved_by,
            }, conn=conn)

        logger.info(f"Task {task_id} resolved by {resolved_by}: created root {root.en_abbr}")
        return root

    def resolve_as_approved_field(self, task_id: int,
                                  resolved_by: str = "admin") -> StandardField:
        """
        Mark the task's field as standard and resolve the task atomically.

        Raises:
            NotFound: If the task or its field does not exist.
            InvalidTaskState: If the task is resolved or is not a FIELD_UPDATE.
            PartialMatchApproval: If the field is not fully matched and partial
                approval is disabled.
        """
        with self.db.transaction() as conn:
            task = self._open_task(task_id, TaskType.FIELD_UPDATE, conn)

            field_id = task.payload.get("field_id")
            field = self.db.get_field(field_id, conn=conn) if field_id is not None else None
            if field is None:
                raise NotFound("field", field_id)

            if not field.fully_matched and not self.allow_partial_approval:
                logger.warning(f"Refused approval of partially matched field {field.id}")
                raise PartialMatchApproval(field.id, field.field_en_name)

            field = self.db.update_field(field.id, conn=conn, is_standard=True)
            self.db.resolve_task(task_id, {
                "action": "approve_field",
                "field_id": field.id,
                "resolved_by": resolved_by,
            }, conn=conn)

        logger.info(f"Task {task_id} resolved by {resolved_by}: field {field.field_en_name} approved")
        return field

    def dismiss(self, task_id: int, reason: Optional[str] = None,
                resolved_by: str = "admin") -> NotificationTask:
        """
        Resolve a task without acting on it.

        Raises:
            NotFound: If the task does not exist.
            InvalidTaskState: If the task is already resolved.
        """
        with self.db.transaction() as conn:
            self._open_task(task_id, None, conn)
            self.db.resolve_task(task_id, {
                "action": "dismiss",
                "reason": reason,
                "resolved_by": resolved_by,
            }, conn=conn)
            task = self.db.get_task(task_id, conn=conn)

        logger.info(f"Task {task_id} dismissed by {resolved_by}")
        return task

    def _open_task(self, task_id: int, expected_type: Optional[TaskType],
                   conn) -> NotificationTask:
        """Load a task for resolution, enforcing state and type."""
        task = self.db.get_task(task_id, conn=conn)
        if task is None:
            raise NotFound("task", task_id)
        if task.status == TaskStatus.RESOLVED:
            raise InvalidTaskState(task_id, TaskState.RESOLVED.value, "task is already resolved")
        if expected_type is not None and task.task_type != expected_type:
            raise InvalidTaskState(
                task_id, task.state.value,
                f"expected a {expected_type.value} task, got {task.task_type.value}",
            )
        return task
