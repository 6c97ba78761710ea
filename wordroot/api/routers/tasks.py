# WordRoot API - Tasks Router
# ===========================
"""
Notification task endpoints: listing, unread badge count, read marking and
administrator resolution.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...models import TaskFilter, TaskStatus, TaskType
from ...naming import NamingService, TaskAction
from ..deps import envelope, get_service

router = APIRouter()


def _task_dict(task) -> Dict[str, Any]:
    data = task.model_dump(mode="json")
    data["state"] = task.state.value
    return data


class ResolveTaskRequest(BaseModel):
    """Administrator resolution of a task."""
    action: TaskAction
    root: Optional[Dict[str, Any]] = Field(
        None, description="Root attributes for create_root; cn_name defaults to the unmatched span"
    )
    reason: Optional[str] = None
    resolved_by: str = "admin"


@router.get("")
def list_tasks(
    task_type: Optional[TaskType] = None,
    is_read: Optional[bool] = None,
    status: Optional[TaskStatus] = None,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: NamingService = Depends(get_service),
):
    """List tasks oldest first."""
    filters = TaskFilter(task_type=task_type, is_read=is_read, status=status, limit=limit)
    tasks = service.list_tasks(filters)
    return envelope([_task_dict(t) for t in tasks])


@router.get("/unread-count")
def unread_count(service: NamingService = Depends(get_service)):
    """Unread task count for the notification badge."""
    return envelope({"unread": service.unread_count()})


@router.get("/{task_id}")
def get_task(task_id: int, service: NamingService = Depends(get_service)):
    task = service.get_task(task_id)
    return envelope(_task_dict(task))


@router.post("/{task_id}/read")
def mark_read(task_id: int, service: NamingService = Depends(get_service)):
    """Mark a task read. Already read or resolved tasks are unchanged."""
    task = service.mark_task_read(task_id)
    return envelope(_task_dict(task))


@router.post("/{task_id}/resolve")
def resolve_task(task_id: int, request: ResolveTaskRequest,
                 service: NamingService = Depends(get_service)):
    """Resolve a task by creating a root, approving a field or dismissing it."""
    outcome = service.resolve_task(
        task_id,
        request.action,
        root_fields=request.root,
        reason=request.reason,
        resolved_by=request.resolved_by,
    )
    return envelope({
        "task_id": task_id,
        "action": request.action.value,
        "result": outcome.model_dump(mode="json"),
    })
