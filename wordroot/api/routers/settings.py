"""
Settings Router
===============
API endpoints for naming-engine settings.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ...naming import NamingService
from ...settings import SettingsResponse, SettingCategory
from ..deps import envelope, get_service

router = APIRouter()


class SettingUpdateRequest(BaseModel):
    """Request to update a setting."""
    value: Any
    updated_by: Optional[str] = None


@router.get("", response_model=SettingsResponse)
def get_all_settings(service: NamingService = Depends(get_service)):
    """Get all settings grouped by category."""
    return service.settings.get_all_for_api()


@router.get("/audit")
def get_audit_history(
    category: Optional[str] = None,
    key: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    service: NamingService = Depends(get_service),
):
    """Setting changes, newest first."""
    return envelope(service.settings.get_audit_history(category, key, limit))


@router.get("/{category}", response_model=SettingCategory)
def get_category_settings(category: str, service: NamingService = Depends(get_service)):
    result = service.settings.get_category(category)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Category not found: {category}")
    return result


@router.put("/{category}/{key}")
def update_setting(category: str, key: str, request: SettingUpdateRequest,
                   service: NamingService = Depends(get_service)):
    """Update one setting. Invalid values are rejected with 400."""
    service.settings.update_setting(category, key, request.value, request.updated_by)
    return envelope({"category": category, "key": key, "value": request.value})


@router.post("/{category}/reset")
def reset_category(category: str, service: NamingService = Depends(get_service)):
    if not service.settings.reset_category(category):
        raise HTTPException(status_code=404, detail=f"Category not found: {category}")
    return envelope({"category": category, "reset": True})
