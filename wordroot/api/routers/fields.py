# WordRoot API - Fields Router
# ============================
"""
Field name suggestion and standard-field registry endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...naming import NamingService
from ..deps import envelope, get_service

router = APIRouter()


class FieldSubmitRequest(BaseModel):
    """A field description submitted for standardization."""
    description: str = Field(..., min_length=1, description="Chinese field description")
    associated_terms: List[str] = Field(default_factory=list)
    data_type: Optional[str] = None
    requested_by: Optional[str] = None


class FieldUpdateRequest(BaseModel):
    """Field edits; unset attributes are left alone."""
    field_cn_name: Optional[str] = None
    composition_ids: Optional[List[int]] = None
    data_type: Optional[str] = None
    associated_terms: Optional[List[str]] = None
    requested_by: Optional[str] = None


@router.get("/suggest", tags=["Fields"])
def suggest(
    description: str = Query(..., min_length=1),
    requested_by: Optional[str] = None,
    service: NamingService = Depends(get_service),
):
    """Suggest a field name; unmatched spans are queued as root requests."""
    return envelope(service.resolve_field_name(description, requested_by).to_dict())


@router.post("/fields", status_code=201, tags=["Fields"])
def submit_field(request: FieldSubmitRequest, service: NamingService = Depends(get_service)):
    """Store a non-standard field and queue it for approval."""
    submission = service.submit_field(
        request.description,
        associated_terms=request.associated_terms,
        data_type=request.data_type,
        requested_by=request.requested_by,
    )
    return envelope(submission.to_dict())


@router.get("/fields", tags=["Fields"])
def list_fields(
    is_standard: Optional[bool] = None,
    service: NamingService = Depends(get_service),
):
    """Browse the field registry, newest first."""
    return envelope([f.model_dump(mode="json") for f in service.list_fields(is_standard)])


@router.get("/fields/search", tags=["Fields"])
def search_fields(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=100),
    service: NamingService = Depends(get_service),
):
    """Substring search on Chinese name and synonyms, then similarity fallback."""
    return envelope([f.model_dump(mode="json") for f in service.search_fields(q, limit=limit)])


@router.get("/fields/{field_id}", tags=["Fields"])
def get_field(field_id: int, service: NamingService = Depends(get_service)):
    """Field with its ordered root chain."""
    return envelope(service.get_field_details(field_id).to_dict())


@router.put("/fields/{field_id}", tags=["Fields"])
def update_field(field_id: int, request: FieldUpdateRequest,
                 service: NamingService = Depends(get_service)):
    """Edit a field; it returns to non-standard until approved again."""
    updated = service.update_field(field_id, **request.model_dump(exclude_none=True))
    return envelope(updated.model_dump(mode="json"))


@router.delete("/fields/{field_id}", tags=["Fields"])
def delete_field(field_id: int, service: NamingService = Depends(get_service)):
    service.delete_field(field_id)
    return envelope({"id": field_id, "deleted": True})
