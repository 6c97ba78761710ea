# WordRoot API - Roots Router
# ===========================
"""
Word-root dictionary endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...models import WordRootCreate
from ...naming import NamingService
from ..deps import envelope, get_service

router = APIRouter()


class SynonymUpdateRequest(BaseModel):
    """Replacement synonym set for a root."""
    associated_terms: List[str] = Field(default_factory=list)


class BatchCreateRequest(BaseModel):
    """Several roots created in one transaction."""
    roots: List[WordRootCreate] = Field(..., min_length=1)


@router.get("")
def list_roots(service: NamingService = Depends(get_service)):
    """List every word root ordered by id."""
    return envelope([r.model_dump(mode="json") for r in service.list_roots()])


@router.get("/similar")
def similar_roots(
    q: str = Query(..., min_length=1, description="Text to compare"),
    limit: int = Query(10, ge=1, le=100),
    service: NamingService = Depends(get_service),
):
    """Roots most similar to the query, best first."""
    return envelope([r.to_dict() for r in service.search_similar_roots(q, limit=limit)])


@router.post("", status_code=201)
def create_root(request: WordRootCreate, service: NamingService = Depends(get_service)):
    """Create a word root. 409 if the abbreviation exists."""
    return envelope(service.create_root(request).model_dump(mode="json"))


@router.post("/batch", status_code=201)
def create_roots(request: BatchCreateRequest, service: NamingService = Depends(get_service)):
    """Create several roots; one conflict rejects the whole batch."""
    created = service.create_roots(request.roots)
    return envelope([r.model_dump(mode="json") for r in created])


@router.get("/{root_id}")
def get_root(root_id: int, service: NamingService = Depends(get_service)):
    return envelope(service.get_root(root_id).model_dump(mode="json"))


@router.put("/{root_id}")
def update_root(root_id: int, request: WordRootCreate,
                service: NamingService = Depends(get_service)):
    return envelope(service.update_root(root_id, request).model_dump(mode="json"))


@router.put("/{root_id}/synonyms")
def update_synonyms(root_id: int, request: SynonymUpdateRequest,
                    service: NamingService = Depends(get_service)):
    updated = service.update_root_synonyms(root_id, request.associated_terms)
    return envelope(updated.model_dump(mode="json"))


@router.delete("/{root_id}")
def delete_root(root_id: int, service: NamingService = Depends(get_service)):
    """Delete a root. 409 if a field's composition chain uses it."""
    service.delete_root(root_id)
    return envelope({"id": root_id, "deleted": True})
