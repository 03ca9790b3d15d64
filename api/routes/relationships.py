"""
Relationships API routes for Rapport.

- GET: list all relationships, newest first
- POST: create a relationship
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from api.services.record_store import get_record_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/relationships", tags=["relationships"])


class RecordResponse(BaseModel):
    """Common fields of every stored record."""
    # Hosted stores may hand back integer ids
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    created_at: Optional[str] = None


class CreateRelationshipRequest(BaseModel):
    """Request to create a relationship."""
    person_name: str = Field(..., min_length=1, description="Who the relationship is with")
    type: Optional[str] = Field(default=None, description="Free-text label, e.g. friend, partner")
    notes: Optional[str] = None


class RelationshipResponse(RecordResponse):
    person_name: str
    type: Optional[str] = None
    notes: Optional[str] = None


@router.get("", response_model=list[RelationshipResponse])
async def list_relationships():
    """List all relationships, newest first."""
    store = get_record_store()
    return await asyncio.to_thread(store.find, "relationships")


@router.post("", response_model=RelationshipResponse)
async def create_relationship(request: CreateRelationshipRequest):
    """Create a relationship. Empty notes are stored as null."""
    store = get_record_store()
    rows = await asyncio.to_thread(store.insert, "relationships", {
        "person_name": request.person_name,
        "type": request.type,
        "notes": request.notes or None,
    })
    logger.info(f"Created relationship {rows[0]['id']} for {request.person_name}")
    return rows[0]
