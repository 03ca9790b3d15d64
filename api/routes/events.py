"""
Events API routes for Rapport.

Events are logged occurrences tied to exactly one relationship.
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from api.routes.relationships import RecordResponse
from api.services.errors import InvalidRequestError
from api.services.record_store import get_record_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


class CreateEventRequest(BaseModel):
    """Request to log an event for a relationship."""
    relationship_id: str = Field(..., min_length=1)
    event_type: str = Field(..., min_length=1, description="Free-text kind, e.g. call, argument, gift")
    description: Optional[str] = None


class EventResponse(RecordResponse):
    relationship_id: str
    event_type: str
    description: Optional[str] = None


@router.get("", response_model=list[EventResponse])
async def list_events(relationship_id: Optional[str] = None):
    """
    List events for a relationship, newest first.

    Example: /api/events?relationship_id=abc123
    """
    if not relationship_id:
        raise InvalidRequestError("relationship_id is required")

    store = get_record_store()
    return await asyncio.to_thread(store.find, "events", {"relationship_id": relationship_id})


@router.post("", response_model=EventResponse)
async def create_event(request: CreateEventRequest):
    """Log an event. Empty descriptions are stored as null."""
    store = get_record_store()
    rows = await asyncio.to_thread(store.insert, "events", {
        "relationship_id": request.relationship_id,
        "event_type": request.event_type,
        "description": request.description or None,
    })
    return rows[0]
