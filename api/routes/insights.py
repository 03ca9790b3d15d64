"""
Insights API routes for Rapport.

- GET /api/insights: stored insights for a relationship, newest first
- POST /api/analyze: generate a new insight with the completion API
"""
import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, Request

from api.routes.relationships import RecordResponse
from api.services.completion_client import get_completion_client
from api.services.errors import InvalidRequestError
from api.services.insight_generator import generate_insight
from api.services.record_store import get_record_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["insights"])


class InsightResponse(RecordResponse):
    relationship_id: str
    summary: Optional[str] = None
    pattern: Optional[str] = None
    risk_score: Optional[float] = None
    growth_score: Optional[float] = None
    recommended_action: Optional[str] = None
    suggested_message: Optional[str] = None


@router.get("/insights", response_model=list[InsightResponse])
async def list_insights(relationship_id: Optional[str] = None):
    """
    List insights for a relationship, newest first.

    Example: /api/insights?relationship_id=abc123
    """
    if not relationship_id:
        raise InvalidRequestError("relationship_id is required")

    store = get_record_store()
    return await asyncio.to_thread(store.find, "insights", {"relationship_id": relationship_id})


def _relationship_id(body: Any) -> Optional[str]:
    """Pull relationship_id out of a decoded body; None unless a non-empty string or integer."""
    value = body.get("relationship_id") if isinstance(body, dict) else None
    # bool is an int subclass; true/false is not an id
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and value:
        return value
    return None


@router.post("/analyze")
async def analyze_relationship(request: Request):
    """
    **Generate an AI insight** for a relationship from its recent events.

    Body: {"relationship_id": "..."}

    Returns the model's JSON object as-is (summary, pattern, risk_score,
    growth_score, recommended_action, suggested_message). The same object is
    stored as a new insight.
    """
    # The key is checked before the body is read, so a misconfigured server
    # answers 500 even to a malformed request.
    client = get_completion_client()
    client.validate_api_key()

    try:
        body = await request.json()
    except ValueError:
        body = None

    relationship_id = _relationship_id(body)
    if not relationship_id:
        raise InvalidRequestError("relationship_id is required")

    return await generate_insight(relationship_id, client=client)
