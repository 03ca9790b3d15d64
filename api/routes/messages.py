"""
Message ingestion API route for Rapport.

Accepts a batch of chat messages for a single user / platform / thread and
saves them into the messages table. Example body:

    {
      "user_id": "some-user-id",
      "platform": "whatsapp",
      "thread_id": "thread-123",
      "messages": [
        {"from_me": true, "text": "hey, what's up?", "timestamp": "2025-11-29T14:35:00Z"},
        {"from_me": false, "text": "nothing much, you?", "timestamp": "2025-11-29T14:36:00Z"}
      ]
    }
"""
import asyncio
import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from api.services.record_store import get_record_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["messages"])


class IncomingMessage(BaseModel):
    """One chat message. Fields are loosely typed and normalized on insert."""
    from_me: Any = False
    text: Any = None
    timestamp: Any = None

    def to_row(self, user_id: str, platform: str, thread_id: str) -> dict:
        """Build a messages row, falling back to ''/None for bad values."""
        return {
            "user_id": user_id,
            "platform": platform,
            "thread_id": thread_id,
            "from_me": bool(self.from_me),
            "text": self.text if isinstance(self.text, str) else "",
            # ISO string, passed through unchanged
            "timestamp": self.timestamp if isinstance(self.timestamp, str) else None,
        }


class IngestMessagesRequest(BaseModel):
    """A batch of messages from one thread."""
    user_id: str = Field(..., min_length=1)
    platform: str = Field(..., min_length=1, description="e.g. whatsapp, imessage, telegram")
    thread_id: str = Field(..., min_length=1)
    messages: list[IncomingMessage] = Field(..., min_length=1)


class IngestMessagesResponse(BaseModel):
    success: bool
    inserted: int


@router.post("", response_model=IngestMessagesResponse)
async def ingest_messages(request: IngestMessagesRequest):
    """Insert all messages in one store call and report how many were written."""
    rows = [
        msg.to_row(request.user_id, request.platform, request.thread_id)
        for msg in request.messages
    ]

    store = get_record_store()
    await asyncio.to_thread(store.insert, "messages", rows)

    logger.info(
        f"Ingested {len(rows)} {request.platform} messages for thread {request.thread_id}"
    )
    return IngestMessagesResponse(success=True, inserted=len(rows))
