"""
Insight Generator for Rapport.

Produces one AI-generated insight for a relationship:

1. Fetch the relationship and its most recent events
2. Render them into an analysis prompt
3. Ask the completion API for a six-field JSON object
4. Parse the reply (plain json.loads, no repair)
5. Store it as a new insights row and return the parsed object

The first failure ends the pipeline, so nothing is written unless every
step before the insert succeeded.
"""
import asyncio
import json
import logging
from typing import Any, Optional

from config.settings import settings
from api.services.completion_client import CompletionClient, extract_text, get_completion_client
from api.services.errors import EmptyResponseError, MalformedResponseError, NotFoundError
from api.services.record_store import RecordStore, get_record_store

logger = logging.getLogger(__name__)

INSIGHT_FIELDS = (
    "summary",
    "pattern",
    "risk_score",
    "growth_score",
    "recommended_action",
    "suggested_message",
)

SCORE_FIELDS = ("risk_score", "growth_score")

NO_EVENTS_TEXT = "No events logged."

SYSTEM_PROMPT = "You are a precise relationship analysis engine. Respond ONLY with valid JSON."

INSIGHT_PROMPT = """
You are a relationship analysis engine. Analyze the following relationship and events.
Respond ONLY with valid JSON, no extra text. Match this exact shape:
{{
  "summary": string,
  "pattern": string,
  "risk_score": number,
  "growth_score": number,
  "recommended_action": string,
  "suggested_message": string
}}

Relationship:
Name: {name}
Type: {type}
Notes: {notes}

Events:
{events}
"""


def _or_default(value: Any, default: str) -> Any:
    return default if value is None else value


def format_events(events: list[dict]) -> str:
    """
    Render events as a bulleted list, one per line.

    Args:
        events: Event rows, already ordered newest first

    Returns:
        "- [created_at] (event_type) description" lines, or a placeholder
    """
    if not events:
        return NO_EVENTS_TEXT
    return "\n".join(
        f"- [{e.get('created_at')}] ({e.get('event_type')}) {e.get('description') or ''}"
        for e in events
    )


def build_prompt(relationship: dict, events: list[dict]) -> str:
    """Build the analysis prompt for a relationship and its events."""
    return INSIGHT_PROMPT.format(
        name=_or_default(relationship.get("person_name"), "Unknown"),
        type=_or_default(relationship.get("type"), "Not specified"),
        notes=_or_default(relationship.get("notes"), "None"),
        events=format_events(events),
    )


def build_messages(prompt: str) -> list[dict]:
    """Wrap a prompt into the system + user chat messages."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def parse_insight(text: str) -> dict:
    """
    Parse completion text as a JSON object.

    Raises:
        MalformedResponseError: If the text is not JSON or not an object
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Completion JSON parse error: {e}")
        logger.error(f"Raw completion text that failed to parse: {text}")
        raise MalformedResponseError("Groq JSON parse error", raw=text) from e

    if not isinstance(parsed, dict):
        logger.error(f"Completion JSON is not an object: {text}")
        raise MalformedResponseError("Groq JSON parse error", raw=text)
    return parsed


def _score(value: Any) -> Optional[float]:
    # bool is an int subclass; true/false is not a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


def insight_row(relationship_id: str, parsed: dict) -> dict:
    """
    Map a parsed completion onto an insights row.

    Scores that are missing or not numbers are stored as null; range is not
    checked. Non-string text fields are stored as their JSON encoding.
    """
    row = {"relationship_id": relationship_id}
    for field_name in INSIGHT_FIELDS:
        value = parsed.get(field_name)
        row[field_name] = _score(value) if field_name in SCORE_FIELDS else _text(value)
    return row


async def generate_insight(
    relationship_id: str,
    store: Optional[RecordStore] = None,
    client: Optional[CompletionClient] = None,
) -> dict:
    """
    Generate, store, and return an insight for a relationship.

    Args:
        relationship_id: Relationship to analyze
        store: Record store (default singleton)
        client: Completion client (default singleton)

    Returns:
        The parsed insight object, exactly as the model returned it

    Raises:
        NotFoundError: If the relationship does not exist
        UpstreamError: If the store or completion API fails
        EmptyResponseError: If the completion has no text
        MalformedResponseError: If the completion is not a JSON object
    """
    store = store or get_record_store()
    client = client or get_completion_client()

    logger.info(f"Analyzing relationship: {relationship_id}")

    relationship = await asyncio.to_thread(store.get, "relationships", relationship_id)
    if not relationship:
        logger.error(f"Relationship not found: {relationship_id}")
        raise NotFoundError("Relationship not found")

    logger.info(f"Fetched relationship: {relationship.get('person_name')}")

    events = await asyncio.to_thread(
        store.find,
        "events",
        {"relationship_id": relationship_id},
        limit=settings.event_window,
    )
    logger.info(f"Fetched events count: {len(events)}")

    prompt = build_prompt(relationship, events)

    logger.info("Calling completion API...")
    body = await client.complete(build_messages(prompt))

    text = extract_text(body)
    logger.debug(f"Completion raw response: {text}")
    if not text:
        logger.error(f"Empty response from completion API: {body}")
        raise EmptyResponseError("Empty response from Groq", raw=body)

    parsed = parse_insight(text)
    logger.debug(f"Parsed insight: {parsed}")

    await asyncio.to_thread(store.insert, "insights", insight_row(relationship_id, parsed))
    logger.info(f"Successfully inserted insight for relationship: {relationship_id}")

    return parsed
