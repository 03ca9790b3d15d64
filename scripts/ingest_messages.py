#!/usr/bin/env python3
"""
Ingest an exported chat thread into Rapport via /api/messages.

The export is a JSON file, either a full request body:

    {"user_id": "...", "platform": "whatsapp", "thread_id": "...",
     "messages": [{"from_me": true, "text": "...", "timestamp": "..."}]}

or a bare list of messages, with user/platform/thread given on the
command line. Messages are posted in batches; nothing is sent without
--execute.
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import json
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from api.utils.datetime_utils import make_aware
from config.settings import settings

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 200


def normalize_timestamp(value) -> Optional[str]:
    """
    Normalize an export timestamp to ISO-8601 UTC.

    Accepts ISO strings (naive ones are treated as UTC) and unix epoch
    seconds. Anything else becomes None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return make_aware(datetime.fromisoformat(text)).isoformat()
        except ValueError:
            logger.warning(f"Unparseable timestamp kept as-is: {value}")
            return value
    return None


def normalize_message(raw: dict) -> dict:
    """Map one exported message onto the API's message shape."""
    return {
        "from_me": bool(raw.get("from_me")),
        "text": raw.get("text") if isinstance(raw.get("text"), str) else "",
        "timestamp": normalize_timestamp(raw.get("timestamp")),
    }


def load_export(path: Path) -> tuple[dict, list[dict]]:
    """
    Read an export file.

    Returns:
        (thread metadata found in the file, list of raw messages)
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        return {}, data
    if isinstance(data, dict):
        meta = {k: data[k] for k in ("user_id", "platform", "thread_id") if data.get(k)}
        return meta, list(data.get("messages") or [])
    raise ValueError(f"{path}: expected a JSON object or list")


def batched(items: list, size: int) -> list[list]:
    """Split items into consecutive chunks of at most size."""
    if size < 1:
        raise ValueError("batch size must be positive")
    return [items[i:i + size] for i in range(0, len(items), size)]


def ingest_thread(
    base_url: str,
    user_id: str,
    platform: str,
    thread_id: str,
    messages: list[dict],
    batch_size: int = DEFAULT_BATCH_SIZE,
    dry_run: bool = True,
    client: Optional[httpx.Client] = None,
) -> int:
    """
    Post a thread's messages in batches.

    Returns:
        Number of messages the server reported as inserted
        (or that would be sent, in dry-run mode)
    """
    normalized = [normalize_message(m) for m in messages if isinstance(m, dict)]
    skipped = len(messages) - len(normalized)
    if skipped:
        logger.warning(f"Skipped {skipped} entries that are not message objects")

    if not normalized:
        logger.info("No messages to ingest")
        return 0

    batches = batched(normalized, batch_size)
    if dry_run:
        logger.info(
            f"DRY RUN: would send {len(normalized)} messages in {len(batches)} batch(es) "
            f"for {platform} thread {thread_id}"
        )
        return len(normalized)

    own_client = client is None
    client = client or httpx.Client(timeout=30.0)
    inserted = 0
    try:
        for i, batch in enumerate(batches, 1):
            response = client.post(
                f"{base_url.rstrip('/')}/api/messages",
                json={
                    "user_id": user_id,
                    "platform": platform,
                    "thread_id": thread_id,
                    "messages": batch,
                },
            )
            response.raise_for_status()
            inserted += response.json().get("inserted", 0)
            logger.info(f"Batch {i}/{len(batches)}: {len(batch)} messages sent")
    finally:
        if own_client:
            client.close()

    logger.info(f"Inserted {inserted} messages for {platform} thread {thread_id}")
    return inserted


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Ingest an exported chat thread into Rapport')
    parser.add_argument('export', type=Path, help='JSON export file')
    parser.add_argument('--user-id', help='User id (overrides the export)')
    parser.add_argument('--platform', help='Platform label, e.g. whatsapp (overrides the export)')
    parser.add_argument('--thread-id', help='Thread id (overrides the export)')
    parser.add_argument('--url', default=f"http://localhost:{settings.port}", help='Rapport server URL')
    parser.add_argument('--batch-size', type=int, default=DEFAULT_BATCH_SIZE, help='Messages per request')
    parser.add_argument('--execute', action='store_true', help='Actually send the messages')
    args = parser.parse_args(argv)

    meta, messages = load_export(args.export)
    user_id = args.user_id or meta.get("user_id")
    platform = args.platform or meta.get("platform")
    thread_id = args.thread_id or meta.get("thread_id")

    missing = [name for name, value in
               (("user-id", user_id), ("platform", platform), ("thread-id", thread_id)) if not value]
    if missing:
        parser.error(f"missing {', '.join(missing)} (not in export, pass on the command line)")

    try:
        ingest_thread(
            args.url, user_id, platform, thread_id, messages,
            batch_size=args.batch_size,
            dry_run=not args.execute,
        )
    except httpx.HTTPError as e:
        logger.error(f"Ingestion failed: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
