"""
Tests for the relationships, events, and insights read/create endpoints.

Runs against a temporary SQLite store.
"""
import asyncio
import time

import httpx
import pytest
from unittest.mock import patch

from api.services.errors import UpstreamError

pytestmark = pytest.mark.unit


class TestRelationshipsAPI:
    """Tests for /api/relationships."""

    def test_create_relationship(self, client, record_store):
        response = client.post("/api/relationships", json={
            "person_name": "Jordan Lee",
            "type": "coworker",
            "notes": "Shares the Thursday standup",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["person_name"] == "Jordan Lee"
        assert data["type"] == "coworker"
        assert data["notes"] == "Shares the Thursday standup"
        assert data["id"]
        assert data["created_at"]
        assert record_store.get("relationships", data["id"])["person_name"] == "Jordan Lee"

    def test_notes_default_to_null(self, client):
        response = client.post("/api/relationships", json={"person_name": "Jordan", "notes": ""})

        assert response.status_code == 200
        assert response.json()["notes"] is None
        assert response.json()["type"] is None

    @pytest.mark.parametrize("body", [
        {"type": "friend"},
        {"person_name": "", "type": "friend"},
        {"person_name": None},
    ])
    def test_missing_name_rejected(self, client, record_store, body):
        response = client.post("/api/relationships", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "person_name is required"
        assert record_store.find("relationships") == []

    def test_list_newest_first(self, client):
        for name in ("Ana", "Ben", "Cleo"):
            client.post("/api/relationships", json={"person_name": name})

        response = client.get("/api/relationships")

        assert response.status_code == 200
        assert [r["person_name"] for r in response.json()] == ["Cleo", "Ben", "Ana"]

    def test_list_empty(self, client):
        response = client.get("/api/relationships")

        assert response.status_code == 200
        assert response.json() == []

    def test_store_failure_is_500(self, client, record_store):
        with patch.object(record_store, "find", side_effect=UpstreamError("database is locked")):
            response = client.get("/api/relationships")

        assert response.status_code == 500
        assert response.json() == {"error": "database is locked"}


class TestEventsAPI:
    """Tests for /api/events."""

    def test_create_event(self, client, relationship):
        response = client.post("/api/events", json={
            "relationship_id": relationship["id"],
            "event_type": "dinner",
            "description": "Tried the new ramen place",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["relationship_id"] == relationship["id"]
        assert data["event_type"] == "dinner"
        assert data["description"] == "Tried the new ramen place"

    def test_empty_description_stored_as_null(self, client, relationship):
        response = client.post("/api/events", json={
            "relationship_id": relationship["id"],
            "event_type": "call",
            "description": "",
        })

        assert response.json()["description"] is None

    def test_missing_relationship_id(self, client, record_store):
        response = client.post("/api/events", json={"event_type": "call"})

        assert response.status_code == 400
        assert response.json()["error"] == "relationship_id is required"
        assert record_store.find("events") == []

    def test_missing_event_type(self, client, relationship):
        response = client.post("/api/events", json={"relationship_id": relationship["id"]})

        assert response.status_code == 400
        assert response.json()["error"] == "event_type is required"

    def test_list_requires_relationship_id(self, client):
        response = client.get("/api/events")

        assert response.status_code == 400
        assert response.json() == {"error": "relationship_id is required"}

    def test_list_filtered_newest_first(self, client, record_store, relationship):
        for event_type in ("call", "text", "visit"):
            client.post("/api/events", json={
                "relationship_id": relationship["id"],
                "event_type": event_type,
            })
        record_store.insert("events", {"relationship_id": "someone-else", "event_type": "gift"})

        response = client.get(f"/api/events?relationship_id={relationship['id']}")

        assert response.status_code == 200
        events = response.json()
        assert [e["event_type"] for e in events] == ["visit", "text", "call"]
        stamps = [e["created_at"] for e in events]
        assert stamps == sorted(stamps, reverse=True)


class TestInsightsAPI:
    """Tests for GET /api/insights."""

    def test_requires_relationship_id(self, client):
        response = client.get("/api/insights")

        assert response.status_code == 400
        assert response.json() == {"error": "relationship_id is required"}

    def test_list_newest_first(self, client, record_store, relationship):
        for summary in ("old", "newer", "newest"):
            record_store.insert("insights", {
                "relationship_id": relationship["id"],
                "summary": summary,
                "risk_score": 0.5,
                "growth_score": 0.5,
            })

        response = client.get(f"/api/insights?relationship_id={relationship['id']}")

        assert response.status_code == 200
        assert [i["summary"] for i in response.json()] == ["newest", "newer", "old"]
        assert response.json()[0]["risk_score"] == 0.5


class TestConcurrentRequests:
    """Store calls run off the event loop, so slow reads overlap."""

    @pytest.mark.asyncio
    async def test_slow_store_does_not_serialize_requests(self, record_store, relationship):
        from api.main import app

        original_find = record_store.find

        def slow_find(*args, **kwargs):
            time.sleep(0.5)
            return original_find(*args, **kwargs)

        transport = httpx.ASGITransport(app=app)
        with patch.object(record_store, "find", side_effect=slow_find):
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                started = time.monotonic()
                responses = await asyncio.gather(
                    *(client.get("/api/relationships") for _ in range(4))
                )
                elapsed = time.monotonic() - started

        assert [r.status_code for r in responses] == [200] * 4
        assert all(r.json()[0]["id"] == relationship["id"] for r in responses)
        # Four 0.5s reads back to back would take 2s
        assert elapsed < 1.5


class TestHealth:
    """Tests for /health."""

    def test_health_reports_backend(self, mock_settings, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "rapport"
        assert data["status"] == "healthy"
        assert data["checks"]["record_store"] == "sqlite"

    def test_degraded_without_api_key(self, mock_settings, client):
        mock_settings.groq_api_key = ""

        response = client.get("/health")

        assert response.json()["status"] == "degraded"
        assert response.json()["checks"]["completion_api_key_configured"] is False
