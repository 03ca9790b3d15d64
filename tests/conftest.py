"""
Pytest configuration and shared fixtures for Rapport tests.

All tests are unit tests: the record store is a temporary SQLite file and
every HTTP call (completion API, hosted store) is mocked.

Run:
- pytest -m unit              # Unit tests only
- pytest                      # All tests
"""
import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")


@pytest.fixture
def temp_db(tmp_path):
    """Path to a fresh SQLite database file."""
    return str(tmp_path / "rapport.db")


@pytest.fixture
def record_store(temp_db, monkeypatch):
    """
    SQLite record store on a temporary file, installed as the singleton.

    Routes and services calling get_record_store() get this instance.
    """
    from api.services.record_store import SQLiteRecordStore

    store = SQLiteRecordStore(db_path=temp_db)
    monkeypatch.setattr("api.services.record_store._store_instance", store)
    return store


@pytest.fixture
def mock_settings(tmp_path, monkeypatch):
    """
    Mock settings for testing.

    Uses temporary paths to avoid affecting real data.
    """
    from config.settings import Settings

    mock = Settings(
        db_path=tmp_path / "settings.db",
        groq_api_key="test-key-for-testing",
        supabase_url="",
        supabase_anon_key="",
    )

    # Patch every module that imported the global settings
    monkeypatch.setattr("config.settings.settings", mock)
    monkeypatch.setattr("api.services.record_store.settings", mock)
    monkeypatch.setattr("api.services.supabase_store.settings", mock)
    monkeypatch.setattr("api.services.completion_client.settings", mock)
    monkeypatch.setattr("api.services.insight_generator.settings", mock)
    monkeypatch.setattr("api.main.settings", mock)
    return mock


@pytest.fixture
def client(record_store):
    """Test client bound to the temporary record store."""
    from fastapi.testclient import TestClient
    from api.main import app
    return TestClient(app)


@pytest.fixture
def relationship(record_store):
    """A stored relationship."""
    return record_store.insert("relationships", {
        "person_name": "Sam Rivera",
        "type": "friend",
        "notes": "Met at climbing gym",
    })[0]
