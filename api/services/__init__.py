"""
Rapport Services Package.

This package contains the business logic and data access services.

Example:
    from api.services import get_record_store, generate_insight

Key service modules:
- record_store: find/get/insert gateway (SQLite backend)
- supabase_store: hosted PostgREST backend for the same interface
- completion_client: chat completion calls to the LLM API
- insight_generator: prompt building, parsing, and storing insights
- errors: error types and their HTTP status codes
"""

# ============================================================================
# Storage
# ============================================================================

from api.services.record_store import (
    RecordStore,
    SQLiteRecordStore,
    get_record_store,
    reset_record_store,
)

# ============================================================================
# Insights
# ============================================================================

from api.services.completion_client import (
    CompletionClient,
    get_completion_client,
)

from api.services.insight_generator import (
    INSIGHT_FIELDS,
    build_prompt,
    generate_insight,
)

# ============================================================================
# Errors
# ============================================================================

from api.services.errors import (
    RapportError,
    InvalidRequestError,
    NotFoundError,
    ConfigurationError,
    UpstreamError,
    EmptyResponseError,
    MalformedResponseError,
)


__all__ = [
    # Storage
    "RecordStore",
    "SQLiteRecordStore",
    "get_record_store",
    "reset_record_store",
    # Insights
    "CompletionClient",
    "get_completion_client",
    "INSIGHT_FIELDS",
    "build_prompt",
    "generate_insight",
    # Errors
    "RapportError",
    "InvalidRequestError",
    "NotFoundError",
    "ConfigurationError",
    "UpstreamError",
    "EmptyResponseError",
    "MalformedResponseError",
]
