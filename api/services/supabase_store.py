"""
Hosted record store backed by Supabase's PostgREST interface.

Used instead of the SQLite store when SUPABASE_URL and SUPABASE_ANON_KEY are
set. Each call opens a short-lived httpx client; there is no retry.
"""
import logging
from typing import Optional, Union

import httpx

from config.settings import settings
from api.services.errors import ConfigurationError, UpstreamError
from api.services.record_store import RecordStore, check_column, check_table

logger = logging.getLogger(__name__)


class SupabaseRecordStore(RecordStore):
    """
    Record store speaking PostgREST over HTTP.

    The hosted database assigns id and created_at itself.
    """

    backend = "supabase"

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize hosted store.

        Args:
            url: Project URL (default from settings)
            api_key: Anon/service key (default from settings)
            timeout: Request timeout in seconds (default from settings)
        """
        self.url = (url or settings.supabase_url).rstrip("/")
        self.api_key = api_key or settings.supabase_anon_key
        self.timeout = timeout or settings.store_timeout

        if not self.url:
            raise ConfigurationError("Missing SUPABASE_URL")
        if not self.api_key:
            raise ConfigurationError("Missing SUPABASE_ANON_KEY")

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    def _headers(self, prefer: Optional[str] = None) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(self, method: str, table: str, **kwargs) -> list[dict]:
        """Send one PostgREST request and return the decoded row list."""
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(method, f"{self.rest_url}/{table}", **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Hosted store {method} {table} failed: {e}")
            raise UpstreamError(f"Record store unreachable: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.error(f"Hosted store {method} {table} returned {response.status_code}: {message}")
            raise UpstreamError(message, upstream_status=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"Invalid response from record store: {e}") from e
        return data if isinstance(data, list) else [data]

    def find(
        self,
        table: str,
        filters: Optional[dict] = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Select rows with eq filters, ordered server-side."""
        check_table(table)
        direction = "desc" if descending else "asc"
        params = [
            ("select", "*"),
            ("order", f"{check_column(table, order_by)}.{direction}"),
        ]
        for column, value in (filters or {}).items():
            params.append((check_column(table, column), f"eq.{value}"))
        if limit is not None:
            params.append(("limit", str(limit)))

        return self._request("GET", table, params=params, headers=self._headers())

    def get(self, table: str, record_id: str) -> Optional[dict]:
        """Get a single row by id, or None if not found."""
        rows = self.find(table, {"id": record_id}, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, rows: Union[dict, list[dict]]) -> list[dict]:
        """Insert rows in one request and return what the store wrote."""
        columns = check_table(table)
        if isinstance(rows, dict):
            rows = [rows]
        payload = [{column: row.get(column) for column in columns} for row in rows]

        return self._request(
            "POST",
            table,
            json=payload,
            headers=self._headers(prefer="return=representation"),
        )


def _error_message(response: httpx.Response) -> str:
    """Pull the PostgREST error message out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or body.get("hint")
        if message:
            return str(message)
    return f"Record store HTTP {response.status_code}"
