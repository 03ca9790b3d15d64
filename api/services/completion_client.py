"""
Completion Client for the hosted LLM API.

Talks to Groq's OpenAI-compatible chat completions endpoint. Used by the
insight generator. There is no retry: a failed call is reported to the
caller as-is.
"""
import logging
from typing import Optional

import httpx

from config.settings import settings
from api.services.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


class CompletionClient:
    """Client for an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize completion client.

        Args:
            api_key: API key (default from settings)
            base_url: API base URL (default from settings)
            model: Model name to use (default from settings)
            timeout: Request timeout in seconds (default from settings)
        """
        # Only fall back to settings if not explicitly passed
        self.api_key = api_key if api_key is not None else settings.groq_api_key
        self.base_url = (base_url or settings.groq_base_url).rstrip("/")
        self.model = model or settings.insight_model
        self.timeout = timeout or settings.completion_timeout

    def validate_api_key(self):
        """Raise ConfigurationError if no API key is configured."""
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError("Missing GROQ_API_KEY")

    async def complete(self, messages: list[dict], model: Optional[str] = None) -> dict:
        """
        Request a chat completion.

        Args:
            messages: Chat messages ({"role", "content"} dicts)
            model: Model override (defaults to instance model)

        Returns:
            The decoded JSON response body

        Raises:
            ConfigurationError: If the API key is missing
            UpstreamError: If the request fails or the body is not JSON
        """
        self.validate_api_key()

        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": model or self.model,
            "messages": messages,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Completion API request failed: {e}")
            raise UpstreamError(f"Completion API unreachable: {e}") from e

        if response.is_error:
            error_body = _json_or_none(response)
            logger.error(f"Completion API error response: {error_body}")
            raise UpstreamError(
                _error_message(error_body, response.status_code),
                upstream_status=response.status_code,
            )

        body = _json_or_none(response)
        if body is None:
            logger.error("Completion API returned a non-JSON body")
            raise UpstreamError("Failed to parse completion response")
        return body


def extract_text(body: dict) -> str:
    """Return choices[0].message.content from a completion body, or ''."""
    if not isinstance(body, dict):
        return ""
    choices = body.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(body, status_code: int) -> str:
    """Prefer error.message, then message, then the bare status."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return f"Groq HTTP {status_code}"


# Singleton client instance
_client_instance: Optional[CompletionClient] = None


def get_completion_client() -> CompletionClient:
    """Get the singleton CompletionClient instance."""
    global _client_instance
    if _client_instance is None:
        _client_instance = CompletionClient()
    return _client_instance
