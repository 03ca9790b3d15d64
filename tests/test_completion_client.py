"""
Tests for the completion API client.

httpx.AsyncClient is patched; no network access.
"""
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from api.services.completion_client import CompletionClient, extract_text
from api.services.errors import ConfigurationError, UpstreamError

pytestmark = pytest.mark.unit

BASE_URL = "https://api.groq.com/openai/v1"


def _response(status_code: int, **kwargs) -> httpx.Response:
    return httpx.Response(
        status_code,
        request=httpx.Request("POST", f"{BASE_URL}/chat/completions"),
        **kwargs,
    )


@pytest.fixture
def client():
    return CompletionClient(api_key="gsk-test", base_url=BASE_URL, model="llama-3.1-8b-instant", timeout=5)


@pytest.fixture
def mock_post():
    """Patch httpx.AsyncClient; yields the AsyncMock standing in for post()."""
    with patch("api.services.completion_client.httpx.AsyncClient") as mock_cls:
        post = AsyncMock()
        mock_cls.return_value.__aenter__.return_value.post = post
        yield post


class TestComplete:

    @pytest.mark.asyncio
    async def test_posts_model_and_messages(self, client, mock_post):
        body = {"choices": [{"message": {"content": "{}"}}]}
        mock_post.return_value = _response(200, json=body)
        messages = [{"role": "user", "content": "hi"}]

        result = await client.complete(messages)

        assert result == body
        url = mock_post.call_args.args[0]
        kwargs = mock_post.call_args.kwargs
        assert url == f"{BASE_URL}/chat/completions"
        assert kwargs["json"] == {"model": "llama-3.1-8b-instant", "messages": messages}
        assert kwargs["headers"]["Authorization"] == "Bearer gsk-test"

    @pytest.mark.asyncio
    async def test_missing_key(self, mock_post):
        client = CompletionClient(api_key="")

        with pytest.raises(ConfigurationError) as exc_info:
            await client.complete([])

        assert exc_info.value.message == "Missing GROQ_API_KEY"
        mock_post.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_message_from_error_object(self, client, mock_post):
        mock_post.return_value = _response(401, json={"error": {"message": "Invalid API Key"}})

        with pytest.raises(UpstreamError) as exc_info:
            await client.complete([])

        assert exc_info.value.message == "Invalid API Key"
        assert exc_info.value.upstream_status == 401

    @pytest.mark.asyncio
    async def test_error_message_from_top_level(self, client, mock_post):
        mock_post.return_value = _response(429, json={"message": "Rate limited"})

        with pytest.raises(UpstreamError) as exc_info:
            await client.complete([])

        assert exc_info.value.message == "Rate limited"

    @pytest.mark.asyncio
    async def test_error_message_fallback(self, client, mock_post):
        mock_post.return_value = _response(502, text="bad gateway")

        with pytest.raises(UpstreamError) as exc_info:
            await client.complete([])

        assert exc_info.value.message == "Groq HTTP 502"

    @pytest.mark.asyncio
    async def test_transport_error(self, client, mock_post):
        mock_post.side_effect = httpx.ConnectTimeout("timed out")

        with pytest.raises(UpstreamError):
            await client.complete([])
        assert mock_post.call_count == 1  # no retry

    @pytest.mark.asyncio
    async def test_non_json_success_body(self, client, mock_post):
        mock_post.return_value = _response(200, text="<html>")

        with pytest.raises(UpstreamError) as exc_info:
            await client.complete([])

        assert exc_info.value.message == "Failed to parse completion response"


class TestExtractText:

    def test_first_choice_content(self):
        body = {"choices": [{"message": {"content": "first"}}, {"message": {"content": "second"}}]}
        assert extract_text(body) == "first"

    @pytest.mark.parametrize("body", [
        {},
        {"choices": []},
        {"choices": [{}]},
        {"choices": [{"message": {"content": None}}]},
        None,
    ])
    def test_missing_content(self, body):
        assert extract_text(body) == ""
