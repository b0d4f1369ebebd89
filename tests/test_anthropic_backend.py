"""
Tests for the Anthropic backend error mapping.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from llm_backend import get_backend
from llm_backend.anthropic_backend import AnthropicClient
from llm_backend.errors import APIStatusError, NetworkError, RateLimitedError
from llm_backend.types import MessagesRequest

REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def make_client(side_effect=None, return_value=None) -> AnthropicClient:
    client = AnthropicClient(api_key="sk-test")
    client._client = MagicMock()
    client._client.messages.create = AsyncMock(side_effect=side_effect, return_value=return_value)
    return client


def status_response(status: int, headers: dict | None = None) -> httpx.Response:
    return httpx.Response(status, headers=headers or {}, request=REQUEST)


@pytest.fixture
def request_():
    return MessagesRequest.user(model="claude-haiku-4-5-20251001", content="hi", max_tokens=16)


class TestSendMessage:
    """Test response conversion and error mapping."""

    @pytest.mark.asyncio
    async def test_converts_response(self, request_):
        sdk_response = SimpleNamespace(
            id="msg_1",
            content=[SimpleNamespace(type="text", text="hello")],
            model="claude-haiku-4-5-20251001",
            stop_reason="end_turn",
            usage=SimpleNamespace(input_tokens=3, output_tokens=5),
        )
        client = make_client(return_value=sdk_response)

        response = await client.send_message(request_)

        assert response.first_text() == "hello"
        assert response.usage.output_tokens == 5
        kwargs = client._client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-haiku-4-5-20251001"
        assert kwargs["max_tokens"] == 16
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]

    @pytest.mark.asyncio
    async def test_rate_limit_with_retry_after(self, request_):
        error = anthropic.RateLimitError(
            "slow down", response=status_response(429, {"retry-after": "3"}), body=None
        )
        client = make_client(side_effect=error)

        with pytest.raises(RateLimitedError) as exc_info:
            await client.send_message(request_)
        assert exc_info.value.retry_after_ms == 3000

    @pytest.mark.asyncio
    async def test_rate_limit_default_retry_after(self, request_):
        error = anthropic.RateLimitError("slow down", response=status_response(429), body=None)
        client = make_client(side_effect=error)

        with pytest.raises(RateLimitedError) as exc_info:
            await client.send_message(request_)
        assert exc_info.value.retry_after_ms == 1000

    @pytest.mark.asyncio
    async def test_status_error(self, request_):
        error = anthropic.InternalServerError("overloaded", response=status_response(500), body=None)
        client = make_client(side_effect=error)

        with pytest.raises(APIStatusError) as exc_info:
            await client.send_message(request_)
        assert exc_info.value.status == 500
        assert "overloaded" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_error(self, request_):
        client = make_client(side_effect=anthropic.APIConnectionError(request=REQUEST))

        with pytest.raises(NetworkError):
            await client.send_message(request_)

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, request_):
        client = make_client(side_effect=anthropic.APITimeoutError(request=REQUEST))

        with pytest.raises(NetworkError):
            await client.send_message(request_)


class TestGetBackend:
    """Test backend selection."""

    def test_no_key_is_stub_mode(self):
        assert get_backend("") is None
        assert get_backend(None) is None

    def test_key_builds_client(self):
        backend = get_backend("sk-test")
        assert isinstance(backend, AnthropicClient)

    def test_client_requires_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ValueError, match="API key not found"):
            AnthropicClient()
