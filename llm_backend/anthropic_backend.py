"""Anthropic backend implementation for Claude models."""

import logging
import os
from typing import Any

from .errors import APIStatusError, NetworkError, RateLimitedError
from .types import ContentBlock, MessagesRequest, MessagesResponse, Usage

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_MS = 1000


class AnthropicClient:
    """Async client for the Anthropic Messages API.

    Requires an API key (parameter or ANTHROPIC_API_KEY environment variable).
    The SDK's own retries are disabled: retry and backoff belong to the job
    lifecycle, so each ``send_message`` is exactly one HTTP attempt.
    See: https://docs.anthropic.com/en/api/getting-started
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
        **kwargs: Any,
    ) -> None:
        """Initialize Anthropic client.

        Args:
            api_key: API key (defaults to ANTHROPIC_API_KEY env var)
            base_url: Override API base URL (mock servers, proxies)
            timeout: Request timeout in seconds
        """
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ImportError(
                "Anthropic package not installed. Run: pip install anthropic"
            )

        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError(
                "Anthropic API key not found. Set ANTHROPIC_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.timeout = timeout
        self._client = AsyncAnthropic(
            api_key=self._api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            **kwargs,
        )

    async def send_message(self, request: MessagesRequest) -> MessagesResponse:
        """Send a Messages request to Anthropic.

        Args:
            request: Model, token budget and messages

        Returns:
            The response converted to MessagesResponse.

        Raises:
            RateLimitedError: On HTTP 429 (retry-after converted to ms)
            APIStatusError: On any other non-2xx status
            NetworkError: On connection failures and timeouts
        """
        import anthropic

        try:
            response = await self._client.messages.create(
                model=request.model,
                max_tokens=request.max_tokens,
                messages=[m.model_dump() for m in request.messages],
            )
        except anthropic.RateLimitError as e:
            raise RateLimitedError(_retry_after_ms(e.response)) from e
        except anthropic.APIStatusError as e:
            raise APIStatusError(e.status_code, e.message) from e
        except anthropic.APIConnectionError as e:
            # APITimeoutError is a subclass of APIConnectionError
            raise NetworkError(str(e)) from e

        blocks = [
            ContentBlock(type=block.type, text=getattr(block, "text", ""))
            for block in response.content
        ]
        return MessagesResponse(
            id=response.id,
            content=blocks,
            model=response.model,
            stop_reason=response.stop_reason,
            usage=Usage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            ),
        )

    async def close(self) -> None:
        await self._client.close()

    def __repr__(self) -> str:
        return f"AnthropicClient(timeout={self.timeout!r})"


def _retry_after_ms(response: Any) -> int:
    """Read the retry-after header (seconds) as milliseconds."""
    try:
        value = response.headers.get("retry-after")
        return int(value) * 1000
    except (AttributeError, TypeError, ValueError):
        return DEFAULT_RETRY_AFTER_MS
