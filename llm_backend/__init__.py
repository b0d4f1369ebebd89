"""Execution backend layer.

Jobs are executed by sending a prompt to a Claude model. Without an API key
there is no backend and jobs run in stub mode (every attempt succeeds).
"""

import logging

from .base import MessageSender
from .errors import (
    APIStatusError,
    ClassificationError,
    LLMError,
    NetworkError,
    RateLimitedError,
)
from .types import ContentBlock, Message, MessagesRequest, MessagesResponse, Usage

logger = logging.getLogger(__name__)

__all__ = [
    "APIStatusError",
    "AnthropicClient",
    "ClassificationError",
    "ContentBlock",
    "LLMError",
    "Message",
    "MessageSender",
    "MessagesRequest",
    "MessagesResponse",
    "NetworkError",
    "RateLimitedError",
    "Usage",
    "get_backend",
]


def _get_anthropic_client():
    """Lazy import Anthropic client."""
    from .anthropic_backend import AnthropicClient
    return AnthropicClient


def AnthropicClient(*args, **kwargs):
    """Get Anthropic client (lazy loaded)."""
    cls = _get_anthropic_client()
    return cls(*args, **kwargs)


def get_backend(api_key: str | None, **kwargs) -> MessageSender | None:
    """Build the execution backend for the given API key.

    Args:
        api_key: Anthropic API key; empty or None selects stub mode
        **kwargs: Passed to the client (base_url, timeout)

    Returns:
        An AnthropicClient, or None when no key is configured.
    """
    if not api_key:
        logger.info("No Anthropic API key configured, running in stub mode")
        return None
    return AnthropicClient(api_key=api_key, **kwargs)
