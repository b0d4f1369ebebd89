"""Execution backend contract."""

from typing import Protocol, runtime_checkable

from .types import MessagesRequest, MessagesResponse


@runtime_checkable
class MessageSender(Protocol):
    """Anything that can send a Messages request and await the reply.

    Implementations are shared between concurrently running jobs and must be
    safe to call from several coroutines at once.
    """

    async def send_message(self, request: MessagesRequest) -> MessagesResponse:
        """Send a request to the model.

        Args:
            request: Model identifier, token budget and conversation.

        Returns:
            The parsed model response.

        Raises:
            RateLimitedError: If the API rate limited the request
            APIStatusError: If the API returned an error status
            NetworkError: If the API could not be reached
        """
        ...
