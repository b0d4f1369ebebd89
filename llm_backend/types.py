"""Request and response types for the Anthropic Messages API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Message(BaseModel):
    """One conversation turn."""

    role: str = Field(..., description='"user" or "assistant"')
    content: str


class MessagesRequest(BaseModel):
    """Body of a ``/v1/messages`` request."""

    model: str = Field(..., description="API model identifier")
    max_tokens: int = Field(..., gt=0)
    messages: list[Message]

    @classmethod
    def user(cls, model: str, content: str, max_tokens: int) -> MessagesRequest:
        """Single user-turn request."""
        return cls(
            model=model,
            max_tokens=max_tokens,
            messages=[Message(role="user", content=content)],
        )


class ContentBlock(BaseModel):
    type: str = "text"
    text: str = ""


class Usage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class MessagesResponse(BaseModel):
    """Response of a ``/v1/messages`` call."""

    id: str
    content: list[ContentBlock] = Field(default_factory=list)
    model: str
    stop_reason: str | None = None
    usage: Usage = Field(default_factory=Usage)

    def first_text(self) -> str:
        """Stripped text of the first content block, or "" if none."""
        if not self.content:
            return ""
        return self.content[0].text.strip()
