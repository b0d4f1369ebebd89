"""TODO item schema for prompt decomposition."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Priority(str, Enum):
    """TODO item priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> Priority:
        """Parse a priority name, defaulting to MEDIUM."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.MEDIUM


class TodoItem(BaseModel):
    """A single actionable step produced from a free-text prompt."""

    id: int = Field(..., ge=1, description="1-based position in the list")
    title: str = Field(..., description="Short imperative action")
    priority: Priority = Field(Priority.MEDIUM, description="Suggested priority")
    skill: str | None = Field(None, description="Skill category, if one applies")
