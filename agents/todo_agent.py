"""TODO Agent - breaks a free-text prompt into actionable TODO items.

Uses a cheap model to decompose the prompt when a backend is available,
and keyword heuristics otherwise (or when the model reply is unusable).
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING

from llm_backend.errors import ClassificationError, LLMError
from llm_backend.types import MessagesRequest
from routing.router import VALID_SKILLS, SkillRouter
from schemas.job import ModelTier
from schemas.todo import Priority, TodoItem

if TYPE_CHECKING:
    from llm_backend.base import MessageSender

logger = logging.getLogger(__name__)

TODO_MAX_TOKENS = 1024

SYSTEM_PROMPT = """Break down this task into actionable TODO items. Respond with ONLY valid JSON, no other text.

Format:
{{"todos": [
  {{"title": "<short imperative action>", "priority": "<high|medium|low>", "skill": "<skill_or_null>"}}
]}}

Rules:
- Each title must be a short, actionable imperative phrase (e.g., "Write unit tests for auth module")
- priority must be one of: high, medium, low
- skill must be one of: testing, refactoring, documentation, bug_fix, code_generation, or null
- Generate 2-8 TODO items, ordered by suggested execution sequence
- Assign high priority to foundational or blocking tasks, low to polish/docs

Task: {prompt}"""

HIGH_PRIORITY_KEYWORDS = ("critical", "urgent", "block", "break", "crash", "security", "fix")
LOW_PRIORITY_KEYWORDS = ("doc", "readme", "comment", "format", "style", "typo", "rename")

# Applied in order; each splits a part at its first occurrence only
CONJUNCTIONS = (", then ", " and then ", " then ", " and ")

_NUMBERED_ITEM = re.compile(r"^\d")


def infer_priority(text: str) -> Priority:
    """Priority from urgency/polish keywords; high keywords win."""
    lower = text.lower()
    if any(kw in lower for kw in HIGH_PRIORITY_KEYWORDS):
        return Priority.HIGH
    if any(kw in lower for kw in LOW_PRIORITY_KEYWORDS):
        return Priority.LOW
    return Priority.MEDIUM


def capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def split_explicit_list(text: str) -> list[str]:
    """Items of a bulleted ("- ", "* ") or numbered ("1.", "2)") list."""
    items: list[str] = []
    for line in text.splitlines():
        trimmed = line.strip()
        if trimmed.startswith(("- ", "* ")):
            items.append(trimmed[2:])
        elif len(trimmed) > 2 and _NUMBERED_ITEM.match(trimmed):
            positions = [p for p in (trimmed.find("."), trimmed.find(")")) if p != -1]
            if positions:
                after = trimmed[min(positions) + 1:].strip()
                if after:
                    items.append(after)
    return items


def split_on_conjunctions(text: str) -> list[str]:
    """Split a sentence into clauses on "and", "then" and ", then"."""
    parts = [text]
    for delim in CONJUNCTIONS:
        new_parts: list[str] = []
        for part in parts:
            pos = part.lower().find(delim)
            if pos == -1:
                new_parts.append(part)
                continue
            left = part[:pos].strip()
            right = part[pos + len(delim):].strip()
            if left:
                new_parts.append(left)
            if right:
                new_parts.append(right)
        parts = new_parts
    return parts


def _items_from_texts(texts: list[str]) -> list[TodoItem]:
    """Build sequentially numbered items, skipping blank entries."""
    items: list[TodoItem] = []
    for text in texts:
        trimmed = text.strip()
        if not trimmed:
            continue
        items.append(
            TodoItem(
                id=len(items) + 1,
                title=capitalize_first(trimmed),
                priority=infer_priority(trimmed),
                skill=SkillRouter.best(trimmed),
            )
        )
    return items


def parse_todo_response(text: str) -> list[TodoItem]:
    """Parse the model's ``{"todos": [...]}`` reply.

    Raises:
        ClassificationError: If the reply is not valid JSON of that shape or
            the list is empty.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ClassificationError(f"Failed to parse LLM TODO response: {e}") from e

    raw_items = data.get("todos") if isinstance(data, dict) else None
    if not isinstance(raw_items, list):
        raise ClassificationError("Failed to parse LLM TODO response: missing 'todos' list")
    if not raw_items:
        raise ClassificationError("LLM returned empty TODO list")

    items: list[TodoItem] = []
    for i, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict) or not isinstance(raw.get("title"), str):
            raise ClassificationError(f"Failed to parse LLM TODO response: bad item {i}")
        skill = raw.get("skill")
        items.append(
            TodoItem(
                id=i,
                title=raw["title"],
                priority=Priority.parse(str(raw.get("priority", ""))),
                skill=skill if skill in VALID_SKILLS else None,
            )
        )
    return items


class TodoGenerator:
    """Generates TODO items from natural language prompts.

    Example:
        >>> [t.title for t in TodoGenerator.generate_from_keywords("add login and write tests")]
        ['Add login', 'Write tests']
    """

    @staticmethod
    def generate_from_keywords(prompt: str) -> list[TodoItem]:
        """Decompose a prompt with structural heuristics.

        Tries, in order: an explicit bulleted/numbered list, a split on
        conjunctions, and finally a plan/do/verify triple for single tasks.
        """
        explicit = split_explicit_list(prompt)
        if len(explicit) >= 2:
            return _items_from_texts(explicit)

        clauses = split_on_conjunctions(prompt)
        if len(clauses) >= 2:
            return _items_from_texts(clauses)

        desc = capitalize_first(prompt.strip())
        return [
            TodoItem(id=1, title=f"Plan approach for: {desc}", priority=Priority.HIGH),
            TodoItem(
                id=2,
                title=desc,
                priority=infer_priority(prompt),
                skill=SkillRouter.best(prompt),
            ),
            TodoItem(
                id=3,
                title="Verify changes and run tests",
                priority=Priority.MEDIUM,
                skill="testing",
            ),
        ]

    @staticmethod
    async def generate_with_llm(sender: MessageSender, prompt: str) -> list[TodoItem]:
        """Decompose a prompt with a model call.

        Raises:
            LLMError: If the request fails
            ClassificationError: If the reply is unusable
        """
        request = MessagesRequest.user(
            model=ModelTier.HAIKU.api_model,
            content=SYSTEM_PROMPT.format(prompt=prompt),
            max_tokens=TODO_MAX_TOKENS,
        )
        response = await sender.send_message(request)
        return parse_todo_response(response.first_text())

    @classmethod
    async def generate(cls, prompt: str, sender: MessageSender | None = None) -> list[TodoItem]:
        """Use the model when available, falling back to keyword heuristics."""
        if sender is not None:
            try:
                return await cls.generate_with_llm(sender, prompt)
            except (LLMError, ClassificationError) as e:
                logger.warning("LLM TODO generation failed, using keyword heuristics: %s", e)
        return cls.generate_from_keywords(prompt)
