"""Skill routing and model-tier selection for jobs.

Chooses an execution strategy for a task description:
1. LLM-based classification (when a backend is configured)
2. Weighted keyword scoring (fallback, and the only path in stub mode)
3. Caller-supplied model override (always wins for the tier)
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from llm_backend.errors import ClassificationError, LLMError
from llm_backend.types import MessagesRequest
from schemas.job import ModelTier

if TYPE_CHECKING:
    from llm_backend.base import MessageSender

logger = logging.getLogger(__name__)

DEFAULT_SKILL = "code_generation"

VALID_SKILLS: tuple[str, ...] = (
    "testing",
    "refactoring",
    "documentation",
    "bug_fix",
    "code_generation",
)

# (keyword substring, skill, weight). Order matters: on equal scores the skill
# whose first keyword appears earliest here wins.
SKILL_KEYWORDS: list[tuple[str, str, int]] = [
    ("test", "testing", 10),
    ("spec", "testing", 5),
    ("refactor", "refactoring", 10),
    ("clean up", "refactoring", 5),
    ("doc", "documentation", 10),
    ("readme", "documentation", 5),
    ("fix", "bug_fix", 10),
    ("bug", "bug_fix", 10),
    ("debug", "bug_fix", 7),
    ("error", "bug_fix", 5),
    ("implement", "code_generation", 5),
    ("add", "code_generation", 3),
    ("create", "code_generation", 5),
    ("build", "code_generation", 5),
]

SIMPLE_KEYWORDS: list[tuple[str, int]] = [
    ("rename", 10),
    ("format", 10),
    ("typo", 10),
    ("delete", 7),
    ("remove", 5),
    ("update", 3),
]

COMPLEX_KEYWORDS: list[tuple[str, int]] = [
    ("architect", 10),
    ("refactor", 8),
    ("redesign", 10),
    ("migrate", 8),
    ("multi-file", 10),
    ("system", 5),
    ("overhaul", 10),
]

SHORT_DESCRIPTION_CHARS = 20
LONG_DESCRIPTION_CHARS = 100
MANY_WORDS = 15
TIER_THRESHOLD = 5

CLASSIFIER_MODEL = ModelTier.HAIKU.api_model
CLASSIFIER_MAX_TOKENS = 256

CLASSIFY_PROMPT = """Classify this coding task. Respond with ONLY valid JSON, no other text.
Format: {{"skill": "<skill>", "complexity": "<complexity>"}}

skill must be one of: testing, refactoring, documentation, bug_fix, code_generation
complexity must be one of: simple, medium, complex

Task: {description}"""

COMPLEXITY_TIERS: dict[str, ModelTier] = {
    "simple": ModelTier.HAIKU,
    "complex": ModelTier.OPUS,
}


class SkillRouter:
    """Routes a job description to a skill by weighted keyword scoring.

    Keywords are matched as lowercase substrings, so overlapping keywords
    ("debug" also contains "bug") both count.

    Example:
        >>> SkillRouter.route("Fix the login bug")
        'bug_fix'
    """

    @staticmethod
    def scores(description: str) -> dict[str, int]:
        """Accumulated score per skill, in keyword-table order."""
        lower = description.lower()
        scores: dict[str, int] = {}
        for keyword, skill, weight in SKILL_KEYWORDS:
            if keyword in lower:
                scores[skill] = scores.get(skill, 0) + weight
        return scores

    @classmethod
    def best(cls, description: str) -> str | None:
        """Highest-scoring skill, or None when no keyword matches."""
        best_skill: str | None = None
        best_score = 0
        for skill, score in cls.scores(description).items():
            if score > best_score:
                best_skill, best_score = skill, score
        return best_skill

    @classmethod
    def route(cls, description: str) -> str:
        """Skill for a description, defaulting to code_generation."""
        return cls.best(description) or DEFAULT_SKILL


class ModelSelector:
    """Selects a model tier from complexity signals in the description.

    Example:
        >>> ModelSelector.select("rename variable")
        <ModelTier.HAIKU: 'haiku'>
    """

    @staticmethod
    def _score(description: str) -> tuple[int, int, list[str]]:
        lower = description.lower()
        simple_score = 0
        complex_score = 0
        reasons: list[str] = []

        for keyword, weight in SIMPLE_KEYWORDS:
            if keyword in lower:
                simple_score += weight
                reasons.append(f"simple keyword '{keyword}' +{weight}")

        for keyword, weight in COMPLEX_KEYWORDS:
            if keyword in lower:
                complex_score += weight
                reasons.append(f"complex keyword '{keyword}' +{weight}")

        # Short descriptions tend to be simple tasks
        if len(description) < SHORT_DESCRIPTION_CHARS:
            simple_score += 5
            reasons.append(f"shorter than {SHORT_DESCRIPTION_CHARS} chars: simple +5")
        if len(description) > LONG_DESCRIPTION_CHARS:
            complex_score += 5
            reasons.append(f"longer than {LONG_DESCRIPTION_CHARS} chars: complex +5")

        if len(description.split()) > MANY_WORDS:
            complex_score += 3
            reasons.append(f"more than {MANY_WORDS} words: complex +3")

        return simple_score, complex_score, reasons

    @classmethod
    def select(cls, description: str) -> ModelTier:
        """Pick haiku, sonnet or opus for a description."""
        simple_score, complex_score, _ = cls._score(description)

        if simple_score > complex_score and simple_score >= TIER_THRESHOLD:
            return ModelTier.HAIKU
        if complex_score > simple_score and complex_score >= TIER_THRESHOLD:
            return ModelTier.OPUS
        return ModelTier.SONNET

    @classmethod
    def explain(cls, description: str) -> dict[str, Any]:
        """Explain the tier decision for debugging/CLI."""
        simple_score, complex_score, reasons = cls._score(description)
        return {
            "simple_score": simple_score,
            "complex_score": complex_score,
            "tier": cls.select(description).value,
            "reasons": reasons,
        }


def parse_classification(text: str) -> tuple[str, ModelTier]:
    """Parse the classifier's JSON reply.

    Unknown skills fall back to code_generation; complexity other than
    simple/complex maps to sonnet.

    Raises:
        ClassificationError: If the text is not a JSON object with string
            ``skill`` and ``complexity`` fields.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ClassificationError(f"Failed to parse LLM classification: {e}") from e

    if not isinstance(data, dict):
        raise ClassificationError("Failed to parse LLM classification: not a JSON object")

    skill = data.get("skill")
    complexity = data.get("complexity")
    if not isinstance(skill, str) or not isinstance(complexity, str):
        raise ClassificationError(
            "Failed to parse LLM classification: missing 'skill' or 'complexity'"
        )

    if skill not in VALID_SKILLS:
        skill = DEFAULT_SKILL
    return skill, COMPLEXITY_TIERS.get(complexity, ModelTier.SONNET)


async def classify_with_llm(sender: MessageSender, description: str) -> tuple[str, ModelTier]:
    """Classify a description with a cheap model call.

    Args:
        sender: Execution backend
        description: Job description

    Returns:
        (skill, model tier)

    Raises:
        LLMError: If the request fails
        ClassificationError: If the reply is not the expected JSON
    """
    request = MessagesRequest.user(
        model=CLASSIFIER_MODEL,
        content=CLASSIFY_PROMPT.format(description=description),
        max_tokens=CLASSIFIER_MAX_TOKENS,
    )
    response = await sender.send_message(request)
    return parse_classification(response.first_text())


def resolve_with_keywords(
    description: str,
    model_override: ModelTier | None = None,
) -> tuple[str, ModelTier]:
    """Resolve skill and tier by keyword scoring only."""
    skill = SkillRouter.route(description)
    model = model_override or ModelSelector.select(description)
    return skill, model


async def resolve_skill_and_model(
    description: str,
    sender: MessageSender | None = None,
    model_override: ModelTier | None = None,
) -> tuple[str, ModelTier]:
    """Resolve skill and tier for a job.

    Tries LLM classification when a backend is given and falls back to
    keyword scoring if it fails. A model override replaces the chosen tier
    but never the skill.

    Args:
        description: Job description
        sender: Optional execution backend
        model_override: Tier forced by the caller

    Returns:
        (skill, model tier)
    """
    if sender is not None:
        try:
            skill, llm_model = await classify_with_llm(sender, description)
        except (LLMError, ClassificationError) as e:
            logger.warning("LLM classification failed, using keyword scoring: %s", e)
        else:
            return skill, model_override or llm_model

    return resolve_with_keywords(description, model_override)
