"""Skill and model routing.

Maps a job description to a skill category and a Claude model tier,
by keyword scoring or by asking a cheap model.
"""

from .router import (
    DEFAULT_SKILL,
    VALID_SKILLS,
    ModelSelector,
    SkillRouter,
    classify_with_llm,
    parse_classification,
    resolve_skill_and_model,
    resolve_with_keywords,
)

__all__ = [
    "DEFAULT_SKILL",
    "VALID_SKILLS",
    "ModelSelector",
    "SkillRouter",
    "classify_with_llm",
    "parse_classification",
    "resolve_skill_and_model",
    "resolve_with_keywords",
]
