"""Orchestrator module for WOLRAM.

State machine-based job orchestration with:
- Fixed INIT -> DEFINE_AGENT -> PROCESS -> END lifecycle
- Retry with exponential backoff
- Audit record on completion
"""

from .errors import (
    ConfigError,
    InvariantViolation,
    JobValidationError,
    RetriesExhaustedError,
    WolramError,
)
from .runner import JobOrchestrator
from .state_machine import Complete, Next, Retry, StateMachine, Transition

__all__ = [
    "Complete",
    "ConfigError",
    "InvariantViolation",
    "JobOrchestrator",
    "JobValidationError",
    "Next",
    "Retry",
    "RetriesExhaustedError",
    "StateMachine",
    "Transition",
    "WolramError",
]
