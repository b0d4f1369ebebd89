"""Error taxonomy for job orchestration.

Everything here is fatal for a ``run_job`` call. Retryable failures never
surface as exceptions; they travel as ``FailureKind`` values through the
state machine until retries run out.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schemas.job import FailureKind


class WolramError(Exception):
    """Base class for fatal orchestration errors."""


class JobValidationError(WolramError):
    """The job cannot start (e.g. empty description)."""


class InvariantViolation(WolramError):
    """The state machine produced a transition the caller cannot handle."""


class RetriesExhaustedError(WolramError):
    """The job failed more times than its retry budget allows."""

    def __init__(self, retry_count: int, kind: FailureKind) -> None:
        self.retry_count = retry_count
        self.kind = kind
        super().__init__(f"Job failed after {retry_count} retries: {kind}")


class ConfigError(WolramError):
    """Configuration file or value is invalid."""
