"""Schemas module for WOLRAM.

Provides Pydantic models for:
- Jobs, their lifecycle state and retry settings
- Outcomes and failure kinds
- Audit records
- TODO items
"""

from .job import (
    AgentConfig,
    AuditRecord,
    FailureKind,
    Job,
    JobOutcome,
    JobStatus,
    ModelTier,
    RetryConfig,
    State,
    load_job_file,
)
from .todo import Priority, TodoItem

__all__ = [
    "AgentConfig",
    "AuditRecord",
    "FailureKind",
    "Job",
    "JobOutcome",
    "JobStatus",
    "ModelTier",
    "Priority",
    "RetryConfig",
    "State",
    "TodoItem",
    "load_job_file",
]
