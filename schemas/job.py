"""Job lifecycle schema.

Data model for a single unit of work driven through the
INIT -> DEFINE_AGENT -> PROCESS -> END lifecycle.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class State(str, Enum):
    """Lifecycle states, in traversal order."""

    INIT = "INIT"
    DEFINE_AGENT = "DEFINE_AGENT"
    PROCESS = "PROCESS"
    END = "END"

    def __str__(self) -> str:
        return self.value

    def following(self) -> State | None:
        """Return the state after this one, or None for END."""
        order = list(State)
        idx = order.index(self)
        if idx + 1 < len(order):
            return order[idx + 1]
        return None


class JobStatus(str, Enum):
    """Overall job status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ModelTier(str, Enum):
    """Cost/capability tier of the Claude model assigned to a job."""

    HAIKU = "haiku"    # Fast, low-cost
    SONNET = "sonnet"  # Balanced
    OPUS = "opus"      # Most capable

    def __str__(self) -> str:
        return self.value

    @property
    def estimated_cost_usd(self) -> float:
        """Flat estimated cost of one job on this tier."""
        return _TIER_COST_USD[self]

    @property
    def api_model(self) -> str:
        """Anthropic API model identifier for this tier."""
        return _TIER_API_MODEL[self]

    @classmethod
    def parse(cls, value: str) -> ModelTier:
        """Parse a tier name case-insensitively.

        Raises:
            ValueError: If the name is not a known tier.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise ValueError(f"Unknown model tier: {value!r}. Valid: {valid}") from None


_TIER_COST_USD: dict[ModelTier, float] = {
    ModelTier.HAIKU: 0.001,
    ModelTier.SONNET: 0.005,
    ModelTier.OPUS: 0.05,
}

_TIER_API_MODEL: dict[ModelTier, str] = {
    ModelTier.HAIKU: "claude-haiku-4-5-20251001",
    ModelTier.SONNET: "claude-sonnet-4-5-20250929",
    ModelTier.OPUS: "claude-opus-4-6",
}


class FailureKind(BaseModel):
    """Why an attempt failed.

    ``business`` covers logic/validation failures (wrong output, failing
    tests); ``system`` covers infrastructure failures (rate limits, API
    errors, network). Both are retried the same way.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["business", "system"] = Field(..., description="Failure category")
    reason: str = Field(..., description="Human-readable failure reason")

    @classmethod
    def business(cls, reason: str) -> FailureKind:
        return cls(kind="business", reason=reason)

    @classmethod
    def system(cls, reason: str) -> FailureKind:
        return cls(kind="system", reason=reason)

    def __str__(self) -> str:
        return f"{self.kind.capitalize()} failure: {self.reason}"


class JobOutcome(BaseModel):
    """Result of executing one lifecycle stage: success or a failure."""

    model_config = ConfigDict(frozen=True)

    failure: FailureKind | None = Field(None, description="Set when the stage failed")

    @classmethod
    def success(cls) -> JobOutcome:
        return cls()

    @classmethod
    def failed(cls, kind: FailureKind) -> JobOutcome:
        return cls(failure=kind)

    @property
    def is_success(self) -> bool:
        return self.failure is None

    def __str__(self) -> str:
        return "Success" if self.failure is None else f"Failure({self.failure})"


class RetryConfig(BaseModel):
    """Retry limits and exponential backoff parameters."""

    max_retries: int = Field(3, ge=0, description="Retries allowed before terminal failure")
    base_delay_ms: int = Field(1000, ge=0, description="Base delay for exponential backoff")

    def delay_for_attempt(self, attempt: int) -> int:
        """Backoff delay in milliseconds for a retry attempt.

        ``base_delay_ms * 2 ** (attempt - 1)``, with attempt 0 treated as 1.
        """
        return self.base_delay_ms * 2 ** (max(attempt, 1) - 1)


class AgentConfig(BaseModel):
    """Execution strategy chosen for a job during DEFINE_AGENT."""

    skill: str = Field(..., description="Skill category, e.g. bug_fix")
    model: ModelTier = Field(..., description="Assigned model tier")


class Job(BaseModel):
    """A single unit of work and its lifecycle state.

    ``status``, ``state``, ``retry_count`` and ``state_history`` are owned by
    the StateMachine; nothing else should write them.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique job id")
    description: str = Field(..., description="Natural-language task description")

    status: JobStatus = Field(JobStatus.PENDING, description="Overall status")
    state: State = Field(State.INIT, description="Current lifecycle state")
    state_history: list[State] = Field(
        default_factory=list,
        description="Previously visited states, one entry per attempt",
    )

    retry_count: int = Field(0, ge=0, description="Failures consumed so far")
    retry_config: RetryConfig = Field(default_factory=RetryConfig)
    agent: AgentConfig | None = Field(None, description="Assigned skill and model")

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def new(cls, description: str, retry_config: RetryConfig | None = None) -> Job:
        """Create a pending job at INIT."""
        now = utcnow()
        return cls(
            description=description,
            retry_config=retry_config or RetryConfig(),
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def load_for_resume(cls, data: dict[str, Any]) -> Job:
        """Build a job from an external record, discarding its lifecycle.

        The record's id, description, retry config, agent and timestamps are
        kept; state, status, retry count and history are always reset so a
        file cannot skip stages or bypass retry limits.
        """
        return cls.model_validate(data).sanitized()

    def sanitized(self) -> Job:
        """Reset lifecycle fields to a fresh INIT/pending state."""
        self.state = State.INIT
        self.status = JobStatus.PENDING
        self.retry_count = 0
        self.state_history = []
        return self

    def assign_agent(self, skill: str, model: ModelTier) -> None:
        """Record the skill and model tier chosen for this job."""
        self.agent = AgentConfig(skill=skill, model=model)
        self.touch()

    def estimated_cost_usd(self) -> float:
        """Estimated cost from the assigned tier, 0.0 if none assigned."""
        if self.agent is None:
            return 0.0
        return self.agent.model.estimated_cost_usd

    def touch(self) -> None:
        self.updated_at = utcnow()


class AuditRecord(BaseModel):
    """Immutable snapshot of a job taken when it reaches END."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    description: str
    status: JobStatus
    state_transitions: list[State]
    agent: AgentConfig | None = None
    retry_count: int
    max_retries: int
    cost_usd: float
    started_at: datetime
    completed_at: datetime
    duration_ms: int

    @classmethod
    def from_job(cls, job: Job) -> AuditRecord:
        now = utcnow()
        # Clock skew can put created_at in the future.
        duration_ms = max(0, int((now - job.created_at).total_seconds() * 1000))
        return cls(
            job_id=job.id,
            description=job.description,
            status=job.status,
            state_transitions=[*job.state_history, job.state],
            agent=job.agent.model_copy() if job.agent else None,
            retry_count=job.retry_count,
            max_retries=job.retry_config.max_retries,
            cost_usd=job.estimated_cost_usd(),
            started_at=job.created_at,
            completed_at=now,
            duration_ms=duration_ms,
        )

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.model_dump(mode="json"), indent=indent)


def load_job_file(path: Path | str) -> Job:
    """Load a job from a JSON file for resumption.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not a valid job record.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return Job.load_for_resume(data)
