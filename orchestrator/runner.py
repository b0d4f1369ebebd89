"""Job runner driving a job through the lifecycle state machine."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from llm_backend.errors import LLMError, RateLimitedError
from llm_backend.types import MessagesRequest
from routing import resolve_skill_and_model
from schemas.job import AuditRecord, FailureKind, Job, JobOutcome, JobStatus, ModelTier

from .errors import InvariantViolation, JobValidationError, RetriesExhaustedError
from .state_machine import Complete, Next, Retry, StateMachine

if TYPE_CHECKING:
    from llm_backend.base import MessageSender
    from local_storage.git_manager import GitManager

logger = logging.getLogger(__name__)

EXECUTION_MAX_TOKENS = 4096

EXECUTION_PROMPT = (
    "You are an AI coding assistant. Please perform the following task:\n\n{description}"
)

# Callback receives (job_id, message)
UpdateCallback = Callable[[str, dict[str, Any]], None]
Sleeper = Callable[[float], Awaitable[Any]]


class JobOrchestrator:
    """Drives a job through INIT -> DEFINE_AGENT -> PROCESS -> END.

    - INIT validates the description (failures here are fatal)
    - DEFINE_AGENT picks skill and model tier
    - PROCESS executes the task, retrying with exponential backoff
    - END produces the audit record

    Without a backend the orchestrator runs in stub mode: every PROCESS
    attempt succeeds without calling anything.

    Example:
        orchestrator = JobOrchestrator(sender=client)
        record = await orchestrator.run_job(Job.new("Fix the login bug"))
    """

    def __init__(
        self,
        sender: MessageSender | None = None,
        model_override: ModelTier | None = None,
        git: GitManager | None = None,
        update_callback: UpdateCallback | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialize orchestrator.

        Args:
            sender: Execution backend (None = stub mode)
            model_override: Tier that replaces any classified tier
            git: Commit the working tree after each completed job (not in stub mode)
            update_callback: Progress callback (job_id, message)
            sleep: Awaitable used for backoff delays, in seconds
        """
        self.sender = sender
        self.model_override = model_override
        self.git = git
        self.update_callback = update_callback
        self._sleep = sleep
        self.last_commit: str | None = None

    @property
    def stub_mode(self) -> bool:
        return self.sender is None

    def _send_update(self, job: Job, message_type: str, **kwargs: Any) -> None:
        """Send a progress update if a callback is configured."""
        if self.update_callback is None:
            return
        message = {"type": message_type, "job_id": job.id, **kwargs}
        try:
            self.update_callback(job.id, message)
        except Exception:
            # Rendering problems must not change the job outcome
            logger.debug("Update callback failed for %s", message_type, exc_info=True)

    async def run_job(self, job: Job) -> AuditRecord:
        """Run a job through every phase and return its audit record.

        Args:
            job: Job at INIT (fresh or sanitized for resume)

        Returns:
            AuditRecord snapshot taken at END.

        Raises:
            JobValidationError: If the description is empty
            InvariantViolation: If the state machine returns an unexpected transition
            RetriesExhaustedError: If PROCESS keeps failing past max_retries
        """
        logger.info("Starting job %s: %s", job.id, job.description)

        # INIT
        job.status = JobStatus.IN_PROGRESS
        if not job.description.strip():
            raise JobValidationError("Job description must not be empty")
        self._advance(job)

        # DEFINE_AGENT
        skill, model = await resolve_skill_and_model(
            job.description,
            sender=self.sender,
            model_override=self.model_override,
        )
        job.assign_agent(skill, model)
        logger.info("Job %s assigned skill=%s model=%s", job.id, skill, model.value)
        self._send_update(job, "agent", skill=skill, model=model.value)
        self._advance(job)

        # PROCESS
        await self._process(job)

        # END
        record = AuditRecord.from_job(job)
        logger.info(
            "Job %s completed: retries=%d, cost=$%.4f, duration=%dms",
            job.id,
            record.retry_count,
            record.cost_usd,
            record.duration_ms,
        )

        # Stub runs change nothing, so there is nothing to commit
        if self.git is not None and not self.stub_mode:
            await self._commit(job)

        return record

    def _advance(self, job: Job) -> None:
        """Feed a success outcome and require a Next transition."""
        from_state = job.state
        transition = StateMachine.next(job, JobOutcome.success())
        if not isinstance(transition, Next):
            raise InvariantViolation(f"Unexpected transition from {from_state}: {transition!r}")
        self._send_update(job, "state", state=str(job.state))

    async def _process(self, job: Job) -> None:
        """PROCESS phase: execute until success or retries run out."""
        while True:
            outcome = await self.execute_process(job)
            transition = StateMachine.next(job, outcome)

            if isinstance(transition, Next):
                self._send_update(job, "state", state=str(job.state))
                return
            if isinstance(transition, Retry):
                delay_ms = job.retry_config.delay_for_attempt(job.retry_count)
                logger.warning(
                    "Retry %d/%d for job %s: %s (waiting %dms)",
                    job.retry_count,
                    job.retry_config.max_retries,
                    job.id,
                    transition.reason,
                    delay_ms,
                )
                self._send_update(
                    job,
                    "retry",
                    attempt=job.retry_count,
                    max_retries=job.retry_config.max_retries,
                    reason=str(transition.reason),
                    delay_ms=delay_ms,
                )
                await self._sleep(delay_ms / 1000)
                continue
            if isinstance(transition, Complete):
                failure = transition.outcome.failure
                if failure is not None:
                    logger.error("Job %s failed after %d retries: %s", job.id, job.retry_count, failure)
                    raise RetriesExhaustedError(job.retry_count, failure)
                # Only reachable if the job was already at END
                return
            raise InvariantViolation(f"Unexpected transition in PROCESS: {transition!r}")

    async def execute_process(self, job: Job) -> JobOutcome:
        """Execute one PROCESS attempt and map the result to an outcome."""
        if self.sender is None:
            return JobOutcome.success()

        if job.agent is None:
            return JobOutcome.failed(FailureKind.system("No agent assigned"))

        request = MessagesRequest.user(
            model=job.agent.model.api_model,
            content=EXECUTION_PROMPT.format(description=job.description),
            max_tokens=EXECUTION_MAX_TOKENS,
        )
        try:
            await self.sender.send_message(request)
        except RateLimitedError:
            return JobOutcome.failed(FailureKind.system("Rate limited"))
        except LLMError as e:
            return JobOutcome.failed(FailureKind.system(str(e)))
        return JobOutcome.success()

    async def _commit(self, job: Job) -> None:
        """Commit the job result; git problems never fail the job."""
        from local_storage.git_manager import GitError

        try:
            self.last_commit = await asyncio.to_thread(self.git.commit_job_result, job)
        except GitError as e:
            logger.warning("Auto-commit failed for job %s: %s", job.id, e)
        else:
            logger.info("Committed job %s as %s", job.id, self.last_commit)
