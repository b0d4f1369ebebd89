"""State machine implementation for the job lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from schemas.job import FailureKind, Job, JobOutcome, JobStatus, State

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Next:
    """Advance to the following state."""

    state: State


@dataclass(frozen=True)
class Retry:
    """Run the current state again after a failure."""

    state: State
    reason: FailureKind


@dataclass(frozen=True)
class Complete:
    """The job is finished, successfully or terminally failed."""

    outcome: JobOutcome


Transition = Union[Next, Retry, Complete]


class StateMachine:
    """Computes and applies lifecycle transitions.

    The class holds no state. ``decide`` is the pure State x Outcome table,
    ``apply`` performs the side effects on the job, and ``next`` does both.

    Decision table:
    - INIT, DEFINE_AGENT, PROCESS + success -> Next(following state)
    - any state + failure -> Retry(current state) while retries remain,
      else Complete(failure)
    - END + anything -> Complete(success)
    """

    @staticmethod
    def decide(
        state: State,
        outcome: JobOutcome,
        retry_count: int,
        max_retries: int,
    ) -> tuple[Transition, int]:
        """Compute the transition for ``state`` given ``outcome``.

        Args:
            state: Current lifecycle state
            outcome: Result of executing that state
            retry_count: Failures consumed so far
            max_retries: Retry budget of the job

        Returns:
            The transition and the retry count after it.
        """
        # END is terminal: the outcome passed in is ignored.
        if state == State.END:
            return Complete(JobOutcome.success()), retry_count

        if outcome.failure is not None:
            retry_count += 1
            if retry_count <= max_retries:
                return Retry(state=state, reason=outcome.failure), retry_count
            return Complete(outcome), retry_count

        following = state.following()
        assert following is not None
        return Next(following), retry_count

    @staticmethod
    def apply(job: Job, transition: Transition, retry_count: int) -> None:
        """Apply a transition computed by ``decide`` to the job.

        Args:
            job: Job to mutate
            transition: Transition to apply
            retry_count: Retry count returned alongside the transition
        """
        job.retry_count = retry_count

        if isinstance(transition, Next):
            job.state_history.append(job.state)
            job.state = transition.state
            if transition.state == State.END:
                job.status = JobStatus.COMPLETED
        elif isinstance(transition, Retry):
            # Each attempt is recorded, so retries repeat the state.
            job.state_history.append(transition.state)
        elif isinstance(transition, Complete):
            job.state_history.append(job.state)
            if transition.outcome.is_success:
                job.status = JobStatus.COMPLETED
            else:
                job.status = JobStatus.FAILED
        else:
            raise TypeError(f"Unknown transition: {transition!r}")

        job.touch()
        logger.debug(
            "Job %s: %s -> state=%s status=%s retries=%d/%d",
            job.id,
            transition,
            job.state,
            job.status.value,
            job.retry_count,
            job.retry_config.max_retries,
        )

    @classmethod
    def next(cls, job: Job, outcome: JobOutcome) -> Transition:
        """Decide and apply the next transition for ``job``.

        Args:
            job: Job to advance
            outcome: Result of executing the job's current state

        Returns:
            The applied transition.
        """
        transition, retry_count = cls.decide(
            job.state,
            outcome,
            job.retry_count,
            job.retry_config.max_retries,
        )
        cls.apply(job, transition, retry_count)
        return transition
