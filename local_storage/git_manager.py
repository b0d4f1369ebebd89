"""Git automation for job results.

Commits the working tree after a job completes so each job's changes can be
tracked and reverted with plain git.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schemas.job import Job

logger = logging.getLogger(__name__)

COMMIT_PREFIX = "wolram:"
BRANCH_PREFIX = "wolram/"
FALLBACK_NAME = "WOLRAM"
FALLBACK_EMAIL = "wolram@localhost"

# Never committed: local config and secrets
EXCLUDED_PATHSPECS = (
    ":(exclude)wolram.toml",
    ":(exclude)*/wolram.toml",
    ":(exclude).env",
    ":(exclude)*/.env",
    ":(exclude).env.local",
    ":(exclude)*/.env.local",
    ":(exclude)*.key",
)


class GitError(Exception):
    """Raised when a git operation fails."""

    pass


class GitManager:
    """Commit and branch helper around the git command line.

    Example:
        >>> gm = GitManager(Path("."))
        >>> sha = gm.commit_job_result(job)
        >>> gm.current_branch()
        'main'
    """

    def __init__(self, repo_dir: Path | str):
        """Open a repository.

        Args:
            repo_dir: Any directory inside the working tree.

        Raises:
            GitError: If the directory is not inside a git repository.
        """
        self.repo_dir = Path(repo_dir).resolve()
        if not self.repo_dir.is_dir():
            raise GitError(f"Not a directory: {self.repo_dir}")
        result = self._run_git("rev-parse", "--show-toplevel", check=False)
        if result.returncode != 0:
            raise GitError(f"Not a git repository: {self.repo_dir}")
        self.repo_dir = Path(result.stdout.strip())

    @classmethod
    def discover(cls, path: Path | str = ".") -> GitManager | None:
        """Open the repository containing ``path``, or None if there is none."""
        try:
            return cls(path)
        except GitError as e:
            logger.debug("No git repository: %s", e)
            return None

    def _run_git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Run a git command in the repository directory.

        Args:
            *args: Git command arguments (without 'git' prefix).
            check: Whether to raise on non-zero exit code.

        Raises:
            GitError: If git is missing, or the command fails and check=True.
        """
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=self.repo_dir,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError:
            raise GitError("Git is not installed or not in PATH")
        if check and result.returncode != 0:
            raise GitError(
                f"Git command failed: {' '.join(cmd)}\n"
                f"stderr: {result.stderr.strip()}"
            )
        return result

    def _identity_args(self) -> list[str]:
        """Fallback author identity when the repository has none configured."""
        name = self._run_git("config", "user.name", check=False).stdout.strip()
        email = self._run_git("config", "user.email", check=False).stdout.strip()
        args: list[str] = []
        if not name:
            args += ["-c", f"user.name={FALLBACK_NAME}"]
        if not email:
            args += ["-c", f"user.email={FALLBACK_EMAIL}"]
        return args

    def commit(self, message: str) -> str:
        """Stage the working tree and commit it.

        Local config and secret files are never staged.

        Returns:
            Short (7 character) SHA of the new commit.

        Raises:
            GitError: If there is nothing to commit.
        """
        self._run_git("add", "--all", "--", ".", *EXCLUDED_PATHSPECS)
        self._run_git(*self._identity_args(), "commit", "-m", message)
        return self._run_git("rev-parse", "--short=7", "HEAD").stdout.strip()

    def commit_job_result(self, job: Job) -> str:
        """Commit with a message describing the job's skill and status."""
        skill = job.agent.skill if job.agent else "unknown"
        return self.commit(f"{COMMIT_PREFIX} [{skill}] {job.description} ({job.status.value})")

    def create_branch(self, name: str) -> None:
        """Create a branch at HEAD and check it out."""
        self._run_git("checkout", "-b", name)

    def create_job_branch(self, job: Job) -> str:
        """Create and check out ``wolram/<first 8 chars of job id>``."""
        name = f"{BRANCH_PREFIX}{job.id[:8]}"
        self.create_branch(name)
        return name

    def current_branch(self) -> str:
        return self._run_git("symbolic-ref", "--short", "HEAD").stdout.strip()
