"""
Tests for git automation, against real repositories.
"""
import subprocess

import pytest

from conftest import requires_git
from local_storage import GitError, GitManager
from schemas.job import Job, JobStatus, ModelTier

pytestmark = requires_git


def git_output(repo, *args) -> str:
    return subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    ).stdout.strip()


class TestOpen:
    """Test repository discovery."""

    def test_not_a_repo(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(GitError, match="Not a git repository"):
            GitManager(plain)
        assert GitManager.discover(plain) is None

    def test_missing_directory(self, tmp_path):
        with pytest.raises(GitError, match="Not a directory"):
            GitManager(tmp_path / "missing")

    def test_subdirectory_resolves_to_root(self, git_repo):
        sub = git_repo / "src"
        sub.mkdir()
        assert GitManager(sub).repo_dir == git_repo.resolve()


class TestCommit:
    """Test commits."""

    def test_commit_returns_short_sha(self, git_repo):
        (git_repo / "app.py").write_text("print('hi')\n")
        sha = GitManager(git_repo).commit("add app")

        assert len(sha) == 7
        assert git_output(git_repo, "rev-parse", "--short=7", "HEAD") == sha
        assert git_output(git_repo, "log", "-1", "--format=%s") == "add app"
        assert "app.py" in git_output(git_repo, "ls-files")

    def test_secrets_and_config_are_not_staged(self, git_repo):
        (git_repo / ".env").write_text("ANTHROPIC_API_KEY=sk-secret\n")
        (git_repo / "wolram.toml").write_text('api_key = "sk-secret"\n')
        (git_repo / "deploy.key").write_text("secret\n")
        (git_repo / "main.py").write_text("x = 1\n")

        GitManager(git_repo).commit("work")

        tracked = git_output(git_repo, "ls-files").splitlines()
        assert "main.py" in tracked
        assert ".env" not in tracked
        assert "wolram.toml" not in tracked
        assert "deploy.key" not in tracked

    def test_commit_job_result_message(self, git_repo):
        (git_repo / "login.py").write_text("fixed = True\n")
        job = Job.new("Fix the login bug")
        job.assign_agent("bug_fix", ModelTier.HAIKU)
        job.status = JobStatus.COMPLETED

        GitManager(git_repo).commit_job_result(job)

        assert git_output(git_repo, "log", "-1", "--format=%s") == (
            "wolram: [bug_fix] Fix the login bug (completed)"
        )

    def test_commit_job_without_agent(self, git_repo):
        (git_repo / "notes.md").write_text("todo\n")
        GitManager(git_repo).commit_job_result(Job.new("Mystery task"))
        assert git_output(git_repo, "log", "-1", "--format=%s") == (
            "wolram: [unknown] Mystery task (pending)"
        )

    def test_clean_tree_is_not_committed(self, git_repo):
        head = git_output(git_repo, "rev-parse", "HEAD")
        with pytest.raises(GitError, match="Git command failed"):
            GitManager(git_repo).commit("nothing changed")
        assert git_output(git_repo, "rev-parse", "HEAD") == head


class TestBranches:
    """Test branch helpers."""

    def test_create_branch(self, git_repo):
        gm = GitManager(git_repo)
        gm.create_branch("feature/x")
        assert gm.current_branch() == "feature/x"

    def test_create_job_branch(self, git_repo):
        gm = GitManager(git_repo)
        job = Job.new("task")
        name = gm.create_job_branch(job)
        assert name == f"wolram/{job.id[:8]}"
        assert gm.current_branch() == name

    def test_duplicate_branch_fails(self, git_repo):
        gm = GitManager(git_repo)
        gm.create_branch("dup")
        with pytest.raises(GitError):
            gm.create_branch("dup")
