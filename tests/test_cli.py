"""
Tests for the command line interface.
"""
import json
import subprocess

import pytest
from typer.testing import CliRunner

from conftest import requires_git
from pipeline import __version__
from pipeline.cli import app
from schemas.job import Job

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated(clean_env):
    """Every CLI test runs in an empty directory without API keys."""
    return clean_env


class TestVersionAndStatus:
    """Test informational commands."""

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_status_without_config(self):
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "not found (using defaults)" in result.output
        assert "not configured" in result.output
        assert "Repository: not detected" in result.output

    def test_status_max_retries_flag(self):
        result = runner.invoke(app, ["--max-retries", "7", "status"])
        assert result.exit_code == 0
        assert "7" in result.output

    def test_bad_config_exits(self, clean_env):
        (clean_env / "wolram.toml").write_text('max_retries = "many"\n')
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output


class TestDemo:
    """Test the state machine demo."""

    def test_demo_walks_every_state(self):
        result = runner.invoke(app, ["demo"])
        assert result.exit_code == 0
        assert "Transitioned to DEFINE_AGENT" in result.output
        assert "Transitioned to PROCESS" in result.output
        assert "Transitioned to END" in result.output
        assert "skill=code_generation" in result.output
        assert '"status": "completed"' in result.output


class TestRun:
    """Test running jobs in stub mode."""

    def test_run_description(self):
        result = runner.invoke(app, ["run", "Fix the login bug"])
        assert result.exit_code == 0, result.output
        assert "stub mode" in result.output
        assert "Job completed successfully" in result.output
        assert '"skill": "bug_fix"' in result.output
        assert "Summary" in result.output

    def test_run_with_model_override(self):
        result = runner.invoke(app, ["--model", "opus", "run", "Fix the login bug"])
        assert result.exit_code == 0, result.output
        assert '"model": "opus"' in result.output

    def test_run_requires_input(self):
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 1
        assert "Provide a job description" in result.output

    def test_run_empty_description_fails(self):
        result = runner.invoke(app, ["run", "   "])
        assert result.exit_code == 1

    def test_run_from_file_is_sanitized(self, clean_env):
        job = Job.new("Write tests for the parser")
        data = job.model_dump(mode="json")
        data.update(state="END", status="failed", retry_count=9)
        path = clean_env / "job.json"
        path.write_text(json.dumps(data))

        result = runner.invoke(app, ["run", "--file", str(path)])

        assert result.exit_code == 0, result.output
        assert job.id in result.output
        assert '"retry_count": 0' in result.output

    def test_run_from_bad_file(self, clean_env):
        path = clean_env / "job.json"
        path.write_text("{not json")
        result = runner.invoke(app, ["run", "--file", str(path)])
        assert result.exit_code == 1
        assert "Failed to load job" in result.output


def head_sha(repo) -> str:
    return subprocess.run(
        ["git", "rev-parse", "HEAD"], cwd=repo, check=True, capture_output=True, text=True
    ).stdout.strip()


@requires_git
class TestRunInGitRepo:
    """Test that runs leave the user's repository alone unless asked."""

    def test_default_config_does_not_commit(self, git_repo, monkeypatch):
        monkeypatch.chdir(git_repo)
        (git_repo / "wip.txt").write_text("unfinished\n")
        head = head_sha(git_repo)

        result = runner.invoke(app, ["run", "Fix the login bug"])

        assert result.exit_code == 0, result.output
        assert head_sha(git_repo) == head
        assert "Committed as" not in result.output

    def test_stub_mode_does_not_commit_when_enabled(self, git_repo, monkeypatch):
        monkeypatch.chdir(git_repo)
        (git_repo / "wolram.toml").write_text("auto_commit = true\n")
        (git_repo / "wip.txt").write_text("unfinished\n")
        head = head_sha(git_repo)

        result = runner.invoke(app, ["run", "Fix the login bug"])

        assert result.exit_code == 0, result.output
        assert "stub mode" in result.output
        assert head_sha(git_repo) == head


class TestExplain:
    """Test keyword routing explanations."""

    def test_explain_bug_fix(self):
        result = runner.invoke(app, ["explain", "Fix the login bug"])
        assert result.exit_code == 0, result.output
        assert "bug_fix" in result.output
        assert "Skill: bug_fix" in result.output
        assert "Final: haiku" in result.output

    def test_explain_without_keywords(self):
        result = runner.invoke(app, ["explain", "hello there"])
        assert result.exit_code == 0, result.output
        assert "No skill keywords matched" in result.output
        assert "Skill: code_generation" in result.output


class TestTodo:
    """Test TODO generation without an API key."""

    def test_todo_table(self):
        result = runner.invoke(app, ["todo", "implement auth and add tests"])
        assert result.exit_code == 0, result.output
        assert "Implement auth" in result.output
        assert "Add tests" in result.output
        assert "testing" in result.output
