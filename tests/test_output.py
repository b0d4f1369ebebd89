"""
Tests for terminal rendering helpers.
"""
import io
from pathlib import Path

import pytest
from rich.console import Console

from cli.output import JobProgress, count_repo_lines, format_duration
from orchestrator.state_machine import StateMachine
from schemas.job import AuditRecord, FailureKind, Job, JobOutcome, ModelTier, State


@pytest.mark.parametrize(
    "ms,expected",
    [
        (0, "0ms"),
        (999, "999ms"),
        (1_000, "1.0s"),
        (2_500, "2.5s"),
        (59_999, "60.0s"),
        (60_000, "1m 0s"),
        (125_000, "2m 5s"),
        (-50, "0ms"),
    ],
)
def test_format_duration(ms, expected):
    assert format_duration(ms) == expected


class TestCountRepoLines:
    """Test source line counting."""

    def test_counts_python_files_recursively(self, tmp_path):
        (tmp_path / "a.py").write_text("one\ntwo\n")
        (tmp_path / "pkg").mkdir()
        (tmp_path / "pkg" / "b.py").write_text("x\n")
        (tmp_path / "notes.txt").write_text("ignored\nignored\n")
        assert count_repo_lines(tmp_path) == 3

    def test_skips_hidden_and_virtualenv_dirs(self, tmp_path):
        (tmp_path / "main.py").write_text("x\n")
        for skipped in (".git", ".venv", "venv", "__pycache__"):
            (tmp_path / skipped).mkdir()
            (tmp_path / skipped / "junk.py").write_text("a\nb\nc\n")
        assert count_repo_lines(tmp_path) == 1

    def test_missing_directory(self, tmp_path):
        assert count_repo_lines(tmp_path / "missing") == 0

    def test_symlinks_are_not_followed(self, tmp_path):
        (tmp_path / "main.py").write_text("x\n")
        (tmp_path / "loop").symlink_to(tmp_path, target_is_directory=True)
        (tmp_path / "alias.py").symlink_to(tmp_path / "main.py")
        assert count_repo_lines(tmp_path) == 1

    def test_unreadable_directory_counts_as_zero(self, tmp_path, monkeypatch):
        (tmp_path / "main.py").write_text("x\ny\n")
        locked = tmp_path / "locked"
        locked.mkdir()
        (locked / "secret.py").write_text("a\nb\nc\n")

        real_iterdir = Path.iterdir

        def iterdir(self):
            if self == locked:
                raise PermissionError(13, "Permission denied", str(self))
            return real_iterdir(self)

        monkeypatch.setattr(Path, "iterdir", iterdir)
        assert count_repo_lines(tmp_path) == 2


class TestJobProgress:
    """Test progress rendering to a captured console."""

    def _progress(self) -> tuple[JobProgress, io.StringIO]:
        buffer = io.StringIO()
        console = Console(file=buffer, width=120, force_terminal=False)
        return JobProgress("Fix the login bug", output_console=console), buffer

    def _record(self) -> AuditRecord:
        job = Job.new("Fix the login bug")
        job.assign_agent("bug_fix", ModelTier.HAIKU)
        for _ in range(3):
            StateMachine.next(job, JobOutcome.success())
        return AuditRecord.from_job(job)

    def test_lifecycle_and_complete(self):
        progress, buffer = self._progress()
        with progress:
            progress.handle_update("id", {"type": "state", "state": "PROCESS"})
            assert progress.state == State.PROCESS
            progress.handle_update("id", {"type": "retry", "attempt": 1, "max_retries": 3, "reason": "x"})
            progress.complete(JobOutcome.success())

        output = buffer.getvalue()
        assert "Retry 1/3: x" in output
        assert "Job completed successfully" in output

    def test_failure(self):
        progress, buffer = self._progress()
        progress.complete(JobOutcome.failed(FailureKind.system("Rate limited")))
        assert "Job failed: System failure: Rate limited" in buffer.getvalue()

    def test_audit_and_footer(self):
        progress, buffer = self._progress()
        record = self._record()
        progress.print_audit(record)
        progress.print_footer(record, 1234)

        output = buffer.getvalue()
        assert "Audit Record" in output
        assert '"skill": "bug_fix"' in output
        assert "$0.0010" in output
        assert "1234 lines" in output
