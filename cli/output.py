"""Rich console output for WOLRAM jobs."""

import logging
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.status import Status
from rich.text import Text

from schemas.job import AuditRecord, JobOutcome, JobStatus, State

logger = logging.getLogger(__name__)

console = Console()

# Lifecycle states in order
LIFECYCLE_STAGES = [
    (State.INIT, "Init"),
    (State.DEFINE_AGENT, "Define agent"),
    (State.PROCESS, "Process"),
    (State.END, "End"),
]

# Directories never counted by count_repo_lines
SKIPPED_DIRS = {"venv", "env", "__pycache__", "node_modules", "build", "dist", "target"}

STATUS_STYLES = {
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "red",
}


def format_duration(duration_ms: int) -> str:
    """Format milliseconds as "850ms", "2.5s" or "2m 5s"."""
    duration_ms = max(0, duration_ms)
    if duration_ms < 1_000:
        return f"{duration_ms}ms"
    if duration_ms < 60_000:
        return f"{duration_ms / 1_000:.1f}s"
    return f"{duration_ms // 60_000}m {(duration_ms % 60_000) // 1_000}s"


def count_repo_lines(path: Path | str = ".") -> int:
    """Count lines in all .py files under ``path``.

    Hidden directories, virtualenvs and build/cache directories are skipped,
    and symlinks are never followed. Unreadable files and directories count
    as zero.
    """
    root = Path(path)
    if not root.is_dir():
        return 0

    total = 0
    try:
        for entry in root.iterdir():
            if entry.is_symlink():
                continue
            if entry.is_dir():
                if not entry.name.startswith(".") and entry.name not in SKIPPED_DIRS:
                    total += count_repo_lines(entry)
            elif entry.suffix == ".py":
                try:
                    with open(entry, encoding="utf-8", errors="replace") as f:
                        total += sum(1 for _ in f)
                except OSError as e:
                    logger.debug("Skipping %s: %s", entry, e)
    except OSError as e:
        logger.debug("Cannot list %s: %s", root, e)
    return total


class JobProgress:
    """Spinner and colored messages tracking one job in the terminal.

    Usable as a context manager; the spinner stops on exit.

    Example:
        with JobProgress(job.description) as progress:
            record = await orchestrator.run_job(job)
            progress.complete(JobOutcome.success())
        progress.print_audit(record)
    """

    def __init__(self, description: str, output_console: Optional[Console] = None):
        self.description = description
        self.console = output_console or console
        self.state: State = State.INIT
        self._status: Optional[Status] = None

    def _render_lifecycle(self) -> str:
        """Render the lifecycle stages as a single line."""
        parts = []
        current = [s for s, _ in LIFECYCLE_STAGES].index(self.state)
        for i, (_, name) in enumerate(LIFECYCLE_STAGES):
            if i < current:
                parts.append(f"[green]{name}[/green]")
            elif i == current:
                parts.append(f"[cyan bold]{name}[/cyan bold]")
            else:
                parts.append(f"[dim]{name}[/dim]")
        return " [dim]→[/dim] ".join(parts)

    def _message(self) -> str:
        return f"{self._render_lifecycle()}  [dim]{escape(self.description)}[/dim]"

    def start(self) -> "JobProgress":
        """Start the spinner."""
        if self._status is None:
            self._status = self.console.status(self._message(), spinner="dots")
            self._status.start()
        return self

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def __enter__(self) -> "JobProgress":
        return self.start()

    def __exit__(self, *args):
        self.stop()

    def update_state(self, state: State) -> None:
        """Move the spinner to a new lifecycle state."""
        self.state = state
        if self._status is not None:
            self._status.update(self._message())

    def retry(self, attempt: int, max_retries: int, reason: str) -> None:
        self.console.print(f"  [yellow]↻[/yellow] Retry {attempt}/{max_retries}: {escape(reason)}")

    def handle_update(self, job_id: str, message: dict[str, Any]) -> None:
        """Orchestrator update callback."""
        message_type = message.get("type")
        if message_type == "state":
            self.update_state(State(message["state"]))
        elif message_type == "retry":
            self.retry(message["attempt"], message["max_retries"], message["reason"])
        elif message_type == "agent":
            self.console.print(
                f"  [cyan]✦[/cyan] Agent: skill={message['skill']}, model={message['model']}"
            )

    def complete(self, outcome: JobOutcome) -> None:
        """Stop the spinner and show the final result."""
        self.stop()
        if outcome.is_success:
            self.console.print("  [bold green]✓[/bold green] Job completed successfully")
        else:
            self.console.print(f"  [bold red]✗[/bold red] Job failed: {outcome.failure}")

    def print_audit(self, record: AuditRecord) -> None:
        """Print the audit record as JSON under a status-colored header."""
        style = STATUS_STYLES.get(record.status, "yellow")
        self.console.print()
        self.console.print(Text("─── Audit Record ───", style=style))
        self.console.print_json(record.to_json())

    def print_footer(self, record: AuditRecord, repo_lines: int) -> None:
        """Print estimated cost, duration and repository size."""
        self.console.print()
        self.console.print("[cyan]─── Summary ─────────────────────────────────[/cyan]")
        self.console.print(f"  [bold]Cost :[/bold]  ${record.cost_usd:.4f}")
        self.console.print(f"  [bold]Time :[/bold]  {format_duration(record.duration_ms)}")
        self.console.print(f"  [bold]Repo :[/bold]  {repo_lines} lines")
        self.console.print("[cyan]─────────────────────────────────────────────[/cyan]")
