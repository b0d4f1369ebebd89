"""CLI entrypoint for WOLRAM."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from agents import TodoGenerator
from cli.output import JobProgress, count_repo_lines
from llm_backend import get_backend
from local_storage import GitError, GitManager
from orchestrator import (
    Complete,
    JobOrchestrator,
    Next,
    Retry,
    RetriesExhaustedError,
    StateMachine,
    WolramError,
)
from pipeline import __version__
from pipeline.config import CONFIG_FILENAME, WolramConfig, reload_config
from routing import ModelSelector, SkillRouter
from schemas.job import AuditRecord, Job, JobOutcome, ModelTier, RetryConfig, load_job_file
from schemas.todo import Priority

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="wolram",
    help="Job orchestration for AI-assisted development.",
    add_completion=False,
)
console = Console()

PRIORITY_STYLES = {
    Priority.HIGH: "red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "green",
}

DEMO_DESCRIPTION = "Example: implement hero section layout"


class Settings:
    """Effective settings for one invocation: CLI flags over config."""

    def __init__(
        self,
        config: WolramConfig,
        model: Optional[ModelTier] = None,
        max_retries: Optional[int] = None,
        verbose: bool = False,
    ):
        self.config = config
        self.model = model
        self.max_retries = config.max_retries if max_retries is None else max_retries
        self.verbose = verbose

    def retry_config(self) -> RetryConfig:
        return RetryConfig(max_retries=self.max_retries, base_delay_ms=self.config.base_delay_ms)


def setup_logging(level: str) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    model: Optional[ModelTier] = typer.Option(
        None,
        "--model",
        "-m",
        case_sensitive=False,
        help="Model tier for this session (overrides classification)",
    ),
    max_retries: Optional[int] = typer.Option(
        None,
        "--max-retries",
        min=0,
        help="Maximum retries before a job is marked failed",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
) -> None:
    """WOLRAM - drive coding jobs through INIT, DEFINE_AGENT, PROCESS and END."""
    try:
        config = reload_config()
    except WolramError as e:
        rprint(f"[red]Configuration error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    setup_logging("DEBUG" if verbose else config.log_level)
    ctx.obj = Settings(config, model=model, max_retries=max_retries, verbose=verbose)


async def _run_job(orchestrator: JobOrchestrator, job: Job) -> AuditRecord:
    try:
        return await orchestrator.run_job(job)
    finally:
        close = getattr(orchestrator.sender, "close", None)
        if close is not None:
            await close()


@app.command()
def run(
    ctx: typer.Context,
    description: Optional[str] = typer.Argument(
        None,
        help="What to build, fix or refactor",
    ),
    file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        help="Resume a job from a JSON file (state is reset to INIT)",
    ),
) -> None:
    """Run a job through the full lifecycle.

    Examples:
        wolram run "Fix the login bug"
        wolram --model opus run "Design a distributed cache"
        wolram run --file job.json
    """
    settings: Settings = ctx.obj
    config = settings.config

    if file is not None:
        try:
            job = load_job_file(file)
        except (OSError, ValueError) as e:
            rprint(f"[red]Failed to load job from {file}: {escape(str(e))}[/red]")
            raise typer.Exit(1)
    elif description:
        job = Job.new(description, settings.retry_config())
    else:
        rprint("[red]Provide a job description or --file[/red]")
        raise typer.Exit(1)

    sender = get_backend(config.api_key)
    git = GitManager.discover(Path.cwd()) if config.auto_commit else None

    rprint(f"[bold blue]WOLRAM v{__version__}[/bold blue]")
    if sender is None:
        rprint("[dim]No API key configured, running in stub mode[/dim]")
    rprint()

    logger.debug(
        "Starting job %s (model override: %s, max retries: %d)",
        job.id,
        settings.model,
        job.retry_config.max_retries,
    )

    progress = JobProgress(job.description)
    orchestrator = JobOrchestrator(
        sender=sender,
        model_override=settings.model,
        git=git,
        update_callback=progress.handle_update,
    )

    try:
        with progress:
            record = asyncio.run(_run_job(orchestrator, job))
    except RetriesExhaustedError as e:
        progress.complete(JobOutcome.failed(e.kind))
        rprint(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    except WolramError as e:
        rprint(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        rprint("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)

    progress.complete(JobOutcome.success())
    progress.print_audit(record)
    progress.print_footer(record, count_repo_lines(Path.cwd()))
    if orchestrator.last_commit:
        rprint(f"[dim]Committed as {orchestrator.last_commit}[/dim]")


@app.command()
def status(ctx: typer.Context) -> None:
    """Show configuration, API key and git status."""
    settings: Settings = ctx.obj
    config = settings.config
    config_found = (Path.cwd() / CONFIG_FILENAME).exists()

    rprint("[bold blue]WOLRAM - Status[/bold blue]")
    rprint()
    rprint("[bold]Configuration:[/bold]")
    rprint(f"  [dim]Default model tier:[/dim] {config.default_model_tier}")
    rprint(f"  [dim]Max retries:[/dim]        {settings.max_retries}")
    rprint(f"  [dim]Base delay:[/dim]         {config.base_delay_ms} ms")
    rprint(
        f"  [dim]Config file:[/dim]        "
        f"{CONFIG_FILENAME + ' (loaded)' if config_found else 'not found (using defaults)'}"
    )
    rprint()

    rprint("[bold]Anthropic API:[/bold]")
    if config.has_api_key:
        rprint("  [dim]API key:[/dim] [green]configured[/green]")
    else:
        rprint("  [dim]API key:[/dim] [yellow]not configured (jobs will run in stub mode)[/yellow]")
    rprint()

    rprint("[bold]Git:[/bold]")
    git = GitManager.discover(Path.cwd())
    if git is None:
        rprint("  [dim]Repository:[/dim] not detected")
    else:
        try:
            branch = git.current_branch()
        except GitError as e:
            logger.debug("Could not read current branch: %s", e)
            branch = "unknown"
        rprint("  [dim]Repository:[/dim] detected")
        rprint(f"  [dim]Branch:[/dim]     {branch}")
        rprint(f"  [dim]Auto-commit:[/dim] {'on' if config.auto_commit else 'off'}")


@app.command()
def demo() -> None:
    """Walk a sample job through every state using the state machine only."""
    job = Job.new(DEMO_DESCRIPTION)

    rprint("[bold blue]WOLRAM - Job State Machine Demo[/bold blue]")
    rprint(f"Job: {job.description} [dim]({job.id})[/dim]")
    rprint(f"State: {job.state}")
    rprint()

    # INIT -> DEFINE_AGENT
    StateMachine.next(job, JobOutcome.success())
    rprint(f"  [cyan]→[/cyan] Transitioned to {job.state}")

    job.assign_agent("code_generation", ModelTier.SONNET)
    rprint(
        f"  [cyan]✦[/cyan] Assigned agent: skill={job.agent.skill}, "
        f"model={job.agent.model}, est. cost=${job.estimated_cost_usd():.3f}"
    )

    for outcome in (JobOutcome.success(), JobOutcome.success()):
        transition = StateMachine.next(job, outcome)
        if isinstance(transition, Next):
            rprint(f"  [cyan]→[/cyan] Transitioned to {transition.state}")
        elif isinstance(transition, Retry):
            rprint(
                f"  [yellow]↻[/yellow] Retrying {transition.state} "
                f"(attempt {job.retry_count}/{job.retry_config.max_retries}): {transition.reason}"
            )
        elif isinstance(transition, Complete):
            rprint(f"  [green]■[/green] Completed: {transition.outcome}")

    record = AuditRecord.from_job(job)
    rprint()
    rprint("[bold]Audit Record:[/bold]")
    console.print_json(record.to_json())


@app.command()
def todo(
    ctx: typer.Context,
    prompt: str = typer.Argument(..., help="What needs to be done"),
) -> None:
    """Break a prompt into a prioritized TODO list.

    Uses a model when an API key is configured, keyword heuristics otherwise.

    Examples:
        wolram todo "implement auth and add tests"
        wolram todo "add caching, then update the docs"
    """
    settings: Settings = ctx.obj

    async def _generate():
        sender = get_backend(settings.config.api_key)
        try:
            return await TodoGenerator.generate(prompt, sender)
        finally:
            close = getattr(sender, "close", None)
            if close is not None:
                await close()

    items = asyncio.run(_generate())

    table = Table(title="TODO")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Priority")
    table.add_column("Task")
    table.add_column("Skill", style="cyan")
    for item in items:
        style = PRIORITY_STYLES[item.priority]
        table.add_row(
            str(item.id),
            f"[{style}]{item.priority}[/{style}]",
            escape(item.title),
            item.skill or "-",
        )
    console.print(table)


@app.command()
def explain(
    description: str = typer.Argument(..., help="Job description to classify"),
) -> None:
    """Show how keyword routing would classify a description.

    Examples:
        wolram explain "Fix the login bug"
    """
    scores = SkillRouter.scores(description)

    table = Table(title="Skill Scores")
    table.add_column("Skill", style="cyan")
    table.add_column("Score", justify="right")
    for skill, score in sorted(scores.items(), key=lambda item: -item[1]):
        table.add_row(skill, str(score))
    if scores:
        console.print(table)
    else:
        rprint("[dim]No skill keywords matched[/dim]")
    rprint(f"[bold]Skill:[/bold] {SkillRouter.route(description)}")
    rprint()

    explanation = ModelSelector.explain(description)
    rprint(
        f"[bold]Tier scores:[/bold] simple={explanation['simple_score']}, "
        f"complex={explanation['complex_score']}"
    )
    for reason in explanation["reasons"]:
        rprint(f"  • {escape(reason)}")
    rprint()
    rprint(f"[bold green]Final: {explanation['tier']}[/bold green]")


@app.command()
def version() -> None:
    """Show version information."""
    rprint(f"[bold blue]WOLRAM[/bold blue] v{__version__}")


if __name__ == "__main__":
    app()
