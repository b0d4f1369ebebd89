"""Terminal rendering for WOLRAM jobs."""

from cli.output import JobProgress, console, count_repo_lines, format_duration

__all__ = ["JobProgress", "console", "count_repo_lines", "format_duration"]
