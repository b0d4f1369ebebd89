"""
Shared test fixtures and mocks for WOLRAM tests.

This module provides:
- Mock Messages API responses
- A mock execution backend (AsyncMock with send_message)
- Environment isolation for config and CLI tests
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from llm_backend.types import ContentBlock, MessagesResponse, Usage

ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "WOLRAM_MAX_RETRIES",
    "WOLRAM_BASE_DELAY_MS",
    "WOLRAM_MODEL",
    "WOLRAM_LOG_LEVEL",
)


# =============================================================================
# Mock Response Factories
# =============================================================================


def make_response(text: str = "Done.", model: str = "mock") -> MessagesResponse:
    """Create a mock MessagesResponse with a single text block."""
    return MessagesResponse(
        id="msg_mock",
        content=[ContentBlock(type="text", text=text)],
        model=model,
        stop_reason="end_turn",
        usage=Usage(input_tokens=10, output_tokens=20),
    )


def make_sender(*results) -> AsyncMock:
    """Create a mock backend returning (or raising) ``results`` in order.

    Strings become text responses; exceptions are raised.
    """
    sender = AsyncMock()
    sender.send_message = AsyncMock(
        side_effect=[make_response(r) if isinstance(r, str) else r for r in results]
    )
    return sender


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_sleep() -> AsyncMock:
    """Replacement for asyncio.sleep that records delays without waiting."""
    return AsyncMock(return_value=None)


@pytest.fixture
def clean_env(monkeypatch, tmp_path) -> Path:
    """Run in an empty directory with no WOLRAM/Anthropic environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@pytest.fixture
def git_repo(tmp_path) -> Path:
    """An initialized git repository with one commit."""
    repo = tmp_path / "repo"
    repo.mkdir()

    def git(*args):
        subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True, text=True)

    git("init", "-q")
    git("config", "user.name", "Test User")
    git("config", "user.email", "test@example.com")
    git("config", "commit.gpgsign", "false")
    (repo / "README.md").write_text("# test\n")
    git("add", "README.md")
    git("commit", "-q", "-m", "initial")
    return repo
