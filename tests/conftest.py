"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from cw.config import Settings
from cw.orchestrator.collaborators import AgentCli, Collaborators
from cw.orchestrator.collaborators.memory import (
    InMemoryRepository,
    InMemorySessions,
    StaticIssueTracker,
)
from cw.orchestrator.models import IssueMetadata
from cw.orchestrator.services import OrchestratorService

_CW_ENV_KEYS = (
    "CW_CONFIG_FILE",
    "CW_HOME",
    "CW_WORKTREE_DIR",
    "CW_TMUX_PREFIX",
    "CW_SESSION_DIR",
    "CW_DEFAULT_MODEL",
    "CW_PLAN_MODEL",
    "CW_EXEC_MODEL",
    "CW_PLAN_LABELS",
    "CW_SKIP_PERMISSIONS",
    "CW_AGENT_COMMAND",
    "CW_REMOTE",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    """Keep the developer's rc file and CW_* variables out of every test."""
    for key in _CW_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(home=tmp_path / "cw", session_dir=tmp_path / "cw" / "sessions")


@pytest.fixture()
def repo(tmp_path: Path) -> InMemoryRepository:
    root = tmp_path / "repo"
    root.mkdir()
    return InMemoryRepository(root=root)


@pytest.fixture()
def sessions() -> InMemorySessions:
    return InMemorySessions()


@pytest.fixture()
def issues() -> StaticIssueTracker:
    return StaticIssueTracker(
        issues={
            423: IssueMetadata(labels=("bug",), title="Login Redirect Broken!!"),
            587: IssueMetadata(labels=("feature", "epic"), title="Add OAuth support"),
        },
    )


@pytest.fixture()
def collaborators(repo, sessions, issues) -> Collaborators:
    return Collaborators(vcs=repo, sessions=sessions, issues=issues, agent=AgentCli())


@pytest.fixture()
def service(settings, collaborators) -> OrchestratorService:
    return OrchestratorService(settings=settings, collaborators=collaborators)
