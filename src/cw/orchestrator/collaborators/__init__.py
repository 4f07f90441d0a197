"""External collaborators: git, tmux, gh and the agent CLI."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from cw.config import Settings
from cw.orchestrator.collaborators.agent import AgentCli
from cw.orchestrator.collaborators.base import IssueTracker, SessionHost, VersionControl
from cw.orchestrator.collaborators.git import GitRepository
from cw.orchestrator.collaborators.github import GitHubIssues
from cw.orchestrator.collaborators.tmux import TmuxSessions


@dataclass(slots=True)
class Collaborators:
    """The set of external systems one invocation talks to."""

    vcs: VersionControl
    sessions: SessionHost
    issues: IssueTracker
    agent: AgentCli


def build_collaborators(settings: Settings, cwd: Path | None = None) -> Collaborators:
    """Subprocess-backed collaborators for the current working directory."""

    return Collaborators(
        vcs=GitRepository(cwd, remote=settings.remote),
        sessions=TmuxSessions(),
        issues=GitHubIssues(cwd),
        agent=AgentCli(
            executable=settings.agent_command,
            skip_permissions=settings.skip_permissions,
        ),
    )


__all__ = [
    "AgentCli",
    "Collaborators",
    "GitHubIssues",
    "GitRepository",
    "IssueTracker",
    "SessionHost",
    "TmuxSessions",
    "VersionControl",
    "build_collaborators",
]
