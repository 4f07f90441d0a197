"""Interfaces for the external systems the orchestrator drives."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from cw.orchestrator.models import IssueMetadata


class VersionControl(Protocol):
    """Branch and worktree primitives of one repository."""

    remote: str

    def repo_root(self) -> Path | None:
        """Top-level directory of the repository, or None outside one."""

    def project_name(self) -> str:
        """Short human name of the repository."""

    def fetch(self) -> None:
        """Refresh remote-tracking refs. Best effort."""

    def remote_default_branch(self) -> str | None:
        """Branch the remote's HEAD points to, if known locally."""

    def refresh_remote_default(self) -> None:
        """Ask the remote for its default branch and record it locally."""

    def remote_branch_exists(self, branch: str) -> bool:
        """Whether ``<remote>/<branch>`` is a known remote-tracking ref."""

    def local_branch_exists(self, branch: str) -> bool:
        """Whether ``refs/heads/<branch>`` exists."""

    def remote_ref(self, branch: str) -> str:
        """Name of the remote-tracking ref for a branch."""

    def add_worktree(self, path: Path, branch: str, *, base_ref: str | None) -> None:
        """Check out a worktree; ``base_ref`` given means create ``branch`` from it."""

    def current_branch(self, path: Path) -> str | None:
        """Branch checked out in a worktree."""

    def has_uncommitted_changes(self, path: Path, *, ignore: Sequence[str] = ()) -> bool:
        """Whether a worktree has modified, staged or untracked files.

        Untracked top-level files named in ``ignore`` do not count.
        """

    def unpushed_commit_count(self, path: Path, branch: str | None) -> int:
        """Commits on ``branch`` that its remote counterpart does not have.

        With ``branch`` None (detached HEAD) counts commits reachable from
        HEAD that no remote ref has.
        """

    def remove_worktree(self, path: Path) -> None:
        """Remove a worktree checkout. The branch itself is kept."""

    def prune_worktrees(self) -> None:
        """Forget worktree metadata whose directories are gone."""


class IssueTracker(Protocol):
    """Read-only access to issue metadata."""

    def fetch_issue(self, issue: int) -> IssueMetadata:
        """Return labels and title; raises ``MetadataUnavailable`` on failure."""

    def open_pull_request(self, path: Path) -> None:
        """Open the pull-request creation page for the branch checked out at ``path``."""


class SessionHost(Protocol):
    """Named, persistent terminal sessions."""

    def has_session(self, name: str) -> bool:
        """Whether a session with exactly this name is alive."""

    def list_sessions(self) -> list[str]:
        """Names of all live sessions."""

    def last_activity(self, name: str) -> float | None:
        """Epoch seconds of the session's last activity, if known."""

    def create_session(self, name: str, entrypoint: Path, *, history_limit: int) -> None:
        """Start a detached session running ``entrypoint``."""

    def attach(self, name: str) -> None:
        """Attach the operator's terminal to a session."""

    def kill_session(self, name: str) -> None:
        """Terminate a session and everything running in it."""

    def open_picker(self, first: str, *, prefix: str) -> None:
        """Attach to ``first`` and show a session chooser filtered by prefix."""
