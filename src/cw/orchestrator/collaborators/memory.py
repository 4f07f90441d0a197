"""In-memory collaborators used by tests and dry runs.

They keep just enough state to exercise every branch of the engine: refs,
worktrees (dirty, untracked files, unpushed commits, detached HEAD), live
sessions with activity timestamps, and a fixed issue catalogue. Worktree
directories are created on disk so that filesystem-based sandbox discovery
behaves as with real git.
"""

from __future__ import annotations

import shutil
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from cw.orchestrator.errors import CollaboratorCommandError, MetadataUnavailable
from cw.orchestrator.models import IssueMetadata


@dataclass(slots=True)
class InMemoryRepository:
    """Fake git repository rooted at ``root``."""

    root: Path | None
    remote: str = "origin"
    project: str = "demo"
    remote_default: str | None = "main"
    remote_default_after_refresh: str | None = None
    remote_branches: set[str] = field(default_factory=lambda: {"main"})
    local_branches: set[str] = field(default_factory=lambda: {"main"})
    worktrees: dict[Path, str] = field(default_factory=dict)
    dirty: set[Path] = field(default_factory=set)
    untracked: dict[Path, set[str]] = field(default_factory=dict)
    unpushed: dict[str, int] = field(default_factory=dict)
    detached: dict[Path, int] = field(default_factory=dict)
    failing_status: set[Path] = field(default_factory=set)
    failing_branches: set[str] = field(default_factory=set)
    failing_removals: set[Path] = field(default_factory=set)
    fetch_count: int = 0
    refresh_count: int = 0
    prune_count: int = 0

    def repo_root(self) -> Path | None:
        return self.root

    def project_name(self) -> str:
        return self.project

    def fetch(self) -> None:
        self.fetch_count += 1

    def remote_default_branch(self) -> str | None:
        return self.remote_default

    def refresh_remote_default(self) -> None:
        self.refresh_count += 1
        if self.remote_default_after_refresh is not None:
            self.remote_default = self.remote_default_after_refresh

    def remote_branch_exists(self, branch: str) -> bool:
        return branch in self.remote_branches

    def local_branch_exists(self, branch: str) -> bool:
        return branch in self.local_branches

    def remote_ref(self, branch: str) -> str:
        return f"{self.remote}/{branch}"

    def add_worktree(self, path: Path, branch: str, *, base_ref: str | None) -> None:
        argv = ["git", "worktree", "add", str(path), branch]
        if branch in self.failing_branches:
            raise CollaboratorCommandError(argv, 128, "fatal: simulated failure")
        if path in self.worktrees or path.exists():
            raise CollaboratorCommandError(argv, 128, f"fatal: '{path}' already exists")
        if base_ref is not None:
            if branch in self.local_branches:
                raise CollaboratorCommandError(
                    argv,
                    255,
                    f"fatal: a branch named '{branch}' already exists",
                )
            self.local_branches.add(branch)
        else:
            if branch not in self.local_branches:
                raise CollaboratorCommandError(argv, 128, f"fatal: invalid reference: {branch}")
            if branch in self.worktrees.values():
                raise CollaboratorCommandError(argv, 128, f"fatal: '{branch}' is already used")
        path.mkdir(parents=True)
        self.worktrees[path] = branch

    def current_branch(self, path: Path) -> str | None:
        if path in self.detached:
            return None
        return self.worktrees.get(path)

    def has_uncommitted_changes(self, path: Path, *, ignore: Sequence[str] = ()) -> bool:
        if path in self.failing_status:
            raise CollaboratorCommandError(
                ["git", "status", "--porcelain"],
                128,
                "fatal: simulated failure",
            )
        return path in self.dirty or bool(self.untracked.get(path, set()) - set(ignore))

    def unpushed_commit_count(self, path: Path, branch: str | None) -> int:
        if branch is None:
            return self.detached.get(path, 0)
        return self.unpushed.get(branch, 0)

    def remove_worktree(self, path: Path) -> None:
        argv = ["git", "worktree", "remove", str(path), "--force"]
        if path in self.failing_removals or path not in self.worktrees:
            raise CollaboratorCommandError(argv, 128, f"fatal: '{path}' is not a working tree")
        shutil.rmtree(path)
        del self.worktrees[path]
        self.dirty.discard(path)
        self.untracked.pop(path, None)
        self.detached.pop(path, None)

    def prune_worktrees(self) -> None:
        self.prune_count += 1


@dataclass(slots=True)
class InMemorySession:
    """One fake live session."""

    entrypoint: Path
    history_limit: int
    last_activity: float


@dataclass(slots=True)
class InMemorySessions:
    """Fake session host. Sessions stay registered until killed."""

    sessions: dict[str, InMemorySession] = field(default_factory=dict)
    register_on_create: bool = True
    created: list[str] = field(default_factory=list)
    attached: list[str] = field(default_factory=list)
    killed: list[str] = field(default_factory=list)
    pickers: list[tuple[str, str]] = field(default_factory=list)

    def add(self, name: str, *, last_activity: float | None = None) -> None:
        self.sessions[name] = InMemorySession(
            entrypoint=Path("/dev/null"),
            history_limit=0,
            last_activity=time.time() if last_activity is None else last_activity,
        )

    def has_session(self, name: str) -> bool:
        return name in self.sessions

    def list_sessions(self) -> list[str]:
        return sorted(self.sessions)

    def last_activity(self, name: str) -> float | None:
        session = self.sessions.get(name)
        return session.last_activity if session is not None else None

    def create_session(self, name: str, entrypoint: Path, *, history_limit: int) -> None:
        if name in self.sessions:
            raise CollaboratorCommandError(
                ["tmux", "new-session", "-s", name],
                1,
                f"duplicate session: {name}",
            )
        self.created.append(name)
        if self.register_on_create:
            self.sessions[name] = InMemorySession(
                entrypoint=entrypoint,
                history_limit=history_limit,
                last_activity=time.time(),
            )

    def attach(self, name: str) -> None:
        self.attached.append(name)

    def kill_session(self, name: str) -> None:
        if name not in self.sessions:
            raise CollaboratorCommandError(
                ["tmux", "kill-session", "-t", name],
                1,
                f"can't find session: {name}",
            )
        del self.sessions[name]
        self.killed.append(name)

    def open_picker(self, first: str, *, prefix: str) -> None:
        self.pickers.append((first, prefix))


@dataclass(slots=True)
class StaticIssueTracker:
    """Fixed issue catalogue; unknown issues behave like an unreachable tracker."""

    issues: dict[int, IssueMetadata] = field(default_factory=dict)
    opened_pull_requests: list[Path] = field(default_factory=list)
    fetches: int = 0

    def fetch_issue(self, issue: int) -> IssueMetadata:
        self.fetches += 1
        try:
            return self.issues[issue]
        except KeyError as error:
            raise MetadataUnavailable(issue, "issue not found") from error

    def open_pull_request(self, path: Path) -> None:
        self.opened_pull_requests.append(path)
