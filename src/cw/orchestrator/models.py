"""Domain models for tasks, sandboxes, execution plans and sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


@dataclass(slots=True, frozen=True)
class TaskRef:
    """Either an issue number or an explicit branch name."""

    issue: int | None = None
    branch: str | None = None

    def __post_init__(self) -> None:
        if (self.issue is None) == (self.branch is None):
            raise ValueError("TaskRef needs exactly one of issue or branch.")
        if self.issue is not None and self.issue <= 0:
            raise ValueError(f"Issue number must be positive: {self.issue!r}")
        if self.branch is not None and not self.branch.strip():
            raise ValueError("Branch name must not be empty.")

    @classmethod
    def for_issue(cls, issue: int) -> TaskRef:
        return cls(issue=issue)

    @classmethod
    def for_branch(cls, branch: str) -> TaskRef:
        return cls(branch=branch.strip())


@dataclass(slots=True, frozen=True)
class IssueMetadata:
    """Read-only issue facts fetched from the tracker."""

    labels: tuple[str, ...] = ()
    title: str = ""


@dataclass(slots=True, frozen=True)
class TaskNames:
    """Deterministic identifiers derived from a task."""

    branch: str
    sandbox: str
    session: str
    prefix: str


@dataclass(slots=True, frozen=True)
class ResolvedBase:
    """Fork point for a new sandbox branch."""

    name: str
    ref: str


@dataclass(slots=True)
class Sandbox:
    """Isolated worktree bound to one branch."""

    name: str
    path: Path
    branch: str
    base_ref: str
    created_at: datetime
    reused: bool = False

    def to_record(self) -> dict[str, object]:
        return {
            "name": self.name,
            "path": str(self.path),
            "branch": self.branch,
            "base_ref": self.base_ref,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class SinglePhase:
    """Run the agent once with a self-contained directive."""

    instructions: str
    model: str = ""


@dataclass(slots=True, frozen=True)
class TwoPhase:
    """Plan with one model (read-only), then execute the plan with another."""

    plan_instructions: str
    exec_instructions: str
    plan_model: str
    exec_model: str


ExecutionPlan = SinglePhase | TwoPhase


@dataclass(slots=True, frozen=True)
class Session:
    """Handle to a named tmux session hosting one sandbox's agent."""

    name: str
    sandbox_name: str
    reused: bool = False


@dataclass(slots=True, frozen=True)
class SessionObservation:
    """Point-in-time view of a launched session."""

    name: str
    live: bool
    exit_code: int | None

    @property
    def finished(self) -> bool:
        return self.exit_code is not None or not self.live


class Freshness(str, Enum):
    """Activity bands used by the session listing."""

    ACTIVE = "active"
    RECENT = "recent"
    IDLE = "idle"
    STALE = "stale"
    UNKNOWN = "unknown"


@dataclass(slots=True, frozen=True)
class SessionListing:
    """One row of ``cw ls``."""

    name: str
    session: str
    freshness: Freshness
    age: str
    branch: str | None = None
    title: str | None = None


class KeepReason(str, Enum):
    """Guard that prevented a sandbox from being reclaimed."""

    ACTIVE = "session active"
    UNCOMMITTED = "uncommitted changes"
    UNPUSHED = "unpushed commits"
    UNKNOWN_STATE = "state unknown"
    REMOVE_FAILED = "remove failed"


@dataclass(slots=True, frozen=True)
class CleanupEntry:
    """Outcome for one sandbox during cleanup."""

    name: str
    reclaimed: bool
    reason: KeepReason | None = None


@dataclass(slots=True)
class CleanupReport:
    """Aggregated cleanup outcome."""

    entries: list[CleanupEntry] = field(default_factory=list)

    @property
    def cleaned(self) -> int:
        return sum(1 for entry in self.entries if entry.reclaimed)

    @property
    def kept(self) -> int:
        return sum(1 for entry in self.entries if not entry.reclaimed)
