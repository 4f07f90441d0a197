"""Error taxonomy for the orchestrator."""

from __future__ import annotations

from collections.abc import Sequence


class OrchestratorError(RuntimeError):
    """Base class for operator-facing orchestration failures."""


class RepositoryNotFound(OrchestratorError):
    """The command was run outside a git repository."""

    def __init__(self) -> None:
        super().__init__("Not in a git repository.")


class BaseNotFound(OrchestratorError):
    """The requested base branch exists neither on the remote nor locally."""

    def __init__(self, base: str, *, remote: str = "origin") -> None:
        super().__init__(
            f"Branch {base!r} not found. Run 'git fetch {remote}' and retry.",
        )
        self.base = base
        self.remote = remote


class SandboxCreationFailed(OrchestratorError):
    """The worktree could not be created; nothing usable exists at the path."""

    def __init__(self, *, branch: str, base: str, detail: str = "") -> None:
        message = f"Failed to create worktree (branch: {branch}, base: {base})."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)
        self.branch = branch
        self.base = base
        self.detail = detail


class NoSuchSession(OrchestratorError):
    """No live session matches the operator-supplied name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No session {name!r}. Run 'cw ls'.")
        self.name = name


class NoSuchSandbox(OrchestratorError):
    """No worktree exists under the requested name."""

    def __init__(self, name: str, available: Sequence[str] = ()) -> None:
        message = f"No worktree {name!r}."
        if available:
            message = f"{message} Available: {', '.join(available)}"
        super().__init__(message)
        self.name = name
        self.available = tuple(available)


class SessionLaunchFailed(OrchestratorError):
    """The session host accepted the launch but the session never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Session {name!r} did not start.")
        self.name = name


class MetadataUnavailable(OrchestratorError):
    """Issue metadata could not be fetched. Callers degrade to defaults."""

    def __init__(self, issue: int, reason: str) -> None:
        super().__init__(f"Metadata for issue #{issue} unavailable: {reason}")
        self.issue = issue
        self.reason = reason


class PlanArtifactMissing(OrchestratorError):
    """Planning phase produced no usable plan. Substituted with a placeholder."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Plan artifact missing or empty: {path}")
        self.path = path


class CollaboratorCommandError(OrchestratorError):
    """An external command (git, tmux, gh) exited with a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str) -> None:
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
        super().__init__(f"{argv[0]} exited with {returncode}: {detail}")
        self.argv = tuple(argv)
        self.returncode = returncode
        self.stderr = stderr
