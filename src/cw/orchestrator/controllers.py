"""Controllers for cw CLI commands."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from cw.config import Settings
from cw.orchestrator.collaborators import Collaborators, build_collaborators
from cw.orchestrator.doctor import run_doctor
from cw.orchestrator.models import Freshness, SinglePhase, TaskRef, TwoPhase
from cw.orchestrator.services import OrchestratorService, StartResult, StartTask

FRESHNESS_MARKERS = {
    Freshness.ACTIVE: "●",
    Freshness.RECENT: "◐",
    Freshness.IDLE: "○",
    Freshness.STALE: "◌",
    Freshness.UNKNOWN: "?",
}


@dataclass(slots=True)
class StartIssueCommand:
    """CLI input for starting work on an issue."""

    issue: int
    base: str | None = None
    message: str = ""


@dataclass(slots=True)
class StartBranchCommand:
    """CLI input for starting work on an explicit branch."""

    branch: str
    base: str | None = None
    message: str = ""


@dataclass(slots=True)
class SessionNameCommand:
    """CLI input for commands addressing one session or sandbox by name."""

    name: str


@dataclass(slots=True)
class WaitCommand:
    """CLI input for the await operation."""

    name: str
    timeout_seconds: float | None = None
    poll_interval_seconds: float = 2.0


@dataclass(slots=True)
class CommandReport:
    """Lines to render in CLI plus the process exit code."""

    lines: list[str]
    exit_code: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class OrchestratorCliController:
    """Coordinates start, inspection and lifecycle CLI operations."""

    def __init__(
        self,
        *,
        collaborators_factory: Callable[[Settings], Collaborators] = build_collaborators,
        settings_loader: Callable[[], Settings] = Settings.from_env,
    ) -> None:
        self.collaborators_factory = collaborators_factory
        self.settings_loader = settings_loader

    def start_issue(self, command: StartIssueCommand) -> list[str]:
        return self._start(
            StartTask(
                task=TaskRef.for_issue(command.issue),
                base=command.base,
                message=command.message,
            ),
        )

    def start_branch(self, command: StartBranchCommand) -> list[str]:
        return self._start(
            StartTask(
                task=TaskRef.for_branch(command.branch),
                base=command.base,
                message=command.message,
            ),
        )

    def list_sessions(self) -> list[str]:
        service = self._service()
        listings = service.registry.list()
        if not listings:
            return ["No active sessions."]
        lines = ["Sessions:"]
        for listing in listings:
            marker = FRESHNESS_MARKERS[listing.freshness]
            row = f"  {marker} {listing.name:<30} {listing.age:<12}"
            if listing.branch:
                row += f" {listing.branch}"
            if listing.title:
                row += f"  {listing.title}"
            lines.append(row.rstrip())
        lines.append("")
        lines.append("Attach: cw attach <name>   Kill: cw kill <name>")
        return lines

    def attach(self, command: SessionNameCommand) -> list[str]:
        session = self._service().registry.attach(command.name)
        return [f"Detached from {session}."]

    def kill(self, command: SessionNameCommand) -> list[str]:
        session = self._service().registry.kill(command.name)
        return [f"Killed {session}. Worktree kept; run 'cw cleanup' to reclaim it."]

    def cleanup(self) -> list[str]:
        report = self._service().registry.cleanup()
        lines = []
        for entry in report.entries:
            if entry.reclaimed:
                lines.append(f"  ✓ {entry.name}")
            else:
                reason = entry.reason.value if entry.reason is not None else "kept"
                lines.append(f"  ○ {entry.name} ({reason})")
        lines.append(f"Cleaned: {report.cleaned} | Kept: {report.kept}")
        return lines

    def dashboard(self) -> list[str]:
        session = self._service().registry.dashboard()
        if session is None:
            return ["No active sessions. Start one with: cw start <issue>"]
        return []

    def open_pr(self, command: SessionNameCommand) -> list[str]:
        service = self._service()
        path = service.registry.sandbox_path(command.name)
        service.collaborators.issues.open_pull_request(path)
        return [f"Opened pull request page for {command.name}."]

    def wait(self, command: WaitCommand) -> CommandReport:
        service = self._service()
        session = service.registry.resolve(command.name)
        observation = service.launcher.wait(
            session,
            timeout_seconds=command.timeout_seconds,
            poll_interval_seconds=command.poll_interval_seconds,
        )
        if observation.exit_code is not None:
            return CommandReport(
                lines=[f"{session} finished with exit code {observation.exit_code}."],
                exit_code=observation.exit_code,
            )
        if not observation.live:
            return CommandReport(
                lines=[f"{session} ended without recording an exit code."],
                exit_code=1,
            )
        return CommandReport(
            lines=[f"{session} still running after {command.timeout_seconds:g}s."],
            exit_code=124,
        )

    def doctor(self) -> CommandReport:
        settings = self.settings_loader()
        collaborators = self.collaborators_factory(settings)
        report = run_doctor(settings=settings, vcs=collaborators.vcs)
        return CommandReport(lines=report.lines, exit_code=0 if report.success else 1)

    def _start(self, command: StartTask) -> list[str]:
        service = self._service()
        result = service.start(command)
        lines = _describe_start(result)
        if result.session.reused:
            service.collaborators.sessions.attach(result.session.name)
        return lines

    def _service(self) -> OrchestratorService:
        settings = self.settings_loader()
        return OrchestratorService(
            settings=settings,
            collaborators=self.collaborators_factory(settings),
        )


def _describe_start(result: StartResult) -> list[str]:
    names = result.names
    if result.session.reused:
        return [f"Session {names.session} already running. Attaching..."]
    lines = [
        f"Branch:   {names.branch}",
        f"Base:     {result.base.ref}",
    ]
    if result.metadata.title:
        lines.append(f"Issue:    {result.metadata.title}")
    if result.sandbox is not None:
        verb = "Reusing" if result.sandbox.reused else "Created"
        lines.append(f"Worktree: {verb} {_display_path(result.sandbox.path)}")
    if isinstance(result.plan, TwoPhase):
        lines.append(
            f"Mode:     two-phase ({result.plan.plan_model} plans, "
            f"{result.plan.exec_model} executes)",
        )
    elif isinstance(result.plan, SinglePhase) and result.plan.model:
        lines.append(f"Model:    {result.plan.model}")
    lines.append(f"Session:  {names.session}")
    lines.append("")
    lines.append(f"Attach: cw attach {names.sandbox}")
    return lines


def _display_path(path: Path) -> str:
    try:
        return f"~/{path.relative_to(Path.home())}"
    except ValueError:
        return str(path)
