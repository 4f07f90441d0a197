"""Setup validation: external tools, auth, configuration and repository."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from cw import __version__
from cw.config import Settings
from cw.orchestrator.base_ref import detect_default_branch
from cw.orchestrator.collaborators.base import VersionControl

# Marker text, then the line shown when it is present or absent in the agent settings file.
AGENT_SETTINGS_CHECKS = (
    ("CLAUDE_CODE_EXPERIMENTAL_AGENT_TEAMS", "Agent teams enabled", "Agent teams not enabled"),
    ("EnterWorktree", "Worktree permission allowed", "EnterWorktree not in permissions.allow"),
    ("teammateMode", "Teammate mode configured", "teammateMode not set (default: in-process)"),
)


@dataclass(slots=True)
class ToolProbe:
    """Availability and version of one executable."""

    executable: str
    available: bool
    probe_ok: bool
    version: str = ""
    error: str | None = None


@dataclass(slots=True)
class DoctorReport:
    """Doctor output to render in CLI."""

    lines: list[str] = field(default_factory=list)
    success: bool = True

    def ok(self, text: str) -> None:
        self.lines.append(f"  ✓ {text}")

    def hint(self, text: str) -> None:
        self.lines.append(f"  ○ {text}")

    def fail(self, text: str) -> None:
        self.lines.append(f"  ✗ {text}")
        self.success = False

    def section(self, title: str) -> None:
        if self.lines:
            self.lines.append("")
        self.lines.append(f"  {title}")


def probe_tool(executable: str, *, timeout_seconds: int = 10) -> ToolProbe:
    """Locate an executable on PATH and check it answers ``--version`` or ``--help``."""

    resolved = shutil.which(executable)
    if resolved is None:
        return ToolProbe(
            executable=executable,
            available=False,
            probe_ok=False,
            error="not found",
        )

    error = "probe command failed"
    for probe_args in ([resolved, "--version"], [resolved, "--help"]):
        try:
            completed = subprocess.run(  # noqa: S603
                probe_args,
                check=False,
                capture_output=True,
                text=True,
                timeout=timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            error = "probe timed out"
            continue
        except OSError as os_error:
            error = f"probe failed to start: {os_error}"
            continue
        if completed.returncode == 0:
            first_line = (completed.stdout.strip().splitlines() or ["ok"])[0]
            return ToolProbe(
                executable=executable,
                available=True,
                probe_ok=True,
                version=first_line[:80],
            )
    return ToolProbe(executable=executable, available=True, probe_ok=False, error=error)


def gh_authenticated(*, timeout_seconds: int = 20) -> bool:
    try:
        completed = subprocess.run(  # noqa: S603
            ["gh", "auth", "status"],
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
        )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return completed.returncode == 0


def run_doctor(
    *,
    settings: Settings,
    vcs: VersionControl,
    probe: Callable[[str], ToolProbe] = probe_tool,
    auth_check: Callable[[], bool] = gh_authenticated,
    agent_settings_path: Path | None = None,
) -> DoctorReport:
    """Check everything ``cw`` relies on and describe the active configuration."""

    report = DoctorReport()
    report.section("Dependencies")
    tools = ("tmux", "git", "gh", settings.agent_command)
    probes = {tool: probe(tool) for tool in tools}
    for tool in tools:
        result = probes[tool]
        if result.available and result.probe_ok:
            report.ok(f"{tool} ({result.version})")
        else:
            report.fail(f"{tool}: {result.error or 'unavailable'}")

    report.section("GitHub")
    if probes["gh"].available and auth_check():
        report.ok("Authenticated")
    else:
        report.fail("Not authenticated. Run: gh auth login")

    report.section("Agent settings")
    _check_agent_settings(
        report,
        agent_settings_path or Path.home() / ".claude" / "settings.json",
    )

    report.section("cw")
    report.ok(f"cw v{__version__}")
    if settings.session_dir.is_dir():
        report.ok(f"Session dir: {settings.session_dir}")
    else:
        report.hint("Session dir missing; it is created on first use")
    if settings.config_path is not None:
        report.ok(f"Config: {settings.config_path}")
    else:
        report.hint("No rc file (using defaults)")
    if settings.two_phase_enabled:
        report.ok(f"Two-phase: {settings.plan_model} plans -> {settings.exec_model} executes")
        report.lines.append(f"    Plan labels: {','.join(settings.plan_labels)}")
    elif settings.default_model:
        report.hint(f"Single model: {settings.default_model}")
    else:
        report.hint("Using the agent's default model")

    report.section("Current repository")
    root = vcs.repo_root()
    if root is None:
        report.hint("Not in a git repository")
        return report
    report.ok(str(root))
    report.ok(f"Default branch: {detect_default_branch(vcs)}")
    gitignore = root / ".gitignore"
    worktree_dir = settings.worktree_dir.strip("/")
    if gitignore.is_file() and worktree_dir in gitignore.read_text("utf-8"):
        report.ok(f"{worktree_dir} in .gitignore")
    else:
        report.hint(f"Add '{worktree_dir}/' to .gitignore")
    return report


def _check_agent_settings(report: DoctorReport, path: Path) -> None:
    if not path.is_file():
        report.hint(f"No {path}; agent defaults apply")
        return
    text = path.read_text("utf-8", errors="replace")
    for marker, present, missing in AGENT_SETTINGS_CHECKS:
        if marker in text:
            report.ok(present)
        else:
            report.hint(missing)
