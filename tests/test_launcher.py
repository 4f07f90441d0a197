from __future__ import annotations

import os
import shutil
import stat
import subprocess
import sys
from datetime import UTC, datetime
from pathlib import Path

import allure
import pytest

from cw.orchestrator.collaborators import AgentCli
from cw.orchestrator.collaborators.memory import InMemorySessions
from cw.orchestrator.errors import SessionLaunchFailed
from cw.orchestrator.launcher import HISTORY_LIMIT, SessionLauncher
import cw
from cw.orchestrator.models import Sandbox, SinglePhase, TwoPhase
from cw.orchestrator.plan_guard import PLACEHOLDER_PLAN
from cw.orchestrator.session_files import SessionFilesManager

pytestmark = [
    allure.epic("Session Lifecycle"),
    allure.feature("Session Launcher"),
]


@pytest.fixture()
def files(tmp_path: Path) -> SessionFilesManager:
    return SessionFilesManager(tmp_path / "sessions")


@pytest.fixture()
def sandbox(tmp_path: Path) -> Sandbox:
    path = tmp_path / "repo" / ".claude" / "worktrees" / "issue-587"
    path.mkdir(parents=True)
    return Sandbox(
        name="issue-587",
        path=path,
        branch="feat/587-add-oauth-support",
        base_ref="origin/main",
        created_at=datetime(2026, 3, 1, tzinfo=UTC),
    )


def _launcher(sessions, files, **kwargs) -> SessionLauncher:
    return SessionLauncher(
        sessions=sessions,
        files=files,
        agent=AgentCli(skip_permissions=True),
        session_prefix="cw",
        python_executable="/usr/bin/python3",
        **kwargs,
    )


def test_single_phase_launch_writes_prompt_and_script(sandbox, files) -> None:
    sessions = InMemorySessions()

    session = _launcher(sessions, files).launch(sandbox, SinglePhase("Fix it", model="sonnet"))

    paths = files.paths("cw-issue-587")
    assert session.name == "cw-issue-587"
    assert session.reused is False
    assert sessions.created == ["cw-issue-587"]
    assert sessions.sessions["cw-issue-587"].history_limit == HISTORY_LIMIT
    assert paths.prompt.read_text("utf-8") == "Fix it"
    script = paths.entry_script.read_text("utf-8")
    assert script.startswith("#!/usr/bin/env bash\n")
    assert f"cd {sandbox.path} || exit 1" in script
    assert (
        f'claude --model sonnet --dangerously-skip-permissions -p "$(cat {paths.prompt})"'
        in script
    )
    assert f"> {paths.exit_status}" in script
    assert "cw kill issue-587" in script
    assert script.rstrip().endswith("exec bash")
    assert paths.entry_script.stat().st_mode & 0o111


def test_two_phase_script_runs_plan_guard_between_phases(sandbox, files) -> None:
    plan = TwoPhase(
        plan_instructions="Plan it",
        exec_instructions="Build it",
        plan_model="opus",
        exec_model="sonnet",
    )

    _launcher(InMemorySessions(), files).launch(sandbox, plan)

    paths = files.paths("cw-issue-587")
    assert paths.plan_prompt.read_text("utf-8") == "Plan it"
    assert paths.exec_prompt.read_text("utf-8") == "Build it"
    script = paths.entry_script.read_text("utf-8")
    plan_call = script.index(f"cat {paths.plan_prompt}")
    guard_call = script.index("/usr/bin/python3 -m cw.orchestrator.plan_guard plan.md")
    exec_call = script.index(f"cat {paths.exec_prompt}")
    assert plan_call < guard_call < exec_call
    assert f"--archive {paths.plan_archive}" in script


def test_live_session_is_reused_without_launching(sandbox, files) -> None:
    sessions = InMemorySessions()
    sessions.add("cw-issue-587")

    session = _launcher(sessions, files).launch(sandbox, SinglePhase("Fix it"))

    assert session.reused is True
    assert sessions.created == []
    assert not files.paths("cw-issue-587").entry_script.exists()


def test_launch_fails_when_session_never_registers(sandbox, files) -> None:
    sessions = InMemorySessions(register_on_create=False)

    with pytest.raises(SessionLaunchFailed, match="cw-issue-587"):
        _launcher(sessions, files).launch(sandbox, SinglePhase("Fix it"))


def test_relaunch_clears_previous_exit_status(sandbox, files) -> None:
    files.ensure_root()
    files.paths("cw-issue-587").exit_status.write_text("1\n", "utf-8")

    _launcher(InMemorySessions(), files).launch(sandbox, SinglePhase("Fix it"))

    assert files.read_exit_code("cw-issue-587") is None


def test_wait_returns_recorded_exit_code(files) -> None:
    sessions = InMemorySessions()
    sessions.add("cw-a")
    files.ensure_root()
    sleeps: list[float] = []

    def _sleep(seconds: float) -> None:
        sleeps.append(seconds)
        files.paths("cw-a").exit_status.write_text("0\n", "utf-8")

    observation = _launcher(sessions, files, sleep=_sleep).wait("cw-a", poll_interval_seconds=0.5)

    assert observation.exit_code == 0
    assert observation.finished is True
    assert sleeps == [0.5]


def test_wait_stops_when_session_disappears(files) -> None:
    observation = _launcher(InMemorySessions(), files).wait("cw-gone")

    assert observation.live is False
    assert observation.exit_code is None
    assert observation.finished is True


def test_wait_times_out_on_running_session(files) -> None:
    sessions = InMemorySessions()
    sessions.add("cw-a")
    ticks = iter([0.0, 1.0, 2.0, 3.0])

    observation = _launcher(
        sessions,
        files,
        monotonic=lambda: next(ticks),
        sleep=lambda _: None,
    ).wait("cw-a", timeout_seconds=2.0)

    assert observation.live is True
    assert observation.finished is False


def _write_fake_agent(path: Path, log: Path) -> None:
    """Agent stand-in that records which model it was run with and writes nothing."""
    path.write_text(
        f'#!/usr/bin/env sh\nprintf "%s\\n" "$2" >> "{log}"\nexit 0\n',
        "utf-8",
    )
    path.chmod(path.stat().st_mode | stat.S_IXUSR)


@pytest.mark.skipif(shutil.which("bash") is None, reason="bash is required")
def test_two_phase_script_runs_execution_after_empty_plan(sandbox, files, tmp_path) -> None:
    log = tmp_path / "agent.log"
    agent_path = tmp_path / "bin" / "fake-agent"
    agent_path.parent.mkdir()
    _write_fake_agent(agent_path, log)
    launcher = SessionLauncher(
        sessions=InMemorySessions(),
        files=files,
        agent=AgentCli(executable=str(agent_path)),
        session_prefix="cw",
        python_executable=sys.executable,
    )
    plan = TwoPhase(
        plan_instructions="Plan it",
        exec_instructions="Build it",
        plan_model="opus",
        exec_model="sonnet",
    )
    launcher.launch(sandbox, plan)
    paths = files.paths("cw-issue-587")
    source_root = str(Path(cw.__file__).resolve().parents[1])
    env = {
        **os.environ,
        "PYTHONPATH": os.pathsep.join([source_root, os.getenv("PYTHONPATH", "")]),
    }

    completed = subprocess.run(  # noqa: S603
        ["bash", str(paths.entry_script)],
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
        timeout=60,
        env=env,
        check=False,
    )

    assert completed.returncode == 0, completed.stderr
    assert log.read_text("utf-8").splitlines() == ["opus", "sonnet"]
    assert (sandbox.path / "plan.md").read_text("utf-8") == PLACEHOLDER_PLAN
    assert paths.plan_archive.read_text("utf-8") == PLACEHOLDER_PLAN
    assert files.read_exit_code("cw-issue-587") == 0
    assert "using a placeholder" in completed.stdout
    assert "Agent finished (exit 0)" in completed.stdout
