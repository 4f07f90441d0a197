"""Binds a sandbox and its execution plan to a detached tmux session."""

from __future__ import annotations

import logging
import shlex
import sys
import time
from collections.abc import Callable

from cw.orchestrator.collaborators.agent import AgentCli
from cw.orchestrator.collaborators.base import SessionHost
from cw.orchestrator.errors import SessionLaunchFailed
from cw.orchestrator.models import (
    ExecutionPlan,
    Sandbox,
    Session,
    SessionObservation,
    SinglePhase,
    TwoPhase,
)
from cw.orchestrator.naming import session_name
from cw.orchestrator.planner import PLAN_ARTIFACT
from cw.orchestrator.session_files import SessionFiles, SessionFilesManager

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50_000
_RULE = "━" * 50


class SessionLauncher:
    """Starts one session per sandbox without waiting for the agent."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        sessions: SessionHost,
        files: SessionFilesManager,
        agent: AgentCli,
        session_prefix: str,
        python_executable: str = sys.executable,
        history_limit: int = HISTORY_LIMIT,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.sessions = sessions
        self.files = files
        self.agent = agent
        self.session_prefix = session_prefix
        self.python_executable = python_executable
        self.history_limit = history_limit
        self.monotonic = monotonic
        self.sleep = sleep

    def session_name_for(self, sandbox: Sandbox) -> str:
        return session_name(sandbox.name, prefix=self.session_prefix)

    def launch(self, sandbox: Sandbox, plan: ExecutionPlan) -> Session:
        """Render the entry script and start the session; reuse a live one."""

        name = self.session_name_for(sandbox)
        if self.sessions.has_session(name):
            logger.info("Session %s already running; not launching a duplicate", name)
            return Session(name=name, sandbox_name=sandbox.name, reused=True)

        self.files.ensure_root()
        self.files.clear_exit_code(name)
        paths = self.files.paths(name)
        if isinstance(plan, TwoPhase):
            paths.plan_prompt.write_text(plan.plan_instructions, "utf-8")
            paths.exec_prompt.write_text(plan.exec_instructions, "utf-8")
        else:
            paths.prompt.write_text(plan.instructions, "utf-8")
        script = render_entry_script(
            sandbox=sandbox,
            plan=plan,
            session=name,
            short_name=self.short_name(name),
            paths=paths,
            agent=self.agent,
            python_executable=self.python_executable,
        )
        paths.entry_script.write_text(script, "utf-8")
        paths.entry_script.chmod(0o755)

        self.sessions.create_session(name, paths.entry_script, history_limit=self.history_limit)
        if not self.sessions.has_session(name):
            raise SessionLaunchFailed(name)
        logger.info("Launched session %s for %s", name, sandbox.path)
        return Session(name=name, sandbox_name=sandbox.name)

    def observe(self, name: str) -> SessionObservation:
        return SessionObservation(
            name=name,
            live=self.sessions.has_session(name),
            exit_code=self.files.read_exit_code(name),
        )

    def wait(
        self,
        name: str,
        *,
        timeout_seconds: float | None = None,
        poll_interval_seconds: float = 2.0,
    ) -> SessionObservation:
        """Poll until the agent records its exit code or the session goes away."""

        started = self.monotonic()
        while True:
            observation = self.observe(name)
            if observation.finished:
                return observation
            if timeout_seconds is not None and self.monotonic() - started >= timeout_seconds:
                return observation
            self.sleep(poll_interval_seconds)

    def short_name(self, session: str) -> str:
        prefix = f"{self.session_prefix}-"
        return session[len(prefix) :] if session.startswith(prefix) else session


def render_entry_script(  # noqa: PLR0913
    *,
    sandbox: Sandbox,
    plan: ExecutionPlan,
    session: str,
    short_name: str,
    paths: SessionFiles,
    agent: AgentCli,
    python_executable: str,
) -> str:
    """Self-contained bash script that runs the agent and then idles for review."""

    lines = [
        "#!/usr/bin/env bash",
        f"cd {shlex.quote(str(sandbox.path))} || exit 1",
        "",
    ]
    if isinstance(plan, TwoPhase):
        lines += _banner(
            f"cw · {session} (two-phase)",
            f"dir: {sandbox.path}",
            f"Phase 1/2: Planning ({plan.plan_model})",
        )
        lines += [
            agent.invocation(paths.plan_prompt, plan.plan_model),
            "",
            " ".join(
                [
                    shlex.quote(python_executable),
                    "-m",
                    "cw.orchestrator.plan_guard",
                    PLAN_ARTIFACT,
                    "--archive",
                    shlex.quote(str(paths.plan_archive)),
                ],
            )
            + ' || echo "  ⚠  plan check failed; continuing"',
            "",
        ]
        lines += _banner(f"Phase 2/2: Execution ({plan.exec_model})")
        lines.append(agent.invocation(paths.exec_prompt, plan.exec_model))
    elif isinstance(plan, SinglePhase):
        lines += _banner(f"cw · {session}", f"dir: {sandbox.path}")
        lines.append(agent.invocation(paths.prompt, plan.model))
    else:
        raise TypeError(f"Unsupported execution plan: {plan!r}")

    lines += [
        "exit_code=$?",
        f'printf "%s\\n" "$exit_code" > {shlex.quote(str(paths.exit_status))}',
        "",
        'echo ""',
        f'echo "{_RULE}"',
        'if [[ $exit_code -eq 0 ]]; then',
        '  echo "  ✓ Agent finished (exit $exit_code)"',
        "else",
        '  echo "  ✗ Agent exited with error (exit $exit_code)"',
        "fi",
        'echo "  Scroll up: Ctrl+B, then ["',
        f'echo "  Close:     cw kill {short_name}"',
        f'echo "{_RULE}"',
        'echo ""',
        "",
        "# Keep the session open for review.",
        "exec bash",
        "",
    ]
    return "\n".join(lines)


def _banner(*rows: str) -> list[str]:
    body = [f"echo {shlex.quote('  ' + row)}" for row in rows]
    return ['echo ""', f'echo "{_RULE}"', *body, f'echo "{_RULE}"', 'echo ""', ""]
