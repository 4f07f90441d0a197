"""CLI entrypoint for cw."""

import logging
from collections.abc import Callable
from typing import TypeVar

import rich_click as click

from cw import __version__
from cw.orchestrator.controllers import (
    OrchestratorCliController,
    SessionNameCommand,
    StartBranchCommand,
    StartIssueCommand,
    WaitCommand,
)
from cw.orchestrator.errors import OrchestratorError

click.rich_click.USE_MARKDOWN = True
T = TypeVar("T")
ORCHESTRATOR_CONTROLLER = OrchestratorCliController()


class IssueShortcutGroup(click.RichGroup):
    """Treats ``cw 123`` as ``cw start 123``."""

    def resolve_command(
        self,
        ctx: click.Context,
        args: list[str],
    ) -> tuple[str | None, click.Command | None, list[str]]:
        if args and args[0].isdigit():
            args = ["start", *args]
        return super().resolve_command(ctx, args)


@click.group(cls=IssueShortcutGroup)
@click.version_option(version=__version__, prog_name="cw")
@click.option("--verbose", "-v", is_flag=True, help="Log orchestration steps to stderr.")
def cw(verbose: bool) -> None:
    """Run coding agents in parallel, one git worktree and tmux session per task."""

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


@cw.command("start")
@click.argument("issue", type=click.IntRange(min=1))
@click.option("--base", "-b", default=None, help="Base branch. Defaults to the remote default.")
@click.option("--message", "-m", default="", help="Extra context appended to the instructions.")
def start(issue: int, base: str | None, message: str) -> None:
    """Spawn an agent for an issue, or attach to its running session."""

    _emit_lines(
        _guarded(
            ORCHESTRATOR_CONTROLLER.start_issue,
            StartIssueCommand(issue=issue, base=base, message=message),
        ),
    )


@cw.command("new")
@click.argument("branch")
@click.option("--base", "-b", default=None, help="Base branch. Defaults to the remote default.")
@click.option("--message", "-m", default="", help="Task description for the agent.")
def new(branch: str, base: str | None, message: str) -> None:
    """Spawn an agent on an explicit branch."""

    _emit_lines(
        _guarded(
            ORCHESTRATOR_CONTROLLER.start_branch,
            StartBranchCommand(branch=branch, base=base, message=message),
        ),
    )


@cw.command("list")
def list_sessions() -> None:
    """List live sessions with activity, branch and issue title."""

    _emit_lines(_guarded(ORCHESTRATOR_CONTROLLER.list_sessions))


@cw.command("attach")
@click.argument("name")
def attach(name: str) -> None:
    """Attach to a session by exact name or substring."""

    _emit_lines(_guarded(ORCHESTRATOR_CONTROLLER.attach, SessionNameCommand(name=name)))


@cw.command("kill")
@click.argument("name")
def kill(name: str) -> None:
    """Terminate a session. The worktree and branch are kept."""

    _emit_lines(_guarded(ORCHESTRATOR_CONTROLLER.kill, SessionNameCommand(name=name)))


@cw.command("cleanup")
def cleanup() -> None:
    """Remove worktrees with no live session and nothing unsaved or unpushed."""

    _emit_lines(_guarded(ORCHESTRATOR_CONTROLLER.cleanup))


@cw.command("dash")
def dash() -> None:
    """Attach to the only session, or pick one when several are running."""

    _emit_lines(_guarded(ORCHESTRATOR_CONTROLLER.dashboard))


@cw.command("pr")
@click.argument("name")
def pr(name: str) -> None:
    """Open the pull-request creation page for a worktree."""

    _emit_lines(_guarded(ORCHESTRATOR_CONTROLLER.open_pr, SessionNameCommand(name=name)))


@cw.command("wait")
@click.argument("name")
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Give up after this many seconds.",
)
@click.option(
    "--interval",
    "poll_interval_seconds",
    type=click.FloatRange(min=0.1),
    default=2.0,
    show_default=True,
    help="Seconds between polls.",
)
@click.pass_context
def wait(
    ctx: click.Context,
    name: str,
    timeout_seconds: float | None,
    poll_interval_seconds: float,
) -> None:
    """Block until a session's agent finishes. Exits with the agent's code."""

    report = _guarded(
        ORCHESTRATOR_CONTROLLER.wait,
        WaitCommand(
            name=name,
            timeout_seconds=timeout_seconds,
            poll_interval_seconds=poll_interval_seconds,
        ),
    )
    _emit_lines(report.lines)
    ctx.exit(report.exit_code)


@cw.command("doctor")
def doctor() -> None:
    """Validate tools, authentication and configuration."""

    report = _guarded(ORCHESTRATOR_CONTROLLER.doctor)
    _emit_lines(report.lines)
    if not report.success:
        raise click.ClickException("Setup has problems.")


cw.add_command(list_sessions, "ls")
cw.add_command(attach, "a")
cw.add_command(kill, "k")
cw.add_command(cleanup, "clean")
cw.add_command(cleanup, "prune")
cw.add_command(dash, "dashboard")


def _guarded(action: Callable[..., T], *args: object) -> T:
    try:
        return action(*args)
    except (OrchestratorError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    cw()
