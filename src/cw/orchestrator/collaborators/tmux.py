"""tmux-backed session host."""

from __future__ import annotations

import os
from pathlib import Path

from cw.orchestrator.collaborators.process import run_command, run_interactive, succeeds
from cw.orchestrator.errors import CollaboratorCommandError


class TmuxSessions:
    """Named detached tmux sessions on the default server."""

    def has_session(self, name: str) -> bool:
        # "=" forces an exact match; plain -t would accept a prefix.
        return succeeds(["tmux", "has-session", "-t", f"={name}"])

    def list_sessions(self) -> list[str]:
        try:
            completed = run_command(
                ["tmux", "list-sessions", "-F", "#{session_name}"],
                check=False,
            )
        except CollaboratorCommandError:
            return []
        if completed.returncode != 0:
            return []
        return [line.strip() for line in completed.stdout.splitlines() if line.strip()]

    def last_activity(self, name: str) -> float | None:
        completed = run_command(
            ["tmux", "display-message", "-t", f"={name}", "-p", "#{session_activity}"],
            check=False,
        )
        value = completed.stdout.strip()
        if completed.returncode != 0 or not value.isdigit():
            return None
        return float(value)

    def create_session(self, name: str, entrypoint: Path, *, history_limit: int) -> None:
        run_command(
            [
                "tmux",
                "new-session",
                "-d",
                "-s",
                name,
                str(entrypoint),
                ";",
                "set-option",
                "-t",
                name,
                "history-limit",
                str(history_limit),
            ],
        )

    def attach(self, name: str) -> None:
        run_interactive(self._attach_argv(name))

    def kill_session(self, name: str) -> None:
        run_command(["tmux", "kill-session", "-t", f"={name}"])

    def open_picker(self, first: str, *, prefix: str) -> None:
        run_interactive(
            [
                *self._attach_argv(first),
                ";",
                "choose-tree",
                "-s",
                "-f",
                f"#{{m:{prefix}-*,#{{session_name}}}}",
            ],
        )

    @staticmethod
    def _attach_argv(name: str) -> list[str]:
        if os.getenv("TMUX"):
            return ["tmux", "switch-client", "-t", f"={name}"]
        return ["tmux", "attach", "-t", f"={name}"]
