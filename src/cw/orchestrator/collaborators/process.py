"""Thin subprocess helpers shared by the CLI-backed collaborators."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from cw.orchestrator.errors import CollaboratorCommandError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60


def run_command(
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    check: bool = True,
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
) -> subprocess.CompletedProcess[str]:
    """Run a command capturing text output; raise on non-zero exit when ``check``."""

    logger.debug("exec: %s (cwd=%s)", " ".join(argv), cwd)
    try:
        completed = subprocess.run(  # noqa: S603
            list(argv),
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout_seconds,
        )
    except FileNotFoundError as error:
        raise CollaboratorCommandError(argv, 127, f"command not found: {argv[0]}") from error
    except subprocess.TimeoutExpired as error:
        raise CollaboratorCommandError(
            argv,
            124,
            f"timed out after {timeout_seconds}s",
        ) from error
    if check and completed.returncode != 0:
        raise CollaboratorCommandError(argv, completed.returncode, completed.stderr)
    return completed


def succeeds(argv: Sequence[str], *, cwd: Path | None = None) -> bool:
    """Run a predicate command; any failure, including a missing binary, is False."""

    try:
        return run_command(argv, cwd=cwd, check=False).returncode == 0
    except CollaboratorCommandError:
        return False


def run_interactive(argv: Sequence[str], *, cwd: Path | None = None) -> int:
    """Run a command attached to the caller's terminal."""

    logger.debug("exec (interactive): %s", " ".join(argv))
    try:
        return subprocess.call(list(argv), cwd=cwd)  # noqa: S603
    except FileNotFoundError as error:
        raise CollaboratorCommandError(argv, 127, f"command not found: {argv[0]}") from error
