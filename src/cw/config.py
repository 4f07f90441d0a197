"""Runtime configuration for the workflow orchestrator."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_PLAN_LABELS = ("feature", "epic", "complex", "architecture", "refactor")

_RC_KEYS = (
    "CW_HOME",
    "CW_WORKTREE_DIR",
    "CW_TMUX_PREFIX",
    "CW_SESSION_DIR",
    "CW_DEFAULT_MODEL",
    "CW_PLAN_MODEL",
    "CW_EXEC_MODEL",
    "CW_PLAN_LABELS",
    "CW_SKIP_PERMISSIONS",
    "CW_AGENT_COMMAND",
    "CW_REMOTE",
)


@dataclass(slots=True, frozen=True)
class Settings:
    """Process-wide settings, read once at startup and passed to every component."""

    home: Path = field(default_factory=lambda: Path.home() / ".cw")
    worktree_dir: str = ".claude/worktrees"
    tmux_prefix: str = "cw"
    session_dir: Path = field(default_factory=lambda: Path.home() / ".cw" / "sessions")
    default_model: str = ""
    plan_model: str = ""
    exec_model: str = ""
    plan_labels: tuple[str, ...] = DEFAULT_PLAN_LABELS
    skip_permissions: bool = False
    agent_command: str = "claude"
    remote: str = "origin"
    config_path: Path | None = None

    @property
    def two_phase_enabled(self) -> bool:
        """Two-phase planning needs both a planning and an execution model."""

        return bool(self.plan_model.strip() and self.exec_model.strip())

    @classmethod
    def from_env(cls, config_path: Path | None = None) -> Settings:
        """Load settings from the rc file, then apply environment overrides."""

        rc_path = config_path or Path(
            os.getenv("CW_CONFIG_FILE", str(Path.home() / ".cwrc")),
        ).expanduser()
        values = load_rc_file(rc_path)
        for key in _RC_KEYS:
            env_value = os.getenv(key)
            if env_value is not None:
                values[key] = env_value

        home = Path(values.get("CW_HOME") or Path.home() / ".cw").expanduser()
        session_dir_raw = values.get("CW_SESSION_DIR", "").strip()
        plan_labels_raw = values.get("CW_PLAN_LABELS")
        return cls(
            home=home,
            worktree_dir=values.get("CW_WORKTREE_DIR", "").strip() or ".claude/worktrees",
            tmux_prefix=values.get("CW_TMUX_PREFIX", "").strip() or "cw",
            session_dir=(
                Path(session_dir_raw).expanduser() if session_dir_raw else home / "sessions"
            ),
            default_model=values.get("CW_DEFAULT_MODEL", "").strip(),
            plan_model=values.get("CW_PLAN_MODEL", "").strip(),
            exec_model=values.get("CW_EXEC_MODEL", "").strip(),
            plan_labels=(
                _parse_labels(plan_labels_raw)
                if plan_labels_raw is not None
                else DEFAULT_PLAN_LABELS
            ),
            skip_permissions=_parse_bool(
                "CW_SKIP_PERMISSIONS",
                values.get("CW_SKIP_PERMISSIONS"),
                default=False,
            ),
            agent_command=values.get("CW_AGENT_COMMAND", "").strip() or "claude",
            remote=values.get("CW_REMOTE", "").strip() or "origin",
            config_path=rc_path if rc_path.is_file() else None,
        )


def load_rc_file(path: Path) -> dict[str, str]:
    """Parse a shell-style ``KEY=value`` rc file; a missing file yields no values."""

    if not path.is_file():
        return {}

    values: dict[str, str] = {}
    for line_number, raw_line in enumerate(path.read_text("utf-8").splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        key, separator, raw_value = line.partition("=")
        key = key.strip()
        if not separator or not key.isidentifier():
            raise ValueError(f"Invalid config line {path}:{line_number}: {raw_line!r}")
        try:
            tokens = shlex.split(raw_value, comments=True)
        except ValueError as error:
            raise ValueError(
                f"Invalid config value {path}:{line_number}: {raw_value!r}",
            ) from error
        values[key] = " ".join(tokens)
    return values


def _parse_labels(raw: str) -> tuple[str, ...]:
    labels: list[str] = []
    for part in raw.split(","):
        label = part.strip().lower()
        if label and label not in labels:
            labels.append(label)
    return tuple(labels)


def _parse_bool(name: str, value: str | None, *, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
