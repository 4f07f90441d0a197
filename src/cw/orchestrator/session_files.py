"""Per-session metadata files kept in the session directory."""

from __future__ import annotations

import json
import logging
from dataclasses import astuple, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from cw.orchestrator.models import Sandbox

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SessionFiles:
    """Deterministic file layout for one session name."""

    entry_script: Path
    prompt: Path
    plan_prompt: Path
    exec_prompt: Path
    plan_archive: Path
    record: Path
    exit_status: Path

    def all(self) -> tuple[Path, ...]:
        return astuple(self)


class SessionFilesManager:
    """Creates, reads and removes the files that belong to a session."""

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = root_dir

    def paths(self, session: str) -> SessionFiles:
        base = self.root_dir
        return SessionFiles(
            entry_script=base / f"{session}.sh",
            prompt=base / f"{session}.md",
            plan_prompt=base / f"{session}-plan-prompt.md",
            exec_prompt=base / f"{session}-exec-prompt.md",
            plan_archive=base / f"{session}-plan.md",
            record=base / f"{session}.json",
            exit_status=base / f"{session}.exit",
        )

    def ensure_root(self) -> None:
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def write_record(self, session: str, sandbox: Sandbox) -> Path:
        """Persist where and from what a sandbox was created."""

        path = self.paths(session).record
        _dump_record(path, sandbox.to_record())
        return path

    def read_record(self, session: str) -> dict[str, Any] | None:
        path = self.paths(session).record
        if not path.exists():
            return None
        try:
            return _parse_record(path)
        except (OSError, TypeError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable sandbox record %s", path)
            return None

    def read_exit_code(self, session: str) -> int | None:
        path = self.paths(session).exit_status
        try:
            raw = path.read_text("utf-8").strip()
        except OSError:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def clear_exit_code(self, session: str) -> None:
        self.paths(session).exit_status.unlink(missing_ok=True)

    def remove(self, session: str) -> list[Path]:
        """Delete every file of a session; returns the paths that existed."""

        removed: list[Path] = []
        for path in self.paths(session).all():
            if path.exists():
                path.unlink()
                removed.append(path)
        return removed


def record_created_at(record: dict[str, Any] | None) -> datetime | None:
    if not record:
        return None
    raw = record.get("created_at")
    if not isinstance(raw, str):
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def _dump_record(path: Path, record: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(record, ensure_ascii=False, indent=2, sort_keys=True)
    path.write_text(text + "\n", "utf-8")


def _parse_record(path: Path) -> dict[str, Any]:
    """Sandbox record as a dict; anything but a JSON object is rejected."""

    record = json.loads(path.read_text("utf-8"))
    if not isinstance(record, dict):
        raise TypeError(f"Sandbox record {path} is not a JSON object")
    return record
