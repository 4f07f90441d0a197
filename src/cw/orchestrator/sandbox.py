"""Idempotent creation and discovery of worktree sandboxes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from cw.orchestrator.collaborators.base import VersionControl
from cw.orchestrator.errors import CollaboratorCommandError, SandboxCreationFailed
from cw.orchestrator.models import Sandbox
from cw.orchestrator.naming import session_name
from cw.orchestrator.session_files import SessionFilesManager, record_created_at

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


class SandboxManager:
    """Materializes one worktree per task under ``<repo>/<worktree_dir>``."""

    def __init__(
        self,
        *,
        vcs: VersionControl,
        files: SessionFilesManager,
        worktree_dir: str,
        session_prefix: str,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.vcs = vcs
        self.files = files
        self.worktree_dir = worktree_dir
        self.session_prefix = session_prefix
        self.clock = clock

    def root_for(self, repo_root: Path) -> Path:
        return repo_root / self.worktree_dir

    def path_for(self, repo_root: Path, name: str) -> Path:
        return self.root_for(repo_root) / name

    def ensure(self, path: Path, branch: str, base_ref: str) -> Sandbox:
        """Reuse the worktree at ``path`` or create it on a new branch from ``base_ref``."""

        session = session_name(path.name, prefix=self.session_prefix)
        if path.exists():
            logger.info("Worktree %s already exists. Reusing.", path)
            sandbox = self.load(path)
            if self.files.read_record(session) is None:
                self.files.write_record(session, sandbox)
            sandbox.reused = True
            return sandbox

        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.vcs.add_worktree(path, branch, base_ref=base_ref)
        except CollaboratorCommandError as error:
            if not self.vcs.local_branch_exists(branch):
                raise SandboxCreationFailed(
                    branch=branch,
                    base=base_ref,
                    detail=str(error),
                ) from error
            # Left over from an earlier run that died after creating the branch.
            logger.info("Branch %s already exists; attaching it to a new worktree", branch)
            try:
                self.vcs.add_worktree(path, branch, base_ref=None)
            except CollaboratorCommandError as retry_error:
                raise SandboxCreationFailed(
                    branch=branch,
                    base=base_ref,
                    detail=str(retry_error),
                ) from retry_error

        sandbox = Sandbox(
            name=path.name,
            path=path,
            branch=branch,
            base_ref=base_ref,
            created_at=self.clock(),
        )
        self.files.write_record(session, sandbox)
        return sandbox

    def load(self, path: Path) -> Sandbox:
        """Describe an existing worktree from git state and its creation record."""

        session = session_name(path.name, prefix=self.session_prefix)
        record = self.files.read_record(session) or {}
        branch = self.vcs.current_branch(path) or str(record.get("branch") or "")
        base_ref = record.get("base_ref")
        return Sandbox(
            name=path.name,
            path=path,
            branch=branch,
            base_ref=base_ref if isinstance(base_ref, str) else "",
            created_at=record_created_at(record) or _mtime(path),
        )

    def discover(self, repo_root: Path) -> list[Path]:
        """Worktree directories under the sandbox root, sorted by name."""

        root = self.root_for(repo_root)
        if not root.is_dir():
            return []
        return sorted(entry for entry in root.iterdir() if entry.is_dir())

    def remove(self, path: Path) -> None:
        self.vcs.remove_worktree(path)


def _mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
