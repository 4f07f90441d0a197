"""Git-backed version control collaborator."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from cw.orchestrator.collaborators.process import run_command, succeeds
from cw.orchestrator.errors import CollaboratorCommandError

logger = logging.getLogger(__name__)


class GitRepository:
    """Drive the ``git`` CLI for one working directory."""

    def __init__(self, cwd: Path | None = None, *, remote: str = "origin") -> None:
        self.cwd = cwd or Path.cwd()
        self.remote = remote

    def repo_root(self) -> Path | None:
        try:
            completed = run_command(
                ["git", "rev-parse", "--show-toplevel"],
                cwd=self.cwd,
                check=False,
            )
        except CollaboratorCommandError as error:
            logger.debug("git unavailable: %s", error)
            return None
        output = completed.stdout.strip()
        if completed.returncode != 0 or not output:
            return None
        return Path(output)

    def project_name(self) -> str:
        root = self.repo_root()
        return root.name if root is not None else "unknown"

    def fetch(self) -> None:
        try:
            self._git("fetch", self.remote, "--quiet")
        except CollaboratorCommandError as error:
            logger.warning("git fetch %s failed: %s", self.remote, error)

    def remote_default_branch(self) -> str | None:
        completed = run_command(
            ["git", "symbolic-ref", f"refs/remotes/{self.remote}/HEAD"],
            cwd=self.cwd,
            check=False,
        )
        ref = completed.stdout.strip()
        prefix = f"refs/remotes/{self.remote}/"
        if completed.returncode != 0 or not ref.startswith(prefix):
            return None
        return ref[len(prefix) :] or None

    def refresh_remote_default(self) -> None:
        succeeds(["git", "remote", "set-head", self.remote, "--auto"], cwd=self.cwd)

    def remote_branch_exists(self, branch: str) -> bool:
        return self._ref_exists(f"refs/remotes/{self.remote}/{branch}")

    def local_branch_exists(self, branch: str) -> bool:
        return self._ref_exists(f"refs/heads/{branch}")

    def remote_ref(self, branch: str) -> str:
        return f"{self.remote}/{branch}"

    def add_worktree(self, path: Path, branch: str, *, base_ref: str | None) -> None:
        if base_ref is not None:
            self._git("worktree", "add", str(path), "-b", branch, base_ref)
        else:
            self._git("worktree", "add", str(path), branch)

    def current_branch(self, path: Path) -> str | None:
        completed = run_command(["git", "branch", "--show-current"], cwd=path, check=False)
        branch = completed.stdout.strip()
        if completed.returncode != 0 or not branch:
            return None
        return branch

    def has_uncommitted_changes(self, path: Path, *, ignore: Sequence[str] = ()) -> bool:
        completed = run_command(
            ["git", "status", "--porcelain", "--untracked-files=normal"],
            cwd=path,
        )
        ignored = {f"?? {name}" for name in ignore}
        return any(
            line.strip() and line not in ignored for line in completed.stdout.splitlines()
        )

    def unpushed_commit_count(self, path: Path, branch: str | None) -> int:
        if branch is None:
            completed = run_command(
                ["git", "rev-list", "--count", "HEAD", "--not", "--remotes"],
                cwd=path,
            )
            return int(completed.stdout.strip() or "0")
        remote_branch = f"refs/remotes/{self.remote}/{branch}"
        if succeeds(["git", "show-ref", "--verify", "--quiet", remote_branch], cwd=path):
            argv = ["git", "rev-list", "--count", f"{remote_branch}..{branch}"]
        else:
            # Never pushed: anything not reachable from a remote ref is local-only work.
            argv = ["git", "rev-list", "--count", branch, "--not", "--remotes"]
        completed = run_command(argv, cwd=path)
        return int(completed.stdout.strip() or "0")

    def remove_worktree(self, path: Path) -> None:
        self._git("worktree", "remove", str(path), "--force")

    def prune_worktrees(self) -> None:
        succeeds(["git", "worktree", "prune"], cwd=self.cwd)

    def _ref_exists(self, ref: str) -> bool:
        return succeeds(["git", "show-ref", "--verify", "--quiet", ref], cwd=self.cwd)

    def _git(self, *args: str) -> str:
        return run_command(["git", *args], cwd=self.cwd).stdout
