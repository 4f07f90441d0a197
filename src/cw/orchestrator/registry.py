"""Listing, attaching, killing and safely reclaiming sandboxes and sessions."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from pathlib import Path

from cw.orchestrator.collaborators.base import IssueTracker, SessionHost, VersionControl
from cw.orchestrator.errors import (
    CollaboratorCommandError,
    MetadataUnavailable,
    NoSuchSandbox,
    NoSuchSession,
    RepositoryNotFound,
)
from cw.orchestrator.models import (
    CleanupEntry,
    CleanupReport,
    Freshness,
    KeepReason,
    SessionListing,
)
from cw.orchestrator.naming import DASHBOARD_SUFFIX, session_name
from cw.orchestrator.planner import PLAN_ARTIFACT
from cw.orchestrator.sandbox import SandboxManager
from cw.orchestrator.session_files import SessionFilesManager

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 40
_ISSUE_SANDBOX = re.compile(r"^issue-(\d+)$")


def classify_activity(age_seconds: float | None) -> tuple[Freshness, str]:
    """Map seconds since last activity to a freshness band and a short label."""

    if age_seconds is None:
        return Freshness.UNKNOWN, "unknown"
    age = max(0, int(age_seconds))
    if age < 60:
        return Freshness.ACTIVE, "active now"
    if age < 300:
        return Freshness.RECENT, f"{age // 60}m ago"
    if age < 3600:
        return Freshness.IDLE, f"{age // 60}m ago"
    return Freshness.STALE, f"{age // 3600}h ago"


class LifecycleRegistry:
    """Long-lived index over sandboxes and their sessions."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        vcs: VersionControl,
        sessions: SessionHost,
        issues: IssueTracker,
        sandboxes: SandboxManager,
        files: SessionFilesManager,
        session_prefix: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.vcs = vcs
        self.sessions = sessions
        self.issues = issues
        self.sandboxes = sandboxes
        self.files = files
        self.session_prefix = session_prefix
        self.clock = clock

    def live_sessions(self) -> list[str]:
        """Our sessions, without the dashboard, sorted by name."""

        prefix = f"{self.session_prefix}-"
        return sorted(
            name
            for name in self.sessions.list_sessions()
            if name.startswith(prefix) and not name.endswith(DASHBOARD_SUFFIX)
        )

    def list(self) -> list[SessionListing]:
        root = self.vcs.repo_root()
        listings: list[SessionListing] = []
        for session in self.live_sessions():
            name = self.short_name(session)
            activity = self.sessions.last_activity(session)
            freshness, age = classify_activity(
                self.clock() - activity if activity is not None else None,
            )
            branch = None
            if root is not None:
                path = self.sandboxes.path_for(root, name)
                if path.is_dir():
                    branch = self.vcs.current_branch(path)
            listings.append(
                SessionListing(
                    name=name,
                    session=session,
                    freshness=freshness,
                    age=age,
                    branch=branch,
                    title=self._issue_title(name),
                ),
            )
        return listings

    def resolve(self, name: str) -> str:
        """Exact session name first, then the first live session containing ``name``.

        Several sessions can share a substring; the first in sorted order wins.
        """

        exact = session_name(name, prefix=self.session_prefix)
        if self.sessions.has_session(exact):
            return exact
        pattern = re.compile(f"{re.escape(self.session_prefix)}-.*{re.escape(name)}")
        for candidate in self.sessions.list_sessions():
            if pattern.search(candidate):
                return candidate
        raise NoSuchSession(name)

    def attach(self, name: str) -> str:
        session = self.resolve(name)
        self.sessions.attach(session)
        return session

    def kill(self, name: str) -> str:
        """Terminate the session only; the worktree and branch stay untouched."""

        session = self.resolve(name)
        self.sessions.kill_session(session)
        logger.info("Killed session %s", session)
        return session

    def dashboard(self) -> str | None:
        """Attach to the only session, or open the picker when there are several."""

        sessions = self.live_sessions()
        if not sessions:
            return None
        if len(sessions) == 1:
            self.sessions.attach(sessions[0])
        else:
            self.sessions.open_picker(sessions[0], prefix=self.session_prefix)
        return sessions[0]

    def sandbox_path(self, name: str) -> Path:
        root = self._require_root()
        path = self.sandboxes.path_for(root, name)
        if not path.is_dir():
            available = [entry.name for entry in self.sandboxes.discover(root)]
            raise NoSuchSandbox(name, available)
        return path

    def cleanup(self) -> CleanupReport:
        """Remove every sandbox that has no live session and nothing unsaved or unpushed."""

        root = self._require_root()
        report = CleanupReport()
        for path in self.sandboxes.discover(root):
            session = session_name(path.name, prefix=self.session_prefix)
            reason = self._guard(path, session)
            if reason is None:
                reason = self._reclaim(path, session)
            if reason is None:
                logger.info("Reclaimed %s", path.name)
                report.entries.append(CleanupEntry(name=path.name, reclaimed=True))
            else:
                logger.info("Kept %s: %s", path.name, reason.value)
                report.entries.append(
                    CleanupEntry(name=path.name, reclaimed=False, reason=reason),
                )
        self.vcs.prune_worktrees()
        return report

    def short_name(self, session: str) -> str:
        prefix = f"{self.session_prefix}-"
        return session[len(prefix) :] if session.startswith(prefix) else session

    def _guard(self, path: Path, session: str) -> KeepReason | None:
        if self.sessions.has_session(session):
            return KeepReason.ACTIVE
        try:
            if self.vcs.has_uncommitted_changes(path, ignore=self._archived_plan(path, session)):
                return KeepReason.UNCOMMITTED
            # None means detached HEAD; its commits are checked against every remote.
            branch = self.vcs.current_branch(path)
            if self.vcs.unpushed_commit_count(path, branch) > 0:
                return KeepReason.UNPUSHED
        except CollaboratorCommandError as error:
            logger.warning("Cannot inspect %s, keeping it: %s", path, error)
            return KeepReason.UNKNOWN_STATE
        return None

    def _archived_plan(self, path: Path, session: str) -> tuple[str, ...]:
        """The two-phase plan file, when it is unchanged from its archived copy."""

        plan = path / PLAN_ARTIFACT
        archive = self.files.paths(session).plan_archive
        if plan.is_file() and archive.is_file() and plan.read_bytes() == archive.read_bytes():
            return (PLAN_ARTIFACT,)
        return ()

    def _reclaim(self, path: Path, session: str) -> KeepReason | None:
        try:
            self.sandboxes.remove(path)
        except CollaboratorCommandError as error:
            logger.warning("Failed to remove worktree %s: %s", path, error)
            return KeepReason.REMOVE_FAILED
        self.files.remove(session)
        return None

    def _issue_title(self, name: str) -> str | None:
        match = _ISSUE_SANDBOX.match(name)
        if match is None:
            return None
        try:
            title = self.issues.fetch_issue(int(match.group(1))).title
        except MetadataUnavailable as error:
            logger.debug("No title for %s: %s", name, error)
            return None
        return title[:TITLE_MAX_LENGTH] or None

    def _require_root(self) -> Path:
        root = self.vcs.repo_root()
        if root is None:
            raise RepositoryNotFound
        return root
