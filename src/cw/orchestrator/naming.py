"""Deterministic branch, worktree and session names for tasks."""

from __future__ import annotations

import logging
import re

from cw.orchestrator.collaborators.base import IssueTracker
from cw.orchestrator.errors import MetadataUnavailable
from cw.orchestrator.models import IssueMetadata, TaskNames, TaskRef

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 50
DEFAULT_BRANCH_PREFIX = "feat"
DASHBOARD_SUFFIX = "-dashboard"

# Checked in order; the first category with a matching label wins.
_PREFIX_RULES = (
    ("fix", re.compile(r"bug|fix|hotfix|defect", re.IGNORECASE)),
    ("chore", re.compile(r"chore|maintenance|refactor|tech.debt", re.IGNORECASE)),
    ("docs", re.compile(r"docs|documentation", re.IGNORECASE)),
)
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_SESSION_UNSAFE = re.compile(r"[.:]")


def branch_prefix(labels: tuple[str, ...] | list[str]) -> str:
    """Conventional-commit style prefix inferred from issue labels."""

    for prefix, pattern in _PREFIX_RULES:
        if any(pattern.search(label) for label in labels):
            return prefix
    return DEFAULT_BRANCH_PREFIX


def title_slug(title: str | None) -> str | None:
    """Lowercase ``a-z0-9`` words joined by single dashes, at most 50 characters."""

    if not title:
        return None
    slug = _NON_ALNUM.sub("-", title.lower()).strip("-")
    slug = slug[:MAX_SLUG_LENGTH].rstrip("-")
    return slug or None


def issue_branch_name(issue: int, metadata: IssueMetadata) -> str:
    prefix = branch_prefix(metadata.labels)
    slug = title_slug(metadata.title)
    if slug:
        return f"{prefix}/{issue}-{slug}"
    return f"{prefix}/issue-{issue}"


def sandbox_name(task: TaskRef) -> str:
    """Filesystem-safe worktree directory name."""

    if task.issue is not None:
        return f"issue-{task.issue}"
    return str(task.branch).replace("/", "-")


def session_name(sandbox: str, *, prefix: str) -> str:
    """tmux session name for a worktree; tmux reserves ``.`` and ``:`` in targets."""

    return _SESSION_UNSAFE.sub("-", f"{prefix}-{sandbox}")


def resolve_names(task: TaskRef, metadata: IssueMetadata, *, session_prefix: str) -> TaskNames:
    """Pure derivation of every identifier a task needs."""

    if task.issue is not None:
        branch = issue_branch_name(task.issue, metadata)
        prefix = branch_prefix(metadata.labels)
    else:
        branch = str(task.branch)
        prefix = branch.split("/", 1)[0] if "/" in branch else DEFAULT_BRANCH_PREFIX
    worktree = sandbox_name(task)
    return TaskNames(
        branch=branch,
        sandbox=worktree,
        session=session_name(worktree, prefix=session_prefix),
        prefix=prefix,
    )


def fetch_metadata(tracker: IssueTracker, task: TaskRef) -> IssueMetadata:
    """Issue labels and title, or empty metadata when the tracker is unavailable."""

    if task.issue is None:
        return IssueMetadata()
    try:
        return tracker.fetch_issue(task.issue)
    except MetadataUnavailable as error:
        logger.warning("%s; using default branch prefix and no title slug", error)
        return IssueMetadata()
