"""Fork-point resolution for new sandbox branches."""

from __future__ import annotations

import logging

from cw.orchestrator.collaborators.base import VersionControl
from cw.orchestrator.errors import BaseNotFound
from cw.orchestrator.models import ResolvedBase

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_CANDIDATES = ("main", "master", "develop")
FALLBACK_DEFAULT_BRANCH = "main"


def detect_default_branch(vcs: VersionControl) -> str:
    """Remote HEAD, refreshed once if unknown, then common names, then ``main``."""

    branch = vcs.remote_default_branch()
    if branch:
        return branch

    logger.debug("Remote HEAD unknown; refreshing it from the remote")
    vcs.refresh_remote_default()
    branch = vcs.remote_default_branch()
    if branch:
        return branch

    for candidate in DEFAULT_BRANCH_CANDIDATES:
        if vcs.remote_branch_exists(candidate):
            return candidate
    return FALLBACK_DEFAULT_BRANCH


def resolve_base(vcs: VersionControl, requested: str | None = None) -> ResolvedBase:
    """Resolve a base name to a ref, preferring the remote-tracking copy."""

    name = requested.strip() if requested and requested.strip() else detect_default_branch(vcs)
    if vcs.remote_branch_exists(name):
        return ResolvedBase(name=name, ref=vcs.remote_ref(name))
    if vcs.local_branch_exists(name):
        return ResolvedBase(name=name, ref=name)
    raise BaseNotFound(name, remote=vcs.remote)
