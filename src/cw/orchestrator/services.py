"""Use-case services: start a task end to end."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from cw.config import Settings
from cw.orchestrator.base_ref import resolve_base
from cw.orchestrator.collaborators import Collaborators
from cw.orchestrator.errors import RepositoryNotFound
from cw.orchestrator.launcher import SessionLauncher
from cw.orchestrator.models import (
    ExecutionPlan,
    IssueMetadata,
    ResolvedBase,
    Sandbox,
    Session,
    TaskNames,
    TaskRef,
)
from cw.orchestrator.naming import fetch_metadata, resolve_names
from cw.orchestrator.planner import PlanningContext, plan
from cw.orchestrator.registry import LifecycleRegistry
from cw.orchestrator.sandbox import SandboxManager
from cw.orchestrator.session_files import SessionFilesManager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StartTask:
    """High-level command to start (or resume) work on a task."""

    task: TaskRef
    base: str | None = None
    message: str = ""


@dataclass(slots=True)
class StartResult:
    """What a start produced. ``sandbox`` and ``plan`` are None on re-attach."""

    names: TaskNames
    base: ResolvedBase
    metadata: IssueMetadata
    session: Session
    sandbox: Sandbox | None = None
    plan: ExecutionPlan | None = None


class OrchestratorService:
    """Wires the resolvers, sandbox manager, planner, launcher and registry."""

    def __init__(self, *, settings: Settings, collaborators: Collaborators) -> None:
        self.settings = settings
        self.collaborators = collaborators
        self.files = SessionFilesManager(settings.session_dir)
        self.sandboxes = SandboxManager(
            vcs=collaborators.vcs,
            files=self.files,
            worktree_dir=settings.worktree_dir,
            session_prefix=settings.tmux_prefix,
        )
        self.launcher = SessionLauncher(
            sessions=collaborators.sessions,
            files=self.files,
            agent=collaborators.agent,
            session_prefix=settings.tmux_prefix,
        )
        self.registry = LifecycleRegistry(
            vcs=collaborators.vcs,
            sessions=collaborators.sessions,
            issues=collaborators.issues,
            sandboxes=self.sandboxes,
            files=self.files,
            session_prefix=settings.tmux_prefix,
        )

    def start(self, command: StartTask) -> StartResult:
        """Resolve names and base, then converge on one worktree and one session.

        Resolution failures raise before anything is created. A live session
        for the task short-circuits the rest so repeated starts never launch
        a second agent.
        """

        vcs = self.collaborators.vcs
        root = vcs.repo_root()
        if root is None:
            raise RepositoryNotFound
        base = resolve_base(vcs, command.base)
        metadata = fetch_metadata(self.collaborators.issues, command.task)
        names = resolve_names(command.task, metadata, session_prefix=self.settings.tmux_prefix)

        if self.collaborators.sessions.has_session(names.session):
            logger.info("Session %s already running", names.session)
            return StartResult(
                names=names,
                base=base,
                metadata=metadata,
                session=Session(name=names.session, sandbox_name=names.sandbox, reused=True),
            )

        vcs.fetch()
        sandbox = self.sandboxes.ensure(
            self.sandboxes.path_for(root, names.sandbox),
            names.branch,
            base.ref,
        )
        execution_plan = plan(
            PlanningContext(
                task=command.task,
                names=names,
                metadata=metadata,
                project=vcs.project_name(),
                base_branch=base.name,
                message=command.message,
            ),
            self.settings,
        )
        session = self.launcher.launch(sandbox, execution_plan)
        return StartResult(
            names=names,
            base=base,
            metadata=metadata,
            session=session,
            sandbox=sandbox,
            plan=execution_plan,
        )
