"""GitHub issue tracker backed by the ``gh`` CLI."""

from __future__ import annotations

import json
from pathlib import Path

from cw.orchestrator.collaborators.process import run_command, run_interactive
from cw.orchestrator.errors import CollaboratorCommandError, MetadataUnavailable
from cw.orchestrator.models import IssueMetadata


class GitHubIssues:
    """Read issue labels and titles with ``gh issue view``."""

    def __init__(self, cwd: Path | None = None, *, timeout_seconds: int = 20) -> None:
        self.cwd = cwd
        self.timeout_seconds = timeout_seconds

    def fetch_issue(self, issue: int) -> IssueMetadata:
        try:
            completed = run_command(
                ["gh", "issue", "view", str(issue), "--json", "labels,title"],
                cwd=self.cwd,
                timeout_seconds=self.timeout_seconds,
            )
        except CollaboratorCommandError as error:
            raise MetadataUnavailable(issue, str(error)) from error
        try:
            payload = json.loads(completed.stdout)
        except json.JSONDecodeError as error:
            raise MetadataUnavailable(issue, f"invalid JSON from gh: {error}") from error
        if not isinstance(payload, dict):
            raise MetadataUnavailable(issue, "unexpected payload from gh")

        labels: list[str] = []
        for raw in payload.get("labels") or []:
            name = raw.get("name") if isinstance(raw, dict) else None
            if isinstance(name, str) and name.strip():
                labels.append(name.strip())
        title = payload.get("title")
        return IssueMetadata(
            labels=tuple(labels),
            title=title.strip() if isinstance(title, str) else "",
        )

    def open_pull_request(self, path: Path) -> None:
        run_interactive(["gh", "pr", "create", "--web"], cwd=path)
