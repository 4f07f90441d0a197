from __future__ import annotations

import allure
import pytest

from cw.orchestrator.collaborators.memory import StaticIssueTracker
from cw.orchestrator.models import IssueMetadata, TaskRef
from cw.orchestrator.naming import (
    MAX_SLUG_LENGTH,
    branch_prefix,
    fetch_metadata,
    resolve_names,
    session_name,
    title_slug,
)

pytestmark = [
    allure.epic("Task Start"),
    allure.feature("Naming Resolver"),
]


@pytest.mark.parametrize(
    ("labels", "expected"),
    [
        (("bug",), "fix"),
        (("Hotfix",), "fix"),
        (("type: defect",), "fix"),
        (("refactor",), "chore"),
        (("tech-debt",), "chore"),
        (("documentation",), "docs"),
        (("enhancement",), "feat"),
        ((), "feat"),
        (("docs", "bug"), "fix"),
    ],
)
def test_branch_prefix_from_labels(labels: tuple[str, ...], expected: str) -> None:
    assert branch_prefix(labels) == expected


def test_title_slug_collapses_punctuation() -> None:
    assert title_slug("Login Redirect Broken!!") == "login-redirect-broken"
    assert title_slug("  --Add   OAuth: support--") == "add-oauth-support"


def test_title_slug_is_truncated_without_trailing_dash() -> None:
    slug = title_slug("word " * 30)

    assert slug is not None
    assert len(slug) <= MAX_SLUG_LENGTH
    assert not slug.endswith("-")


def test_title_slug_empty_for_symbol_only_titles() -> None:
    assert title_slug("!!!") is None
    assert title_slug("") is None
    assert title_slug(None) is None


def test_issue_names_are_deterministic() -> None:
    metadata = IssueMetadata(labels=("bug",), title="Login Redirect Broken!!")

    first = resolve_names(TaskRef.for_issue(423), metadata, session_prefix="cw")
    second = resolve_names(TaskRef.for_issue(423), metadata, session_prefix="cw")

    assert first == second
    assert first.branch == "fix/423-login-redirect-broken"
    assert first.sandbox == "issue-423"
    assert first.session == "cw-issue-423"
    assert first.prefix == "fix"


def test_issue_without_title_uses_issue_number_branch() -> None:
    names = resolve_names(TaskRef.for_issue(7), IssueMetadata(), session_prefix="cw")

    assert names.branch == "feat/issue-7"


def test_branch_task_names_are_filesystem_safe() -> None:
    names = resolve_names(TaskRef.for_branch("fix/v1.2:hot"), IssueMetadata(), session_prefix="cw")

    assert names.branch == "fix/v1.2:hot"
    assert names.sandbox == "fix-v1.2:hot"
    assert names.session == "cw-fix-v1-2-hot"
    assert names.prefix == "fix"


def test_session_name_uses_prefix() -> None:
    assert session_name("issue-9", prefix="agents") == "agents-issue-9"


def test_metadata_failure_degrades_to_defaults() -> None:
    tracker = StaticIssueTracker()

    metadata = fetch_metadata(tracker, TaskRef.for_issue(999))

    assert metadata == IssueMetadata()
    assert tracker.fetches == 1


def test_branch_task_never_queries_tracker() -> None:
    tracker = StaticIssueTracker()

    assert fetch_metadata(tracker, TaskRef.for_branch("feat/x")) == IssueMetadata()
    assert tracker.fetches == 0


@pytest.mark.parametrize(
    "kwargs",
    [{}, {"issue": 1, "branch": "x"}, {"issue": 0}, {"branch": "  "}],
)
def test_task_ref_requires_exactly_one_valid_identity(kwargs) -> None:
    with pytest.raises(ValueError):
        TaskRef(**kwargs)
