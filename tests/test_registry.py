from __future__ import annotations

import allure
import pytest

from cw.orchestrator.errors import NoSuchSandbox, NoSuchSession, RepositoryNotFound
from cw.orchestrator.models import Freshness, KeepReason
from cw.orchestrator.planner import PLAN_ARTIFACT
from cw.orchestrator.registry import classify_activity

pytestmark = [
    allure.epic("Session Lifecycle"),
    allure.feature("Lifecycle Registry"),
]


def _make_sandbox(service, repo, name: str, branch: str):
    path = service.sandboxes.path_for(repo.root, name)
    return service.sandboxes.ensure(path, branch, "origin/main")


@pytest.mark.parametrize(
    ("age", "freshness", "label"),
    [
        (None, Freshness.UNKNOWN, "unknown"),
        (5, Freshness.ACTIVE, "active now"),
        (120, Freshness.RECENT, "2m ago"),
        (1200, Freshness.IDLE, "20m ago"),
        (7300, Freshness.STALE, "2h ago"),
    ],
)
def test_classify_activity(age, freshness, label) -> None:
    assert classify_activity(age) == (freshness, label)


def test_cleanup_keeps_unpushed_and_reclaims_clean(service, repo) -> None:
    x = _make_sandbox(service, repo, "issue-1", "feat/1-x")
    y = _make_sandbox(service, repo, "issue-2", "feat/2-y")
    repo.unpushed["feat/1-x"] = 1

    report = service.registry.cleanup()

    outcomes = {entry.name: entry for entry in report.entries}
    assert outcomes["issue-1"].reclaimed is False
    assert outcomes["issue-1"].reason is KeepReason.UNPUSHED
    assert outcomes["issue-2"].reclaimed is True
    assert x.path.exists()
    assert not y.path.exists()
    assert service.files.read_record("cw-issue-2") is None
    assert service.files.read_record("cw-issue-1") is not None
    assert (report.cleaned, report.kept) == (1, 1)
    assert repo.prune_count == 1


def test_cleanup_guards_apply_in_order(service, repo, sessions) -> None:
    active = _make_sandbox(service, repo, "active", "feat/active")
    dirty = _make_sandbox(service, repo, "dirty", "feat/dirty")
    sessions.add("cw-active")
    repo.dirty.update({active.path, dirty.path})
    repo.unpushed["feat/dirty"] = 3

    report = service.registry.cleanup()

    reasons = {entry.name: entry.reason for entry in report.entries}
    assert reasons == {"active": KeepReason.ACTIVE, "dirty": KeepReason.UNCOMMITTED}
    assert active.path.exists()
    assert dirty.path.exists()


def test_cleanup_keeps_sandbox_when_removal_fails(service, repo) -> None:
    sandbox = _make_sandbox(service, repo, "stuck", "feat/stuck")
    repo.failing_removals.add(sandbox.path)

    report = service.registry.cleanup()

    assert report.entries[0].reason is KeepReason.REMOVE_FAILED
    assert service.files.read_record("cw-stuck") is not None


def test_cleanup_outside_repository(service, repo) -> None:
    repo.root = None

    with pytest.raises(RepositoryNotFound):
        service.registry.cleanup()


def test_cleanup_with_no_sandboxes(service, repo) -> None:
    report = service.registry.cleanup()

    assert report.entries == []
    assert repo.prune_count == 1


def test_list_reports_our_sessions_only(service, repo, sessions, issues) -> None:
    _make_sandbox(service, repo, "issue-423", "fix/423-login-redirect-broken")
    now = service.registry.clock()
    sessions.add("cw-issue-423", last_activity=now - 10)
    sessions.add("cw-feat-x", last_activity=now - 4000)
    sessions.add("cw-dashboard")
    sessions.add("other-session")

    listings = service.registry.list()

    assert [listing.name for listing in listings] == ["feat-x", "issue-423"]
    feat, issue = listings
    assert feat.freshness is Freshness.STALE
    assert feat.branch is None
    assert feat.title is None
    assert issue.freshness is Freshness.ACTIVE
    assert issue.branch == "fix/423-login-redirect-broken"
    assert issue.title == "Login Redirect Broken!!"


def test_resolve_prefers_exact_then_first_substring(service, sessions) -> None:
    sessions.add("cw-issue-12")
    sessions.add("cw-issue-123")
    sessions.add("cw-issue-1234")

    assert service.registry.resolve("issue-123") == "cw-issue-123"
    assert service.registry.resolve("123") == "cw-issue-123"
    assert service.registry.resolve("34") == "cw-issue-1234"


def test_resolve_treats_name_literally(service, sessions) -> None:
    sessions.add("cw-issue-12")

    with pytest.raises(NoSuchSession, match="Run 'cw ls'"):
        service.registry.resolve("issue.1")


def test_kill_terminates_session_and_keeps_worktree(service, repo, sessions) -> None:
    sandbox = _make_sandbox(service, repo, "issue-5", "feat/5-x")
    sessions.add("cw-issue-5")

    assert service.registry.kill("5") == "cw-issue-5"

    assert sessions.killed == ["cw-issue-5"]
    assert sandbox.path.exists()
    assert repo.worktrees[sandbox.path] == "feat/5-x"


def test_attach_unknown_session(service) -> None:
    with pytest.raises(NoSuchSession):
        service.registry.attach("nothing")


def test_dashboard_attaches_single_session(service, sessions) -> None:
    sessions.add("cw-issue-1")

    assert service.registry.dashboard() == "cw-issue-1"
    assert sessions.attached == ["cw-issue-1"]
    assert sessions.pickers == []


def test_dashboard_opens_picker_for_several_sessions(service, sessions) -> None:
    sessions.add("cw-issue-2")
    sessions.add("cw-issue-1")

    assert service.registry.dashboard() == "cw-issue-1"
    assert sessions.pickers == [("cw-issue-1", "cw")]
    assert sessions.attached == []


def test_dashboard_without_sessions(service) -> None:
    assert service.registry.dashboard() is None


def test_sandbox_path_lists_available_names(service, repo) -> None:
    _make_sandbox(service, repo, "issue-1", "feat/1")

    assert service.registry.sandbox_path("issue-1").name == "issue-1"
    with pytest.raises(NoSuchSandbox) as error:
        service.registry.sandbox_path("issue-2")
    assert error.value.available == ("issue-1",)


def test_cleanup_keeps_detached_head_with_local_commits(service, repo) -> None:
    sandbox = _make_sandbox(service, repo, "issue-423", "fix/423-login-redirect-broken")
    repo.detached[sandbox.path] = 1

    report = service.registry.cleanup()

    assert report.entries[0].reason is KeepReason.UNPUSHED
    assert sandbox.path.exists()


def test_cleanup_reclaims_detached_head_without_local_commits(service, repo) -> None:
    sandbox = _make_sandbox(service, repo, "issue-423", "fix/423-login-redirect-broken")
    repo.detached[sandbox.path] = 0

    report = service.registry.cleanup()

    assert report.entries[0].reclaimed is True
    assert not sandbox.path.exists()


def _leave_plan(service, repo, sandbox, *, archived: str, current: str) -> None:
    (sandbox.path / PLAN_ARTIFACT).write_text(current, "utf-8")
    service.files.paths(f"cw-{sandbox.name}").plan_archive.write_text(archived, "utf-8")
    repo.untracked[sandbox.path] = {PLAN_ARTIFACT}


def test_cleanup_reclaims_pushed_two_phase_sandbox(service, repo) -> None:
    sandbox = _make_sandbox(service, repo, "issue-587", "feat/587-add-oauth-support")
    _leave_plan(service, repo, sandbox, archived="# Plan\n", current="# Plan\n")

    report = service.registry.cleanup()

    assert report.entries[0].reclaimed is True
    assert not sandbox.path.exists()
    assert not service.files.paths("cw-issue-587").plan_archive.exists()


def test_cleanup_keeps_edited_plan_file(service, repo) -> None:
    sandbox = _make_sandbox(service, repo, "issue-587", "feat/587-add-oauth-support")
    _leave_plan(service, repo, sandbox, archived="# Plan\n", current="# Plan\nrevised\n")

    report = service.registry.cleanup()

    assert report.entries[0].reason is KeepReason.UNCOMMITTED


def test_cleanup_keeps_other_untracked_files_next_to_plan(service, repo) -> None:
    sandbox = _make_sandbox(service, repo, "issue-587", "feat/587-add-oauth-support")
    _leave_plan(service, repo, sandbox, archived="# Plan\n", current="# Plan\n")
    repo.untracked[sandbox.path].add("notes.txt")

    report = service.registry.cleanup()

    assert report.entries[0].reason is KeepReason.UNCOMMITTED


def test_cleanup_keeps_sandbox_when_git_state_is_unknown(service, repo) -> None:
    sandbox = _make_sandbox(service, repo, "issue-9", "feat/9-x")
    clean = _make_sandbox(service, repo, "issue-10", "feat/10-y")
    repo.failing_status.add(sandbox.path)

    report = service.registry.cleanup()

    outcomes = {entry.name: entry for entry in report.entries}
    assert outcomes["issue-9"].reclaimed is False
    assert outcomes["issue-9"].reason is KeepReason.UNKNOWN_STATE
    assert outcomes["issue-10"].reclaimed is True
    assert sandbox.path.exists()
    assert not clean.path.exists()
    assert service.files.read_record("cw-issue-9") is not None
