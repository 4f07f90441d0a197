"""Workflow orchestration engine: task -> branch + worktree + tmux session.

Every start is resolved the same way: names and base reference first, then
the worktree, then the execution plan, then the session. Resolution failures
abort before anything is launched, and every step converges on existing state
when re-run, so recovering from a crash is a matter of running the same
command again.
"""
