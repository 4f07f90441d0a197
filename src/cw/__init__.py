"""Parallel coding agents on isolated worktrees and tmux sessions."""

__version__ = "0.4.0"
