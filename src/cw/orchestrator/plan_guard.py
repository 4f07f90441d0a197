"""Between-phase check that guarantees phase two always has a plan to read.

Two-phase entry scripts run ``python -m cw.orchestrator.plan_guard plan.md``
after the planning agent exits. A missing or blank plan is replaced by a
placeholder that tells the execution agent to plan and implement in one pass.
"""

from __future__ import annotations

import argparse
import logging
import shutil
from pathlib import Path

from cw.orchestrator.errors import PlanArtifactMissing

logger = logging.getLogger(__name__)

PLACEHOLDER_PLAN = """\
# Plan

No structured plan was produced by the planning phase.
Read the issue, explore the codebase, plan your approach, and implement.
"""


def check_plan_artifact(path: Path) -> None:
    """Raise ``PlanArtifactMissing`` unless ``path`` holds a non-blank plan."""

    try:
        content = path.read_text("utf-8")
    except (OSError, UnicodeDecodeError) as error:
        raise PlanArtifactMissing(str(path)) from error
    if not content.strip():
        raise PlanArtifactMissing(str(path))


def ensure_plan_artifact(path: Path) -> bool:
    """Make sure a plan exists at ``path``; returns True when a placeholder was written."""

    try:
        check_plan_artifact(path)
    except PlanArtifactMissing as error:
        logger.warning("%s; writing placeholder plan", error)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(PLACEHOLDER_PLAN, "utf-8")
        return True
    return False


def main(argv: list[str] | None = None) -> int:
    """Ensure the plan exists, optionally archive it, and report its size."""

    parser = argparse.ArgumentParser(prog="python -m cw.orchestrator.plan_guard")
    parser.add_argument("plan_path", type=Path)
    parser.add_argument("--archive", type=Path, default=None)
    args = parser.parse_args(argv)

    substituted = ensure_plan_artifact(args.plan_path)
    if substituted:
        print(f"⚠  The planning phase did not create {args.plan_path.name}; using a placeholder.")
        print("   The execution phase will plan and implement in one pass.")
    if args.archive is not None:
        args.archive.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(args.plan_path, args.archive)
    line_count = len(args.plan_path.read_text("utf-8").splitlines())
    print(f"  ✓ {args.plan_path.name} ready ({line_count} lines)")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
