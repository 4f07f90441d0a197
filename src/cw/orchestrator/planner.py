"""Execution policy selection and agent instruction rendering."""

from __future__ import annotations

from dataclasses import dataclass

from cw.config import Settings
from cw.orchestrator.models import (
    ExecutionPlan,
    IssueMetadata,
    SinglePhase,
    TaskNames,
    TaskRef,
    TwoPhase,
)

PLAN_ARTIFACT = "plan.md"

_PR_BODY = """\
   ## Changes
   <summary of what you did>

   ## Testing
   <how you verified it works>'"""


@dataclass(slots=True, frozen=True)
class PlanningContext:
    """Everything the instructions mention about one task start."""

    task: TaskRef
    names: TaskNames
    metadata: IssueMetadata
    project: str
    base_branch: str
    message: str = ""


def needs_planning(labels: tuple[str, ...], settings: Settings) -> bool:
    """True when two-phase models are configured and a plan label matches.

    A configured plan label matches any issue label that contains it,
    ignoring case, so ``feature`` also selects ``feature-request``.
    """

    if not settings.two_phase_enabled:
        return False
    lowered = [label.lower() for label in labels]
    return any(
        plan_label.strip().lower() in label
        for plan_label in settings.plan_labels
        if plan_label.strip()
        for label in lowered
    )


def plan(context: PlanningContext, settings: Settings) -> ExecutionPlan:
    """Choose single- or two-phase execution and render its instructions."""

    if context.task.issue is None:
        return SinglePhase(
            instructions=render_branch_instructions(context),
            model=settings.default_model,
        )
    if needs_planning(context.metadata.labels, settings):
        return TwoPhase(
            plan_instructions=render_plan_instructions(context),
            exec_instructions=render_exec_instructions(context),
            plan_model=settings.plan_model,
            exec_model=settings.exec_model,
        )
    return SinglePhase(
        instructions=render_issue_instructions(context),
        model=settings.exec_model or settings.default_model,
    )


def render_issue_instructions(context: PlanningContext) -> str:
    issue = context.task.issue
    text = f"""\
You are working on GitHub issue #{issue} in the {context.project} repository.

FIRST STEPS:
1. Read the issue: gh issue view {issue}
2. Understand the full context, requirements, and acceptance criteria
3. Plan your approach before writing code
4. Implement the fix/feature with appropriate tests
5. Run the test suite to verify nothing is broken
6. When done, create a PR:
   gh pr create --title '{context.names.prefix}: <concise title>' --body 'Closes #{issue}

{_PR_BODY}

{_branch_line(context)}
"""
    return _with_context(text, context.message, heading="ADDITIONAL CONTEXT FROM USER:")


def render_plan_instructions(context: PlanningContext) -> str:
    issue = context.task.issue
    text = f"""\
You are a senior architect planning the implementation of GitHub issue #{issue} \
in the {context.project} repository.

YOUR JOB IS TO PLAN, NOT IMPLEMENT.

STEPS:
1. Read the issue thoroughly: gh issue view {issue}
2. Explore the codebase to understand the architecture, relevant files, patterns, and conventions
3. Identify which files need to change and why
4. Consider edge cases, backward compatibility, and testing strategy
5. Write a detailed implementation plan

OUTPUT YOUR PLAN to the file: {PLAN_ARTIFACT} (in the current directory)

The plan should include:
- Summary of what needs to happen
- List of files to create/modify with what changes
- Testing approach (which tests to add/modify)
- Potential risks or things to watch out for
- Step-by-step implementation order

{_branch_line(context)}
Do NOT write any code. Only produce the plan.
"""
    return _with_context(text, context.message, heading="ADDITIONAL CONTEXT FROM USER:")


def render_exec_instructions(context: PlanningContext) -> str:
    issue = context.task.issue
    text = f"""\
You are an implementation agent working on GitHub issue #{issue} in the \
{context.project} repository.

A senior architect has already created a detailed plan for you. Read it first:
  cat {PLAN_ARTIFACT}

Also read the original issue for full context:
  gh issue view {issue}

YOUR JOB:
1. Read {PLAN_ARTIFACT} carefully. It is your blueprint.
2. Implement exactly what the plan describes, step by step
3. Follow the project's coding conventions
4. Write tests as specified in the plan
5. Run the test suite to verify everything works
6. When done, create a PR:
   gh pr create --title '{context.names.prefix}: <concise title>' --body 'Closes #{issue}

{_PR_BODY}

{_branch_line(context)}
Follow the plan. Do not deviate unless you find a clear error in it.
"""
    return _with_context(text, context.message, heading="ADDITIONAL CONTEXT FROM USER:")


def render_branch_instructions(context: PlanningContext) -> str:
    branch = context.names.branch
    text = f"""\
You are working on branch '{branch}' in the {context.project} repository, \
branched from '{context.base_branch}'.

WORKFLOW:
1. Understand the task fully before writing code
2. Implement with clean, idiomatic code matching the project's style
3. Add or update tests for your changes
4. Run the test suite to verify nothing is broken
5. Commit your work with clear, atomic commit messages
6. Push your branch: git push -u origin {branch}
7. When done, create a PR:
   gh pr create --title '<type>: <concise title>' --body '## Changes
   <summary of what you did>

   ## Testing
   <how you verified it works>'
"""
    return _with_context(text, context.message, heading="YOUR TASK:")


def _branch_line(context: PlanningContext) -> str:
    return (
        f"BRANCH: You are on branch '{context.names.branch}', "
        f"branched from '{context.base_branch}'."
    )


def _with_context(text: str, message: str, *, heading: str) -> str:
    if not message.strip():
        return text
    return f"{text}\n{heading}\n{message}\n"
