"""Shell rendering of agent runtime invocations for entry scripts."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True, frozen=True)
class AgentCli:
    """A headless coding-agent CLI that takes its prompt via ``-p``."""

    executable: str = "claude"
    skip_permissions: bool = False

    def arguments(self, model: str) -> list[str]:
        args: list[str] = []
        if model.strip():
            args.extend(["--model", model.strip()])
        if self.skip_permissions:
            args.append("--dangerously-skip-permissions")
        return args

    def invocation(self, prompt_file: Path, model: str) -> str:
        """Shell line that runs the agent once with the prompt file's contents."""

        head = " ".join(shlex.quote(part) for part in [self.executable, *self.arguments(model)])
        return f'{head} -p "$(cat {shlex.quote(str(prompt_file))})"'
