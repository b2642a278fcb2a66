"""Git invocation scoped to a validated repository path."""

from __future__ import annotations

import os
from pathlib import Path

from vibeconsole.sandbox.commands import DEFAULT_TIMEOUT, CommandResult, run_command


def git_env() -> dict[str, str]:
    """Inherited environment with interactive credential prompts disabled."""
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


async def run_git(
    repo_path: str | Path,
    args: list[str],
    *,
    timeout: float = DEFAULT_TIMEOUT,
    check: bool = True,
) -> CommandResult:
    """Run ``git -C <repo_path> <args...>``.

    *repo_path* must come from ``get_safe_repo_path``; this function does not
    re-validate it.
    """
    return await run_command(
        ["git", "-C", str(repo_path), *args],
        timeout=timeout,
        env=git_env(),
        check=check,
    )


async def git_output(repo_path: str | Path, args: list[str], *, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Run git and return stripped stdout."""
    result = await run_git(repo_path, args, timeout=timeout)
    return result.stdout.strip()
