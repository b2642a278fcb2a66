"""Checkout coordination: moving the workspace between branches and commits.

HEAD moves between ``clean@branch``, ``dirty@branch`` and
``detached@commit``.  Local edits are stashed before any switch.  Merge
conflicts are never resolved automatically; git's error is surfaced as is.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from vibeconsole.sandbox.errors import CommandError, InvalidInputError
from vibeconsole.sandbox.git import git_output, run_git
from vibeconsole.sandbox.guard import validate_branch_name, validate_commit_sha
from vibeconsole.sandbox.models.sandbox import ChangedFile, HeadInfo, WorkingTreeStatus

FETCH_TIMEOUT = 30.0
LOCAL_TIMEOUT = 10.0
QUERY_TIMEOUT = 5.0


class CheckoutError(CommandError):
    """A checkout step failed; carries git's output."""


async def checkout(repo_path: Path, *, branch: str | None = None, commit: str | None = None) -> HeadInfo:
    """Switch the workspace to *branch* or to *commit* (detached HEAD).

    Exactly one of the two must be given.  Raises ``InvalidInputError`` for
    bad names and ``CheckoutError`` if git refuses; a refused checkout leaves
    HEAD where it was.
    """
    if bool(branch) == bool(commit):
        msg = "Provide exactly one of branch or commit."
        raise InvalidInputError(msg)
    if branch is not None and not validate_branch_name(branch):
        msg = f"Invalid branch name: {branch!r}"
        raise InvalidInputError(msg)
    if commit is not None and not validate_commit_sha(commit):
        msg = f"Invalid commit SHA: {commit!r}"
        raise InvalidInputError(msg)

    try:
        await run_git(repo_path, ["fetch", "origin"], timeout=FETCH_TIMEOUT)
        await _stash(repo_path)
        if commit is not None:
            await run_git(repo_path, ["checkout", commit], timeout=LOCAL_TIMEOUT)
        elif branch is not None:
            await _checkout_branch(repo_path, branch)
    except CheckoutError:
        raise
    except CommandError as exc:
        target = branch or commit
        msg = f"Checkout of '{target}' failed: {exc}"
        raise CheckoutError(msg, argv=exc.argv, returncode=exc.returncode, stdout=exc.stdout, stderr=exc.stderr) from exc

    head = await current_head(repo_path)
    logger.info("Workspace {} now at {} ({})", repo_path.name, head.branch, head.commit)
    return head


async def _stash(repo_path: Path) -> None:
    # Nothing to stash (or no identity configured) is not an error here.
    result = await run_git(repo_path, ["stash"], timeout=LOCAL_TIMEOUT, check=False)
    if result.returncode != 0:
        logger.debug("git stash skipped in {}: {}", repo_path.name, result.stderr.strip())


async def _checkout_branch(repo_path: Path, branch: str) -> None:
    local = await run_git(repo_path, ["checkout", branch], timeout=LOCAL_TIMEOUT, check=False)
    if local.returncode != 0:
        # Not present locally yet: create a tracking branch from the remote.
        await run_git(repo_path, ["checkout", "-b", branch, f"origin/{branch}"], timeout=LOCAL_TIMEOUT)
    pulled = await run_git(repo_path, ["pull", "origin", branch], timeout=FETCH_TIMEOUT, check=False)
    if pulled.returncode != 0:
        logger.debug("git pull after checkout failed in {}: {}", repo_path.name, pulled.stderr.strip())


async def current_head(repo_path: Path) -> HeadInfo:
    """Branch (``HEAD`` when detached), short SHA and subject of HEAD."""
    branch = await git_output(repo_path, ["rev-parse", "--abbrev-ref", "HEAD"], timeout=QUERY_TIMEOUT)
    commit = await git_output(repo_path, ["rev-parse", "--short", "HEAD"], timeout=QUERY_TIMEOUT)
    message = await git_output(repo_path, ["log", "-1", "--pretty=%s"], timeout=QUERY_TIMEOUT)
    return HeadInfo(branch=branch, commit=commit, message=message)


def parse_porcelain(output: str) -> list[ChangedFile]:
    """Parse ``git status --porcelain`` (v1) into status / path pairs.

    Renames are reported with their destination path.
    """
    files: list[ChangedFile] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        code = line[:2].strip()
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        files.append(ChangedFile(status=code, path=path))
    return files


async def working_tree_status(repo_path: Path) -> WorkingTreeStatus:
    """Dirty flag and changed files, recomputed on every call."""
    status_result = await run_git(repo_path, ["status", "--porcelain"], timeout=LOCAL_TIMEOUT)
    branch = await git_output(repo_path, ["branch", "--show-current"], timeout=LOCAL_TIMEOUT)
    head_result = await run_git(repo_path, ["rev-parse", "--short", "HEAD"], timeout=QUERY_TIMEOUT, check=False)

    changed = parse_porcelain(status_result.stdout)
    return WorkingTreeStatus(
        branch=branch or None,
        head=head_result.stdout.strip() or None,
        has_changes=bool(changed),
        changed_files=changed,
    )


async def discard_changes(repo_path: Path) -> str:
    """Revert uncommitted edits to tracked files (``git checkout -- .``)."""
    result = await run_git(repo_path, ["checkout", "--", "."], timeout=FETCH_TIMEOUT)
    logger.info("Discarded uncommitted changes in {}", repo_path.name)
    return result.output
