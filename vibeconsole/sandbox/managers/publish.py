"""Publishing workspace changes as a pull request.

Changes are always committed to a fresh ``vibe/*`` branch cut from the
target branch and proposed through the hosting API; nothing is ever pushed
to the target itself.  The workspace is returned to the target branch
afterwards.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

import httpx
from loguru import logger

from vibeconsole.sandbox.errors import CommandError, InvalidInputError, MissingTokenError, PullRequestError
from vibeconsole.sandbox.git import run_git
from vibeconsole.sandbox.guard import validate_branch_name, validate_owner_login
from vibeconsole.sandbox.managers.hosting import VIBE_PREFIX, api_client, api_headers
from vibeconsole.sandbox.models.sandbox import PullRequestResult
from vibeconsole.sandbox.settings import VibeSettings

BRANCH_PREFIX = VIBE_PREFIX
PROTECTED_BRANCHES = frozenset({"main", "master", "production", "prod", "release"})
COMMIT_TRAILER = "UI change via Vibe Console"
SLUG_LENGTH = 20

NETWORK_TIMEOUT = 60.0
LOCAL_TIMEOUT = 30.0

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(message: str) -> str:
    slug = _SLUG_RE.sub("-", message.lower())[:SLUG_LENGTH].strip("-")
    return slug or "change"


def publish_branch_name(message: str, now: datetime | None = None) -> str:
    """``vibe/<YYYY-MM-DD>-<HHMM>-<slug>``."""
    now = now or datetime.now()
    return f"{BRANCH_PREFIX}{now:%Y-%m-%d}-{now:%H%M}-{slugify(message)}"


def ensure_pushable(branch: str) -> None:
    """Refuse anything that is not a ``vibe/*`` branch."""
    if not branch.startswith(BRANCH_PREFIX):
        msg = f"Refusing to push non-vibe branch: {branch}"
        raise InvalidInputError(msg)
    if branch in PROTECTED_BRANCHES:
        msg = f"Refusing to push to protected branch: {branch}"
        raise InvalidInputError(msg)


def pull_request_body(message: str) -> str:
    return f"## UI Change\n\n{message}\n\n---\n\n*Created via Vibe Console*"


async def _switch_to_target(repo_path: Path, target: str) -> None:
    await run_git(repo_path, ["fetch", "origin"], timeout=NETWORK_TIMEOUT)
    switched = await run_git(repo_path, ["checkout", target], timeout=LOCAL_TIMEOUT, check=False)
    if switched.returncode == 0:
        await run_git(repo_path, ["pull", "origin", target], timeout=NETWORK_TIMEOUT)
    else:
        await run_git(repo_path, ["checkout", "-b", target, f"origin/{target}"], timeout=LOCAL_TIMEOUT)


async def _restore(repo_path: Path, target: str) -> None:
    result = await run_git(repo_path, ["checkout", target], timeout=LOCAL_TIMEOUT, check=False)
    if result.returncode != 0:
        logger.warning("Could not return {} to {}: {}", repo_path.name, target, result.stderr.strip())


async def commit_and_push(repo_path: Path, *, branch: str, target: str, message: str) -> None:
    """Cut *branch* from *target*, commit every change and push it.

    On a git failure the workspace is moved back to *target* and the
    ``CommandError`` propagates.
    """
    ensure_pushable(branch)
    try:
        await _switch_to_target(repo_path, target)
        await run_git(repo_path, ["checkout", "-b", branch], timeout=LOCAL_TIMEOUT)
        await run_git(repo_path, ["add", "-A"], timeout=LOCAL_TIMEOUT)
        await run_git(repo_path, ["commit", "-m", f"{message}\n\n{COMMIT_TRAILER}"], timeout=LOCAL_TIMEOUT)
        await run_git(repo_path, ["push", "-u", "origin", branch], timeout=NETWORK_TIMEOUT)
    except CommandError:
        logger.exception("Publishing {} failed, restoring {}", repo_path.name, target)
        await _restore(repo_path, target)
        raise


async def open_pull_request(
    settings: VibeSettings,
    client: httpx.AsyncClient,
    *,
    token: str,
    owner_login: str,
    repo_name: str,
    branch: str,
    target: str,
    message: str,
) -> PullRequestResult:
    url = f"{settings.github_api_url.rstrip('/')}/repos/{owner_login}/{repo_name}/pulls"
    try:
        response = await client.post(
            url,
            headers=api_headers(token),
            json={
                "title": message,
                "body": pull_request_body(message),
                "head": branch,
                "base": target,
            },
        )
        response.raise_for_status()
    except httpx.HTTPError as exc:
        msg = f"Failed to create PR: {exc}"
        raise PullRequestError(msg, branch=branch) from exc

    data = response.json()
    return PullRequestResult(branch=branch, pr_url=data["html_url"], pr_number=data["number"])


async def create_pull_request(
    settings: VibeSettings,
    repo_path: Path,
    *,
    owner_login: str,
    message: str,
    target_branch: str,
    token: str | None,
    http_client: httpx.AsyncClient | None = None,
) -> PullRequestResult:
    """Commit the workspace's changes on a new branch and open a PR into *target_branch*.

    Raises ``MissingTokenError`` without a token, ``InvalidInputError`` for
    bad names, ``CommandError`` for git failures and ``PullRequestError``
    when the hosting API refuses (the pushed branch is kept).
    """
    if not token:
        msg = "Source hosting token not available"
        raise MissingTokenError(msg)
    if not validate_owner_login(owner_login):
        msg = f"Invalid repository owner: {owner_login!r}"
        raise InvalidInputError(msg)
    if not validate_branch_name(target_branch):
        msg = f"Invalid branch name: {target_branch!r}"
        raise InvalidInputError(msg)

    branch = publish_branch_name(message)
    logger.info("Publishing {} as {} into {}", repo_path.name, branch, target_branch)
    await commit_and_push(repo_path, branch=branch, target=target_branch, message=message)

    try:
        async with api_client(http_client) as client:
            result = await open_pull_request(
                settings,
                client,
                token=token,
                owner_login=owner_login,
                repo_name=repo_path.name,
                branch=branch,
                target=target_branch,
                message=message,
            )
    finally:
        await _restore(repo_path, target_branch)

    logger.info("Opened PR #{} for {}", result.pr_number, branch)
    return result
