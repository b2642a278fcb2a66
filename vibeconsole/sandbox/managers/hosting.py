"""Read-only queries against the source hosting REST API.

These feed the repository picker, the branch / commit picker that drives
``POST /workspace/checkout`` and the list of recent ``vibe/*`` pull requests.
Opening pull requests lives in ``managers.publish`` and shares the headers
and client handling defined here.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from loguru import logger

from vibeconsole.sandbox.errors import HostingApiError, InvalidInputError, MissingTokenError
from vibeconsole.sandbox.guard import validate_owner_login, validate_repo_name
from vibeconsole.sandbox.models.sandbox import (
    BranchInfo,
    BranchListing,
    CommitInfo,
    HostedRepository,
    RecentPullRequest,
)
from vibeconsole.sandbox.settings import VibeSettings

API_TIMEOUT = 30.0
VIBE_PREFIX = "vibe/"

REPOS_PAGE_SIZE = 100
BRANCHES_PAGE_SIZE = 30
COMMITS_PAGE_SIZE = 10
PULLS_PAGE_SIZE = 10
RECENT_PULLS_LIMIT = 5


def api_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
    }


@asynccontextmanager
async def api_client(http_client: httpx.AsyncClient | None = None) -> AsyncIterator[httpx.AsyncClient]:
    """Yield *http_client* as is, or a short-lived client closed on exit."""
    if http_client is not None:
        yield http_client
        return
    async with httpx.AsyncClient(timeout=API_TIMEOUT) as client:
        yield client


def _require_token(token: str | None) -> str:
    if not token:
        msg = "Source hosting token not available"
        raise MissingTokenError(msg)
    return token


def _repo_path(owner_login: str, repo_name: str) -> str:
    if not validate_owner_login(owner_login):
        msg = f"Invalid repository owner: {owner_login!r}"
        raise InvalidInputError(msg)
    if not validate_repo_name(repo_name) or repo_name in {".", ".."}:
        msg = f"Invalid repository name: {repo_name!r}"
        raise InvalidInputError(msg)
    return f"/repos/{owner_login}/{repo_name}"


async def _get_json(
    settings: VibeSettings,
    client: httpx.AsyncClient,
    token: str,
    path: str,
    params: dict[str, Any] | None = None,
) -> Any:
    url = f"{settings.github_api_url.rstrip('/')}{path}"
    try:
        response = await client.get(url, headers=api_headers(token), params=params)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.warning("Hosting API {} returned {}", path, exc.response.status_code)
        msg = f"Hosting API request failed: {exc.response.status_code} {exc.response.reason_phrase}"
        raise HostingApiError(msg, status_code=exc.response.status_code) from exc
    except httpx.HTTPError as exc:
        msg = f"Hosting API request failed: {exc}"
        raise HostingApiError(msg) from exc
    return response.json()


async def list_repositories(
    settings: VibeSettings,
    token: str | None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> list[HostedRepository]:
    """Repositories the token's owner can push to, most recently updated first."""
    token = _require_token(token)
    async with api_client(http_client) as client:
        data = await _get_json(
            settings,
            client,
            token,
            "/user/repos",
            {
                "sort": "updated",
                "per_page": REPOS_PAGE_SIZE,
                "affiliation": "owner,collaborator,organization_member",
            },
        )
    return [
        HostedRepository(
            id=repo["id"],
            name=repo["name"],
            full_name=repo["full_name"],
            owner=repo["owner"]["login"],
            default_branch=repo["default_branch"],
            private=repo.get("private", False),
            description=repo.get("description"),
            updated_at=repo.get("updated_at"),
        )
        for repo in data
        if (repo.get("permissions") or {}).get("push")
    ]


def _branch_order(branch: BranchInfo) -> tuple[bool, bool, str]:
    return (not branch.is_default, not branch.is_vibe, branch.name)


def _commit_info(item: dict[str, Any]) -> CommitInfo:
    commit = item.get("commit") or {}
    author = commit.get("author") or {}
    login = (item.get("author") or {}).get("login")
    return CommitInfo(
        sha=item["sha"],
        short_sha=item["sha"][:7],
        message=(commit.get("message") or "").split("\n", 1)[0],
        author=author.get("name") or login or "Unknown",
        date=author.get("date") or "",
        url=item.get("html_url") or "",
    )


async def list_branches(
    settings: VibeSettings,
    token: str | None,
    *,
    owner_login: str,
    repo_name: str,
    http_client: httpx.AsyncClient | None = None,
) -> BranchListing:
    """Branches of ``owner/repo`` plus the latest commits on its default branch."""
    token = _require_token(token)
    path = _repo_path(owner_login, repo_name)
    async with api_client(http_client) as client:
        branches = await _get_json(settings, client, token, f"{path}/branches", {"per_page": BRANCHES_PAGE_SIZE})
        repo = await _get_json(settings, client, token, path)
        default_branch = repo["default_branch"]
        commits = await _get_json(
            settings,
            client,
            token,
            f"{path}/commits",
            {"sha": default_branch, "per_page": COMMITS_PAGE_SIZE},
        )

    infos = [
        BranchInfo(
            name=branch["name"],
            is_default=branch["name"] == default_branch,
            is_protected=branch.get("protected", False),
            is_vibe=branch["name"].startswith(VIBE_PREFIX),
        )
        for branch in branches
    ]
    return BranchListing(
        default_branch=default_branch,
        branches=sorted(infos, key=_branch_order),
        commits=[_commit_info(item) for item in commits],
    )


async def list_recent_pull_requests(
    settings: VibeSettings,
    token: str | None,
    *,
    owner_login: str,
    repo_name: str,
    author: str | None = None,
    limit: int = RECENT_PULLS_LIMIT,
    http_client: httpx.AsyncClient | None = None,
) -> list[RecentPullRequest]:
    """Newest pull requests from ``vibe/*`` branches or opened by *author*."""
    token = _require_token(token)
    path = _repo_path(owner_login, repo_name)
    async with api_client(http_client) as client:
        pulls = await _get_json(
            settings,
            client,
            token,
            f"{path}/pulls",
            {"state": "all", "sort": "created", "direction": "desc", "per_page": PULLS_PAGE_SIZE},
        )

    recent: list[RecentPullRequest] = []
    for pr in pulls:
        branch = pr["head"]["ref"]
        login = (pr.get("user") or {}).get("login")
        if not branch.startswith(VIBE_PREFIX) and (author is None or login != author):
            continue
        recent.append(
            RecentPullRequest(
                number=pr["number"],
                title=pr["title"],
                url=pr["html_url"],
                branch=branch,
                state=pr["state"],
                merged=pr.get("merged_at") is not None,
                created_at=pr["created_at"],
                updated_at=pr["updated_at"],
            )
        )
    return recent[:limit]
