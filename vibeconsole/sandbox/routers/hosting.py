"""Source hosting lookups: pushable repositories, branches and recent PRs."""

from __future__ import annotations

from fastapi import APIRouter, Query

from vibeconsole.sandbox.deps import AccessToken, HostingClient, SettingsDep
from vibeconsole.sandbox.errors import DOMAIN_ERRORS, http_error
from vibeconsole.sandbox.managers import hosting
from vibeconsole.sandbox.models.sandbox import BranchListing, HostedRepository, RecentPullRequest

router = APIRouter(prefix="/github", tags=["github"])


@router.get("/repos", response_model=list[HostedRepository])
async def list_repositories(
    settings: SettingsDep,
    token: AccessToken,
    client: HostingClient,
) -> list[HostedRepository]:
    """Repositories the token can push to, most recently updated first."""
    try:
        return await hosting.list_repositories(settings, token, http_client=client)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/branches", response_model=BranchListing)
async def list_branches(
    settings: SettingsDep,
    token: AccessToken,
    client: HostingClient,
    owner: str = Query(...),
    repo: str = Query(...),
) -> BranchListing:
    """Branches to check out, plus recent commits on the default branch."""
    try:
        return await hosting.list_branches(settings, token, owner_login=owner, repo_name=repo, http_client=client)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/recent-prs", response_model=list[RecentPullRequest])
async def list_recent_pull_requests(
    settings: SettingsDep,
    token: AccessToken,
    client: HostingClient,
    owner: str = Query(...),
    repo: str = Query(...),
    author: str | None = Query(default=None),
) -> list[RecentPullRequest]:
    try:
        return await hosting.list_recent_pull_requests(
            settings,
            token,
            owner_login=owner,
            repo_name=repo,
            author=author,
            http_client=client,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
