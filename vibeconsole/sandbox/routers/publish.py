"""Publishing endpoint: commit the workspace to a ``vibe/*`` branch and open a PR."""

from __future__ import annotations

from fastapi import APIRouter

from vibeconsole.sandbox.deps import AccessToken, HostingClient, LocksDep, SettingsDep
from vibeconsole.sandbox.errors import DOMAIN_ERRORS, http_error
from vibeconsole.sandbox.managers import publish
from vibeconsole.sandbox.managers.lifecycle import require_workspace
from vibeconsole.sandbox.models.api import CreatePullRequest
from vibeconsole.sandbox.models.sandbox import PullRequestResult

router = APIRouter(prefix="/publish", tags=["publish"])


@router.post("/create-pr", response_model=PullRequestResult)
async def create_pull_request(
    body: CreatePullRequest,
    settings: SettingsDep,
    locks: LocksDep,
    token: AccessToken,
    client: HostingClient,
) -> PullRequestResult:
    try:
        repo_path = require_workspace(settings, body.repo_name)
        async with locks(body.repo_name):
            return await publish.create_pull_request(
                settings,
                repo_path,
                owner_login=body.owner_login,
                message=body.message,
                target_branch=body.target_branch,
                token=token,
                http_client=client,
            )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
