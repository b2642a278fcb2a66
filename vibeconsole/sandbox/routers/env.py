"""``.env.local`` endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from vibeconsole.sandbox.deps import LocksDep, SettingsDep
from vibeconsole.sandbox.errors import DOMAIN_ERRORS, http_error
from vibeconsole.sandbox.managers import env_files
from vibeconsole.sandbox.managers.lifecycle import require_workspace
from vibeconsole.sandbox.models.api import Ack, EnvResponse, EnvSetRequest

router = APIRouter(prefix="/env", tags=["env"])


@router.get("/get", response_model=EnvResponse)
async def get_env(settings: SettingsDep, repo: str = Query(...)) -> EnvResponse:
    """Raw contents plus parsed variables; ``content`` is null if the file does not exist."""
    try:
        repo_path = require_workspace(settings, repo)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    content = await env_files.read_env_file(repo_path)
    if content is None:
        return EnvResponse(content=None)
    return EnvResponse(content=content, variables=env_files.parse_env(content))


@router.post("/set", response_model=Ack)
async def set_env(body: EnvSetRequest, settings: SettingsDep, locks: LocksDep) -> Ack:
    try:
        repo_path = require_workspace(settings, body.repo_name)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    async with locks(body.repo_name):
        await env_files.write_env_file(repo_path, body.content)
    return Ack(message="Environment saved")
