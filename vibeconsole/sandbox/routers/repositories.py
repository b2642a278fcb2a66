"""Repository endpoints: registry listing plus clone / install / delete.

All write operations use POST; reads use GET.
"""

from __future__ import annotations

from anyio import to_thread
from fastapi import APIRouter, status

from vibeconsole.sandbox.db.tables import Repository
from vibeconsole.sandbox.deps import AccessToken, DbSession, LocksDep, OperatorId, SettingsDep, SupervisorDep
from vibeconsole.sandbox.errors import DOMAIN_ERRORS, RepositoryNotFoundError, http_error
from vibeconsole.sandbox.guard import get_safe_repo_path, require_repo_path
from vibeconsole.sandbox.managers import lifecycle, repositories
from vibeconsole.sandbox.models.api import Ack, CloneRequest, InstallRequest, RepoNameRequest, RepositoryResponse
from vibeconsole.sandbox.models.sandbox import CloneResult, InstallResult
from vibeconsole.sandbox.settings import VibeSettings

router = APIRouter(prefix="/repos", tags=["repositories"])


def _on_disk(settings: VibeSettings, name: str) -> bool:
    path = get_safe_repo_path(name, settings.workspace_root)
    return path is not None and lifecycle.workspace_exists(path)


@router.get("/list", response_model=list[RepositoryResponse])
async def list_repositories(db: DbSession, settings: SettingsDep, operator_id: OperatorId) -> list[Repository]:
    """List the operator's repositories that still exist on disk, most recently used first."""
    records = await repositories.list_for(db, operator_id)
    return [repo for repo in records if await to_thread.run_sync(_on_disk, settings, repo.name)]


@router.post("/touch", response_model=RepositoryResponse)
async def touch_repository(body: RepoNameRequest, db: DbSession, operator_id: OperatorId) -> Repository:
    """Mark a repository as just used."""
    repo = await repositories.find_by_name(db, operator_id, body.repo_name)
    if repo is None:
        raise http_error(RepositoryNotFoundError(f"Repository '{body.repo_name}' not found."))
    return await repositories.touch(db, repo.repo_id)


@router.post("/clone", response_model=CloneResult)
async def clone_repository(
    body: CloneRequest,
    db: DbSession,
    settings: SettingsDep,
    locks: LocksDep,
    operator_id: OperatorId,
    token: AccessToken,
) -> CloneResult:
    """Clone a repository into the workspace, or fetch and pull if already cloned."""
    try:
        async with locks(body.name):
            return await lifecycle.clone(
                db,
                settings,
                operator_id=operator_id,
                owner_login=body.owner_login,
                name=body.name,
                token=token,
                full_name=body.full_name,
                default_branch=body.default_branch,
            )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/install", response_model=InstallResult)
async def install_dependencies(body: InstallRequest, settings: SettingsDep, locks: LocksDep) -> InstallResult:
    """Install JS dependencies unless ``node_modules`` already exists."""
    try:
        repo_path = lifecycle.require_workspace(settings, body.name)
        async with locks(body.name):
            return await lifecycle.install_dependencies(repo_path, timeout=settings.install_timeout)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/delete", response_model=Ack, status_code=status.HTTP_200_OK)
async def delete_repository(
    body: RepoNameRequest,
    db: DbSession,
    settings: SettingsDep,
    locks: LocksDep,
    supervisor: SupervisorDep,
    operator_id: OperatorId,
) -> Ack:
    """Remove the registry record and the on-disk workspace.

    Stops the dev server first if it is serving this repository, but only once
    the record is known to exist.
    """
    try:
        require_repo_path(body.repo_name, settings.workspace_root)
        async with locks(body.repo_name):
            if await repositories.find_by_name(db, operator_id, body.repo_name) is None:
                msg = f"Repository '{body.repo_name}' not found."
                raise RepositoryNotFoundError(msg)
            if supervisor.repo_name == body.repo_name:
                await supervisor.stop()
            await lifecycle.delete_repository(db, settings, operator_id=operator_id, name=body.repo_name)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    locks.discard(body.repo_name)
    return Ack(message=f"Repository '{body.repo_name}' deleted")
