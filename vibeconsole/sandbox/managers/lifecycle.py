"""Repository lifecycle: clone or update, install dependencies, delete.

Both setup steps are idempotent.  Selecting an already-cloned repository
fetches and pulls instead of cloning; an existing ``node_modules`` skips the
install.
"""

from __future__ import annotations

import shutil
from functools import partial
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from anyio import to_thread
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from vibeconsole.sandbox.commands import run_command
from vibeconsole.sandbox.errors import InvalidInputError, RepositoryNotFoundError, WorkspaceMissingError
from vibeconsole.sandbox.git import git_env, run_git
from vibeconsole.sandbox.guard import require_repo_path, validate_owner_login
from vibeconsole.sandbox.managers import repositories
from vibeconsole.sandbox.models.enums import CloneOutcome, InstallOutcome, PackageManager
from vibeconsole.sandbox.models.sandbox import CloneResult, InstallResult
from vibeconsole.sandbox.settings import VibeSettings

MANIFEST = "package.json"
DEPENDENCY_DIR = "node_modules"

# Checked in order; the first lockfile present wins, npm otherwise.
LOCKFILE_PRECEDENCE: tuple[tuple[str, PackageManager], ...] = (
    ("pnpm-lock.yaml", PackageManager.PNPM),
    ("yarn.lock", PackageManager.YARN),
)


def authenticated_clone_url(settings: VibeSettings, owner_login: str, name: str, token: str | None) -> str:
    """``{git_host_url}/{owner}/{name}.git`` with *token* as URL credentials.

    The token is only embedded for http(s) hosts; local ``file://`` remotes
    are returned untouched.
    """
    url = f"{settings.git_host_url.rstrip('/')}/{owner_login}/{name}.git"
    parts = urlsplit(url)
    if not token or parts.scheme not in ("http", "https"):
        return url
    netloc = f"{token}@{parts.hostname}"
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def workspace_exists(repo_path: Path) -> bool:
    return (repo_path / ".git").is_dir()


def require_workspace(settings: VibeSettings, name: str) -> Path:
    """Validated path of a cloned repository.

    Raises ``InvalidInputError`` for a bad name and ``WorkspaceMissingError``
    if nothing has been cloned there yet.
    """
    repo_path = require_repo_path(name, settings.workspace_root)
    if not repo_path.is_dir():
        msg = f"Repository '{name}' not cloned. Clone it first."
        raise WorkspaceMissingError(msg)
    return repo_path


# ---------------------------------------------------------------------------
# Clone / update
# ---------------------------------------------------------------------------


async def clone(
    db: AsyncSession,
    settings: VibeSettings,
    *,
    operator_id: str,
    owner_login: str,
    name: str,
    token: str | None,
    full_name: str | None = None,
    default_branch: str = "main",
) -> CloneResult:
    """Clone ``owner/name`` into the workspace, or update an existing clone.

    Records the repository in the registry on success.  Git failures raise
    ``CommandError`` with the captured output.
    """
    repo_path = require_repo_path(name, settings.workspace_root)
    if not validate_owner_login(owner_login):
        msg = f"Invalid repository owner: {owner_login!r}"
        raise InvalidInputError(msg)

    url = authenticated_clone_url(settings, owner_login, name, token)
    await to_thread.run_sync(partial(settings.workspace_path.mkdir, parents=True, exist_ok=True))

    if await to_thread.run_sync(workspace_exists, repo_path):
        logger.info("Updating existing clone {}/{}", owner_login, name)
        # Refresh the remote so a newly issued token is used for this fetch.
        await run_git(repo_path, ["remote", "set-url", "origin", url], timeout=settings.git_timeout)
        await run_git(repo_path, ["fetch", "origin"], timeout=settings.pull_timeout)
        await run_git(repo_path, ["pull", "origin", "HEAD"], timeout=settings.pull_timeout)
        outcome, message = CloneOutcome.UPDATED, "Repository updated"
    else:
        logger.info("Cloning {}/{} into {}", owner_login, name, repo_path)
        await run_command(
            ["git", "clone", url, str(repo_path)],
            timeout=settings.clone_timeout,
            env=git_env(),
        )
        outcome, message = CloneOutcome.CLONED, "Repository cloned"

    await repositories.get_or_create(
        db,
        operator_id,
        repositories.RepositoryData(
            owner_login=owner_login,
            name=name,
            full_name=full_name or f"{owner_login}/{name}",
            default_branch=default_branch,
        ),
    )
    return CloneResult(outcome=outcome, path=str(repo_path), message=message)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def detect_package_manager(repo_path: Path) -> PackageManager:
    for lockfile, manager in LOCKFILE_PRECEDENCE:
        if (repo_path / lockfile).exists():
            return manager
    return PackageManager.NPM


async def install_dependencies(repo_path: Path, *, timeout: float = 300.0) -> InstallResult:
    """Install JS dependencies unless there is nothing to do.

    Skips when there is no ``package.json`` or ``node_modules`` already
    exists.  Install failures raise ``CommandError``; the workspace is left
    as-is for inspection.
    """
    if not await to_thread.run_sync((repo_path / MANIFEST).is_file):
        return InstallResult(outcome=InstallOutcome.SKIPPED, message="No package.json found, skipping install")

    if await to_thread.run_sync((repo_path / DEPENDENCY_DIR).exists):
        return InstallResult(outcome=InstallOutcome.SKIPPED, message="Dependencies already installed")

    manager = await to_thread.run_sync(detect_package_manager, repo_path)
    logger.info("Installing dependencies in {} with {}", repo_path.name, manager)
    await run_command([str(manager), "install"], cwd=repo_path, timeout=timeout)
    return InstallResult(
        outcome=InstallOutcome.INSTALLED,
        package_manager=manager,
        message="Dependencies installed",
    )


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


def _rmtree(path: Path) -> None:
    """Remove directory tree.  No-op if path doesn't exist."""
    if path.exists():
        shutil.rmtree(path)


async def delete_repository(db: AsyncSession, settings: VibeSettings, *, operator_id: str, name: str) -> None:
    """Remove the registry record and the on-disk workspace.

    Raises ``RepositoryNotFoundError`` if the operator has no such record.
    Disk removal failures are logged; the record is already gone by then.
    """
    repo_path = require_repo_path(name, settings.workspace_root)
    repo = await repositories.find_by_name(db, operator_id, name)
    if repo is None:
        msg = f"Repository '{name}' not found."
        raise RepositoryNotFoundError(msg)

    await repositories.delete(db, repo.repo_id)

    try:
        await to_thread.run_sync(_rmtree, repo_path)
    except OSError as exc:
        logger.error("Failed to delete workspace {}: {}", repo_path, exc)
