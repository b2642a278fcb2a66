"""FastAPI dependency injection for the sandbox singletons.

Usage in route handlers::

    @router.post("/start")
    async def start(body: RepoNameRequest, supervisor: SupervisorDep) -> DevServerStart:
        ...

The supervisor and workspace locks are created once in the app lifespan and
stored on ``app.state``; tests may override any of these dependencies.
"""

from __future__ import annotations

import secrets
from collections.abc import AsyncIterator
from typing import Annotated

import httpx
from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from vibeconsole.sandbox.locks import WorkspaceLocks
from vibeconsole.sandbox.managers.hosting import api_client
from vibeconsole.sandbox.settings import VibeSettings, get_settings
from vibeconsole.sandbox.supervisor import DevServerSupervisor

_bearer = HTTPBearer(auto_error=False)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield an async SQLAlchemy session, closing it after the request.

    Registry functions commit their own writes.  If the handler raises, the
    session is simply closed and the implicit transaction rolled back.
    """
    session_factory = getattr(request.app.state, "db_session_factory", None)
    if session_factory is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not initialised.",
        )
    session: AsyncSession = session_factory()
    try:
        yield session
    finally:
        await session.close()


def get_supervisor(request: Request) -> DevServerSupervisor:
    return request.app.state.supervisor


def get_locks(request: Request) -> WorkspaceLocks:
    return request.app.state.workspace_locks


def get_operator_id(
    settings: Annotated[VibeSettings, Depends(get_settings)],
    x_operator_id: Annotated[str | None, Header()] = None,
) -> str:
    """Operator identity from ``X-Operator-Id``, else the configured default."""
    return x_operator_id or settings.default_operator


def get_access_token(
    settings: Annotated[VibeSettings, Depends(get_settings)],
    x_github_token: Annotated[str | None, Header()] = None,
) -> str | None:
    """Source hosting token from ``X-GitHub-Token``, else the configured one."""
    if x_github_token:
        return x_github_token
    if settings.github_token is not None:
        return settings.github_token.get_secret_value()
    return None


async def get_hosting_client() -> AsyncIterator[httpx.AsyncClient]:
    """HTTP client for the source hosting API, closed after the request."""
    async with api_client() as client:
        yield client


def require_auth(
    settings: Annotated[VibeSettings, Depends(get_settings)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> None:
    """Check the bearer token when ``VIBE_AUTH_TOKEN`` is set; open otherwise."""
    if not settings.auth_token:
        return
    if credentials is None or not secrets.compare_digest(credentials.credentials, settings.auth_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )


# -- Annotated type aliases for concise route signatures ---------------------

DbSession = Annotated[AsyncSession, Depends(get_db)]
"""Annotated dependency: async SQLAlchemy session (auto-closed after request)."""

SettingsDep = Annotated[VibeSettings, Depends(get_settings)]

SupervisorDep = Annotated[DevServerSupervisor, Depends(get_supervisor)]
"""Annotated dependency: the single dev server supervisor."""

LocksDep = Annotated[WorkspaceLocks, Depends(get_locks)]

OperatorId = Annotated[str, Depends(get_operator_id)]

AccessToken = Annotated[str | None, Depends(get_access_token)]

HostingClient = Annotated[httpx.AsyncClient, Depends(get_hosting_client)]
