"""Shared fixtures for sandbox tests that go through the HTTP API."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from vibeconsole.sandbox.app import app
from vibeconsole.sandbox.deps import get_db
from vibeconsole.sandbox.locks import WorkspaceLocks
from vibeconsole.sandbox.settings import VibeSettings, get_settings
from vibeconsole.sandbox.supervisor import DevServerSupervisor


@pytest.fixture
async def client(db_session: AsyncSession, settings: VibeSettings) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with test settings and DB session.

    The app lifespan does NOT run under ``ASGITransport``, so the supervisor
    and workspace locks are set on ``app.state`` here and torn down after.
    """

    async def _override_get_db() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_settings] = lambda: settings

    settings.workspace_path.mkdir(parents=True, exist_ok=True)
    supervisor = DevServerSupervisor(settings)
    app.state.supervisor = supervisor
    app.state.workspace_locks = WorkspaceLocks()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await supervisor.shutdown()
    app.dependency_overrides.clear()
