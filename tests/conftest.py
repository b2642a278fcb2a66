"""Shared test fixtures: real git repositories, settings and a SQLite registry.

Remotes are bare repositories under ``tmp_path/remotes`` reached through
``file://`` URLs, so clone / fetch / push run against real git without
network access.  The registry uses a throwaway SQLite file per test.

Requires ``git`` on PATH.
"""

from __future__ import annotations

import shlex
import subprocess
import sys
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from vibeconsole.sandbox.db.engine import create_engine, create_schema, create_session_factory
from vibeconsole.sandbox.settings import VibeSettings, _get_settings_cached

OWNER = "acme"
REPO = "site"

PAGE_V1 = "export default function Page() {\n  return <h1>Hello</h1>;\n}\n"


def git(cwd: Path, *args: str) -> str:
    """Run git synchronously for fixture setup and assertions."""
    result = subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def _isolated_git(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Fixed identity and no user / system git config."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    global_config = tmp_path / "gitconfig"
    global_config.write_text("[init]\n\tdefaultBranch = main\n")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    _get_settings_cached.cache_clear()


# ---------------------------------------------------------------------------
# Remotes
# ---------------------------------------------------------------------------


def make_remote(root: Path, owner: str, name: str) -> Path:
    """Create ``root/owner/name.git`` with ``main`` and ``feature`` branches."""
    seed = root / "_seed" / owner / name
    seed.mkdir(parents=True)
    git(seed, "init", "-b", "main")
    (seed / "README.md").write_text(f"# {name}\n")
    page = seed / "src" / "app" / "page.tsx"
    page.parent.mkdir(parents=True)
    page.write_text(PAGE_V1)
    git(seed, "add", ".")
    git(seed, "commit", "-m", "Initial commit")

    git(seed, "checkout", "-b", "feature")
    (seed / "FEATURE.md").write_text("feature work\n")
    git(seed, "add", ".")
    git(seed, "commit", "-m", "Add feature notes")
    git(seed, "checkout", "main")

    bare = root / owner / f"{name}.git"
    bare.parent.mkdir(parents=True, exist_ok=True)
    git(root, "clone", "--bare", str(seed), str(bare))
    return bare


@pytest.fixture
def remotes_root(tmp_path: Path) -> Path:
    root = tmp_path / "remotes"
    root.mkdir()
    return root


@pytest.fixture
def remote_repo(remotes_root: Path) -> Path:
    return make_remote(remotes_root, OWNER, REPO)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def http_server_command() -> str:
    """Dev server stand-in: Python's static file server on ``{port}``."""
    return f"{shlex.quote(sys.executable)} -u -m http.server {{port}} --bind 127.0.0.1"


@pytest.fixture
def settings(tmp_path: Path, remotes_root: Path) -> VibeSettings:
    return VibeSettings(
        data_root=str(tmp_path / "data"),
        workspace_root=str(tmp_path / "workspace"),
        git_host_url=remotes_root.as_uri(),
        dev_server_command=http_server_command(),
        preferred_port=38100,
        max_port=38160,
        dev_server_grace_seconds=0.0,
        dev_server_stop_timeout=5.0,
        reclaim_ports=False,
        auth_token=None,
        github_token=None,
        github_api_url="https://api.github.test",
    )


@pytest.fixture
def cloned_repo(settings: VibeSettings, remote_repo: Path) -> Path:
    """A workspace clone of the ``acme/site`` remote, on ``main``."""
    workspace = settings.workspace_path
    workspace.mkdir(parents=True, exist_ok=True)
    path = workspace / REPO
    git(workspace, "clone", str(remote_repo), str(path))
    return path


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Async SQLAlchemy session on a per-test SQLite file."""
    session = create_session_factory(async_engine)()
    yield session
    await session.close()
