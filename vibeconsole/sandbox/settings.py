"""Service configuration loaded from VIBE_* environment variables."""

from __future__ import annotations

import shlex
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_MODELS = [
    "gpt-5.2-codex",
    "gpt-4.1-codex",
    "o4-mini",
    "o3",
    "codex-mini-latest",
]

DEFAULT_AGENT_ALLOWED_PATHS = [
    "src/app/",
    "src/components/",
    "src/lib/",
    "public/",
]


class VibeSettings(BaseSettings):
    """Sandbox orchestrator settings.

    All fields are read from environment variables with the ``VIBE_`` prefix.
    For example, ``VIBE_WORKSPACE_ROOT=/srv/workspace`` maps to ``workspace_root``.
    """

    model_config = SettingsConfigDict(
        env_prefix="VIBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000

    # -- Data storage ----------------------------------------------------------
    data_root: str = "./data"
    """Root for the registry database (when SQLite is used)."""

    workspace_root: str = "./data/workspace"
    """Every cloned repository lives directly under this directory."""

    database_url: str | None = None
    """Async SQLAlchemy URL.  Defaults to ``sqlite+aiosqlite:///{data_root}/vibe.db``."""

    # -- Auth ------------------------------------------------------------------
    auth_token: str | None = None
    """Bearer token required on every API call.  Auth is disabled if empty."""

    default_operator: str = "operator"
    """Operator id used when the caller does not send ``X-Operator-Id``."""

    github_token: SecretStr | None = None
    """Fallback access token when the caller does not send ``X-GitHub-Token``."""

    # -- Source hosting --------------------------------------------------------
    git_host_url: str = "https://github.com"
    """Base URL that ``{owner}/{name}.git`` is appended to when cloning."""

    github_api_url: str = "https://api.github.com"

    # -- Dev server ------------------------------------------------------------
    dev_server_command: str = "npx next dev -p {port}"
    """Command template; ``{port}`` is substituted before splitting into argv."""

    dev_server_host: str = "127.0.0.1"
    preview_url: str | None = None
    """Public preview URL (reverse proxy).  Falls back to ``http://localhost:{port}``."""

    preferred_port: int = 3001
    max_port: int = 3100
    dev_server_grace_seconds: float = 3.0
    dev_server_stop_timeout: float = 8.0
    port_release_timeout: float = 5.0
    reclaim_ports: bool = True
    """Kill stray listeners on the preferred port before binding."""

    log_buffer_size: int = 500

    # -- Timeouts (seconds) ----------------------------------------------------
    git_timeout: float = 30.0
    pull_timeout: float = 120.0
    clone_timeout: float = 300.0
    install_timeout: float = 300.0

    # -- Coding agent ----------------------------------------------------------
    agent_command: str = "codex"
    agent_timeout: float = 300.0
    default_model: str = "gpt-5.2-codex"
    allowed_models: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_MODELS))
    agent_allowed_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_AGENT_ALLOWED_PATHS))

    # -- Helpers ---------------------------------------------------------------

    @property
    def workspace_path(self) -> Path:
        return Path(self.workspace_root)

    def resolve_database_url(self) -> str:
        """Return the configured database URL or the default SQLite file."""
        if self.database_url:
            return self.database_url
        db_path = Path(self.data_root).resolve() / "vibe.db"
        return f"sqlite+aiosqlite:///{db_path}"

    def dev_server_argv(self, port: int) -> list[str]:
        return shlex.split(self.dev_server_command.format(port=port))

    def preview_url_for(self, port: int) -> str:
        if self.preview_url:
            return self.preview_url
        return f"http://localhost:{port}"


def get_settings() -> VibeSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return _get_settings_cached()


@lru_cache(maxsize=1)
def _get_settings_cached() -> VibeSettings:
    return VibeSettings()
