"""``.env.local`` store.  The file inside the workspace is the only copy."""

from __future__ import annotations

from io import StringIO
from pathlib import Path

from anyio import to_thread
from dotenv import dotenv_values
from loguru import logger

ENV_FILE = ".env.local"


def parse_env(content: str) -> dict[str, str | None]:
    """Key/value pairs from dotenv text (comments, quotes and ``export`` handled)."""
    return dict(dotenv_values(stream=StringIO(content)))


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


async def read_env_file(repo_path: Path) -> str | None:
    """Raw contents of the workspace's ``.env.local``, or ``None`` if absent."""
    return await to_thread.run_sync(_read, repo_path / ENV_FILE)


async def write_env_file(repo_path: Path, content: str) -> Path:
    """Replace ``.env.local`` with *content* plus a trailing newline."""
    path = repo_path / ENV_FILE
    await to_thread.run_sync(path.write_text, content + "\n", "utf-8")
    logger.info("Wrote {} in {}", ENV_FILE, repo_path.name)
    return path
