"""Tests for the .env.local store (no git needed)."""

from __future__ import annotations

from pathlib import Path

from vibeconsole.sandbox.managers import env_files


async def test_read_missing_file(tmp_path: Path) -> None:
    assert await env_files.read_env_file(tmp_path) is None


async def test_write_appends_trailing_newline(tmp_path: Path) -> None:
    path = await env_files.write_env_file(tmp_path, "API_URL=http://localhost:4000")

    assert path == tmp_path / ".env.local"
    assert path.read_text() == "API_URL=http://localhost:4000\n"
    assert await env_files.read_env_file(tmp_path) == "API_URL=http://localhost:4000\n"


async def test_write_replaces_previous_content(tmp_path: Path) -> None:
    await env_files.write_env_file(tmp_path, "A=1\nB=2")
    await env_files.write_env_file(tmp_path, "C=3")
    assert await env_files.read_env_file(tmp_path) == "C=3\n"


def test_parse_env_handles_comments_and_quotes() -> None:
    content = '# settings\nA=1\nexport B="two words"\nC=\'single\'\n\nD=\n'
    assert env_files.parse_env(content) == {"A": "1", "B": "two words", "C": "single", "D": ""}
