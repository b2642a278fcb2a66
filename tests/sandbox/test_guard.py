"""Unit tests for input validation and safe path resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from vibeconsole.sandbox.errors import InvalidInputError
from vibeconsole.sandbox.guard import (
    get_safe_repo_path,
    require_repo_path,
    validate_branch_name,
    validate_commit_sha,
    validate_model,
    validate_owner_login,
    validate_repo_name,
)


@pytest.mark.parametrize("name", ["site", "my-app", "my_app", "App.v2", "a..b", "123"])
def test_valid_repo_names(name: str) -> None:
    assert validate_repo_name(name)


@pytest.mark.parametrize(
    "name",
    ["", "a/b", "../etc", "a b", "x;rm -rf", "$(id)", "a`b`", "name\n", "café", "․․", "a\\b"],
)
def test_invalid_repo_names(name: str) -> None:
    assert not validate_repo_name(name)


@pytest.mark.parametrize("login", ["acme", "Acme-Corp", "a", "user123"])
def test_valid_owner_logins(login: str) -> None:
    assert validate_owner_login(login)


@pytest.mark.parametrize("login", ["", ".", "..", "-acme", "acme-", "a_b", "a.b", "a/b", "$(id)", "a" * 40])
def test_invalid_owner_logins(login: str) -> None:
    assert not validate_owner_login(login)


@pytest.mark.parametrize("name", ["main", "feature/login", "release-1.2", "user_x/fix.ui"])
def test_valid_branch_names(name: str) -> None:
    assert validate_branch_name(name)


@pytest.mark.parametrize(
    "name",
    [
        "",
        "a" * 251,
        "a..b",
        "bad~1",
        "bad^",
        "bad:name",
        "what?",
        "star*",
        "br[0]",
        "back\\slash",
        "at@{u}",
        "has space",
        "/leading",
        "trailing/",
        "trailing.",
        "refs.lock",
        "-upload-pack=evil",
    ],
)
def test_invalid_branch_names(name: str) -> None:
    assert not validate_branch_name(name)


def test_branch_name_length_limit() -> None:
    assert validate_branch_name("a" * 250)
    assert not validate_branch_name("a" * 251)


@pytest.mark.parametrize("sha", ["abcd", "ABCDEF12", "0" * 40, "1a2b3c4d5e"])
def test_valid_commit_shas(sha: str) -> None:
    assert validate_commit_sha(sha)


@pytest.mark.parametrize("sha", ["", "abc", "0" * 41, "xyz123", "HEAD", "abcd~1"])
def test_invalid_commit_shas(sha: str) -> None:
    assert not validate_commit_sha(sha)


def test_validate_model_allow_list() -> None:
    allowed = ["gpt-5.2-codex", "o3"]
    assert validate_model("o3", allowed)
    assert not validate_model("o3 --dangerous", allowed)
    assert not validate_model("", allowed)


def test_safe_path_is_inside_root(tmp_path: Path) -> None:
    root = tmp_path / "workspace"
    path = get_safe_repo_path("site", root)
    assert path == root / "site"
    assert path.is_absolute()


@pytest.mark.parametrize("name", [".", "..", "../x", "a/../../b", "", "․"])
def test_safe_path_rejects_escapes(tmp_path: Path, name: str) -> None:
    assert get_safe_repo_path(name, tmp_path / "workspace") is None


def test_safe_path_double_dot_inside_name(tmp_path: Path) -> None:
    root = tmp_path / "workspace"
    path = get_safe_repo_path("a..b", root)
    assert path is not None
    assert path.parent == root


def test_safe_path_relative_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    path = get_safe_repo_path("site", "./data/workspace")
    assert path == tmp_path / "data" / "workspace" / "site"


def test_require_repo_path_raises(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError):
        require_repo_path("../escape", tmp_path)
