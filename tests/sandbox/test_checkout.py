"""Tests for checkout coordination and working tree status."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.conftest import PAGE_V1, git
from vibeconsole.sandbox.errors import InvalidInputError
from vibeconsole.sandbox.managers.checkout import (
    CheckoutError,
    checkout,
    current_head,
    discard_changes,
    parse_porcelain,
    working_tree_status,
)

pytestmark = pytest.mark.integration


def test_parse_porcelain() -> None:
    output = " M src/app/page.tsx\n?? notes.txt\nA  new file.txt\nR  old.txt -> renamed.txt\n"
    files = parse_porcelain(output)
    assert [(f.status, f.path) for f in files] == [
        ("M", "src/app/page.tsx"),
        ("??", "notes.txt"),
        ("A", "new file.txt"),
        ("R", "renamed.txt"),
    ]
    assert parse_porcelain("") == []


async def test_clean_status_on_main(cloned_repo: Path) -> None:
    status = await working_tree_status(cloned_repo)
    assert status.branch == "main"
    assert status.has_changes is False
    assert status.changed_files == []
    assert status.head


async def test_status_reports_changes(cloned_repo: Path) -> None:
    (cloned_repo / "src" / "app" / "page.tsx").write_text("changed\n")
    (cloned_repo / "notes.txt").write_text("untracked\n")

    status = await working_tree_status(cloned_repo)
    assert status.has_changes
    assert {(f.status, f.path) for f in status.changed_files} == {
        ("M", "src/app/page.tsx"),
        ("??", "notes.txt"),
    }


async def test_checkout_remote_branch(cloned_repo: Path) -> None:
    head = await checkout(cloned_repo, branch="feature")

    assert head.branch == "feature"
    assert head.message == "Add feature notes"
    assert (cloned_repo / "FEATURE.md").exists()

    status = await working_tree_status(cloned_repo)
    assert status.branch == "feature"
    assert status.has_changes is False


async def test_checkout_stashes_local_edits(cloned_repo: Path) -> None:
    page = cloned_repo / "src" / "app" / "page.tsx"
    page.write_text("work in progress\n")

    await checkout(cloned_repo, branch="feature")
    await checkout(cloned_repo, branch="main")

    assert page.read_text() == PAGE_V1
    assert "work in progress" in git(cloned_repo, "stash", "show", "-p")


async def test_checkout_commit_detaches(cloned_repo: Path) -> None:
    first_sha = git(cloned_repo, "rev-list", "--max-parents=0", "HEAD")

    head = await checkout(cloned_repo, commit=first_sha[:10])

    assert head.branch == "HEAD"
    assert first_sha.startswith(head.commit)
    status = await working_tree_status(cloned_repo)
    assert status.branch is None
    assert status.head == head.commit


async def test_checkout_unknown_commit_keeps_branch(cloned_repo: Path) -> None:
    with pytest.raises(CheckoutError) as exc_info:
        await checkout(cloned_repo, commit="deadbeefdeadbeef")

    assert "deadbeefdeadbeef" in exc_info.value.output
    head = await current_head(cloned_repo)
    assert head.branch == "main"


async def test_checkout_unknown_branch_fails(cloned_repo: Path) -> None:
    with pytest.raises(CheckoutError):
        await checkout(cloned_repo, branch="no-such-branch")
    assert (await current_head(cloned_repo)).branch == "main"


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"branch": "main", "commit": "abcd"},
        {"branch": "bad..name"},
        {"branch": "--orphan"},
        {"commit": "not-hex"},
    ],
)
async def test_checkout_rejects_bad_input(cloned_repo: Path, kwargs: dict[str, str]) -> None:
    with pytest.raises(InvalidInputError):
        await checkout(cloned_repo, **kwargs)


async def test_discard_changes(cloned_repo: Path) -> None:
    page = cloned_repo / "src" / "app" / "page.tsx"
    page.write_text("oops\n")

    await discard_changes(cloned_repo)

    assert page.read_text() == PAGE_V1
    assert (await working_tree_status(cloned_repo)).has_changes is False
