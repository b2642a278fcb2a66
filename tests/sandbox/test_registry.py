"""Tests for the workspace registry (SQLite, no git needed)."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vibeconsole.sandbox.db.tables import Repository
from vibeconsole.sandbox.errors import RepositoryNotFoundError
from vibeconsole.sandbox.managers import repositories
from vibeconsole.sandbox.managers.repositories import RepositoryData


def _data(name: str, owner: str = "acme") -> RepositoryData:
    return RepositoryData(owner_login=owner, name=name, full_name=f"{owner}/{name}")


async def test_get_or_create_is_idempotent(db_session: AsyncSession) -> None:
    first = await repositories.get_or_create(db_session, "op-1", _data("site"))
    second = await repositories.get_or_create(db_session, "op-1", _data("site"))

    assert first.repo_id == second.repo_id
    assert first.default_branch == "main"
    assert first.cloned_at is not None
    assert first.last_used_at is None


async def test_identity_is_scoped_per_operator(db_session: AsyncSession) -> None:
    a = await repositories.get_or_create(db_session, "op-1", _data("site"))
    b = await repositories.get_or_create(db_session, "op-2", _data("site"))

    assert a.repo_id != b.repo_id
    assert [r.name for r in await repositories.list_for(db_session, "op-1")] == ["site"]
    assert await repositories.find_by_name(db_session, "op-3", "site") is None


async def test_operator_name_unique_constraint(db_session: AsyncSession) -> None:
    db_session.add(Repository(repo_id="r1", operator_id="op", owner_login="a", name="x", full_name="a/x"))
    await db_session.commit()
    db_session.add(Repository(repo_id="r2", operator_id="op", owner_login="b", name="x", full_name="b/x"))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


async def test_list_orders_by_last_used(db_session: AsyncSession) -> None:
    alpha = await repositories.get_or_create(db_session, "op", _data("alpha"))
    beta = await repositories.get_or_create(db_session, "op", _data("beta"))
    await repositories.get_or_create(db_session, "op", _data("never-used"))

    await repositories.touch(db_session, alpha.repo_id)
    await repositories.touch(db_session, beta.repo_id)

    names = [r.name for r in await repositories.list_for(db_session, "op")]
    assert names == ["beta", "alpha", "never-used"]


async def test_touch_missing_raises(db_session: AsyncSession) -> None:
    with pytest.raises(RepositoryNotFoundError):
        await repositories.touch(db_session, "missing")


async def test_delete(db_session: AsyncSession) -> None:
    repo = await repositories.get_or_create(db_session, "op", _data("site"))
    await repositories.delete(db_session, repo.repo_id)

    assert await repositories.find_by_name(db_session, "op", "site") is None
    with pytest.raises(RepositoryNotFoundError):
        await repositories.delete(db_session, repo.repo_id)
