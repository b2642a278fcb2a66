"""Workspace registry: which repositories an operator has cloned.

A pure metadata store.  It knows nothing about the disk; callers that list
repositories must cross-check that the workspace still exists.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vibeconsole.sandbox.db.tables import Repository
from vibeconsole.sandbox.errors import RepositoryNotFoundError


@dataclass
class RepositoryData:
    owner_login: str
    name: str
    full_name: str
    default_branch: str = "main"


async def get_or_create(db: AsyncSession, operator_id: str, data: RepositoryData) -> Repository:
    """Return the record for ``(operator_id, data.name)``, creating it if missing."""
    existing = await find_by_name(db, operator_id, data.name)
    if existing is not None:
        return existing

    repo = Repository(
        repo_id=uuid.uuid4().hex,
        operator_id=operator_id,
        owner_login=data.owner_login,
        name=data.name,
        full_name=data.full_name,
        default_branch=data.default_branch,
    )
    db.add(repo)
    await db.commit()
    await db.refresh(repo)
    logger.info("Registry: recorded {} for operator {}", data.full_name, operator_id)
    return repo


async def list_for(db: AsyncSession, operator_id: str) -> list[Repository]:
    """List an operator's repositories, most recently used first.

    Never-used records sort last, newest clone first among them.
    """
    stmt = (
        select(Repository)
        .where(Repository.operator_id == operator_id)
        .order_by(
            Repository.last_used_at.is_(None),
            Repository.last_used_at.desc(),
            Repository.cloned_at.desc(),
        )
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def find_by_name(db: AsyncSession, operator_id: str, name: str) -> Repository | None:
    stmt = select(Repository).where(Repository.operator_id == operator_id, Repository.name == name)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def touch(db: AsyncSession, repo_id: str) -> Repository:
    """Set ``last_used_at`` to now.  Raises ``RepositoryNotFoundError`` if missing."""
    repo = await db.get(Repository, repo_id)
    if repo is None:
        raise RepositoryNotFoundError(repo_id)
    repo.last_used_at = datetime.now(UTC)
    await db.commit()
    await db.refresh(repo)
    return repo


async def delete(db: AsyncSession, repo_id: str) -> None:
    """Delete a record.  Raises ``RepositoryNotFoundError`` if missing."""
    repo = await db.get(Repository, repo_id)
    if repo is None:
        raise RepositoryNotFoundError(repo_id)
    await db.delete(repo)
    await db.commit()
    logger.info("Registry: removed {} ({})", repo.full_name, repo_id)
