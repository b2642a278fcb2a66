"""SQLAlchemy ORM models.

These are the single source of truth for the registry schema.  Alembic reads
``Base.metadata`` to autogenerate migration scripts; SQLite deployments
create the schema directly from it at startup.

Uses SQLAlchemy 2.0 declarative style with ``Mapped`` type annotations.
Column types stay portable so the same tables work on SQLite and PostgreSQL.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Timezone-aware timestamp type for all datetime columns.
TimestampTZ = DateTime(timezone=True)


class Base(DeclarativeBase):
    """Declarative base with naming convention for constraints."""

    pass


# Apply naming convention to the metadata for deterministic constraint names.
Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Repository(Base):
    """A repository cloned into the workspace root on behalf of an operator."""

    __tablename__ = "repositories"
    __table_args__ = (
        UniqueConstraint("operator_id", "name", name="uq_repositories_operator_id_name"),
        Index("ix_repositories_operator_id", "operator_id"),
    )

    repo_id: Mapped[str] = mapped_column(primary_key=True)
    operator_id: Mapped[str]
    owner_login: Mapped[str]
    name: Mapped[str]
    full_name: Mapped[str]
    default_branch: Mapped[str] = mapped_column(server_default="main")
    cloned_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    last_used_at: Mapped[datetime | None] = mapped_column(TimestampTZ)
