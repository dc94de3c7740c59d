"""
Declarative base and column mixins shared by the ``users`` and ``videos`` tables.

Columns are portable between PostgreSQL (asyncpg) and SQLite (aiosqlite): the
generic ``Uuid`` type maps to a native UUID or a 32-character string, and
``now()`` compiles to ``CURRENT_TIMESTAMP`` where needed.
"""

import uuid

from sqlalchemy import Column, DateTime, Uuid, inspect
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql.functions import now as db_now


class CustomBase:
    """
    Common behaviour for every model.
    """

    def to_dict(self, exclude: set[str] | None = None) -> dict:
        """
        Snapshot of the loaded column values.

        Relationships are never touched, so calling this on an instance whose
        relationships were not eagerly loaded does not emit any SQL.
        """
        state = inspect(self)
        skipped = (exclude or set()) | state.unloaded
        return {
            attr.key: getattr(self, attr.key)
            for attr in state.mapper.column_attrs
            if attr.key not in skipped
        }


Base = declarative_base(cls=CustomBase)


class TimestampMixin:
    """
    ``created_at`` is set by the database on insert. ``updated_at`` is refreshed
    on every ORM update; statements that must not count as an edit set it to
    its own value explicitly.
    """

    created_at = Column(
        DateTime(timezone=True),
        server_default=db_now(),
        nullable=False,
        comment="Timestamp when the record was created",
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=db_now(),
        onupdate=db_now(),
        nullable=False,
        comment="Timestamp when the record was last edited",
    )


class UUIDMixin:
    """UUID4 primary key generated client-side, so ids are known before flush."""

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
        comment="Primary key using UUID4 format",
    )


__all__ = ["Base", "TimestampMixin", "UUIDMixin"]
