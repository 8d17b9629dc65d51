"""
SQLAlchemy declarative base and common model mixins.

This module provides the SQLAlchemy DeclarativeBase with async attribute
loading and the common mixins for timestamps, UUID keys and soft deletion.
Column types are dialect-neutral so the same models run on PostgreSQL in
production and on SQLite in the test suite.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Uuid, false, func
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current time used for client-side timestamp defaults."""
    return datetime.now(timezone.utc)


class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all SQLAlchemy models with async support.

    Provides async attribute loading and a primary-key based repr.
    """

    __abstract__ = True

    def __repr__(self) -> str:
        """
        Generate string representation of model instance.

        Returns:
            String representation with primary key values
        """
        pk_values = []
        for column in self.__table__.primary_key.columns:
            value = getattr(self, column.key, None)
            if value is not None:
                pk_values.append(f"{column.key}={value!r}")

        pk_str = ", ".join(pk_values) if pk_values else "no primary key"
        return f"<{self.__class__.__name__}({pk_str})>"


class TimestampMixin:
    """
    Mixin for automatic timestamp management.

    Adds created_at and updated_at columns. Values are assigned client-side so
    they are loaded on the instance right after flush, with a server default
    kept for rows written outside the ORM.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        """Timestamp when the record was created."""
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            server_default=func.now(),
            comment="Timestamp when record was created",
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        """Timestamp when the record was last updated."""
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            onupdate=utcnow,
            server_default=func.now(),
            comment="Timestamp when record was last updated",
        )


class UUIDMixin:
    """
    Mixin for UUID primary key.

    Uses the generic Uuid type: native UUID on PostgreSQL, CHAR(32) elsewhere.
    """

    @declared_attr
    def id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            Uuid(as_uuid=True),
            primary_key=True,
            default=uuid.uuid4,
            nullable=False,
            comment="Unique identifier for the record",
        )


class SoftDeleteMixin:
    """
    Mixin for soft delete functionality.

    Rows flagged as deleted stay in the table so historical orders keep
    pointing at them, but they are excluded from every purchasable query.
    """

    @declared_attr
    def is_deleted(cls) -> Mapped[bool]:
        return mapped_column(
            Boolean,
            nullable=False,
            default=False,
            server_default=false(),
            comment="Whether the record has been soft deleted",
        )

    @declared_attr
    def deleted_at(cls) -> Mapped[Optional[datetime]]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=True,
            default=None,
            comment="Timestamp when record was soft deleted",
        )


class BaseModel(Base, UUIDMixin, TimestampMixin):
    """
    Base model with UUID primary key and timestamps.

    Use this as the base for most application models.

    Example:
        class User(BaseModel):
            __tablename__ = "users"

            email: Mapped[str] = mapped_column(String(255), unique=True)
            name: Mapped[str] = mapped_column(String(255))
    """

    __abstract__ = True


class SoftDeleteModel(BaseModel, SoftDeleteMixin):
    """
    Base model with UUID, timestamps, and soft delete.

    Example:
        class Product(SoftDeleteModel):
            __tablename__ = "products"

            name: Mapped[str] = mapped_column(String(255))
    """

    __abstract__ = True
