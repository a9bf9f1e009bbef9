"""
Base model configuration for SQLAlchemy ORM.

Provides the declarative base and abstract base classes shared by
every table of the attendance integrity service.
"""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import Mapped, declarative_base, mapped_column
from sqlalchemy.sql import func

from app.utils.datetime_utils import utc_now

# Create declarative base
Base = declarative_base()


class BaseModel(Base):
    """
    Abstract base model with a UUID string primary key.
    """

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
        nullable=False,
        comment="Primary key (UUID)",
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={getattr(self, 'id', None)})>"


class TimestampModel(BaseModel):
    """
    Base model with automatic timestamp tracking.
    """

    __abstract__ = True

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        comment="Record creation timestamp",
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        comment="Record last update timestamp",
    )


class SoftDeleteModel(TimestampModel):
    """
    Base model with soft delete capability.

    Rows are never hard-deleted; ``is_deleted`` hides them from
    repository queries.
    """

    __abstract__ = True

    is_deleted = Column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
        comment="Soft delete flag",
    )
    deleted_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="Deletion timestamp",
    )

    def soft_delete(self) -> "SoftDeleteModel":
        """Mark the instance deleted; the caller owns the commit."""
        self.is_deleted = True
        self.deleted_at = utc_now()
        return self
