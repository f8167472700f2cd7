"""
SQLAlchemy declarative base and shared column helpers.

Every model in saas_admin.features.* inherits from Base.
"""
from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
import ulid


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return ulid.ulid()


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Usage:
        from saas_admin.core.database.base import Base

        class Role(Base, TimestampMixin):
            __tablename__ = "roles"

            id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    """
    pass


class TimestampMixin:
    """
    Adds created_at and updated_at columns maintained by the database.
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
