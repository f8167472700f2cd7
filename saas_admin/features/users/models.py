"""
User model with ULID primary keys.
"""
from datetime import datetime
from typing import Any
from sqlalchemy import String, Boolean, ForeignKey, Integer, JSON, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from saas_admin.core.database.base import Base, TimestampMixin, generate_ulid


USER_STATUSES = ("active", "inactive", "suspended", "pending")
ADMIN_ROLES = ("super_admin", "org_admin")


class User(Base, TimestampMixin):
    """
    Console user.

    `permissions` holds permission codes granted directly to the user,
    independent of any role. Role-derived permissions come through
    `user_roles` and are only available when that relation was eager-loaded.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Identity
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Legacy single-role column kept alongside the user_roles relation
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="customer", index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)

    # Verification flags
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_phone_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Security
    two_factor_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    login_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_login_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    locked_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    password_changed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Direct permission codes, e.g. ["users.view", "reports.export"]
    permissions: Mapped[list[str] | None] = mapped_column(JSON, nullable=True, default=list)
    active_sessions: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)

    organization: Mapped["Organization | None"] = relationship(  # type: ignore  # noqa: F821
        "Organization",
        back_populates="users",
        lazy="raise_on_sql",
    )

    user_roles: Mapped[list["UserRole"]] = relationship(  # type: ignore  # noqa: F821
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="raise_on_sql",
        passive_deletes=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def get_all_permissions(self) -> list["Permission"]:  # type: ignore  # noqa: F821
        """
        Permissions granted through roles, unique by permission id.

        Only call this when `user_roles` and each role's `permissions` were
        eager-loaded; an unloaded relation raises instead of querying.
        """
        seen: dict[str, Any] = {}
        for user_role in self.user_roles:
            for permission in user_role.role.permissions:
                seen.setdefault(permission.id, permission)
        return list(seen.values())

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r})>"
