"""
Permission and Role models.

- Permissions are identified everywhere by their `code` (e.g. "users.create");
  `name` is only a display label.
- Roles group permissions through the role_permissions table.
- Users get roles through the UserRole association object, which carries
  the pivot attributes `scope`, `is_primary` and `is_active`.
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, Table, Column, Text, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from saas_admin.core.database.base import Base, TimestampMixin, generate_ulid


# ============================================================================
# Association Tables
# ============================================================================

role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", String(26), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", String(26), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


# ============================================================================
# Core Models
# ============================================================================

class Permission(Base, TimestampMixin):
    """
    A single access right.

    Examples:
    - code="users.create", resource="users", action="create"
    - code="billing.view", resource="billing", action="view"
    """
    __tablename__ = "permissions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    resource: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)

    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)

    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary=role_permissions,
        back_populates="permissions",
        lazy="raise_on_sql",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, code={self.code!r})>"


class Role(Base, TimestampMixin):
    """
    Named group of permissions.

    System roles (super_admin, org_admin, ...) are seeded and cannot be
    edited or deleted through the API.
    """
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)

    permissions: Mapped[list[Permission]] = relationship(
        "Permission",
        secondary=role_permissions,
        back_populates="roles",
        order_by="Permission.code",
        lazy="raise_on_sql",
        passive_deletes=True
    )

    user_roles: Mapped[list["UserRole"]] = relationship(
        "UserRole",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="raise_on_sql",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, code={self.code!r})>"


class UserRole(Base):
    """User-to-role assignment with pivot attributes."""
    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )

    # e.g. "organization" or "global"
    scope: Mapped[str] = mapped_column(String(50), nullable=False, default="organization")
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.now)

    user: Mapped["User"] = relationship("User", back_populates="user_roles")  # type: ignore  # noqa: F821
    role: Mapped[Role] = relationship("Role", back_populates="user_roles", lazy="raise_on_sql")

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role_id={self.role_id}, scope={self.scope})>"
