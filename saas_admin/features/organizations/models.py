"""
Organization model.

Organizations are the tenants of the console. Every user belongs to at most
one organization; subscription state is tracked as a plain status string.
"""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from saas_admin.core.database.base import Base, TimestampMixin, generate_ulid


ORGANIZATION_STATUSES = ("active", "inactive", "suspended", "pending")
SUBSCRIPTION_STATUSES = ("trial", "active", "inactive", "cancelled", "expired")


class Organization(Base, TimestampMixin):
    """
    Tenant organization.

    org_code is the short public identifier used in URLs and invitations.
    """
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    org_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Profiling fields used by the console filters
    business_type: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    company_size: Mapped[str | None] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    subscription_status: Mapped[str] = mapped_column(String(20), nullable=False, default="trial", index=True)

    users: Mapped[list["User"]] = relationship(  # type: ignore  # noqa: F821
        "User",
        back_populates="organization",
        lazy="raise_on_sql",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r}, org_code={self.org_code})>"
