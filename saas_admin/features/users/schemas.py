"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from typing import Any, Literal
from pydantic import BaseModel, EmailStr, Field, field_validator


UserStatus = Literal["active", "inactive", "suspended", "pending"]
USER_SORT_FIELDS = ("created_at", "updated_at", "full_name", "email", "username", "last_login_at", "status", "role")


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.\-]+$")
    full_name: str = Field(..., min_length=1, max_length=255)


class UserCreate(UserBase):
    """Schema for creating a user from the admin console."""
    organization_id: str | None = None
    phone: str | None = Field(None, max_length=20)
    department: str | None = Field(None, max_length=100)
    job_title: str | None = Field(None, max_length=100)
    role: str = Field(default="customer", max_length=50)
    status: UserStatus = "active"
    permissions: list[str] = Field(default_factory=list, description="Direct permission codes")
    role_ids: list[str] = Field(default_factory=list, description="Roles to assign; the first one is primary")

    @field_validator("permissions")
    @classmethod
    def _dedupe_permissions(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(code.strip() for code in v if code.strip()))


class UserUpdate(BaseModel):
    """Partial update; only provided fields are written."""
    email: EmailStr | None = None
    username: str | None = Field(None, min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.\-]+$")
    full_name: str | None = Field(None, min_length=1, max_length=255)
    organization_id: str | None = None
    phone: str | None = Field(None, max_length=20)
    department: str | None = Field(None, max_length=100)
    job_title: str | None = Field(None, max_length=100)
    role: str | None = Field(None, max_length=50)
    status: UserStatus | None = None
    permissions: list[str] | None = None
    role_ids: list[str] | None = None


# ============================================================================
# User resource payload
# ============================================================================

class OrganizationSummary(BaseModel):
    id: str
    name: str
    org_code: str
    status: str
    subscription_status: str

    model_config = {"from_attributes": True}


class RolePivot(BaseModel):
    scope: str
    is_primary: bool


class RoleSummary(BaseModel):
    id: str
    name: str
    code: str
    permissions: list[str] | None = None
    pivot: RolePivot


class SecurityInfo(BaseModel):
    two_factor_enabled: bool
    last_login_ip: str | None = None
    login_count: int = 0
    failed_login_attempts: int = 0
    locked_until: datetime | None = None
    password_changed_at: datetime | None = None


class UserResource(BaseModel):
    """
    Serialized user as returned by GET /admin/users/{id}.

    Conditional keys (organization, roles, active_sessions, security_info,
    can_edit, can_delete) are only present when set; dump with
    exclude_unset=True.
    """
    id: str
    email: str
    username: str
    full_name: str
    role: str
    status: str
    organization_id: str | None = None
    phone: str | None = None
    department: str | None = None
    job_title: str | None = None
    is_email_verified: bool
    is_phone_verified: bool
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    permissions: list[str]

    organization: OrganizationSummary | None = None
    roles: list[RoleSummary] = []
    active_sessions: list[dict[str, Any]] = []
    security_info: SecurityInfo | None = None
    can_edit: bool = False
    can_delete: bool = False


class UserStatistics(BaseModel):
    total_users: int
    active_users: int
    inactive_users: int
    suspended_users: int
    pending_users: int
    verified_users: int
    unverified_users: int
    two_factor_enabled: int
    recent_users: int
    role_statistics: dict[str, int]
    last_updated: datetime


class EmailCheck(BaseModel):
    email: EmailStr
    exclude_id: str | None = Field(None, description="User being edited; its own value counts as available")


class UsernameCheck(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    exclude_id: str | None = None


class Availability(BaseModel):
    available: bool
