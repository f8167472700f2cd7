"""
Pydantic schemas for permission management.

Request and response models for permissions and roles.
"""
from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


CODE_PATTERN = r"^[a-z0-9_]+(\.[a-z0-9_]+)+$"
PERMISSION_SORT_FIELDS = ("created_at", "updated_at", "code", "name", "category", "resource", "status")
ROLE_SORT_FIELDS = ("created_at", "updated_at", "code", "name", "status")

RecordStatus = Literal["active", "inactive"]


# ============================================================================
# Permission Schemas
# ============================================================================

class PermissionBase(BaseModel):
    """Base permission schema."""
    name: str = Field(..., min_length=1, max_length=150, description="Display label")
    description: Optional[str] = Field(None, max_length=1000, description="Permission description")
    category: Optional[str] = Field(None, max_length=50, description="Grouping shown in the console, e.g. 'User Management'")


class PermissionCreate(PermissionBase):
    """Schema for creating a new permission."""
    code: str = Field(..., max_length=100, pattern=CODE_PATTERN, description="Canonical code, e.g. 'users.create'")
    status: RecordStatus = "active"

    @field_validator("code")
    @classmethod
    def code_lowercase(cls, v: str) -> str:
        return v.lower()


class PermissionUpdate(BaseModel):
    """Schema for updating a permission. The code is immutable."""
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[str] = Field(None, max_length=50)
    status: Optional[RecordStatus] = None


class PermissionResponse(PermissionBase):
    """Schema for permission response."""
    id: str
    code: str
    resource: str
    action: str
    is_system: bool
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PermissionStatistics(BaseModel):
    total_permissions: int
    active_permissions: int
    inactive_permissions: int
    system_permissions: int
    custom_permissions: int
    category_statistics: Dict[str, int]
    last_updated: datetime


# ============================================================================
# Role Schemas
# ============================================================================

class RoleBase(BaseModel):
    """Base role schema."""
    name: str = Field(..., min_length=1, max_length=150, description="Display label")
    description: Optional[str] = Field(None, max_length=1000, description="Role description")


class RoleCreate(RoleBase):
    """Schema for creating a new role."""
    code: str = Field(..., min_length=2, max_length=100, pattern=r"^[a-z0-9_\-]+$")
    status: RecordStatus = "active"
    permission_ids: List[str] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    """Schema for updating a role."""
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[RecordStatus] = None


class RoleResponse(RoleBase):
    """Schema for role response."""
    id: str
    code: str
    is_system: bool
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleWithPermissions(RoleResponse):
    """Schema for role with permissions."""
    permissions: List[PermissionResponse] = []
    can_edit: bool = True
    can_delete: bool = True

    model_config = ConfigDict(from_attributes=True)


class AssignPermissions(BaseModel):
    """Replace the permission set of a role."""
    permission_ids: List[str] = Field(..., description="Permission ULIDs; an empty list clears the role")


class RoleStatistics(BaseModel):
    total_roles: int
    system_roles: int
    custom_roles: int
    active_roles: int
    inactive_roles: int
    roles_with_users: int
    roles_without_users: int
    roles_with_permissions: int
    roles_without_permissions: int
    last_updated: datetime
