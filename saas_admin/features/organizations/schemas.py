"""
Pydantic schemas for organization-related requests and responses.
"""
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field, EmailStr


OrganizationStatus = Literal["active", "inactive", "suspended", "pending"]
SubscriptionStatus = Literal["trial", "active", "inactive", "cancelled", "expired"]
ORGANIZATION_SORT_FIELDS = ("created_at", "updated_at", "name", "org_code", "status", "subscription_status", "industry")


class OrganizationBase(BaseModel):
    """Base organization schema."""
    name: str = Field(..., min_length=1, max_length=255)
    display_name: str | None = Field(None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    website: str | None = Field(None, max_length=255)
    business_type: str | None = Field(None, max_length=50)
    industry: str | None = Field(None, max_length=100)
    company_size: str | None = Field(None, max_length=20, description="e.g. 1-10, 11-50, 51-200")


class OrganizationCreate(OrganizationBase):
    """Schema for creating a new organization."""
    org_code: str = Field(..., min_length=2, max_length=50, pattern=r"^[A-Za-z0-9_\-]+$")
    status: OrganizationStatus = "active"
    subscription_status: SubscriptionStatus = "trial"


class OrganizationUpdate(BaseModel):
    """Schema for updating organization information."""
    name: str | None = Field(None, min_length=1, max_length=255)
    display_name: str | None = Field(None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    website: str | None = Field(None, max_length=255)
    business_type: str | None = Field(None, max_length=50)
    industry: str | None = Field(None, max_length=100)
    company_size: str | None = Field(None, max_length=20)
    status: OrganizationStatus | None = None
    subscription_status: SubscriptionStatus | None = None


class OrganizationResponse(OrganizationBase):
    """Schema for organization responses."""
    id: str
    email: str | None = None
    org_code: str
    status: str
    subscription_status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrganizationStatistics(BaseModel):
    total_organizations: int
    active_organizations: int
    trial_organizations: int
    suspended_organizations: int
    inactive_organizations: int
    new_this_month: int
    total_users: int
    active_users: int
    industry_distribution: dict[str, int]
    last_updated: datetime
