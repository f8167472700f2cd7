"""
Organization feature routes (admin console).
"""
from typing import Annotated, Literal
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from saas_admin.core import config
from saas_admin.core.database.engine import get_db
from saas_admin.core.pagination import (
    DataEnvelope,
    PageEnvelope,
    apply_search,
    apply_sorting,
    count_by,
    paginate,
)
from saas_admin.features.users.models import User
from saas_admin.features.users.dependencies import get_current_admin_user
from saas_admin.features.organizations.models import Organization
from saas_admin.features.organizations.schemas import (
    ORGANIZATION_SORT_FIELDS,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationStatistics,
    OrganizationUpdate,
)
from saas_admin.features.organizations.dependencies import get_organization_by_id
from saas_admin.utils import get_logger


log = get_logger(__name__)

router = APIRouter(tags=["organizations"])


@router.get("", response_model=PageEnvelope[OrganizationResponse])
async def list_organizations(
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    per_page: int = Query(config.DEFAULT_PER_PAGE, ge=1, le=config.MAX_PER_PAGE),
    search: str | None = None,
    status_filter: str | None = Query(None, alias="status"),
    subscription_status: str | None = None,
    business_type: str | None = None,
    industry: str | None = None,
    company_size: str | None = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
):
    """List organizations with search, filters and sorting."""
    query = select(Organization)
    query = apply_search(
        query, search,
        Organization.name, Organization.display_name, Organization.org_code, Organization.email
    )

    if status_filter:
        query = query.where(Organization.status == status_filter)
    if subscription_status:
        query = query.where(Organization.subscription_status == subscription_status)
    if business_type:
        query = query.where(Organization.business_type == business_type)
    if industry:
        query = query.where(Organization.industry == industry)
    if company_size:
        query = query.where(Organization.company_size == company_size)

    query = apply_sorting(query, Organization, sort_by, sort_order, ORGANIZATION_SORT_FIELDS)
    result = await paginate(db, query, page=page, per_page=per_page)
    result["items"] = [OrganizationResponse.model_validate(org) for org in result["items"]]
    return {"success": True, "data": result}


@router.get("/statistics", response_model=DataEnvelope[OrganizationStatistics])
async def get_organization_statistics(
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Counters for the organization dashboard cards."""
    by_status = await count_by(db, Organization.status)
    month_start = datetime.now(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    new_this_month = await db.scalar(
        select(func.count()).select_from(Organization).where(Organization.created_at >= month_start)
    )
    total_users = await db.scalar(select(func.count()).select_from(User))
    active_users = await db.scalar(select(func.count()).select_from(User).where(User.status == "active"))

    stats = OrganizationStatistics(
        total_organizations=sum(by_status.values()),
        active_organizations=by_status.get("active", 0),
        trial_organizations=await db.scalar(
            select(func.count()).select_from(Organization).where(Organization.subscription_status == "trial")
        ) or 0,
        suspended_organizations=by_status.get("suspended", 0),
        inactive_organizations=by_status.get("inactive", 0),
        new_this_month=new_this_month or 0,
        total_users=total_users or 0,
        active_users=active_users or 0,
        industry_distribution=await count_by(db, Organization.industry),
        last_updated=datetime.now(timezone.utc),
    )
    return {"success": True, "data": stats}


@router.post("", response_model=DataEnvelope[OrganizationResponse], status_code=status.HTTP_201_CREATED)
async def create_organization(
    org_data: OrganizationCreate,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a new organization (admin only)."""
    organization = Organization(**org_data.model_dump())
    db.add(organization)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Organization with this code already exists"
        )
    await db.refresh(organization)

    log.info("Organization %s created by %s", organization.id, admin.id)
    return {"success": True, "message": "Organization created", "data": OrganizationResponse.model_validate(organization)}


@router.get("/{organization_id}", response_model=DataEnvelope[OrganizationResponse])
async def get_organization(
    admin: Annotated[User, Depends(get_current_admin_user)],
    organization: Annotated[Organization, Depends(get_organization_by_id)]
):
    """Get organization by ID."""
    return {"success": True, "data": OrganizationResponse.model_validate(organization)}


@router.put("/{organization_id}", response_model=DataEnvelope[OrganizationResponse])
async def update_organization(
    update_data: OrganizationUpdate,
    admin: Annotated[User, Depends(get_current_admin_user)],
    organization: Annotated[Organization, Depends(get_organization_by_id)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update organization information (admin only)."""
    # Update only provided fields
    update_dict = update_data.model_dump(exclude_unset=True)
    for field, value in update_dict.items():
        setattr(organization, field, value)

    await db.commit()
    await db.refresh(organization)

    log.info("Organization %s updated by %s", organization.id, admin.id)
    return {"success": True, "message": "Organization updated", "data": OrganizationResponse.model_validate(organization)}


@router.delete("/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_organization(
    admin: Annotated[User, Depends(get_current_admin_user)],
    organization: Annotated[Organization, Depends(get_organization_by_id)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete an organization (admin only). Its users are detached, not deleted."""
    await db.delete(organization)
    await db.commit()
    log.info("Organization %s deleted by %s", organization.id, admin.id)
