"""
Permission and role management routes (admin console).
"""
from datetime import datetime, timezone
from typing import Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

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
from saas_admin.features.permissions.models import Permission, Role, UserRole, role_permissions
from saas_admin.features.permissions.schemas import (
    PERMISSION_SORT_FIELDS,
    ROLE_SORT_FIELDS,
    AssignPermissions,
    PermissionCreate,
    PermissionResponse,
    PermissionStatistics,
    PermissionUpdate,
    RoleCreate,
    RoleStatistics,
    RoleUpdate,
    RoleWithPermissions,
)
from saas_admin.features.users.dependencies import get_current_admin_user
from saas_admin.features.users.models import User
from saas_admin.utils import get_logger


log = get_logger(__name__)

router = APIRouter()


def split_code(code: str) -> tuple[str, str]:
    """'users.create' -> ('users', 'create'); 'billing.invoices.view' -> ('billing.invoices', 'view')."""
    resource, _, action = code.rpartition(".")
    return resource, action


def role_payload(role: Role) -> RoleWithPermissions:
    response = RoleWithPermissions.model_validate(role)
    response.can_edit = role.status == "active" and not role.is_system
    response.can_delete = not role.is_system
    return response


async def _get_permission(db: AsyncSession, permission_id: str) -> Permission:
    permission = await db.get(Permission, permission_id)
    if permission is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Permission not found"
        )
    return permission


async def _get_role(db: AsyncSession, role_id: str) -> Role:
    result = await db.execute(
        select(Role)
        .options(selectinload(Role.permissions))
        .where(Role.id == role_id)
        .execution_options(populate_existing=True)
    )
    role = result.scalar_one_or_none()
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Role not found"
        )
    return role


def _refuse_system_role(role: Role) -> None:
    if role.is_system:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="System roles cannot be modified"
        )


async def _load_permissions(db: AsyncSession, permission_ids: list[str]) -> list[Permission]:
    """Fetch permissions by id, keeping request order; 400 on unknown ids."""
    unique_ids = list(dict.fromkeys(permission_ids))
    if not unique_ids:
        return []
    result = await db.execute(select(Permission).where(Permission.id.in_(unique_ids)))
    by_id = {permission.id: permission for permission in result.scalars().all()}
    missing = [permission_id for permission_id in unique_ids if permission_id not in by_id]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown permission ids: {', '.join(missing)}"
        )
    return [by_id[permission_id] for permission_id in unique_ids]


# ============================================================================
# Permission Routes
# ============================================================================

@router.get("/permissions", response_model=PageEnvelope[PermissionResponse])
async def list_permissions(
    page: int = Query(1, ge=1),
    per_page: int = Query(15, ge=1, le=config.MAX_PER_PAGE),
    search: Optional[str] = None,
    category: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    sort_by: str = "category",
    sort_order: Literal["asc", "desc"] = "asc",
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """List permissions with optional filtering."""
    stmt = apply_search(select(Permission), search, Permission.code, Permission.name, Permission.description)

    if category:
        stmt = stmt.where(Permission.category == category)
    if status_filter:
        stmt = stmt.where(Permission.status == status_filter)

    stmt = apply_sorting(stmt, Permission, sort_by, sort_order, PERMISSION_SORT_FIELDS)
    result = await paginate(db, stmt, page=page, per_page=per_page)
    result["items"] = [PermissionResponse.model_validate(item) for item in result["items"]]
    return {"success": True, "data": result}


@router.get("/permissions/statistics", response_model=DataEnvelope[PermissionStatistics])
async def get_permission_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Counters for the permission dashboard cards."""
    by_status = await count_by(db, Permission.status)
    system = await db.scalar(select(func.count()).select_from(Permission).where(Permission.is_system.is_(True))) or 0
    total = sum(by_status.values())

    stats = PermissionStatistics(
        total_permissions=total,
        active_permissions=by_status.get("active", 0),
        inactive_permissions=by_status.get("inactive", 0),
        system_permissions=system,
        custom_permissions=total - system,
        category_statistics=await count_by(db, Permission.category),
        last_updated=datetime.now(timezone.utc),
    )
    return {"success": True, "data": stats}


@router.post("/permissions", response_model=DataEnvelope[PermissionResponse], status_code=status.HTTP_201_CREATED)
async def create_permission(
    permission: PermissionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Create a new permission (admin only)."""
    resource, action = split_code(permission.code)
    db_permission = Permission(**permission.model_dump(), resource=resource, action=action)
    db.add(db_permission)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Permission with this code already exists"
        )
    await db.refresh(db_permission)

    log.info("Permission %s created by %s", db_permission.code, current_user.id)
    return {"success": True, "message": "Permission created", "data": PermissionResponse.model_validate(db_permission)}


@router.post(
    "/permissions/{permission_id}/clone",
    response_model=DataEnvelope[PermissionResponse],
    status_code=status.HTTP_201_CREATED,
)
async def clone_permission(
    permission_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Copy a permission as a custom one; the copy's code gets a `_copy` suffix."""
    source = await _get_permission(db, permission_id)
    code = f"{source.code}_copy"
    resource, action = split_code(code)
    description = f"Cloned from {source.name}"
    if source.description:
        description = f"{source.description} ({description})"

    clone = Permission(
        code=code,
        name=f"{source.name} (Copy)",
        description=description,
        category=source.category,
        resource=resource,
        action=action,
        status=source.status,
        is_system=False,
    )
    db.add(clone)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Permission {code} already exists"
        )
    await db.refresh(clone)

    log.info("Permission %s cloned to %s by %s", source.code, clone.code, current_user.id)
    return {"success": True, "message": "Permission cloned", "data": PermissionResponse.model_validate(clone)}


@router.get("/permissions/{permission_id}", response_model=DataEnvelope[PermissionResponse])
async def get_permission(
    permission_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Get a specific permission by ID."""
    permission = await _get_permission(db, permission_id)
    return {"success": True, "data": PermissionResponse.model_validate(permission)}


@router.put("/permissions/{permission_id}", response_model=DataEnvelope[PermissionResponse])
async def update_permission(
    permission_id: str,
    permission_update: PermissionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Update a permission (admin only). System permissions are read-only."""
    permission = await _get_permission(db, permission_id)
    if permission.is_system:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="System permissions cannot be modified"
        )

    for field, value in permission_update.model_dump(exclude_unset=True).items():
        setattr(permission, field, value)

    await db.commit()
    await db.refresh(permission)

    log.info("Permission %s updated by %s", permission.code, current_user.id)
    return {"success": True, "message": "Permission updated", "data": PermissionResponse.model_validate(permission)}


@router.delete("/permissions/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(
    permission_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Delete a permission (admin only). Removes it from every role."""
    permission = await _get_permission(db, permission_id)
    if permission.is_system:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="System permissions cannot be deleted"
        )

    await db.delete(permission)
    await db.commit()
    log.info("Permission %s deleted by %s", permission.code, current_user.id)


# ============================================================================
# Role Routes
# ============================================================================

@router.get("/roles", response_model=PageEnvelope[RoleWithPermissions])
async def list_roles(
    page: int = Query(1, ge=1),
    per_page: int = Query(config.DEFAULT_PER_PAGE, ge=1, le=config.MAX_PER_PAGE),
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    sort_by: str = "name",
    sort_order: Literal["asc", "desc"] = "asc",
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """List roles with their permissions."""
    stmt = select(Role).options(selectinload(Role.permissions))
    stmt = apply_search(stmt, search, Role.code, Role.name, Role.description)
    if status_filter:
        stmt = stmt.where(Role.status == status_filter)

    stmt = apply_sorting(stmt, Role, sort_by, sort_order, ROLE_SORT_FIELDS)
    result = await paginate(db, stmt, page=page, per_page=per_page)
    result["items"] = [role_payload(role) for role in result["items"]]
    return {"success": True, "data": result}


@router.get("/roles/statistics", response_model=DataEnvelope[RoleStatistics])
async def get_role_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Counters for the role dashboard cards."""
    by_status = await count_by(db, Role.status)
    total = sum(by_status.values())
    system = await db.scalar(select(func.count()).select_from(Role).where(Role.is_system.is_(True))) or 0
    with_users = await db.scalar(select(func.count(func.distinct(UserRole.role_id)))) or 0
    with_permissions = await db.scalar(select(func.count(func.distinct(role_permissions.c.role_id)))) or 0

    stats = RoleStatistics(
        total_roles=total,
        system_roles=system,
        custom_roles=total - system,
        active_roles=by_status.get("active", 0),
        inactive_roles=by_status.get("inactive", 0),
        roles_with_users=with_users,
        roles_without_users=total - with_users,
        roles_with_permissions=with_permissions,
        roles_without_permissions=total - with_permissions,
        last_updated=datetime.now(timezone.utc),
    )
    return {"success": True, "data": stats}


@router.post("/roles", response_model=DataEnvelope[RoleWithPermissions], status_code=status.HTTP_201_CREATED)
async def create_role(
    role: RoleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Create a new role, optionally with its initial permissions (admin only)."""
    permissions = await _load_permissions(db, role.permission_ids)
    db_role = Role(**role.model_dump(exclude={"permission_ids"}), permissions=permissions)
    db.add(db_role)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Role with this code already exists"
        )

    log.info("Role %s created by %s", db_role.code, current_user.id)
    db_role = await _get_role(db, db_role.id)
    return {"success": True, "message": "Role created", "data": role_payload(db_role)}


@router.get("/roles/{role_id}", response_model=DataEnvelope[RoleWithPermissions])
async def get_role(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Get a role with its permissions."""
    role = await _get_role(db, role_id)
    return {"success": True, "data": role_payload(role)}


@router.put("/roles/{role_id}", response_model=DataEnvelope[RoleWithPermissions])
async def update_role(
    role_id: str,
    role_update: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Update a role (admin only)."""
    role = await _get_role(db, role_id)
    _refuse_system_role(role)

    for field, value in role_update.model_dump(exclude_unset=True).items():
        setattr(role, field, value)

    await db.commit()
    log.info("Role %s updated by %s", role.code, current_user.id)
    role = await _get_role(db, role_id)
    return {"success": True, "message": "Role updated", "data": role_payload(role)}


@router.put("/roles/{role_id}/permissions", response_model=DataEnvelope[RoleWithPermissions])
async def assign_permissions_to_role(
    role_id: str,
    assignment: AssignPermissions,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Replace the permission set of a role (admin only)."""
    role = await _get_role(db, role_id)
    _refuse_system_role(role)

    role.permissions = await _load_permissions(db, assignment.permission_ids)
    await db.commit()

    log.info("Role %s now has %d permissions (by %s)", role.code, len(role.permissions), current_user.id)
    role = await _get_role(db, role_id)
    return {"success": True, "message": "Permissions assigned", "data": role_payload(role)}


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
):
    """Delete a role (admin only). Roles still assigned to users cannot be deleted."""
    role = await _get_role(db, role_id)
    _refuse_system_role(role)

    assigned = await db.scalar(select(func.count()).select_from(UserRole).where(UserRole.role_id == role.id))
    if assigned:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Role is assigned to {assigned} user(s)"
        )

    await db.delete(role)
    await db.commit()
    log.info("Role %s deleted by %s", role.code, current_user.id)
