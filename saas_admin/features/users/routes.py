"""
User feature routes (admin console).

Every user payload goes through serialize_user with the authenticated
admin as the viewer. Org admins only see users of their own organization.
"""
from datetime import datetime, timedelta, timezone
from typing import Annotated, Literal
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import Select, select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from saas_admin.core import config
from saas_admin.core.database.engine import get_db
from saas_admin.core.pagination import (
    DataEnvelope,
    PageEnvelope,
    apply_search,
    apply_sorting,
    paginate,
)
from saas_admin.features.permissions.models import Role, UserRole
from saas_admin.features.permissions.resolver import SUPER_ADMIN_ROLE
from saas_admin.features.users.dependencies import get_current_admin_user, get_current_user, user_with_relations
from saas_admin.features.users.models import ADMIN_ROLES, User
from saas_admin.features.users.resources import serialize_user
from saas_admin.features.users.schemas import (
    USER_SORT_FIELDS,
    Availability,
    EmailCheck,
    UserCreate,
    UserResource,
    UsernameCheck,
    UserStatistics,
    UserUpdate,
)
from saas_admin.utils import get_logger


log = get_logger(__name__)

router = APIRouter(tags=["users"])


def _is_super_admin(user: User) -> bool:
    return user.role == SUPER_ADMIN_ROLE


def _scoped(query: Select, admin: User) -> Select:
    """Restrict org admins to their own organization."""
    if not _is_super_admin(admin):
        return query.where(User.organization_id == admin.organization_id)
    return query


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def _check_manageable(admin: User, user: User) -> None:
    """Org admins cannot touch super admin accounts, even in their own organization."""
    if _is_super_admin(user) and not _is_super_admin(admin):
        raise _forbidden("Only super admins can manage super admin accounts")


async def _check_role_grant(
    db: AsyncSession,
    admin: User,
    target: User | None,
    role: str | None,
    role_ids: list[str] | None,
) -> None:
    """
    Refuse role changes the acting admin is not allowed to make.

    - Nobody changes their own role or role assignments.
    - Only super admins grant the super_admin role or assign system roles.
    """
    if target is not None and target.id == admin.id:
        if (role is not None and role != target.role) or role_ids is not None:
            raise _forbidden("You cannot change your own roles")

    if _is_super_admin(admin):
        return

    # ADMIN_ROLES is ordered highest first
    if role in ADMIN_ROLES and ADMIN_ROLES.index(role) < ADMIN_ROLES.index(admin.role):
        raise _forbidden(f"Only super admins can grant the {role} role")

    if role_ids:
        system_roles = (await db.execute(
            select(Role.code).where(Role.id.in_(role_ids), Role.is_system.is_(True))
        )).scalars().all()
        if system_roles:
            raise _forbidden(f"Only super admins can assign system roles: {', '.join(sorted(system_roles))}")


async def _get_user(db: AsyncSession, user_id: str, admin: User) -> User:
    query = _scoped(user_with_relations().where(User.id == user_id), admin)
    result = await db.execute(query.execution_options(populate_existing=True))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


async def _assign_roles(db: AsyncSession, user: User, role_ids: list[str]) -> None:
    """Replace the user's roles; the first id becomes the primary role."""
    unique_ids = list(dict.fromkeys(role_ids))
    if unique_ids:
        found = set((await db.execute(select(Role.id).where(Role.id.in_(unique_ids)))).scalars().all())
        missing = [role_id for role_id in unique_ids if role_id not in found]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown role ids: {', '.join(missing)}"
            )

    existing = {user_role.role_id: user_role for user_role in user.user_roles}
    user.user_roles = [existing.get(role_id) or UserRole(role_id=role_id) for role_id in unique_ids]
    for index, user_role in enumerate(user.user_roles):
        user_role.is_primary = index == 0


@router.get("/me", response_model=DataEnvelope[UserResource], response_model_exclude_unset=True)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Current user's own profile, including security info."""
    return {"success": True, "data": serialize_user(user, viewer=user)}


@router.get("", response_model=PageEnvelope[UserResource], response_model_exclude_unset=True)
async def list_users(
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    per_page: int = Query(config.DEFAULT_PER_PAGE, ge=1, le=config.MAX_PER_PAGE),
    search: str | None = None,
    status_filter: str | None = Query(None, alias="status"),
    role: str | None = None,
    organization_id: str | None = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
):
    """List users with search, filters and sorting."""
    query = _scoped(user_with_relations(), admin)
    query = apply_search(query, search, User.email, User.full_name, User.username, User.department)

    if status_filter:
        query = query.where(User.status == status_filter)
    if role:
        query = query.where(User.role == role)
    if organization_id:
        query = query.where(User.organization_id == organization_id)

    query = apply_sorting(query, User, sort_by, sort_order, USER_SORT_FIELDS)
    result = await paginate(db, query, page=page, per_page=per_page)
    result["items"] = [serialize_user(user, viewer=admin) for user in result["items"]]
    return {"success": True, "data": result}


@router.get("/statistics", response_model=DataEnvelope[UserStatistics])
async def get_user_statistics(
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Counters for the user dashboard cards."""
    async def count(*conditions) -> int:
        return await db.scalar(_scoped(select(func.count()).select_from(User), admin).where(*conditions)) or 0

    async def grouped(column) -> dict[str, int]:
        query = _scoped(select(column, func.count()).select_from(User), admin).group_by(column)
        return {str(key): n for key, n in (await db.execute(query)).all()}

    by_status = await grouped(User.status)
    total = sum(by_status.values())

    verified = await count(User.is_email_verified.is_(True))
    thirty_days_ago = datetime.now(timezone.utc) - timedelta(days=30)

    stats = UserStatistics(
        total_users=total,
        active_users=by_status.get("active", 0),
        inactive_users=by_status.get("inactive", 0),
        suspended_users=by_status.get("suspended", 0),
        pending_users=by_status.get("pending", 0),
        verified_users=verified,
        unverified_users=total - verified,
        two_factor_enabled=await count(User.two_factor_enabled.is_(True)),
        recent_users=await count(User.created_at >= thirty_days_ago),
        role_statistics=await grouped(User.role),
        last_updated=datetime.now(timezone.utc),
    )
    return {"success": True, "data": stats}


async def _is_available(db: AsyncSession, column, value: str, exclude_id: str | None) -> bool:
    query = select(User.id).where(func.lower(column) == value.strip().lower())
    if exclude_id:
        query = query.where(User.id != exclude_id)
    return (await db.execute(query.limit(1))).first() is None


@router.post("/check-email", response_model=DataEnvelope[Availability])
async def check_email(
    payload: EmailCheck,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Whether an email is still free. Emails are unique across all organizations."""
    available = await _is_available(db, User.email, payload.email, payload.exclude_id)
    return {"success": True, "data": {"available": available}}


@router.post("/check-username", response_model=DataEnvelope[Availability])
async def check_username(
    payload: UsernameCheck,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Whether a username is still free."""
    available = await _is_available(db, User.username, payload.username, payload.exclude_id)
    return {"success": True, "data": {"available": available}}


@router.post(
    "",
    response_model=DataEnvelope[UserResource],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_user(
    user_data: UserCreate,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a user (admin only). Org admins can only create users in their organization."""
    await _check_role_grant(db, admin, None, user_data.role, user_data.role_ids)

    fields = user_data.model_dump(exclude={"role_ids"})
    if not _is_super_admin(admin):
        fields["organization_id"] = admin.organization_id

    user = User(**fields, user_roles=[])
    await _assign_roles(db, user, user_data.role_ids)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email or username already exists"
        )

    log.info("User %s created by %s", user.id, admin.id)
    user = await _get_user(db, user.id, admin)
    return {"success": True, "message": "User created", "data": serialize_user(user, viewer=admin)}


@router.get("/{user_id}", response_model=DataEnvelope[UserResource], response_model_exclude_unset=True)
async def get_user(
    user_id: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get a user by ID."""
    user = await _get_user(db, user_id, admin)
    return {"success": True, "data": serialize_user(user, viewer=admin)}


@router.put("/{user_id}", response_model=DataEnvelope[UserResource], response_model_exclude_unset=True)
async def update_user(
    user_id: str,
    update_data: UserUpdate,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update a user (admin only). `role_ids`, when given, replaces the user's roles."""
    user = await _get_user(db, user_id, admin)
    _check_manageable(admin, user)
    await _check_role_grant(db, admin, user, update_data.role, update_data.role_ids)

    changes = update_data.model_dump(exclude_unset=True, exclude={"role_ids"})
    if not _is_super_admin(admin):
        changes.pop("organization_id", None)
    if "permissions" in changes:
        changes["permissions"] = list(dict.fromkeys(changes["permissions"] or []))
    for field, value in changes.items():
        setattr(user, field, value)

    if update_data.role_ids is not None:
        await _assign_roles(db, user, update_data.role_ids)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email or username already exists"
        )

    log.info("User %s updated by %s", user_id, admin.id)
    user = await _get_user(db, user_id, admin)
    return {"success": True, "message": "User updated", "data": serialize_user(user, viewer=admin)}


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete a user (admin only). Admins cannot delete themselves."""
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )

    user = await _get_user(db, user_id, admin)
    _check_manageable(admin, user)
    await db.delete(user)
    await db.commit()
    log.info("User %s deleted by %s", user_id, admin.id)


@router.patch(
    "/{user_id}/toggle-status",
    response_model=DataEnvelope[UserResource],
    response_model_exclude_unset=True,
)
async def toggle_user_status(
    user_id: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Switch an active user to inactive, and any other status back to active."""
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change your own status"
        )

    user = await _get_user(db, user_id, admin)
    _check_manageable(admin, user)
    user.status = "inactive" if user.status == "active" else "active"
    await db.commit()

    log.info("User %s status set to %s by %s", user_id, user.status, admin.id)
    user = await _get_user(db, user_id, admin)
    return {"success": True, "message": "User status toggled", "data": serialize_user(user, viewer=admin)}
