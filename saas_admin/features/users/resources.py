"""
User resource serialization.

Turns a User row (with whatever relations the caller eager-loaded) into the
payload the admin console renders. The acting principal is passed in
explicitly; nothing here reads request state, and no relation is ever
lazy-loaded.
"""
from typing import Any
from sqlalchemy import inspect as sa_inspect

from saas_admin.features.permissions.models import Role, UserRole
from saas_admin.features.permissions.resolver import Basic, PermissionSource, WithAggregator, resolve_permissions
from saas_admin.features.users.models import User
from saas_admin.features.users.schemas import (
    OrganizationSummary,
    RolePivot,
    RoleSummary,
    SecurityInfo,
    UserResource,
)


def is_loaded(obj: Any, relation: str) -> bool:
    """True when `relation` already holds a value on `obj` (no query needed)."""
    return relation not in sa_inspect(obj).unloaded


def _has_role(user_role: UserRole) -> bool:
    return is_loaded(user_role, "role") and user_role.role is not None


def loaded_roles(user: User) -> list[Role] | None:
    """Roles reachable without a query, or None when user_roles was not loaded."""
    if not is_loaded(user, "user_roles"):
        return None
    return [user_role.role for user_role in user.user_roles if _has_role(user_role)]


def permission_source(user: User) -> PermissionSource:
    # The aggregator walks user_roles, so it is only offered when that is loaded
    if is_loaded(user, "user_roles"):
        return WithAggregator(user)
    return Basic()


def user_permissions(user: User) -> list[str]:
    """All permission codes visible for `user`. Never raises."""
    return resolve_permissions(user.permissions, permission_source(user), loaded_roles(user))


def _role_summaries(user: User) -> list[RoleSummary]:
    summaries = []
    for user_role in user.user_roles:
        if not _has_role(user_role):
            continue
        role = user_role.role
        fields: dict[str, Any] = {
            "id": role.id,
            "name": role.name,
            "code": role.code,
            "pivot": RolePivot(scope=user_role.scope or "organization", is_primary=bool(user_role.is_primary)),
        }
        if is_loaded(role, "permissions"):
            fields["permissions"] = [permission.code for permission in role.permissions]
        summaries.append(RoleSummary(**fields))
    return summaries


def serialize_user(user: User, viewer: User | None) -> dict[str, Any]:
    """
    Serialize a user for the admin console.

    Args:
        user: The user being rendered
        viewer: The authenticated principal making the request (None for system use)

    Returns:
        JSON-ready dict. Timestamps are ISO-8601 strings. `organization` and
        `roles` appear only when eager-loaded, `active_sessions` only when
        recorded, `security_info` only when the viewer is the user, and
        `can_edit`/`can_delete` only for admin viewers.
    """
    fields: dict[str, Any] = {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "full_name": user.full_name,
        "role": user.role,
        "status": user.status,
        "organization_id": user.organization_id,
        "phone": user.phone,
        "department": user.department,
        "job_title": user.job_title,
        "is_email_verified": bool(user.is_email_verified),
        "is_phone_verified": bool(user.is_phone_verified),
        "last_login_at": user.last_login_at,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
        "permissions": user_permissions(user),
    }

    if is_loaded(user, "organization") and user.organization is not None:
        fields["organization"] = OrganizationSummary.model_validate(user.organization)

    if is_loaded(user, "user_roles"):
        fields["roles"] = _role_summaries(user)

    if user.active_sessions is not None:
        fields["active_sessions"] = list(user.active_sessions)

    if viewer is not None and viewer.id == user.id:
        fields["security_info"] = SecurityInfo(
            two_factor_enabled=bool(user.two_factor_enabled),
            last_login_ip=user.last_login_ip,
            login_count=user.login_count or 0,
            failed_login_attempts=user.failed_login_attempts or 0,
            locked_until=user.locked_until,
            password_changed_at=user.password_changed_at,
        )

    if viewer is not None and viewer.is_admin:
        fields["can_edit"] = user.status == "active"
        fields["can_delete"] = viewer.id != user.id

    return UserResource(**fields).model_dump(mode="json", exclude_unset=True)
