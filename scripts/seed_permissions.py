"""
Seed script to populate default permissions, system roles and a first admin.

Run this script after database initialization to create:
- Default system permissions (codes such as "users.create")
- Default system roles with their permissions
- A super_admin user, plus a one-hour access token printed to the log

Usage:
    python -m scripts.seed_permissions
"""
import asyncio
import os
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from saas_admin.core.database.engine import get_db, init_db
from saas_admin.features.permissions.models import Permission, Role, UserRole
from saas_admin.features.users.auth import create_access_token
from saas_admin.features.users.models import User
from saas_admin.utils import get_logger


log = get_logger(__name__)


# (code, category, name)
DEFAULT_PERMISSIONS = [
    # User management
    ("users.view", "User Management", "View users"),
    ("users.create", "User Management", "Create users"),
    ("users.update", "User Management", "Update users"),
    ("users.delete", "User Management", "Delete users"),
    ("users.manage_roles", "User Management", "Assign roles to users"),

    # Organizations
    ("organizations.view", "Organization Management", "View organizations"),
    ("organizations.create", "Organization Management", "Create organizations"),
    ("organizations.update", "Organization Management", "Update organizations"),
    ("organizations.delete", "Organization Management", "Delete organizations"),

    # Roles and permissions
    ("roles.view", "Access Control", "View roles"),
    ("roles.create", "Access Control", "Create roles"),
    ("roles.update", "Access Control", "Update roles"),
    ("roles.delete", "Access Control", "Delete roles"),
    ("permissions.view", "Access Control", "View permissions"),
    ("permissions.manage", "Access Control", "Create, update and assign permissions"),

    # Billing
    ("billing.view", "Billing", "View subscriptions and transactions"),
    ("billing.manage", "Billing", "Change subscriptions"),

    # Reports
    ("reports.view", "Reports", "View reports"),
    ("reports.export", "Reports", "Export reports"),
]


DEFAULT_ROLES = {
    "super_admin": {
        "name": "Super Administrator",
        "description": "Platform administrator with all permissions",
        "permissions": "ALL"  # Special case - gets all permissions
    },
    "org_admin": {
        "name": "Organization Administrator",
        "description": "Manages users and settings of one organization",
        "permissions": [
            "users.view", "users.create", "users.update", "users.delete", "users.manage_roles",
            "organizations.view", "organizations.update",
            "roles.view", "permissions.view",
            "billing.view", "reports.view", "reports.export",
        ]
    },
    "agent": {
        "name": "Agent",
        "description": "Customer-facing staff",
        "permissions": ["users.view", "reports.view"]
    },
    "customer": {
        "name": "Customer",
        "description": "End customer with no console access",
        "permissions": []
    },
}


async def seed_permissions(db: AsyncSession) -> dict[str, Permission]:
    """
    Create default permissions.

    Returns:
        Dictionary mapping permission codes to Permission objects
    """
    log.info("Creating default permissions...")
    permissions_map = {}

    for code, category, name in DEFAULT_PERMISSIONS:
        existing = (await db.execute(select(Permission).where(Permission.code == code))).scalars().first()

        if existing:
            log.debug("Permission '%s' already exists, skipping", code)
            permissions_map[code] = existing
            continue

        resource, _, action = code.rpartition(".")
        permission = Permission(
            code=code,
            name=name,
            category=category,
            resource=resource,
            action=action,
            is_system=True,
        )
        db.add(permission)
        permissions_map[code] = permission
        log.info("Created permission: %s", code)

    await db.commit()
    log.info("Seeded %d permissions", len(permissions_map))
    return permissions_map


async def seed_roles(db: AsyncSession, permissions_map: dict[str, Permission]) -> dict[str, Role]:
    """
    Create default roles and assign permissions.

    Args:
        db: Database session
        permissions_map: Dictionary of permission code -> Permission object
    """
    log.info("Creating default roles...")
    roles = {}

    for role_code, role_config in DEFAULT_ROLES.items():
        existing = (await db.execute(select(Role).where(Role.code == role_code))).scalars().first()

        if existing:
            log.debug("Role '%s' already exists, skipping", role_code)
            roles[role_code] = existing
            continue

        role = Role(
            code=role_code,
            name=role_config["name"],
            description=role_config["description"],
            is_system=True,
        )

        if role_config["permissions"] == "ALL":
            role.permissions = list(permissions_map.values())
        else:
            role_permissions = []
            for code in role_config["permissions"]:
                if code in permissions_map:
                    role_permissions.append(permissions_map[code])
                else:
                    log.warning("Permission '%s' not found for role '%s'", code, role_code)
            role.permissions = role_permissions

        log.info("Created role '%s' with %d permissions", role_code, len(role.permissions))
        db.add(role)
        roles[role_code] = role

    await db.commit()
    log.info("Default roles created successfully")
    return roles


async def seed_admin_user(db: AsyncSession, super_admin: Role) -> User:
    """Create the first super_admin user (ADMIN_EMAIL / ADMIN_USERNAME)."""
    email = os.environ.get("ADMIN_EMAIL", "admin@example.com")
    username = os.environ.get("ADMIN_USERNAME", "admin")

    existing = (await db.execute(select(User).where(User.email == email))).scalars().first()
    if existing:
        log.debug("Admin user '%s' already exists, skipping", email)
        return existing

    user = User(
        email=email,
        username=username,
        full_name="Platform Administrator",
        role="super_admin",
        status="active",
        is_email_verified=True,
        user_roles=[UserRole(role_id=super_admin.id, scope="global", is_primary=True)],
    )
    db.add(user)
    await db.commit()
    log.info("Created admin user %s", email)
    return user


async def main():
    """Main function to seed permissions, roles and the first admin."""
    log.info("Starting permission seeding...")

    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()

    # Get database session
    async for db in get_db():
        try:
            # Seed permissions first
            permissions_map = await seed_permissions(db)

            # Then seed roles with permission assignments
            roles = await seed_roles(db, permissions_map)

            admin = await seed_admin_user(db, roles["super_admin"])

            log.info("Permission seeding completed successfully!")
            log.info("Default roles created:")
            for role_code, role_config in DEFAULT_ROLES.items():
                log.info("  - %s: %s", role_code, role_config["description"])
            log.info("Admin token (1h): %s", create_access_token(admin.id))

        except Exception as e:
            log.error("Error seeding permissions: %s", e, exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
