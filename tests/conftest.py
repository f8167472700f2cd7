"""Pytest configuration: isolated database and shared fixtures."""

import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest

# Configure before saas_admin is imported anywhere
_tmp_dir = Path(tempfile.mkdtemp(prefix="saas_admin_tests_"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp_dir / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["RATE_LIMIT"] = "10000/minute"
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import httpx  # noqa: E402

from saas_admin.core.database.engine import AsyncSessionLocal, drop_db, init_db  # noqa: E402
from saas_admin.features.organizations.models import Organization  # noqa: E402
from saas_admin.features.permissions.models import Permission, Role, UserRole  # noqa: E402
from saas_admin.features.users.auth import create_access_token  # noqa: E402
from saas_admin.features.users.models import User  # noqa: E402


EMAIL_DOMAIN = "acme-corp.com"


@pytest.fixture
async def database():
    """Fresh schema for every test that touches the database."""
    await drop_db()
    await init_db()
    yield
    await drop_db()


@pytest.fixture
async def seeded(database) -> SimpleNamespace:
    """
    One organization, two permissions, a super_admin role, a super admin
    and a regular member.
    """
    async with AsyncSessionLocal() as db:
        view_users = Permission(
            code="users.view", name="View users", category="User Management", resource="users", action="view"
        )
        create_users = Permission(
            code="users.create", name="Create users", category="User Management", resource="users", action="create"
        )
        super_admin_role = Role(
            code="super_admin", name="Super Administrator", is_system=True, permissions=[view_users, create_users]
        )
        organization = Organization(name="Acme", org_code="acme", industry="Retail")

        admin = User(
            email=f"admin@{EMAIL_DOMAIN}",
            username="admin",
            full_name="Ada Admin",
            role="super_admin",
            organization=organization,
            permissions=["reports.view", "users.view"],
            user_roles=[UserRole(role=super_admin_role, scope="global", is_primary=True)],
        )
        member = User(
            email=f"member@{EMAIL_DOMAIN}",
            username="member",
            full_name="Max Member",
            role="customer",
            department="Sales",
            organization=organization,
            permissions=["reports.view"],
            user_roles=[],
        )
        db.add_all([view_users, create_users, super_admin_role, organization, admin, member])
        await db.commit()

        return SimpleNamespace(
            admin_id=admin.id,
            member_id=member.id,
            organization_id=organization.id,
            super_admin_role_id=super_admin_role.id,
            view_users_id=view_users.id,
            create_users_id=create_users.id,
            admin_token=create_access_token(admin.id),
            member_token=create_access_token(member.id),
        )


@pytest.fixture
async def api(seeded):
    """HTTP client for the app authenticated as the seeded super admin."""
    from saas_admin.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {seeded.admin_token}"},
    ) as client:
        yield client


@pytest.fixture
async def tenants(seeded) -> SimpleNamespace:
    """
    A second organization next to Acme, an org admin for Acme, a user in
    the other organization and a custom (non-system) role.
    """
    async with AsyncSessionLocal() as db:
        globex = Organization(name="Globex", org_code="globex", industry="Energy")
        support_role = Role(code="support", name="Support", is_system=False)
        org_admin = User(
            email=f"olga@{EMAIL_DOMAIN}",
            username="olga",
            full_name="Olga Orgadmin",
            role="org_admin",
            organization_id=seeded.organization_id,
            user_roles=[],
        )
        outsider = User(
            email="otto@globex.com",
            username="otto",
            full_name="Otto Outsider",
            role="customer",
            organization=globex,
            user_roles=[],
        )
        db.add_all([globex, support_role, org_admin, outsider])
        await db.commit()

        return SimpleNamespace(
            other_organization_id=globex.id,
            support_role_id=support_role.id,
            org_admin_id=org_admin.id,
            outsider_id=outsider.id,
            org_admin_headers={"Authorization": f"Bearer {create_access_token(org_admin.id)}"},
        )
