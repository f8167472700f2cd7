"""Tests for the user resource payload, built from transient ORM objects."""

from datetime import datetime

import pytest

from saas_admin.features.organizations.models import Organization
from saas_admin.features.permissions.models import Permission, Role, UserRole
from saas_admin.features.users.models import User
from saas_admin.features.users.resources import is_loaded, serialize_user, user_permissions


CREATED = datetime(2024, 1, 2, 3, 4, 5)


def make_user(**overrides) -> User:
    fields = dict(
        id="user-1",
        email="jane@acme-corp.com",
        username="jane",
        full_name="Jane Doe",
        role="customer",
        status="active",
        permissions=["a", "b"],
        is_email_verified=True,
        is_phone_verified=False,
        created_at=CREATED,
        updated_at=CREATED,
    )
    fields.update(overrides)
    return User(**fields)


def make_role(role_id: str, code: str, *permission_codes: str) -> Role:
    return Role(
        id=role_id,
        code=code,
        name=code.title(),
        permissions=[Permission(id=f"p-{c}", code=c, name=c, resource="x", action="y") for c in permission_codes],
    )


@pytest.fixture
def admin() -> User:
    """An org admin acting as the viewer."""
    return make_user(id="admin-1", username="admin", email="admin@acme-corp.com", role="org_admin")


class TestPermissions:
    def test_relations_not_loaded_gives_direct_permissions(self) -> None:
        user = make_user()
        assert not is_loaded(user, "user_roles")
        assert user_permissions(user) == ["a", "b"]

    def test_role_permissions_are_merged_after_direct(self) -> None:
        user = make_user(user_roles=[UserRole(role=make_role("r1", "editor", "b", "c"), scope="organization")])
        assert user_permissions(user) == ["a", "b", "c"]

    def test_same_permission_through_two_roles_appears_once(self) -> None:
        shared = Permission(id="p-shared", code="shared", name="Shared", resource="x", action="y")
        first = Role(id="r1", code="first", name="First", permissions=[shared])
        second = Role(id="r2", code="second", name="Second", permissions=[shared])
        user = make_user(permissions=[], user_roles=[UserRole(role=first), UserRole(role=second)])
        assert user_permissions(user) == ["shared"]

    def test_assignment_without_loaded_role_degrades_to_direct(self) -> None:
        user = make_user(user_roles=[UserRole(role_id="r-missing")])
        payload = serialize_user(user, viewer=None)
        assert payload["permissions"] == ["a", "b"]
        assert payload["roles"] == []


class TestSerializeUser:
    def test_base_fields_and_iso_timestamps(self) -> None:
        payload = serialize_user(make_user(), viewer=None)

        assert payload["id"] == "user-1"
        assert payload["email"] == "jane@acme-corp.com"
        assert payload["is_email_verified"] is True
        assert payload["created_at"] == "2024-01-02T03:04:05"
        assert payload["permissions"] == ["a", "b"]

    def test_conditional_keys_absent_when_not_loaded(self) -> None:
        payload = serialize_user(make_user(), viewer=None)
        for key in ("organization", "roles", "active_sessions", "security_info", "can_edit", "can_delete"):
            assert key not in payload

    def test_organization_included_when_loaded(self) -> None:
        organization = Organization(
            id="org-1", name="Acme", org_code="acme", status="active", subscription_status="trial"
        )
        payload = serialize_user(make_user(organization=organization), viewer=None)
        assert payload["organization"] == {
            "id": "org-1",
            "name": "Acme",
            "org_code": "acme",
            "status": "active",
            "subscription_status": "trial",
        }

    def test_roles_include_permissions_and_pivot(self) -> None:
        user_role = UserRole(role=make_role("r1", "editor", "c"), scope="global", is_primary=True)
        payload = serialize_user(make_user(user_roles=[user_role]), viewer=None)
        assert payload["roles"] == [{
            "id": "r1",
            "name": "Editor",
            "code": "editor",
            "permissions": ["c"],
            "pivot": {"scope": "global", "is_primary": True},
        }]

    def test_active_sessions_only_when_recorded(self) -> None:
        sessions = [{"ip": "10.0.0.1", "last_seen": "2024-01-02T03:04:05"}]
        payload = serialize_user(make_user(active_sessions=sessions), viewer=None)
        assert payload["active_sessions"] == sessions

    def test_security_info_only_for_self(self, admin: User) -> None:
        user = make_user(two_factor_enabled=True, login_count=7, last_login_ip="10.0.0.1")

        own = serialize_user(user, viewer=user)
        other = serialize_user(user, viewer=admin)

        assert own["security_info"]["two_factor_enabled"] is True
        assert own["security_info"]["login_count"] == 7
        assert own["security_info"]["last_login_ip"] == "10.0.0.1"
        assert "security_info" not in other

    def test_admin_viewer_gets_action_flags(self, admin: User) -> None:
        active = serialize_user(make_user(), viewer=admin)
        inactive = serialize_user(make_user(status="inactive"), viewer=admin)

        assert active["can_edit"] is True
        assert active["can_delete"] is True
        assert inactive["can_edit"] is False

    def test_admin_cannot_delete_self(self, admin: User) -> None:
        payload = serialize_user(admin, viewer=admin)
        assert payload["can_delete"] is False
        assert "security_info" in payload

    def test_non_admin_viewer_gets_no_action_flags(self) -> None:
        viewer = make_user(id="someone-else", role="agent")
        payload = serialize_user(make_user(), viewer=viewer)
        assert "can_edit" not in payload
        assert "can_delete" not in payload
