"""Tests for console filter models: query params and local predicates."""

import pytest
from pydantic import ValidationError

from saas_admin.console.filters import (
    ClientFilters,
    OrganizationFilters,
    PermissionFilters,
    UserFilters,
)


USERS = [
    {"id": "1", "email": "ada@acme-corp.com", "full_name": "Ada Lovelace", "username": "ada", "department": "R&D", "status": "active", "role": "org_admin"},
    {"id": "2", "email": "bob@acme-corp.com", "full_name": "Bob Stone", "username": "bob", "department": "Sales", "status": "inactive", "role": "customer"},
    {"id": "3", "email": "cy@other.io", "full_name": "Cy Twombly", "username": "cy", "department": None, "status": "active", "role": "customer"},
]


def visible(filters, items=USERS) -> list[str]:
    return [item["id"] for item in items if filters.matches(item)]


class TestToParams:
    def test_defaults_produce_no_params(self) -> None:
        assert OrganizationFilters().to_params() == {}

    def test_all_and_empty_values_are_dropped(self) -> None:
        filters = UserFilters(search="", status="all", role="customer")
        assert filters.to_params() == {"role": "customer"}

    def test_client_filters_default_to_active(self) -> None:
        assert ClientFilters().to_params() == {"status": "active"}


class TestMatches:
    def test_defaults_match_everything(self) -> None:
        assert visible(UserFilters()) == ["1", "2", "3"]

    def test_search_is_case_insensitive_substring(self) -> None:
        assert visible(UserFilters(search="LOVE")) == ["1"]
        assert visible(UserFilters(search="acme-corp")) == ["1", "2"]

    def test_search_covers_department(self) -> None:
        assert visible(UserFilters(search="sales")) == ["2"]

    def test_exact_match_on_other_keys(self) -> None:
        assert visible(UserFilters(status="active")) == ["1", "3"]
        assert visible(UserFilters(status="active", role="customer")) == ["3"]

    def test_permission_search_fields(self) -> None:
        permissions = [
            {"id": "p1", "code": "users.create", "name": "Create users", "category": "User Management", "status": "active"},
            {"id": "p2", "code": "billing.view", "name": "View billing", "category": "Billing", "status": "active"},
        ]
        assert visible(PermissionFilters(search="billing"), permissions) == ["p2"]
        assert visible(PermissionFilters(category="User Management"), permissions) == ["p1"]


class TestMerged:
    def test_merged_returns_new_instance(self) -> None:
        original = UserFilters()
        updated = original.merged(status="inactive")

        assert updated.status == "inactive"
        assert original.status == "all"

    def test_merging_same_values_is_equal(self) -> None:
        filters = UserFilters(status="active")
        assert filters.merged(status="active") == filters

    def test_unknown_key_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UserFilters().merged(colour="blue")
