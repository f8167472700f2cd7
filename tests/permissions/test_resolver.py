"""Tests for permission resolution: ordering, fallbacks and fault containment."""

import logging
from dataclasses import dataclass, field

import pytest

from saas_admin.features.permissions.resolver import (
    Aggregated,
    AggregationFailed,
    Basic,
    WithAggregator,
    aggregate_role_permissions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    resolve_permissions,
)


@dataclass
class FakePermission:
    code: str


@dataclass
class FakeRole:
    permissions: list[FakePermission] | None = field(default_factory=list)


def role_with(*codes: str) -> FakeRole:
    return FakeRole([FakePermission(code) for code in codes])


class FakeAggregator:
    def __init__(self, *codes: str):
        self.codes = codes

    def get_all_permissions(self) -> list[FakePermission]:
        return [FakePermission(code) for code in self.codes]


class BrokenAggregator:
    def get_all_permissions(self):
        raise RuntimeError("roles relation is not loaded")


class BrokenRole:
    @property
    def permissions(self):
        raise LookupError("pivot row missing")


class TestResolvePermissions:
    """Merging direct and role-derived codes."""

    def test_direct_then_role_codes_in_first_occurrence_order(self) -> None:
        result = resolve_permissions(["a", "b"], Basic(), [role_with("b", "c")])
        assert result == ["a", "b", "c"]

    def test_aggregator_codes_merge_after_direct(self) -> None:
        result = resolve_permissions(["a", "b"], WithAggregator(FakeAggregator("b", "c")))
        assert result == ["a", "b", "c"]

    def test_without_aggregator_or_loaded_roles_returns_direct_unchanged(self) -> None:
        assert resolve_permissions(["x", "y", "z"], Basic(), None) == ["x", "y", "z"]

    def test_no_roles_and_no_direct_permissions_is_empty(self) -> None:
        assert resolve_permissions([], Basic(), None) == []
        assert resolve_permissions(None, Basic(), []) == []

    def test_duplicate_codes_across_roles_keep_first_role_position(self) -> None:
        roles = [role_with("x", "y"), role_with("y", "z"), role_with("x")]
        assert resolve_permissions([], Basic(), roles) == ["x", "y", "z"]

    def test_role_without_loaded_permissions_contributes_nothing(self) -> None:
        roles = [FakeRole(permissions=None), role_with("c")]
        assert resolve_permissions(["a"], Basic(), roles) == ["a", "c"]

    def test_non_empty_aggregator_result_ignores_loaded_roles(self) -> None:
        result = resolve_permissions(["a"], WithAggregator(FakeAggregator("b")), [role_with("z")])
        assert result == ["a", "b"]

    def test_empty_aggregator_result_falls_through_to_loaded_roles(self) -> None:
        result = resolve_permissions(["a"], WithAggregator(FakeAggregator()), [role_with("c")])
        assert result == ["a", "c"]

    def test_direct_duplicates_are_removed(self) -> None:
        assert resolve_permissions(["a", "a", "b"], Basic(), None) == ["a", "b"]


class TestFaultContainment:
    """Failures while reading roles degrade to direct permissions."""

    def test_broken_aggregator_returns_direct_permissions(self) -> None:
        result = resolve_permissions(["a", "b"], WithAggregator(BrokenAggregator()), [role_with("c")])
        assert result == ["a", "b"]

    def test_broken_role_returns_direct_permissions(self) -> None:
        result = resolve_permissions(["a"], Basic(), [role_with("b"), BrokenRole()])
        assert result == ["a"]

    def test_failure_is_logged_as_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="saas_admin.features.permissions.resolver"):
            resolve_permissions(["a"], WithAggregator(BrokenAggregator()))
        assert "aggregation failed" in caplog.text
        assert "RuntimeError" in caplog.text

    def test_aggregation_step_returns_failure_value(self) -> None:
        result = aggregate_role_permissions(WithAggregator(BrokenAggregator()), None)
        assert isinstance(result, AggregationFailed)
        assert result.reason.startswith("RuntimeError")

    def test_aggregation_step_keeps_duplicates_for_the_caller(self) -> None:
        result = aggregate_role_permissions(Basic(), [role_with("a"), role_with("a")])
        assert result == Aggregated(("a", "a"))


class TestPermissionChecks:
    def test_has_permission(self) -> None:
        assert has_permission(["users.view"], "users.view")
        assert not has_permission(["users.view"], "users.delete")

    def test_super_admin_has_everything(self) -> None:
        assert has_permission([], "anything.at_all", role="super_admin")
        assert has_any_permission([], ["a", "b"], role="super_admin")
        assert has_all_permissions([], ["a", "b"], role="super_admin")

    def test_any_and_all(self) -> None:
        codes = ["a", "b"]
        assert has_any_permission(codes, ["b", "z"])
        assert not has_any_permission(codes, ["y", "z"])
        assert has_all_permissions(codes, ["a", "b"])
        assert not has_all_permissions(codes, ["a", "c"])
