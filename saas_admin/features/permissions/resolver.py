"""
Permission resolution for a single user.

Produces the flat, de-duplicated list of permission codes a user can see:
direct codes first, then role-derived codes. Role-derived codes come from a
fallback chain:

1. the user's own aggregator (`get_all_permissions()`), when the caller
   says one is available;
2. otherwise, or when the aggregator returned nothing, the codes of the
   roles the caller already loaded.

Resolution never raises. A failure while reading roles degrades to the
direct codes alone.
"""
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, Union

from saas_admin.utils import get_logger


log = get_logger(__name__)

SUPER_ADMIN_ROLE = "super_admin"


class HasCode(Protocol):
    code: str


class PermissionAggregator(Protocol):
    """Anything that can list every permission granted through its roles."""

    def get_all_permissions(self) -> Sequence[HasCode]: ...


class LoadedRole(Protocol):
    """A role whose `permissions` is a loaded list, or None when not loaded."""

    permissions: Sequence[HasCode] | None


# ============================================================================
# Tagged variants
# ============================================================================

@dataclass(frozen=True)
class WithAggregator:
    """The user exposes a role-permission aggregator."""
    aggregator: PermissionAggregator


@dataclass(frozen=True)
class Basic:
    """The user has no aggregator; only loaded roles (if any) are used."""


PermissionSource = Union[WithAggregator, Basic]


@dataclass(frozen=True)
class Aggregated:
    codes: tuple[str, ...]


@dataclass(frozen=True)
class AggregationFailed:
    reason: str


AggregationResult = Union[Aggregated, AggregationFailed]


# ============================================================================
# Resolution
# ============================================================================

def unique_codes(codes: Iterable[str]) -> list[str]:
    """De-duplicate keeping the first occurrence of each code."""
    return list(dict.fromkeys(codes))


def _codes_of(permissions: Iterable[Any] | None) -> list[str]:
    if not permissions:
        return []
    return [permission.code for permission in permissions]


def aggregate_role_permissions(
    source: PermissionSource,
    loaded_roles: Sequence[LoadedRole] | None,
) -> AggregationResult:
    """
    Collect role-derived permission codes.

    Args:
        source: WithAggregator when the user can aggregate its own roles, Basic otherwise
        loaded_roles: Roles already loaded by the caller, or None when the relation
            was not loaded. Never triggers a fetch.

    Returns:
        Aggregated with the codes in role order (possibly with duplicates),
        or AggregationFailed when reading the roles raised.
    """
    try:
        codes: list[str] = []
        if isinstance(source, WithAggregator):
            codes = _codes_of(source.aggregator.get_all_permissions())

        # An empty aggregator result falls through to the loaded roles as well
        if not codes and loaded_roles is not None:
            codes = [code for role in loaded_roles for code in _codes_of(role.permissions)]

        return Aggregated(tuple(codes))
    except Exception as e:
        return AggregationFailed(reason=f"{e.__class__.__name__}: {e}")


def resolve_permissions(
    direct_permissions: Sequence[str] | None,
    source: PermissionSource,
    loaded_roles: Sequence[LoadedRole] | None = None,
) -> list[str]:
    """
    Resolve every permission code visible to a user.

    Args:
        direct_permissions: Codes granted directly to the user (None is treated as empty)
        source: Whether the user exposes a permission aggregator
        loaded_roles: Eager-loaded roles, or None when not loaded

    Returns:
        Codes in first-occurrence order with duplicates removed.

    Example:
        direct ["a", "b"] with a loaded role granting ["b", "c"] resolves to ["a", "b", "c"]
    """
    direct = list(direct_permissions or [])

    result = aggregate_role_permissions(source, loaded_roles)
    if isinstance(result, AggregationFailed):
        log.warning("Role permission aggregation failed, using direct permissions only: %s", result.reason)
        return unique_codes(direct)

    return unique_codes([*direct, *result.codes])


# ============================================================================
# Checks over resolved codes
# ============================================================================

def has_permission(codes: Iterable[str], code: str, role: str | None = None) -> bool:
    """True if `code` is among `codes`; super admins hold every permission."""
    if role == SUPER_ADMIN_ROLE:
        return True
    return code in set(codes)


def has_any_permission(codes: Iterable[str], required: Iterable[str], role: str | None = None) -> bool:
    if role == SUPER_ADMIN_ROLE:
        return True
    return not set(codes).isdisjoint(required)


def has_all_permissions(codes: Iterable[str], required: Iterable[str], role: str | None = None) -> bool:
    if role == SUPER_ADMIN_ROLE:
        return True
    return set(required).issubset(codes)
