"""
Per-resource list settings and controller factories.
"""
from dataclasses import dataclass

from saas_admin.console.client import AdminApiClient
from saas_admin.console.controller import ListController, PermissionListController, UserListController
from saas_admin.console.filters import (
    ClientFilters,
    ListFilters,
    OrganizationFilters,
    PermissionFilters,
    RoleFilters,
    UserFilters,
)
from saas_admin.core import config


@dataclass(frozen=True)
class ResourceConfig:
    name: str
    path: str
    filters: type[ListFilters]
    sort_by: str = "created_at"
    sort_order: str = "desc"
    per_page: int = config.DEFAULT_PER_PAGE


ORGANIZATIONS = ResourceConfig("organizations", "/organizations", OrganizationFilters)
CLIENTS = ResourceConfig("clients", "/organizations", ClientFilters, per_page=15)
USERS = ResourceConfig("users", "/users", UserFilters)
PERMISSIONS = ResourceConfig("permissions", "/permissions", PermissionFilters, "category", "asc", 15)
ROLES = ResourceConfig("roles", "/roles", RoleFilters, "name", "asc")


def organization_list(client: AdminApiClient, **kwargs) -> ListController[OrganizationFilters]:
    return ListController(client, ORGANIZATIONS, **kwargs)


def client_list(client: AdminApiClient, **kwargs) -> ListController[ClientFilters]:
    """Organizations managed as clients: active only, newest first, 15 per page."""
    return ListController(client, CLIENTS, **kwargs)


def user_list(client: AdminApiClient, **kwargs) -> UserListController:
    return UserListController(client, USERS, **kwargs)


def permission_list(client: AdminApiClient, **kwargs) -> PermissionListController:
    return PermissionListController(client, PERMISSIONS, **kwargs)


def role_list(client: AdminApiClient, **kwargs) -> ListController[RoleFilters]:
    return ListController(client, ROLES, **kwargs)
