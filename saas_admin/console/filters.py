"""
Filter models for the console list controllers.

A filter value of "all" (or an empty string / None) means "no filter".
Every model knows how to turn itself into query parameters for the server
and how to apply itself locally to an already-fetched item.
"""
from typing import Any, ClassVar
from pydantic import BaseModel


ANY = "all"


def is_unset(value: Any) -> bool:
    return value is None or value == "" or value == ANY


class ListFilters(BaseModel):
    """Base filter set: free-text `search` plus exact-match keys."""
    search: str = ""
    status: str = ANY

    # Item keys searched case-insensitively by `search`
    search_fields: ClassVar[tuple[str, ...]] = ()

    model_config = {"extra": "forbid"}

    def merged(self, **partial: Any) -> "ListFilters":
        """New instance with `partial` applied; unknown keys are rejected."""
        return type(self).model_validate({**self.model_dump(), **partial})

    def to_params(self) -> dict[str, Any]:
        return {key: value for key, value in self.model_dump().items() if not is_unset(value)}

    def matches(self, item: dict[str, Any]) -> bool:
        """Local predicate applied to one fetched item."""
        if self.search and not self._matches_search(item):
            return False

        for key, value in self.model_dump(exclude={"search"}).items():
            if is_unset(value):
                continue
            if str(item.get(key)) != str(value):
                return False
        return True

    def _matches_search(self, item: dict[str, Any]) -> bool:
        needle = self.search.strip().lower()
        if not needle:
            return True
        for field in self.search_fields:
            value = item.get(field)
            if value is not None and needle in str(value).lower():
                return True
        return False


class OrganizationFilters(ListFilters):
    subscription_status: str = ANY
    business_type: str = ANY
    industry: str = ANY
    company_size: str = ANY

    search_fields: ClassVar[tuple[str, ...]] = ("name", "display_name", "org_code", "email")


class ClientFilters(ListFilters):
    """Organizations seen as clients: active ones by default."""
    status: str = "active"
    business_type: str = ANY
    industry: str = ANY
    company_size: str = ANY

    search_fields: ClassVar[tuple[str, ...]] = ("name", "display_name", "org_code", "email")


class UserFilters(ListFilters):
    role: str = ANY
    organization_id: str | None = None

    search_fields: ClassVar[tuple[str, ...]] = ("email", "full_name", "username", "department")


class PermissionFilters(ListFilters):
    category: str = ANY

    search_fields: ClassVar[tuple[str, ...]] = ("code", "name", "description")


class RoleFilters(ListFilters):
    search_fields: ClassVar[tuple[str, ...]] = ("code", "name", "description")
