"""
List controller: one fetched page plus filter, sort and pagination state.

- `items` is the last page returned by the server (RAW).
- `view` is RAW passed through the local filter predicate and then sorted.
  It is computed on access, never stored.
- Filter and page changes re-fetch; sorting is local to the current page.
- Every fetch carries a sequence number; a response whose number is no
  longer the latest is dropped (last request wins).
- Free-text search goes through a cancel-and-replace debouncer before it
  becomes a filter.
"""
import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from saas_admin.console.client import AdminApiClient
from saas_admin.console.debounce import Debouncer
from saas_admin.console.exceptions import ApiError
from saas_admin.console.filters import ListFilters, PermissionFilters, UserFilters
from saas_admin.core import config
from saas_admin.utils import get_logger

if TYPE_CHECKING:
    from saas_admin.console.resources import ResourceConfig


log = get_logger(__name__)

F = TypeVar("F", bound=ListFilters)

SORT_ORDERS = ("asc", "desc")


@dataclass
class Pagination:
    current_page: int = 1
    total_pages: int = 1
    total_items: int = 0
    items_per_page: int = config.DEFAULT_PER_PAGE


@dataclass
class Sorting:
    sort_by: str = "created_at"
    sort_order: str = "desc"


@dataclass
class ActionResult:
    """Outcome of a create/update/delete; failures never touch the list."""
    success: bool
    data: dict[str, Any] | None = None
    errors: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


def _sort_key(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def stable_sort(items: list[dict[str, Any]], sort_by: str, sort_order: str) -> list[dict[str, Any]]:
    """
    Sort dicts by `sort_by`, keeping the relative order of equal keys.

    Items missing the key (or holding None) go last in both directions.
    """
    present = [item for item in items if item.get(sort_by) is not None]
    missing = [item for item in items if item.get(sort_by) is None]
    ordered = sorted(present, key=lambda item: _sort_key(item[sort_by]), reverse=sort_order == "desc")
    return ordered + missing


class ListController(Generic[F]):
    """
    State and operations for one paginated resource list.

    Methods that schedule a fetch (update_filters, update_pagination,
    reset_filters) must be called from inside a running event loop;
    `wait_idle()` awaits whatever they scheduled.
    """

    def __init__(
        self,
        client: AdminApiClient,
        resource: "ResourceConfig",
        debounce_delay: float | None = None,
    ):
        self.client = client
        self.resource = resource

        self.items: list[dict[str, Any]] = []
        self.loading: bool = False
        self.error: str | None = None
        self.statistics: dict[str, Any] | None = None

        self.filters: F = resource.filters()
        self.sorting = Sorting(resource.sort_by, resource.sort_order)
        self.pagination = Pagination(items_per_page=resource.per_page)

        self._sequence = 0
        self._tasks: set[asyncio.Task] = set()

        delay = debounce_delay if debounce_delay is not None else config.SEARCH_DEBOUNCE_MS / 1000
        self._debouncer = Debouncer(self._apply_search, delay)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def view(self) -> list[dict[str, Any]]:
        visible = [item for item in self.items if self.filters.matches(item)]
        return stable_sort(visible, self.sorting.sort_by, self.sorting.sort_order)

    @property
    def search_pending(self) -> bool:
        return self._debouncer.pending

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _params(self) -> dict[str, Any]:
        return {
            **self.filters.to_params(),
            "page": self.pagination.current_page,
            "per_page": self.pagination.items_per_page,
            "sort_by": self.sorting.sort_by,
            "sort_order": self.sorting.sort_order,
        }

    async def load(self, page: int | None = None, filters: F | None = None) -> None:
        """
        Fetch a page. Errors are stored in `error`; `items` is kept as is.
        """
        if filters is not None:
            self.filters = filters
        if page is not None:
            self.pagination.current_page = max(1, page)

        self._sequence += 1
        sequence = self._sequence
        params = self._params()

        self.loading = True
        self.error = None

        try:
            result = await self.client.list(self.resource.path, params)
        except ApiError as e:
            if sequence != self._sequence:
                log.debug("Ignoring failure of superseded %s request #%d", self.resource.name, sequence)
                return
            self.error = e.message
            log.warning("Failed to load %s (page %s): %s", self.resource.name, params["page"], e.message)
            return
        finally:
            if sequence == self._sequence:
                self.loading = False

        if sequence != self._sequence:
            log.debug("Discarding stale %s response #%d", self.resource.name, sequence)
            return

        self.items = result.items
        self.pagination = Pagination(
            current_page=result.current_page,
            total_pages=result.last_page,
            total_items=result.total,
            items_per_page=result.per_page,
        )

        # The page asked for no longer exists (e.g. rows were deleted): go to the last one
        if result.current_page > result.last_page:
            await self.load(page=result.last_page)

    async def refresh(self) -> None:
        """Reload with the current page, filters and sorting."""
        await self.load()

    def _schedule_load(self) -> None:
        task = asyncio.get_running_loop().create_task(self.load())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait until every scheduled fetch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def load_statistics(self) -> dict[str, Any] | None:
        try:
            self.statistics = await self.client.statistics(self.resource.path)
        except ApiError as e:
            log.warning("Failed to load %s statistics: %s", self.resource.name, e.message)
            return None
        return self.statistics

    # ------------------------------------------------------------------
    # State changes
    # ------------------------------------------------------------------

    def update_filters(self, **partial: Any) -> None:
        """
        Merge filter changes.

        `search` is debounced; every other key applies at once, resets to
        page 1 and schedules a fetch. Merging values that are already set
        does nothing.
        """
        if "search" in partial:
            self._debouncer.trigger(partial.pop("search"))
        if partial:
            self._apply_filters(partial)

    def _apply_search(self, value: Any) -> None:
        self._apply_filters({"search": value or ""})

    def _apply_filters(self, partial: dict[str, Any]) -> None:
        updated = self.filters.merged(**partial)
        if updated == self.filters:
            return
        log.debug("%s filters -> %s", self.resource.name, updated.to_params())
        self.filters = updated
        self.pagination.current_page = 1
        self._schedule_load()

    def update_sorting(self, sort_by: str, sort_order: str | None = None) -> None:
        """
        Re-sort the current page. Picking the active field again flips the
        order; a new field starts ascending. An explicit order always wins.
        """
        if sort_order is None:
            if sort_by == self.sorting.sort_by:
                sort_order = "desc" if self.sorting.sort_order == "asc" else "asc"
            else:
                sort_order = "asc"
        if sort_order not in SORT_ORDERS:
            raise ValueError(f"sort_order must be one of {SORT_ORDERS}, got {sort_order!r}")
        self.sorting = Sorting(sort_by, sort_order)

    def reset_sorting(self) -> None:
        self.sorting = Sorting(self.resource.sort_by, self.resource.sort_order)

    def update_pagination(self, current_page: int | None = None, items_per_page: int | None = None) -> None:
        if items_per_page is not None:
            if items_per_page < 1:
                raise ValueError("items_per_page must be at least 1")
            self.pagination.items_per_page = items_per_page
            self.pagination.current_page = 1
        elif current_page is not None:
            self.pagination.current_page = min(max(1, current_page), max(1, self.pagination.total_pages))
        else:
            return
        self._schedule_load()

    def reset_filters(self) -> None:
        self._debouncer.cancel()
        self.filters = self.resource.filters()
        self.pagination.current_page = 1
        self._schedule_load()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, data: dict[str, Any]) -> ActionResult:
        try:
            created = await self.client.create(self.resource.path, data)
        except ApiError as e:
            log.info("Create %s rejected: %s", self.resource.name, e.message)
            return ActionResult(success=False, errors=e.errors, error=e.message)
        log.info("Created %s %s", self.resource.name, created.get("id"))
        await self.refresh()
        return ActionResult(success=True, data=created)

    async def update(self, item_id: str, data: dict[str, Any]) -> ActionResult:
        try:
            updated = await self.client.update(self.resource.path, item_id, data)
        except ApiError as e:
            log.info("Update %s %s rejected: %s", self.resource.name, item_id, e.message)
            return ActionResult(success=False, errors=e.errors, error=e.message)
        log.info("Updated %s %s", self.resource.name, item_id)
        await self.refresh()
        return ActionResult(success=True, data=updated)

    async def delete(self, item_id: str) -> ActionResult:
        try:
            await self.client.delete(self.resource.path, item_id)
        except ApiError as e:
            log.info("Delete %s %s rejected: %s", self.resource.name, item_id, e.message)
            return ActionResult(success=False, errors=e.errors, error=e.message)
        log.info("Deleted %s %s", self.resource.name, item_id)
        await self.refresh()
        return ActionResult(success=True)

    async def get(self, item_id: str) -> dict[str, Any] | None:
        """Fetch one item for a detail view. Failures set `error` and return None."""
        try:
            return await self.client.get(self.resource.path, item_id)
        except ApiError as e:
            self.error = e.message
            log.warning("Failed to load %s %s: %s", self.resource.name, item_id, e.message)
            return None

    async def perform(
        self,
        item_id: str,
        action: str,
        method: str = "POST",
        data: dict[str, Any] | None = None,
    ) -> ActionResult:
        """Call `{path}/{item_id}/{action}`; the list is refreshed on success."""
        try:
            result = await self.client.action(method, f"{self.resource.path}/{item_id}/{action}", data)
        except ApiError as e:
            log.info("%s on %s %s rejected: %s", action, self.resource.name, item_id, e.message)
            return ActionResult(success=False, errors=e.errors, error=e.message)
        log.info("%s on %s %s done", action, self.resource.name, item_id)
        await self.refresh()
        return ActionResult(success=True, data=result)

    async def close(self) -> None:
        """Cancel the pending search and any scheduled fetch."""
        self._debouncer.cancel()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()


class UserListController(ListController[UserFilters]):
    """User list plus the status toggle and availability checks of the user forms."""

    async def toggle_status(self, user_id: str) -> ActionResult:
        return await self.perform(user_id, "toggle-status", method="PATCH")

    async def check_email(self, email: str, exclude_id: str | None = None) -> bool | None:
        return await self._is_available("check-email", {"email": email, "exclude_id": exclude_id})

    async def check_username(self, username: str, exclude_id: str | None = None) -> bool | None:
        return await self._is_available("check-username", {"username": username, "exclude_id": exclude_id})

    async def _is_available(self, check: str, payload: dict[str, Any]) -> bool | None:
        try:
            data = await self.client.action("POST", f"{self.resource.path}/{check}", payload)
        except ApiError as e:
            self.error = e.message
            log.warning("%s failed: %s", check, e.message)
            return None
        return bool(data.get("available"))


class PermissionListController(ListController[PermissionFilters]):
    async def clone(self, permission_id: str) -> ActionResult:
        """Copy a permission as a custom (non-system) one with a `_copy` code."""
        return await self.perform(permission_id, "clone")
