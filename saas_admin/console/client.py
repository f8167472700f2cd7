"""
HTTP client for the /admin REST API.

Every 2xx body is checked before it is handed out: collection responses
must parse as a page envelope, single-object responses as a JSON object.
Anything else raises ApiError("Malformed response").
"""
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError

from saas_admin.core import config
from saas_admin.core.pagination import Page, PageEnvelope
from saas_admin.console.exceptions import ApiError, NotFoundError, ValidationFailed
from saas_admin.utils import get_logger


log = get_logger(__name__)


@dataclass
class PageResult:
    """One page of a collection endpoint."""
    items: list[dict[str, Any]] = field(default_factory=list)
    current_page: int = 1
    last_page: int = 1
    total: int = 0
    per_page: int = config.DEFAULT_PER_PAGE

    @classmethod
    def from_page(cls, page: Page[dict[str, Any]]) -> "PageResult":
        return cls(
            items=list(page.items),
            current_page=page.current_page,
            last_page=max(1, page.last_page),
            total=page.total,
            per_page=page.per_page,
        )


class AdminApiClient:
    """
    Owns a single httpx.AsyncClient for the admin API.

    Pass `transport` to route requests somewhere other than the network
    (httpx.MockTransport in tests, httpx.ASGITransport for an in-process app).
    """

    def __init__(
        self,
        base_url: str = config.CONSOLE_API_BASE_URL,
        token: str | None = None,
        timeout: float = config.CONSOLE_HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "AdminApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log.warning("%s %s failed: %s", method, path, e)
            raise ApiError(f"Could not reach the server: {e.__class__.__name__}", status_code=503) from e

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise _error_from_response(response.status_code, body)
        return response

    async def _data(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        """The `data` object of a single-item envelope; {} for 204."""
        response = await self._send(method, path, **kwargs)
        if response.status_code == 204:
            return {}
        body = _json(response)
        data = body.get("data", body) if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise _malformed(response)
        return data

    async def list(self, path: str, params: dict[str, Any] | None = None) -> PageResult:
        response = await self._send("GET", path, params=params or {})
        try:
            envelope = PageEnvelope[dict[str, Any]].model_validate(_json(response))
        except ValidationError as e:
            raise _malformed(response) from e
        return PageResult.from_page(envelope.data)

    async def get(self, path: str, item_id: str) -> dict[str, Any]:
        return await self._data("GET", f"{path}/{item_id}")

    async def statistics(self, path: str) -> dict[str, Any]:
        return await self._data("GET", f"{path}/statistics")

    async def create(self, path: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._data("POST", path, json=data)

    async def update(self, path: str, item_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._data("PUT", f"{path}/{item_id}", json=data)

    async def delete(self, path: str, item_id: str) -> None:
        await self._send("DELETE", f"{path}/{item_id}")

    async def action(self, method: str, path: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        """Call a non-CRUD endpoint such as `/users/{id}/toggle-status`."""
        if data is None:
            return await self._data(method, path)
        return await self._data(method, path, json=data)


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise _malformed(response) from e


def _malformed(response: httpx.Response) -> ApiError:
    log.warning("Malformed response from %s %s", response.request.method, response.request.url)
    return ApiError("Malformed response", status_code=response.status_code)


def _error_from_response(status_code: int, body: Any) -> ApiError:
    """Map an error response body to the matching ApiError subclass."""
    message = f"Request failed with status {status_code}"
    errors: dict[str, Any] = {}

    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(body.get("message"), str):
            message = body["message"]
        elif isinstance(detail, str):
            message = detail
        if isinstance(body.get("errors"), dict):
            errors = body["errors"]
        elif status_code == 400 and "detail" not in body and "message" not in body:
            # Validation handler returns {field: message}
            errors = body
            message = "Validation failed"

    if status_code == 404:
        return NotFoundError(message, status_code, errors)
    if status_code in (400, 422):
        return ValidationFailed(message, status_code, errors)
    return ApiError(message, status_code, errors)
