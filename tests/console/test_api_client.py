"""Tests for AdminApiClient over httpx.MockTransport."""

import json

import httpx
import pytest

from saas_admin.console.client import AdminApiClient, PageResult
from saas_admin.console.exceptions import ApiError, NotFoundError, ValidationFailed
from saas_admin.console.resources import organization_list


BASE_URL = "http://console.test/admin"


def envelope(items, current_page=1, last_page=1, total=None, per_page=10) -> dict:
    return {
        "success": True,
        "data": {
            "items": items,
            "current_page": current_page,
            "last_page": last_page,
            "total": len(items) if total is None else total,
            "per_page": per_page,
        },
    }


def make_client(handler) -> AdminApiClient:
    return AdminApiClient(base_url=BASE_URL, token="t0ken", transport=httpx.MockTransport(handler))


class TestSuccessfulRequests:
    async def test_list_sends_params_and_parses_envelope(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=envelope([{"id": "1"}], current_page=2, last_page=4, total=31, per_page=10))

        async with make_client(handler) as client:
            result = await client.list("/users", {"page": 2, "status": "active"})

        assert result == PageResult(items=[{"id": "1"}], current_page=2, last_page=4, total=31, per_page=10)
        request = seen[0]
        assert request.url.path == "/admin/users"
        assert request.url.params["page"] == "2"
        assert request.url.params["status"] == "active"
        assert request.headers["Authorization"] == "Bearer t0ken"

    async def test_empty_result_has_at_least_one_page(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=envelope([], last_page=0, total=0))

        async with make_client(handler) as client:
            result = await client.list("/roles")

        assert result.items == []
        assert result.last_page == 1

    async def test_create_posts_json_and_unwraps_data(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            body = json.loads(request.content)
            return httpx.Response(201, json={"success": True, "data": {"id": "o1", **body}})

        async with make_client(handler) as client:
            created = await client.create("/organizations", {"name": "Acme"})

        assert created == {"id": "o1", "name": "Acme"}

    async def test_update_uses_put_on_item_url(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "PUT"
            assert request.url.path == "/admin/roles/r1"
            return httpx.Response(200, json={"success": True, "data": {"id": "r1"}})

        async with make_client(handler) as client:
            assert await client.update("/roles", "r1", {"name": "Editors"}) == {"id": "r1"}

    async def test_delete_accepts_no_content(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "DELETE"
            return httpx.Response(204)

        async with make_client(handler) as client:
            assert await client.delete("/users", "u1") is None

    async def test_statistics_path(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/admin/users/statistics"
            return httpx.Response(200, json={"success": True, "data": {"total_users": 5}})

        async with make_client(handler) as client:
            assert await client.statistics("/users") == {"total_users": 5}

    async def test_action_sends_method_and_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == "/admin/users/check-email"
            assert json.loads(request.content) == {"email": "a@b.co"}
            return httpx.Response(200, json={"success": True, "data": {"available": False}})

        async with make_client(handler) as client:
            assert await client.action("POST", "/users/check-email", {"email": "a@b.co"}) == {"available": False}


class TestErrors:
    async def test_not_found(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"detail": "User not found"})

        async with make_client(handler) as client:
            with pytest.raises(NotFoundError) as exc_info:
                await client.get("/users", "missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "User not found"

    async def test_field_validation_errors(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"email": "value is not a valid email address"})

        async with make_client(handler) as client:
            with pytest.raises(ValidationFailed) as exc_info:
                await client.create("/users", {"email": "nope"})

        assert exc_info.value.errors == {"email": "value is not a valid email address"}
        assert exc_info.value.message == "Validation failed"

    async def test_conflict_keeps_detail_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"detail": "Role with this code already exists"})

        async with make_client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.create("/roles", {"code": "dup"})

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Role with this code already exists"
        assert not isinstance(exc_info.value, (NotFoundError, ValidationFailed))

    async def test_non_json_error_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        async with make_client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.list("/users")

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Request failed with status 502"

    async def test_transport_failure_becomes_503(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.list("/users")

        assert exc_info.value.status_code == 503
        assert "ConnectError" in exc_info.value.message


class TestMalformedResponses:
    @pytest.mark.parametrize("body", [
        [1, 2],
        {"success": True},
        {"success": True, "data": {"items": [], "current_page": 1, "last_page": "many", "total": 0, "per_page": 10}},
        {"success": True, "data": {"items": [1, 2], "current_page": 1, "last_page": 1, "total": 2, "per_page": 10}},
    ])
    async def test_list_rejects_bodies_that_are_not_a_page(self, body) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        async with make_client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.list("/organizations")

        assert exc_info.value.message == "Malformed response"
        assert exc_info.value.status_code == 200

    async def test_non_json_success_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        async with make_client(handler) as client:
            with pytest.raises(ApiError, match="Malformed response"):
                await client.get("/users", "u1")

    async def test_single_item_must_be_an_object(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "data": ["not", "an", "object"]})

        async with make_client(handler) as client:
            with pytest.raises(ApiError, match="Malformed response"):
                await client.update("/roles", "r1", {"name": "Editors"})

    async def test_no_content_on_create_is_empty(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(204)

        async with make_client(handler) as client:
            assert await client.create("/organizations", {"name": "Acme"}) == {}

    async def test_controller_reports_malformed_page(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[1, 2])

        async with make_client(handler) as client:
            controller = organization_list(client)
            await controller.load()

            assert controller.error == "Malformed response"
            assert controller.loading is False
            assert controller.items == []
            await controller.close()
