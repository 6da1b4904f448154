"""Tests for the httpx resource transport."""

import httpx
import pytest
import respx

from resource_sync.core.exceptions import (
    ConflictError,
    NetworkError,
    NotFoundError,
    ParseError,
    ServerError,
    ValidationError,
)
from resource_sync.models.query_state import QueryState
from resource_sync.models.resource import CLIENTS, CONTACTS
from resource_sync.services.transport.factory import TransportFactory
from resource_sync.services.transport.http_service import HttpResourceTransport

BASE_URL = "https://admin.example.com"


@pytest.fixture
def http_transport():
    """Create an HTTP transport for the clients resource."""
    return HttpResourceTransport.from_url(CLIENTS, BASE_URL, token="test-token", timeout=5.0)


def collection(ids, total, page=1, limit=10):
    return {
        "success": True,
        "data": [{"id": i, "name": f"Client {i}"} for i in ids],
        "pagination": {"page": page, "limit": limit, "total": total, "totalPages": -(-total // limit)},
    }


def test_build_params():
    """Test query-string translation."""
    transport = HttpResourceTransport.from_url(CONTACTS, BASE_URL)
    state = (
        QueryState()
        .with_filter("search", "acme")
        .with_filter("isActive", True)
        .with_sort("name", "desc")
        .with_page(3)
    )

    params = transport.build_params(state)

    assert params == {
        "page": "3",
        "limit": "10",
        "sort": "name",
        "order": "desc",
        "q": "acme",
        "isActive": "true",
    }


@pytest.mark.asyncio
async def test_list_sends_params_and_auth(http_transport):
    """Test a page fetch end to end at the wire level."""
    with respx.mock(base_url=BASE_URL) as router:
        route = router.get("/api/clients").mock(
            return_value=httpx.Response(200, json=collection(range(1, 11), 25))
        )

        page = await http_transport.list(QueryState().with_filter("industry", "Tech"))

    assert len(page.records) == 10
    assert page.total == 25
    request = route.calls.last.request
    assert request.url.params["page"] == "1"
    assert request.url.params["limit"] == "10"
    assert request.url.params["industry"] == "Tech"
    assert request.headers["Authorization"] == "Bearer test-token"


@pytest.mark.asyncio
async def test_create_posts_to_admin_path_without_id(http_transport):
    """Test that create never sends a client-side id."""
    with respx.mock(base_url=BASE_URL) as router:
        route = router.post("/api/clients/admin").mock(
            return_value=httpx.Response(201, json={"success": True, "data": {"id": 31, "name": "Acme"}})
        )

        record = await http_transport.create({"id": 99, "name": "Acme"})

    assert record == {"id": 31, "name": "Acme"}
    assert b'"id"' not in route.calls.last.request.content


@pytest.mark.asyncio
async def test_update_and_delete_paths(http_transport):
    """Test update and delete routes."""
    with respx.mock(base_url=BASE_URL) as router:
        router.put("/api/clients/admin/7").mock(
            return_value=httpx.Response(200, json={"success": True, "data": {"id": 7, "name": "X"}})
        )
        delete_route = router.delete("/api/clients/admin/7").mock(
            return_value=httpx.Response(200, json={"success": True, "message": "Client deleted"})
        )

        record = await http_transport.update(7, {"name": "X"})
        await http_transport.delete(7)

    assert record["name"] == "X"
    assert delete_route.called


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code, body, error_type",
    [
        (400, {"success": False, "error": "Invalid", "errors": {"name": ["required"]}}, ValidationError),
        (422, {"detail": "Unprocessable"}, ValidationError),
        (404, {"success": False, "error": "Client not found"}, NotFoundError),
        (409, {"success": False, "error": "Client exists"}, ConflictError),
        (500, {"success": False, "error": "Boom"}, ServerError),
        (200, {"success": False, "error": "Soft failure"}, ServerError),
    ],
)
async def test_mutation_status_mapping(http_transport, status_code, body, error_type):
    """Test that mutation responses map onto the error taxonomy."""
    with respx.mock(base_url=BASE_URL) as router:
        router.put("/api/clients/admin/1").mock(return_value=httpx.Response(status_code, json=body))

        with pytest.raises(error_type):
            await http_transport.update(1, {"name": ""})


@pytest.mark.asyncio
async def test_validation_error_keeps_field_messages(http_transport):
    """Test that field-level messages survive."""
    body = {"success": False, "error": "Validation failed", "errors": [{"field": "industry", "message": "required"}]}
    with respx.mock(base_url=BASE_URL) as router:
        router.post("/api/clients/admin").mock(return_value=httpx.Response(400, json=body))

        with pytest.raises(ValidationError) as exc_info:
            await http_transport.create({"name": "Acme"})

    assert exc_info.value.message == "Validation failed"
    assert exc_info.value.field_errors == {"industry": ["required"]}


@pytest.mark.asyncio
async def test_list_maps_every_failure_status_to_server_error(http_transport):
    """Test that fetches only fail with network, server or parse errors."""
    with respx.mock(base_url=BASE_URL) as router:
        router.get("/api/clients").mock(return_value=httpx.Response(404, json={"error": "gone"}))

        with pytest.raises(ServerError) as exc_info:
            await http_transport.list(QueryState())

    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "gone"


@pytest.mark.asyncio
async def test_non_json_error_body_uses_status(http_transport):
    """Test the fallback message for opaque error bodies."""
    with respx.mock(base_url=BASE_URL) as router:
        router.get("/api/clients").mock(return_value=httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(ServerError, match="HTTP 502"):
            await http_transport.list(QueryState())


@pytest.mark.asyncio
async def test_non_json_success_body_is_parse_error(http_transport):
    """Test that a 200 with HTML is not trusted."""
    with respx.mock(base_url=BASE_URL) as router:
        router.get("/api/clients").mock(return_value=httpx.Response(200, text="<html></html>"))

        with pytest.raises(ParseError):
            await http_transport.list(QueryState())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exception",
    [httpx.ConnectError("Connection refused"), httpx.ReadTimeout("timed out")],
)
async def test_transport_failures_are_network_errors(http_transport, exception):
    """Test connection failures and timeouts."""
    with respx.mock(base_url=BASE_URL) as router:
        router.get("/api/clients").mock(side_effect=exception)

        with pytest.raises(NetworkError):
            await http_transport.list(QueryState())


@pytest.mark.asyncio
async def test_get_record(http_transport):
    """Test fetching one record from the read path."""
    with respx.mock(base_url=BASE_URL) as router:
        router.get("/api/clients/3").mock(
            return_value=httpx.Response(200, json={"success": True, "data": {"id": 3}})
        )
        router.get("/api/clients/4").mock(return_value=httpx.Response(404, json={"error": "missing"}))

        assert await http_transport.get(3) == {"id": 3}
        with pytest.raises(NotFoundError):
            await http_transport.get(4)


def test_factory_creates_http_transport(settings):
    """Test that the factory honours the configured base URL."""
    transport = TransportFactory.create_transport(settings, CLIENTS)

    assert isinstance(transport, HttpResourceTransport)
    assert transport.resource is CLIENTS


def test_factory_creates_sandbox_transport(settings):
    """Test the in-process sandbox transport."""
    sandbox_settings = settings.model_copy(update={"transport": "sandbox"})

    transport = TransportFactory.create_transport(sandbox_settings, CLIENTS)

    assert isinstance(transport, HttpResourceTransport)
