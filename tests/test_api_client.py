from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from navdash.api_client import HttpNavigationClient, build_base_url
from navdash.errors import AuthorizationError, NotFoundError, TransportError, ValidationError
from navdash.models import Group, Site


def _client(handler, **kwargs) -> HttpNavigationClient:
    return HttpNavigationClient(
        "http://nav.local/api", transport=httpx.MockTransport(handler), **kwargs
    )


def _run(client: HttpNavigationClient, make_call):
    async def run():
        async with client:
            return await make_call(client)

    return asyncio.run(run())


def test_build_base_url() -> None:
    assert build_base_url("nav.local:8080/") == "http://nav.local:8080"
    assert build_base_url("https://nav.example/api/") == "https://nav.example/api"
    assert build_base_url("   ") == ""


def test_list_groups_and_sites_parse_rows() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path.endswith("/groups"):
            return httpx.Response(200, json=[{"id": 1, "name": "Dev", "order_num": 0}])
        return httpx.Response(
            200,
            json=[{"id": 4, "group_id": 1, "name": "a", "url": "https://a.com", "icon": None}],
        )

    client = _client(handler)

    async def calls(c: HttpNavigationClient):
        return await c.list_groups(), await c.list_sites(1)

    groups, sites = _run(client, calls)
    assert groups == [Group(id=1, name="Dev", order_num=0)]
    assert sites == [Site(id=4, group_id=1, name="a", url="https://a.com")]
    assert seen == ["/api/groups", "/api/groups/1/sites"]


@pytest.mark.parametrize(
    "status, error",
    [
        (401, AuthorizationError),
        (403, AuthorizationError),
        (404, NotFoundError),
        (400, ValidationError),
        (422, ValidationError),
        (500, TransportError),
        (503, TransportError),
    ],
)
def test_status_codes_map_to_errors(status: int, error: type[Exception]) -> None:
    client = _client(lambda request: httpx.Response(status, json={"error": "nope"}))
    with pytest.raises(error):
        _run(client, lambda c: c.delete_site(9))


def test_error_message_is_forwarded() -> None:
    client = _client(lambda request: httpx.Response(422, json={"error": "url is required"}))
    with pytest.raises(ValidationError, match="url is required"):
        _run(client, lambda c: c.create_site(Site(id=None, group_id=1, name="x", url="")))


def test_network_failure_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(TransportError, match="connection refused"):
        _run(client, lambda c: c.list_groups())


def test_invalid_json_is_transport_error() -> None:
    client = _client(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(TransportError, match="invalid response format"):
        _run(client, lambda c: c.get_configs())


def test_login_stores_token_and_sends_it() -> None:
    auth_headers: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/login"):
            body = json.loads(request.content)
            if body == {"username": "admin", "password": "secret"}:
                return httpx.Response(200, json={"token": "t0k"})
            return httpx.Response(401, json={"error": "bad credentials"})
        auth_headers.append(request.headers.get("Authorization"))
        return httpx.Response(200, json={"authenticated": True})

    client = _client(handler)

    async def calls(c: HttpNavigationClient):
        rejected = await c.login("admin", "wrong")
        accepted = await c.login("admin", "secret")
        authorized = await c.is_authorized()
        return rejected, accepted, authorized

    assert _run(client, calls) == (False, True, True)
    assert client.token == "t0k"
    assert auth_headers == ["Bearer t0k"]
    client.logout()
    assert client.token is None


def test_is_authorized_false_on_401() -> None:
    client = _client(lambda request: httpx.Response(401))
    assert _run(client, lambda c: c.is_authorized()) is False


def test_order_and_config_writes() -> None:
    requests: list[tuple[str, str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        requests.append((request.method, request.url.raw_path.decode(), body))
        return httpx.Response(204)

    client = _client(handler)

    async def calls(c: HttpNavigationClient) -> None:
        await c.set_group_order([{"id": 2, "order_num": 0}, {"id": 1, "order_num": 1}])
        await c.set_config("site/title", "Home")

    _run(client, calls)
    assert requests == [
        ("PUT", "/api/group-orders", [{"id": 2, "order_num": 0}, {"id": 1, "order_num": 1}]),
        ("PUT", "/api/configs/site%2Ftitle", {"value": "Home"}),
    ]
