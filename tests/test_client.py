import json
from dataclasses import dataclass
from datetime import timedelta

import httpx
import pytest
from pytest_httpx import HTTPXMock

from async_ferno.client import AsyncFernoClient
from async_ferno.errors import (
    DecodeError,
    EncodingError,
    PermissionDeniedError,
    RequestFailedError,
    TokenExchangeError,
    UnauthenticatedError,
    UrlConstructionError,
)
from async_ferno.models import AccessToken, FernoChild, FernoQuery, ServiceIdentity


pytestmark = pytest.mark.asyncio

TOKEN_URL = "https://www.googleapis.com/oauth2/v4/token"


@dataclass
class Person:
    name: str


@dataclass
class Value:
    v: int


def test_creds_from_service_account_info(fake_base_path, fake_service_account):
    client = AsyncFernoClient.from_service_account_info(fake_base_path, fake_service_account)
    assert isinstance(client.token_manager.identity, ServiceIdentity)
    assert client.token_manager.identity.email == fake_service_account["client_email"]


def test_creds_from_service_account_file(fake_base_path, fake_service_account_file, fake_service_account):
    client = AsyncFernoClient.from_service_account_file(fake_base_path, fake_service_account_file)
    assert client.token_manager.identity.email == fake_service_account["client_email"]


def test_compose_request(fake_async_ferno_client, fake_base_path):
    request = fake_async_ferno_client.compose_request(
        "put",
        ["users", "42"],
        [FernoQuery.order_by("name"), FernoQuery.limit_to_first(2)],
        {"name": "Ann"},
        {"X-Firebase-ETag": "true"},
        "fake-access-token",
    )
    assert request.method == "PUT"
    assert str(request.url) == (
        f"{fake_base_path}/users/42.json?orderBy=%22name%22&limitToFirst=2&auth=fake-access-token"
    )
    assert request.headers["X-Firebase-ETag"] == "true"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == {"name": "Ann"}


def test_compose_request_is_pure(fake_async_ferno_client):
    args = ("PATCH", ["users", "42"], [FernoQuery.shallow()], {"name": "Ann"}, {}, "fake-access-token")
    first = fake_async_ferno_client.compose_request(*args)
    second = fake_async_ferno_client.compose_request(*args)

    assert first is not second
    assert first.method == second.method
    assert first.url == second.url
    assert first.headers.raw == second.headers.raw
    assert first.content == second.content


def test_compose_request_keeps_caller_content_type(fake_async_ferno_client):
    request = fake_async_ferno_client.compose_request(
        "POST", ["users"], [], {"name": "Ann"}, {"Content-Type": "application/json; charset=utf-8"}, "token"
    )
    assert request.headers["Content-Type"] == "application/json; charset=utf-8"


def test_compose_request_without_body(fake_async_ferno_client):
    request = fake_async_ferno_client.compose_request("GET", ["users"], [], None, None, "token")
    assert request.content == b""
    assert "Content-Type" not in request.headers


def test_compose_request_invalid_path(fake_async_ferno_client):
    with pytest.raises(UrlConstructionError):
        fake_async_ferno_client.compose_request("GET", ["users", ".."], [], None, None, "token")


def test_compose_request_nested_segment(fake_async_ferno_client, fake_base_path):
    request = fake_async_ferno_client.compose_request("GET", ["users/42"], [], None, None, "token")
    assert str(request.url) == f"{fake_base_path}/users/42.json?auth=token"


def test_compose_request_keeps_base_path_prefix(fake_identity):
    client = AsyncFernoClient("https://host.example/prefix", fake_identity)
    with pytest.raises(UrlConstructionError):
        client.compose_request("GET", ["..", "secret"], [], None, None, "token")


def test_compose_request_unserializable_body(fake_async_ferno_client):
    with pytest.raises(EncodingError):
        fake_async_ferno_client.compose_request("PUT", ["users"], [], {"person": Person}, None, "token")


async def test_send(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="GET", status_code=200, json={"name": "Ann"})

    person = await fake_async_ferno_client_w_token.send("GET", ["users", "42"], Person)

    assert person == Person(name="Ann")
    request = httpx_mock.get_request()
    assert request.url.path == "/users/42.json"
    assert dict(request.url.params) == {"auth": "fake-access-token"}
    assert request.content == b""


async def test_send_unauthenticated(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="GET", status_code=401, json={"error": "Unauthorized request."})

    with pytest.raises(RequestFailedError) as e:
        await fake_async_ferno_client_w_token.send("GET", ["users", "42"], Person)

    assert isinstance(e.value, UnauthenticatedError)
    assert e.value.status == 401
    assert str(e.value) == "Unauthorized request."


async def test_delete_unauthenticated(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="DELETE", status_code=401, json={"error": "Unauthorized request."})

    assert await fake_async_ferno_client_w_token.delete(["users", "42"]) is False


async def test_delete(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="DELETE", status_code=200, content=b"null")

    assert await fake_async_ferno_client_w_token.delete(["users", "42"]) is True
    assert httpx_mock.get_request().url.path == "/users/42.json"


async def test_delete_transport_error_propagates(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

    with pytest.raises(httpx.ConnectError):
        await fake_async_ferno_client_w_token.delete(["users", "42"])


async def test_send_many(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="GET", json={"a": {"v": 1}, "b": {"v": 2}})

    result = await fake_async_ferno_client_w_token.send_many(
        "GET", ["values"], Value, query=[FernoQuery.order_by("v")]
    )

    assert result == {"a": Value(v=1), "b": Value(v=2)}
    assert httpx_mock.get_request().url.params["orderBy"] == '"v"'


async def test_send_many_empty_location(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="GET", content=b"null")

    assert await fake_async_ferno_client_w_token.send_many("GET", ["values"], Value) == {}


async def test_send_many_permission_denied(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="GET", status_code=403, json={"error": "Permission denied"})

    with pytest.raises(PermissionDeniedError) as e:
        await fake_async_ferno_client_w_token.send_many("GET", ["values"], Value)
    assert e.value.status == 403


async def test_send_decode_error(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="GET", json={"nickname": "Ann"})

    with pytest.raises(DecodeError):
        await fake_async_ferno_client_w_token.send("GET", ["users", "42"], Person)


async def test_send_response_too_large(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="GET", json={"name": "A" * 70_000})

    with pytest.raises(DecodeError):
        await fake_async_ferno_client_w_token.send("GET", ["users", "42"], Person)


async def test_read_bounded_without_content_length():
    response = httpx.Response(200, stream=httpx.ByteStream(b"x" * 65_537))
    with pytest.raises(DecodeError):
        await AsyncFernoClient.read_bounded(response)

    response = httpx.Response(200, stream=httpx.ByteStream(b"x" * 65_536))
    assert len(await AsyncFernoClient.read_bounded(response)) == 65_536


async def test_send_refreshes_token_once(fake_async_ferno_client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        method="POST",
        url=TOKEN_URL,
        json={"access_token": "ya29.fresh-token", "token_type": "Bearer", "expires_in": 3600},
    )
    httpx_mock.add_response(method="GET", json={"v": 1})
    httpx_mock.add_response(method="GET", json={"v": 2})

    assert await fake_async_ferno_client.send("GET", ["values", "a"], Value) == Value(v=1)
    assert await fake_async_ferno_client.send("GET", ["values", "b"], Value) == Value(v=2)

    token_request, *api_requests = httpx_mock.get_requests()
    assert token_request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert [request.url.params["auth"] for request in api_requests] == ["ya29.fresh-token", "ya29.fresh-token"]


async def test_send_refreshes_expiring_token(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    token_manager = fake_async_ferno_client_w_token.token_manager
    token_manager._token = AccessToken(
        value="fake-access-token", expires_at=token_manager.token.expires_at - timedelta(minutes=59)
    )
    httpx_mock.add_response(
        method="POST",
        url=TOKEN_URL,
        json={"access_token": "ya29.fresh-token", "token_type": "Bearer", "expires_in": 3600},
    )
    httpx_mock.add_response(method="GET", json={"v": 1})

    await fake_async_ferno_client_w_token.send("GET", ["values", "a"], Value)

    assert token_manager.token.value == "ya29.fresh-token"
    assert httpx_mock.get_requests()[-1].url.params["auth"] == "ya29.fresh-token"


async def test_send_token_exchange_failed(fake_async_ferno_client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="POST", url=TOKEN_URL, status_code=500)

    with pytest.raises(TokenExchangeError):
        await fake_async_ferno_client.send("GET", ["values"], Value)
    assert fake_async_ferno_client.token_manager.token is None


async def test_create(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="POST", json={"name": "-NbQ3xkA1"})

    child = await fake_async_ferno_client_w_token.create(["users"], Person(name="Ann"))

    assert child == FernoChild(name="-NbQ3xkA1")
    assert json.loads(httpx_mock.get_request().content) == {"name": "Ann"}


@pytest.mark.parametrize("operation, method", (("update", "PATCH"), ("overwrite", "PUT")))
async def test_write_operations(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock, operation, method):
    httpx_mock.add_response(method=method, json={"name": "Bob"})

    person = await getattr(fake_async_ferno_client_w_token, operation)(["users", "42"], {"name": "Bob"}, Person)

    assert person == Person(name="Bob")
    request = httpx_mock.get_request()
    assert request.method == method
    assert json.loads(request.content) == {"name": "Bob"}


async def test_retrieve(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="GET", json={"name": "Ann"})

    assert await fake_async_ferno_client_w_token.retrieve(["users", "42"], Person) == Person(name="Ann")


async def test_retrieve_many(fake_async_ferno_client_w_token, httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="GET", json={"42": {"name": "Ann"}})

    result = await fake_async_ferno_client_w_token.retrieve_many(
        ["users"], Person, query=[FernoQuery.order_by("name"), FernoQuery.equal_to("Ann")]
    )

    assert result == {"42": Person(name="Ann")}
    params = httpx_mock.get_request().url.params
    assert list(params.keys()) == ["orderBy", "equalTo", "auth"]


async def test_context_manager_closes_http_client(fake_base_path, fake_identity):
    async with AsyncFernoClient(fake_base_path, fake_identity) as client:
        http_client = client._client
    assert http_client.is_closed


async def test_external_http_client_is_not_closed(fake_base_path, fake_identity):
    http_client = httpx.AsyncClient()
    async with AsyncFernoClient(fake_base_path, fake_identity, http_client=http_client) as client:
        assert client._client is http_client
    assert not http_client.is_closed
    await http_client.aclose()
