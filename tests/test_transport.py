from __future__ import annotations

import base64
import json
import socket
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from servicejwt._token import verify_access_token
from servicejwt.client import ServiceClient
from servicejwt.exceptions import ErrorKind, ServiceClientError

SERVICE_SECRET = "testServiceSecret"
SERVICE_TOKEN = "testServiceToken"
SERVICE_SLUG = "testServiceSlug"


async def _get_user(request: web.Request) -> web.Response:
    raw = request.query.get("payload")
    payload = json.loads(base64.b64decode(raw)) if raw is not None else {}
    verify_access_token(request.headers["x-access-token"], SERVICE_TOKEN, payload)
    return web.json_response({"userId": request.match_info["user_id"], "payload": raw})


async def _post_submission(request: web.Request) -> web.Response:
    body = await request.json()
    verify_access_token(request.headers["x-access-token"], SERVICE_TOKEN, body)
    return web.json_response({"received": body})


async def _empty(_request: web.Request) -> web.Response:
    return web.Response(text="  \n")


async def _missing(_request: web.Request) -> web.Response:
    return web.json_response({"name": "ENOTFOUNDUSER"}, status=404)


async def _broken(_request: web.Request) -> web.Response:
    return web.json_response({"code": "EDBDOWN"}, status=500)


async def _not_json(_request: web.Request) -> web.Response:
    return web.Response(text="<html>oops</html>")


def _make_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/user/{user_id}", _get_user)
    app.router.add_post("/submission", _post_submission)
    app.router.add_get("/empty", _empty)
    app.router.add_get("/missing", _missing)
    app.router.add_get("/broken", _broken)
    app.router.add_get("/not-json", _not_json)
    return app


async def _send(server: TestServer, method: str, descriptor: dict[str, Any]) -> Any:
    base_url = str(server.make_url("")).rstrip("/")
    async with ServiceClient(SERVICE_SECRET, SERVICE_TOKEN, SERVICE_SLUG, base_url) as client:
        return await client.send(method, descriptor)


@pytest.mark.asyncio
async def test_get_with_payload_uses_query_parameter() -> None:
    async with TestServer(_make_app()) as server:
        result = await _send(
            server,
            "get",
            {"url": "/user/:userId", "context": {"userId": "u1"}, "payload": {"foo": "bar"}},
        )
    assert result == {"userId": "u1", "payload": "eyJmb28iOiJiYXIifQ=="}


@pytest.mark.asyncio
async def test_get_without_payload_has_no_query_parameter() -> None:
    async with TestServer(_make_app()) as server:
        result = await _send(server, "get", {"url": "/user/:userId", "context": {"userId": "u1"}})
    assert result == {"userId": "u1", "payload": None}


@pytest.mark.asyncio
async def test_post_sends_json_body_matching_token() -> None:
    async with TestServer(_make_app()) as server:
        result = await _send(server, "post", {"url": "/submission", "payload": {"b": 2, "a": [1, "ü"]}})
    assert result == {"received": {"b": 2, "a": [1, "ü"]}}


@pytest.mark.asyncio
async def test_whitespace_body_becomes_empty_object() -> None:
    async with TestServer(_make_app()) as server:
        assert await _send(server, "get", {"url": "/empty"}) == {}


@pytest.mark.asyncio
async def test_client_error_status_is_used_as_code() -> None:
    async with TestServer(_make_app()) as server:
        with pytest.raises(ServiceClientError) as exc_info:
            await _send(server, "get", {"url": "/missing"})
    assert exc_info.value.status_code == 404
    assert exc_info.value.code == 404
    assert exc_info.value.kind is ErrorKind.TRANSPORT


@pytest.mark.asyncio
async def test_server_error_uses_body_code() -> None:
    async with TestServer(_make_app()) as server:
        with pytest.raises(ServiceClientError) as exc_info:
            await _send(server, "get", {"url": "/broken"})
    assert exc_info.value.status_code == 500
    assert exc_info.value.code == "EDBDOWN"


@pytest.mark.asyncio
async def test_invalid_json_body_fails() -> None:
    async with TestServer(_make_app()) as server:
        with pytest.raises(ServiceClientError) as exc_info:
            await _send(server, "get", {"url": "/not-json"})
    assert exc_info.value.status_code == 500
    assert exc_info.value.code == "EINVALIDJSON"


@pytest.mark.asyncio
async def test_connection_refused_maps_to_503() -> None:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    async with ServiceClient(SERVICE_SECRET, SERVICE_TOKEN, SERVICE_SLUG, f"http://127.0.0.1:{port}") as client:
        with pytest.raises(ServiceClientError) as exc_info:
            await client.send_get({"url": "/anything"})
    assert exc_info.value.status_code == 503
    assert exc_info.value.code == "ECONNREFUSED"
