"""Tests for rebuilding and executing HTTP requests from tool arguments."""

import json

import httpx
import pytest

from openapi_to_tools.dispatcher import RequestDispatcher, build_request
from openapi_to_tools.exceptions import PathResolutionError, RequestConstructionError
from openapi_to_tools.models import Parameter, RequestBody, ToolDefinition


def _tool(path="/items", method="get", parameters=(), request_body=None) -> ToolDefinition:
    return ToolDefinition(
        name="tool",
        description="",
        input_schema={"type": "object", "properties": {}, "required": []},
        operation_id="tool",
        method=method,
        path=path,
        parameters=list(parameters),
        request_body=request_body,
    )


def _param(name, location, **kwargs) -> Parameter:
    return Parameter(name=name, location=location, param_schema={"type": "string"}, **kwargs)


def test_path_parameters_are_percent_encoded():
    tool = _tool("/files/{folder}/{name}", parameters=[_param("folder", "path"), _param("name", "path")])

    prepared = build_request(tool, {"folder": "a b/c", "name": "x(1)"}, "https://api.example.com")

    assert prepared.method == "GET"
    assert prepared.url == "https://api.example.com/files/a%20b%2Fc/x(1)"


def test_missing_path_parameter_is_a_dispatch_error():
    tool = _tool("/users/{id}", parameters=[_param("id", "path")])

    with pytest.raises(PathResolutionError) as exc_info:
        build_request(tool, {}, "https://api.example.com")
    assert "/users/{id}" in str(exc_info.value)

    with pytest.raises(PathResolutionError):
        build_request(tool, {"id": None}, "https://api.example.com")


def test_undeclared_placeholder_is_a_dispatch_error():
    tool = _tool("/users/{id}")

    with pytest.raises(PathResolutionError):
        build_request(tool, {"id": "1"})


def test_query_parameters_skip_absent_values():
    tool = _tool(
        parameters=[_param("q", "query"), _param("page", "query"), _param("flag", "query"), _param("tag", "query")]
    )

    prepared = build_request(tool, {"q": "shoes", "page": None, "flag": True, "tag": ["a", "b"]})

    assert prepared.params == {"q": "shoes", "flag": "true", "tag": ["a", "b"]}


def test_headers_are_lower_cased_with_accept_default():
    tool = _tool(parameters=[_param("X-Trace-Id", "header"), _param("X-Other", "header")])

    prepared = build_request(tool, {"X-Trace-Id": 7})

    assert prepared.headers == {"accept": "application/json", "x-trace-id": "7"}


def test_cookie_parameters():
    tool = _tool(parameters=[_param("session", "cookie"), _param("theme", "cookie")])

    prepared = build_request(tool, {"session": "abc", "theme": "dark mode"})

    assert prepared.headers["cookie"] == "session=abc; theme=dark%20mode"


def test_body_and_content_type_only_when_present():
    body = RequestBody(content={"application/json": {"schema": {"type": "object"}}})
    tool = _tool(method="post", request_body=body)

    without = build_request(tool, {})
    assert without.has_body is False
    assert "content-type" not in without.headers

    with_body = build_request(tool, {"requestBody": {"name": "Ann"}})
    assert with_body.has_body is True
    assert with_body.body == {"name": "Ann"}
    assert with_body.headers["content-type"] == "application/json"


def test_non_json_content_type_is_declared():
    body = RequestBody(content={"text/csv": {}})
    tool = _tool(method="post", request_body=body)

    prepared = build_request(tool, {"requestBody": "a,b\n1,2"})

    assert prepared.headers["content-type"] == "text/csv"


def test_relative_path_without_base_url():
    assert build_request(_tool("/ping"), {}).url == "/ping"


@pytest.mark.asyncio
async def test_dispatch_sends_assembled_request(recorder):
    handler = recorder(lambda request: httpx.Response(201, json={"ok": True}))
    body = RequestBody(content={"application/json": {"schema": {"type": "object"}}})
    tool = _tool(
        "/orgs/{org}/members",
        method="post",
        parameters=[_param("org", "path"), _param("notify", "query")],
        request_body=body,
    )

    async with RequestDispatcher("https://api.example.com", transport=httpx.MockTransport(handler)) as dispatcher:
        response = await dispatcher.dispatch(tool, {"org": "acme", "notify": False, "requestBody": {"id": 1}})

    assert response.status_code == 201
    request = handler.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.example.com/orgs/acme/members?notify=false"
    assert request.headers["content-type"] == "application/json"
    assert request.headers["accept"] == "application/json"
    assert json.loads(request.content) == {"id": 1}


@pytest.mark.asyncio
async def test_dispatch_raises_for_error_status(recorder):
    handler = recorder(lambda request: httpx.Response(500, text="boom"))

    async with RequestDispatcher("https://api.example.com", transport=httpx.MockTransport(handler)) as dispatcher:
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await dispatcher.dispatch(_tool(), {})

    assert exc_info.value.response.status_code == 500


@pytest.mark.asyncio
async def test_relative_url_without_base_is_a_setup_error(recorder):
    handler = recorder(lambda request: httpx.Response(200))

    async with RequestDispatcher(None, transport=httpx.MockTransport(handler)) as dispatcher:
        with pytest.raises(RequestConstructionError):
            await dispatcher.dispatch(_tool("/ping"), {})

    assert handler.requests == []


@pytest.mark.asyncio
async def test_streamed_request_and_response_bodies():
    """Request chunks are forwarded and the response is consumed incrementally."""
    received = []

    async def handler(request: httpx.Request) -> httpx.Response:
        received.append(await request.aread())

        async def chunks():
            for part in (b"first,", b"second,", b"third"):
                yield part

        return httpx.Response(200, content=chunks(), headers={"content-type": "text/plain"})

    async def upload():
        yield b"row1\n"
        yield b"row2\n"

    body = RequestBody(content={"text/csv": {}})
    tool = _tool("/upload", method="put", request_body=body)

    async with RequestDispatcher("https://api.example.com", transport=httpx.MockTransport(handler)) as dispatcher:
        async with dispatcher.stream(tool, {"requestBody": upload()}) as response:
            parts = [part async for part in response.aiter_raw()]

    assert b"".join(received) == b"row1\nrow2\n"
    assert parts == [b"first,", b"second,", b"third"]


@pytest.mark.asyncio
async def test_borrowed_client_is_not_closed():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(204)))

    async with RequestDispatcher("https://api.example.com", client=client) as dispatcher:
        response = await dispatcher.dispatch(_tool(), {})

    assert response.status_code == 204
    assert not client.is_closed
    await client.aclose()
