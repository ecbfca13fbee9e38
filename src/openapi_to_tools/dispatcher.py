"""
Reconstruction and execution of HTTP requests from validated tool arguments.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Union
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .contract import REQUEST_BODY_PROPERTY
from .exceptions import PathResolutionError, RequestConstructionError
from .models import ToolDefinition

logger = logging.getLogger(__name__)

# encodeURIComponent leaves these unescaped as well
_PATH_SAFE = "!*'()"

QueryValue = Union[str, List[str]]


class PreparedRequest(BaseModel):
    """The wire shape of one tool call, before it is sent."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    method: str
    url: str
    params: Dict[str, QueryValue] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None
    has_body: bool = False


def stringify(value: Any) -> str:
    """Render an argument value the way it appears in a URL or header."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _present(arguments: Dict[str, Any], name: str) -> bool:
    return arguments.get(name) is not None


def _is_json_type(content_type: str) -> bool:
    essence = content_type.split(";", 1)[0].strip().lower()
    return essence.endswith("/json") or essence.endswith("+json")


def build_request(
    tool: ToolDefinition, arguments: Dict[str, Any], base_url: Optional[str] = None
) -> PreparedRequest:
    """
    Reassemble validated arguments into an HTTP request.

    Args:
        tool: The tool being called
        arguments: Arguments that passed validation
        base_url: Prefix for the substituted path; the path is used as-is when None

    Returns:
        PreparedRequest: Method, URL, query parameters, headers and body

    Raises:
        PathResolutionError: If a path placeholder is left after substitution
    """
    url_path = tool.path
    for param in tool.parameters_in("path"):
        if _present(arguments, param.name):
            encoded = quote(stringify(arguments[param.name]), safe=_PATH_SAFE)
            url_path = url_path.replace(f"{{{param.name}}}", encoded)
    if "{" in url_path:
        logger.error("Tool '%s' has unresolved path parameters: %s", tool.name, url_path)
        raise PathResolutionError(tool.name, url_path)

    params: Dict[str, QueryValue] = {}
    for param in tool.parameters_in("query"):
        if _present(arguments, param.name):
            value = arguments[param.name]
            if isinstance(value, (list, tuple)):
                params[param.name] = [stringify(v) for v in value if v is not None]
            else:
                params[param.name] = stringify(value)

    headers: Dict[str, str] = {"accept": "application/json"}
    for param in tool.parameters_in("header"):
        if _present(arguments, param.name):
            headers[param.name.lower()] = stringify(arguments[param.name])

    cookies = [
        f"{param.name}={quote(stringify(arguments[param.name]), safe='')}"
        for param in tool.parameters_in("cookie")
        if _present(arguments, param.name)
    ]
    if cookies:
        headers["cookie"] = "; ".join(cookies)

    body = None
    has_body = False
    if tool.request_body is not None and REQUEST_BODY_PROPERTY in arguments:
        body = arguments[REQUEST_BODY_PROPERTY]
        has_body = True
        headers["content-type"] = tool.request_body.content_type

    url = f"{base_url}{url_path}" if base_url else url_path
    return PreparedRequest(
        method=tool.method.upper(),
        url=url,
        params=params,
        headers=headers,
        body=body,
        has_body=has_body,
    )


class RequestDispatcher:
    """Executes tool calls over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Prefix for every request path
            timeout: Timeout in seconds for each network call
            client: Client to borrow; it is not closed by the dispatcher
            transport: Transport for an owned client (tests pass ``httpx.MockTransport``)
        """
        self.base_url = base_url
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout), transport=transport
        )

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _encode(self, prepared: PreparedRequest) -> httpx.Request:
        kwargs: Dict[str, Any] = {}
        if prepared.has_body:
            body = prepared.body
            content_type = prepared.headers.get("content-type", "application/json")
            if body is None:
                kwargs["content"] = b"null" if _is_json_type(content_type) else b""
            elif isinstance(body, (str, bytes)) or hasattr(body, "__aiter__"):
                # Raw and streamed bodies go out untouched
                kwargs["content"] = body
            elif content_type.startswith("application/x-www-form-urlencoded") and isinstance(body, dict):
                kwargs["data"] = {k: stringify(v) for k, v in body.items()}
            else:
                kwargs["content"] = json.dumps(body).encode("utf-8")

        try:
            request = self._client.build_request(
                prepared.method,
                prepared.url,
                params=prepared.params,
                headers=prepared.headers,
                timeout=httpx.Timeout(self.timeout),
                **kwargs,
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise RequestConstructionError(str(e)) from e

        # Relative paths only work against a client that carries its own base URL
        if not request.url.is_absolute_url:
            raise RequestConstructionError(
                f"Request URL is missing an 'http://' or 'https://' protocol: {request.url}"
            )
        return request

    async def _send(self, request: httpx.Request, stream: bool) -> httpx.Response:
        try:
            return await self._client.send(request, stream=stream)
        except httpx.UnsupportedProtocol as e:
            raise RequestConstructionError(str(e)) from e

    async def dispatch(self, tool: ToolDefinition, arguments: Dict[str, Any]) -> httpx.Response:
        """
        Execute a tool call and return the fully read response.

        Args:
            tool: The tool being called
            arguments: Arguments that passed validation

        Returns:
            httpx.Response: A successful (2xx) response

        Raises:
            DispatchError: If the request cannot be built
            httpx.HTTPStatusError: If the server answered with a non-2xx status
            httpx.RequestError: If no response was received
        """
        prepared = build_request(tool, arguments, self.base_url)
        request = self._encode(prepared)
        logger.info('Executing tool "%s": %s %s', tool.name, request.method, request.url)

        response = await self._send(request, stream=False)
        response.raise_for_status()
        return response

    @asynccontextmanager
    async def stream(
        self, tool: ToolDefinition, arguments: Dict[str, Any]
    ) -> AsyncIterator[httpx.Response]:
        """
        Execute a tool call without reading the response body.

        The response is yielded unread so large payloads can be consumed with
        ``aiter_bytes()``; it is closed when the block exits.
        """
        prepared = build_request(tool, arguments, self.base_url)
        request = self._encode(prepared)
        logger.info('Streaming tool "%s": %s %s', tool.name, request.method, request.url)

        response = await self._send(request, stream=True)
        try:
            yield response
        finally:
            await response.aclose()
