"""
Tool-call handling: lookup, validation, dispatch and normalization.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import BridgeSettings
from .dispatcher import RequestDispatcher
from .exceptions import DispatchError
from .loader import DocumentSource
from .models import CallToolRequest, CallToolResult
from .normalizer import normalize_error, normalize_response, unknown_tool, validation_failed
from .registry import ToolRegistry, build_registry
from .validator import ValidationFailure, compile_validator, validate_arguments

logger = logging.getLogger(__name__)


class ToolServer:
    """Serves the tools of one registry.

    Calls are independent and may run concurrently; the registry is never
    mutated after construction.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        settings: Optional[BridgeSettings] = None,
        dispatcher: Optional[RequestDispatcher] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.registry = registry
        self.settings = settings or BridgeSettings()
        self.dispatcher = dispatcher or RequestDispatcher(
            base_url=registry.base_url,
            timeout=self.settings.timeout,
            transport=transport,
        )
        self._validators = {name: compile_validator(tool) for name, tool in registry.items()}

    @classmethod
    def from_source(
        cls,
        source: DocumentSource,
        settings: Optional[BridgeSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ToolServer":
        settings = settings or BridgeSettings()
        return cls(build_registry(source, settings), settings=settings, transport=transport)

    async def __aenter__(self) -> "ToolServer":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.dispatcher.aclose()

    def list_tools(self) -> List[Dict[str, Any]]:
        return self.registry.listings()

    async def handle(self, request: CallToolRequest) -> CallToolResult:
        return await self.call_tool(request.name, request.arguments)

    async def call_tool(self, name: str, arguments: Any = None) -> CallToolResult:
        """
        Call one tool.

        Args:
            name: Registered tool name
            arguments: Raw caller-supplied arguments

        Returns:
            CallToolResult: The normalized outcome; failures are results, never exceptions
        """
        tool = self.registry.get(name)
        if tool is None:
            logger.error("Received request for unknown tool: %s", name)
            return unknown_tool(name)

        try:
            validated = validate_arguments(tool, arguments, self._validators.get(name))
        except Exception as e:
            logger.exception("Unexpected error while validating arguments for tool '%s'", name)
            return normalize_error(e, self.settings.max_error_body_length)
        if isinstance(validated, ValidationFailure):
            logger.warning(validated.message(name))
            return validation_failed(name, validated)

        try:
            response = await self.dispatcher.dispatch(tool, validated)
        except DispatchError as e:
            logger.error("Dispatch error for tool '%s': %s", name, e)
            return normalize_error(e, self.settings.max_error_body_length)
        except httpx.HTTPError as e:
            logger.warning("Error during execution of tool '%s': %s", name, e)
            return normalize_error(e, self.settings.max_error_body_length)
        except Exception as e:
            logger.exception("Unexpected error during execution of tool '%s'", name)
            return normalize_error(e, self.settings.max_error_body_length)

        return normalize_response(response)
