"""Compile OpenAPI descriptions into validated, dispatchable tools."""

from .config import BridgeSettings
from .dispatcher import RequestDispatcher, build_request
from .exceptions import (
    DereferenceError,
    DispatchError,
    DocumentLoadError,
    OpenAPIToolsError,
    PathResolutionError,
    RequestConstructionError,
)
from .extractor import extract_tools, generate_operation_id
from .models import CallToolRequest, CallToolResult, Diagnostic, Parameter, RequestBody, ToolDefinition
from .registry import ToolRegistry, build_registry
from .schema import translate_schema
from .server import ToolServer
from .sessions import SessionRegistry
from .validator import ValidationFailure, validate_arguments

__version__ = "0.1.0"
__all__ = [
    "BridgeSettings",
    "CallToolRequest",
    "CallToolResult",
    "DereferenceError",
    "Diagnostic",
    "DispatchError",
    "DocumentLoadError",
    "OpenAPIToolsError",
    "Parameter",
    "PathResolutionError",
    "RequestBody",
    "RequestConstructionError",
    "RequestDispatcher",
    "SessionRegistry",
    "ToolDefinition",
    "ToolRegistry",
    "ToolServer",
    "ValidationFailure",
    "build_registry",
    "build_request",
    "extract_tools",
    "generate_operation_id",
    "translate_schema",
    "validate_arguments",
]
