"""
Extraction of tool definitions from the operations of an API description.
"""

import re
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from pydantic import ValidationError

from .config import BridgeSettings
from .contract import assemble_input_schema
from .diagnostics import Diagnostics
from .models import Parameter, RequestBody, ToolDefinition
from .validator import schema_error

# Canonical method order; tools are named in this order within a path.
HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

MAX_NAME_LENGTH = 64

_WORD = re.compile(r"[A-Za-z0-9]+")
_TEMPLATE_SEGMENT = re.compile(r"\{([^}]*)\}")
_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")

ToolFilter = Callable[[ToolDefinition], bool]


def generate_operation_id(method: str, path: str) -> str:
    """
    Generate an operation identifier from HTTP method and path.

    Literal segments become capitalized words and a templated segment such as
    ``{id}`` becomes ``ById``, so ``GET /users/{id}`` gives ``getUsersById``.

    Args:
        method: HTTP method (get, post, etc.)
        path: API endpoint path template

    Returns:
        str: Generated identifier, or an empty string if the path has no usable words
    """
    stripped = path.strip("/")
    if not stripped:
        return f"{method.lower()}Root"

    words: List[str] = []
    for segment in stripped.split("/"):
        template = _TEMPLATE_SEGMENT.fullmatch(segment)
        if template:
            tokens = _WORD.findall(template.group(1))
            if tokens:
                words.append("By")
                words.extend(tokens)
        else:
            words.extend(_WORD.findall(segment))

    if not words:
        return ""
    return method.lower() + "".join(w[:1].upper() + w[1:] for w in words)


def sanitize_tool_name(name: str) -> str:
    return _INVALID_NAME_CHARS.sub("_", name.strip())[:MAX_NAME_LENGTH]


def _unique_name(base_name: str, used_names: Set[str]) -> str:
    final_name = base_name
    counter = 1
    while final_name in used_names:
        suffix = f"_{counter}"
        final_name = base_name[: MAX_NAME_LENGTH - len(suffix)] + suffix
        counter += 1
    used_names.add(final_name)
    return final_name


def determine_base_url(
    document: Dict[str, Any],
    override: Optional[str] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> Optional[str]:
    """
    Determine the base URL requests are sent to.

    Args:
        document: The API description
        override: Explicit base URL, which always wins
        diagnostics: Sink for the multiple-servers warning

    Returns:
        Optional[str]: Base URL without a trailing slash, or None if nothing is declared
    """
    if override:
        return override.rstrip("/")

    servers = [
        s for s in (document.get("servers") or [])
        if isinstance(s, dict) and s.get("url")
    ]
    if not servers:
        return None

    server = servers[0]
    if len(servers) > 1 and diagnostics is not None:
        diagnostics.warn(
            f"Multiple servers found. Using first: \"{server['url']}\". "
            "Set a base URL to override."
        )

    url = str(server["url"])
    for name, variable in (server.get("variables") or {}).items():
        if isinstance(variable, dict) and "default" in variable:
            url = url.replace(f"{{{name}}}", str(variable["default"]))
    return url.rstrip("/")


def _iter_operations(
    document: Dict[str, Any], diagnostics: Diagnostics
) -> Iterator[Tuple[str, str, Dict[str, Any], Dict[str, Any]]]:
    paths = document.get("paths") or {}
    if not isinstance(paths, dict):
        diagnostics.warn("Ignoring 'paths': not a mapping")
        return

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        if "$ref" in path_item:
            diagnostics.warn(f"Skipping path with unresolved $ref '{path_item['$ref']}'", path)
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if isinstance(operation, dict):
                yield path, method, path_item, operation


def _convert_parameter(raw: Any, diagnostics: Diagnostics, location: str) -> Optional[Parameter]:
    if not isinstance(raw, dict):
        diagnostics.warn("Skipping malformed parameter", location)
        return None
    if "$ref" in raw:
        diagnostics.warn(f"Skipping parameter with unresolved $ref '{raw['$ref']}'", location)
        return None
    if not raw.get("name"):
        diagnostics.warn("Skipping parameter without a name", location)
        return None

    data = dict(raw)
    if data.get("schema") is None and isinstance(data.get("content"), dict):
        # Parameters may carry their schema in a single-entry content map
        for media in data["content"].values():
            if isinstance(media, dict) and media.get("schema") is not None:
                data["schema"] = media["schema"]
                break

    try:
        return Parameter.model_validate(data)
    except ValidationError as e:
        diagnostics.warn(f"Skipping invalid parameter '{raw.get('name')}': {e.errors()[0]['msg']}", location)
        return None


def _collect_parameters(
    path_item: Dict[str, Any],
    operation: Dict[str, Any],
    diagnostics: Diagnostics,
    location: str,
) -> List[Parameter]:
    """Merge path-level and operation-level parameters.

    An operation-level parameter replaces a path-level one with the same name
    and location.
    """
    merged: Dict[Tuple[str, str], Parameter] = {}
    for raw_list in (path_item.get("parameters"), operation.get("parameters")):
        if not isinstance(raw_list, list):
            continue
        for raw in raw_list:
            param = _convert_parameter(raw, diagnostics, location)
            if param is not None:
                merged[(param.name, param.location)] = param
    return list(merged.values())


def _convert_request_body(
    operation: Dict[str, Any], diagnostics: Diagnostics, location: str
) -> Optional[RequestBody]:
    raw = operation.get("requestBody")
    if raw is None:
        return None
    if not isinstance(raw, dict):
        diagnostics.warn("Ignoring malformed requestBody", location)
        return None
    if "$ref" in raw:
        diagnostics.warn(f"Unresolved requestBody $ref '{raw['$ref']}'", location)
        return RequestBody()

    content = raw.get("content")
    return RequestBody(
        required=bool(raw.get("required", False)),
        description=raw.get("description"),
        content=content if isinstance(content, dict) else {},
    )


def extract_tools(
    document: Dict[str, Any],
    settings: Optional[BridgeSettings] = None,
    diagnostics: Optional[Diagnostics] = None,
    filter_fn: Optional[ToolFilter] = None,
) -> List[ToolDefinition]:
    """
    Build one tool definition per operation of the API description.

    Args:
        document: The (usually dereferenced) API description
        settings: Naming policy and exclusion settings
        diagnostics: Sink for data-quality warnings
        filter_fn: Optional predicate; tools for which it returns False are dropped

    Returns:
        List[ToolDefinition]: Tools in document order
    """
    settings = settings or BridgeSettings()
    if diagnostics is None:
        diagnostics = Diagnostics()

    tools: List[ToolDefinition] = []
    used_names: Set[str] = set()
    unnamed_counter = 0

    for path, method, path_item, operation in _iter_operations(document, diagnostics):
        location = f"{method.upper()} {path}"

        declared = operation.get("operationId")
        operation_id = declared.strip() if isinstance(declared, str) else ""
        if not operation_id and settings.synthesize_operation_ids:
            operation_id = generate_operation_id(method, path)
        if not operation_id:
            if settings.missing_identifier_policy == "skip":
                diagnostics.warn("Skipping operation: missing operationId.", location)
                continue
            unnamed_counter += 1
            operation_id = f"operation_{unnamed_counter}"
            diagnostics.warn(f"Missing operationId, using '{operation_id}'.", location)

        name = _unique_name(sanitize_tool_name(operation_id), used_names)
        description = (
            operation.get("description")
            or operation.get("summary")
            or f"Executes {method.upper()} {path}"
        )

        parameters = _collect_parameters(path_item, operation, diagnostics, location)
        request_body = _convert_request_body(operation, diagnostics, location)
        input_schema, _ = assemble_input_schema(parameters, request_body, diagnostics, location)
        problem = schema_error(input_schema)
        if problem is not None:
            diagnostics.warn(
                f"Input schema is not valid JSON Schema, arguments will not be checked: {problem}",
                location,
            )

        tools.append(
            ToolDefinition(
                name=name,
                description=str(description),
                input_schema=input_schema,
                operation_id=operation_id,
                method=method,
                path=path,
                parameters=parameters,
                request_body=request_body,
            )
        )

    if settings.exclude_operation_ids:
        excluded = set(settings.exclude_operation_ids)
        tools = [t for t in tools if t.operation_id not in excluded]
    if filter_fn is not None:
        tools = [t for t in tools if filter_fn(t)]

    return tools
