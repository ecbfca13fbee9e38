"""
Assembly of a tool's input contract from parameters and request body.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from .diagnostics import Diagnostics
from .models import Parameter, RequestBody, find_json_media_type
from .schema import translate_schema

REQUEST_BODY_PROPERTY = "requestBody"


def _convert_parameters(
    parameters: Sequence[Parameter],
    properties: Dict[str, Any],
    required: List[str],
    diagnostics: Diagnostics,
    location: Optional[str],
) -> None:
    for param in parameters:
        if param.param_schema is None:
            diagnostics.warn(
                f"Skipping {param.location} parameter '{param.name}': no schema", location
            )
            continue

        param_schema = translate_schema(param.param_schema, set(), diagnostics)
        if isinstance(param_schema, dict):
            param_schema = dict(param_schema)
            description = param.description or param_schema.get("description")
            if description:
                param_schema["description"] = description
        properties[param.name] = param_schema
        if param.required and param.name not in required:
            required.append(param.name)


def _convert_request_body(
    request_body: RequestBody,
    properties: Dict[str, Any],
    required: List[str],
    diagnostics: Diagnostics,
) -> None:
    json_type = find_json_media_type(request_body.content)
    media = request_body.content.get(json_type) if json_type else None
    json_schema = media.get("schema") if isinstance(media, dict) else None

    if json_schema is not None:
        body_schema = translate_schema(json_schema, set(), diagnostics)
        if isinstance(body_schema, dict):
            body_schema = dict(body_schema)
            body_schema["description"] = (
                request_body.description
                or body_schema.get("description")
                or "The JSON request body."
            )
        properties[REQUEST_BODY_PROPERTY] = body_schema
    else:
        content_type = request_body.content_type
        properties[REQUEST_BODY_PROPERTY] = {
            "type": "string",
            "description": request_body.description
            or f"Request body (content type: {content_type})",
        }

    if request_body.required:
        required.append(REQUEST_BODY_PROPERTY)


def assemble_input_schema(
    parameters: Sequence[Parameter],
    request_body: Optional[RequestBody] = None,
    diagnostics: Optional[Diagnostics] = None,
    location: Optional[str] = None,
) -> Tuple[Dict[str, Any], List[str]]:
    """Merge an operation's parameters and request body into one object schema.

    Args:
        parameters: The operation's parameters, path-level ones already merged in
        request_body: The operation's request body, if any
        diagnostics: Sink for skipped parameters and unresolved references
        location: Operation label used in diagnostics (e.g. "GET /users/{id}")

    Returns:
        tuple: (input_schema, required_names); the schema always has type
        "object" and a "required" list, possibly empty
    """
    if diagnostics is None:
        diagnostics = Diagnostics()

    properties: Dict[str, Any] = {}
    required: List[str] = []

    _convert_parameters(parameters, properties, required, diagnostics, location)
    if request_body is not None:
        if REQUEST_BODY_PROPERTY in properties:
            diagnostics.warn(
                f"Parameter '{REQUEST_BODY_PROPERTY}' is shadowed by the request body",
                location,
            )
            if REQUEST_BODY_PROPERTY in required:
                required.remove(REQUEST_BODY_PROPERTY)
        _convert_request_body(request_body, properties, required, diagnostics)

    input_schema = {"type": "object", "properties": properties, "required": required}
    return input_schema, required
