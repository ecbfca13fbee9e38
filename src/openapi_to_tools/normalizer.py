"""
Normalization of call outcomes into the uniform tool result shape.
"""

import json
from typing import Any

import httpx

from .exceptions import RequestConstructionError
from .models import CallToolResult
from .validator import ValidationFailure

DEFAULT_MAX_ERROR_BODY_LENGTH = 200

_SETUP_ERRORS = (RequestConstructionError, httpx.InvalidURL, httpx.UnsupportedProtocol)


def _is_json_response(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "").lower()
    return "application/json" in content_type or "+json" in content_type


def _response_data(response: httpx.Response) -> Any:
    """Decode a response body: parsed JSON when declared and valid, else text."""
    if not response.content:
        return None
    if _is_json_response(response):
        try:
            return response.json()
        except ValueError:
            pass
    return response.text


def _truncate(text: str, max_length: int) -> str:
    if len(text) > max_length:
        return f"{text[:max_length]}..."
    return text


def normalize_response(response: httpx.Response) -> CallToolResult:
    """
    Render a successful response as text.

    Args:
        response: A read response

    Returns:
        CallToolResult: ``API Response (Status: <code>):`` followed by the body
    """
    data = _response_data(response)
    if isinstance(data, (dict, list)) and _is_json_response(response):
        text = json.dumps(data, indent=2, ensure_ascii=False)
    elif isinstance(data, str):
        text = data
    elif data is not None:
        text = str(data)
    else:
        text = f"(Status: {response.status_code} - No body content)"
    return CallToolResult.from_text(f"API Response (Status: {response.status_code}):\n{text}")


def format_api_error(
    error: BaseException, max_length: int = DEFAULT_MAX_ERROR_BODY_LENGTH
) -> str:
    """
    Describe a failed call in one human-readable line.

    Args:
        error: The exception raised while dispatching
        max_length: Number of response-body characters kept in the message

    Returns:
        str: The error message
    """
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        reason = response.reason_phrase or "Status text not available"
        message = f"API Error: Status {response.status_code} ({reason}). "
        data = _response_data(response)
        if isinstance(data, str):
            message += f"Response: {_truncate(data, max_length)}"
        elif data is not None:
            try:
                rendered = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
            except (TypeError, ValueError):
                return message + "Response: [Could not serialize response data]"
            message += f"Response: {_truncate(rendered, max_length)}"
        else:
            message += "No response body received."
        return message

    if isinstance(error, _SETUP_ERRORS):
        return f"API Request Setup Error: {error}"

    if isinstance(error, httpx.RequestError):
        return (
            "API Network Error: No response received from the server. "
            f"Check network connectivity or server availability. (Code: {type(error).__name__})"
        )

    return str(error) or type(error).__name__


def normalize_error(
    error: BaseException, max_length: int = DEFAULT_MAX_ERROR_BODY_LENGTH
) -> CallToolResult:
    return CallToolResult.from_text(format_api_error(error, max_length), is_error=True)


def unknown_tool(name: str) -> CallToolResult:
    return CallToolResult.from_text(f"Error: Unknown tool requested: {name}", is_error=True)


def validation_failed(name: str, failure: ValidationFailure) -> CallToolResult:
    return CallToolResult.from_text(failure.message(name), is_error=True)
