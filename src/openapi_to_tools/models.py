"""
Data models for compiled tools and call results.
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class Parameter(BaseModel):
    """Represents an operation parameter in the OpenAPI format."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    location: Literal["path", "query", "header", "cookie"] = Field(alias="in")
    required: bool = False
    param_schema: Optional[Any] = Field(default=None, alias="schema")
    description: Optional[str] = None


class RequestBody(BaseModel):
    """Represents an operation request body in the OpenAPI format."""

    model_config = ConfigDict(frozen=True)

    required: bool = False
    description: Optional[str] = None
    content: Dict[str, Any] = Field(default_factory=dict)

    @property
    def content_type(self) -> str:
        """The media type sent on the wire, JSON unless only another type is declared."""
        json_type = find_json_media_type(self.content)
        if json_type:
            return json_type
        return next(iter(self.content), "application/json")


class ToolDefinition(BaseModel):
    """A compiled tool: its discovery contract plus the metadata needed for dispatch."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    input_schema: Dict[str, Any]
    operation_id: str
    method: str
    path: str
    parameters: List[Parameter] = Field(default_factory=list)
    request_body: Optional[RequestBody] = None

    def to_listing(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def parameters_in(self, location: str) -> List[Parameter]:
        return [p for p in self.parameters if p.location == location]


class Diagnostic(BaseModel):
    """A non-fatal issue found while compiling an API description."""

    level: Literal["warning", "error"] = "warning"
    message: str
    location: Optional[str] = None

    def __str__(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class CallToolRequest(BaseModel):
    """Represents an incoming tool call."""

    name: str
    arguments: Optional[Any] = None


class CallToolResult(BaseModel):
    """The uniform response shape of every tool call."""

    content: List[TextContent]
    is_error: bool = False

    @classmethod
    def from_text(cls, text: str, is_error: bool = False) -> "CallToolResult":
        return cls(content=[TextContent(text=text)], is_error=is_error)

    @property
    def text(self) -> str:
        return self.content[0].text if self.content else ""


def find_json_media_type(content: Dict[str, Any]) -> Optional[str]:
    """Pick the JSON representation from a content map.

    Args:
        content: Mapping of media type to media type object

    Returns:
        ``application/json`` if declared, otherwise the first ``*/json`` or
        ``*+json`` media type, otherwise None
    """
    if "application/json" in content:
        return "application/json"
    for media_type in content:
        essence = media_type.split(";", 1)[0].strip().lower()
        if essence.endswith("/json") or essence.endswith("+json"):
            return media_type
    return None
