class OpenAPIToolsError(Exception):
    """Base exception for OpenAPI tool compilation and dispatch errors."""
    pass

class DocumentLoadError(OpenAPIToolsError):
    """Raised when the API description cannot be read or parsed."""
    pass

class DereferenceError(OpenAPIToolsError):
    """Raised when a reference cannot be resolved."""
    pass

class DispatchError(OpenAPIToolsError):
    """Raised when validated arguments cannot be turned into an HTTP request."""
    pass

class PathResolutionError(DispatchError):
    """Raised when a path placeholder is still unresolved after substitution."""

    def __init__(self, tool_name: str, url_path: str):
        self.tool_name = tool_name
        self.url_path = url_path
        super().__init__(
            f"Validation passed but failed to resolve path parameters in URL: {url_path}. "
            "Check schema/validation logic."
        )

class RequestConstructionError(DispatchError):
    """Raised when the outgoing request could not be constructed."""
    pass
