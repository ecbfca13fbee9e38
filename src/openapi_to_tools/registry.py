"""
The immutable tool registry and the build pipeline that produces it.
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from .config import BridgeSettings
from .dereferencer import PathDereferencer
from .diagnostics import Diagnostics
from .extractor import ToolFilter, determine_base_url, extract_tools
from .loader import DocumentSource, load_document, source_file
from .models import Diagnostic, ToolDefinition

logger = logging.getLogger(__name__)


class ToolRegistry(Mapping[str, ToolDefinition]):
    """Read-only mapping from tool name to tool definition."""

    def __init__(
        self,
        tools: Iterable[ToolDefinition],
        base_url: Optional[str] = None,
        diagnostics: Iterable[Diagnostic] = (),
    ):
        entries: Dict[str, ToolDefinition] = {}
        for tool in tools:
            if tool.name in entries:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            entries[tool.name] = tool
        self._tools = MappingProxyType(entries)
        self._base_url = base_url
        self._diagnostics: Tuple[Diagnostic, ...] = tuple(diagnostics)

    def __getitem__(self, name: str) -> ToolDefinition:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def base_url(self) -> Optional[str]:
        return self._base_url

    @property
    def diagnostics(self) -> Tuple[Diagnostic, ...]:
        return self._diagnostics

    def listings(self) -> List[Dict[str, Any]]:
        """Discovery triples ``{name, description, inputSchema}`` in build order."""
        return [tool.to_listing() for tool in self._tools.values()]


def build_registry(
    source: DocumentSource,
    settings: Optional[BridgeSettings] = None,
    filter_fn: Optional[ToolFilter] = None,
    base_path: Optional[Union[str, Path]] = None,
) -> ToolRegistry:
    """Compile an API description into a tool registry.

    Args:
        source: The API description, or where to load it from
        settings: Build settings; defaults are used when omitted
        filter_fn: Optional predicate to drop tools after extraction
        base_path: Directory for relative file references; defaults to the
            description's directory when loaded from a file

    Returns:
        ToolRegistry: The compiled registry, with its build diagnostics

    Raises:
        DocumentLoadError: If the description cannot be loaded or parsed
    """
    settings = settings or BridgeSettings()
    diagnostics = Diagnostics()

    document = load_document(source, timeout=settings.timeout)
    if base_path is None:
        source_path = source_file(source)
        if source_path is not None:
            base_path = source_path.parent

    version = str(document.get("openapi", ""))
    if not version.startswith("3."):
        diagnostics.warn(f"Expected an OpenAPI 3.x description, got version '{version}'")

    if settings.dereference:
        document = PathDereferencer(
            document, base_path=base_path, diagnostics=diagnostics, timeout=settings.timeout
        ).dereference()

    base_url = determine_base_url(document, settings.base_url, diagnostics)
    tools = extract_tools(document, settings, diagnostics, filter_fn=filter_fn)
    logger.info("Built %d tools (base URL: %s)", len(tools), base_url or "<relative>")

    return ToolRegistry(tools, base_url=base_url, diagnostics=diagnostics.entries)
