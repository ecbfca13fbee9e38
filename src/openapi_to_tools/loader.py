"""
Loading of API descriptions from dicts, strings, files and URLs.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx
import yaml

from .exceptions import DocumentLoadError

logger = logging.getLogger(__name__)

DocumentSource = Union[str, Path, Dict[str, Any]]


def _parse_content(content: Union[str, bytes], origin: str) -> Dict[str, Any]:
    """Parse JSON or YAML text into a document.

    Args:
        content: Raw document text
        origin: Where the text came from (for error messages)

    Returns:
        dict: The parsed document

    Raises:
        DocumentLoadError: If the text is neither JSON nor YAML, or is not a mapping
    """
    try:
        # Try JSON first
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError):
        try:
            # Try YAML if JSON fails
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise DocumentLoadError(f"Failed to parse specification from {origin}: {e}")

    if not isinstance(data, dict):
        raise DocumentLoadError(f"Specification from {origin} must be a mapping")
    return data


def _fetch_url(url: str, timeout: float) -> bytes:
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise DocumentLoadError(f"Failed to fetch specification from {url}: {e}")
    return response.content


def load_document(source: DocumentSource, timeout: float = 30.0) -> Dict[str, Any]:
    """Load an API description.

    Args:
        source: A parsed document, a ``Path``, an ``http(s)`` URL, a path to a
            file, or the JSON/YAML text itself
        timeout: Timeout in seconds when fetching a URL

    Returns:
        dict: The parsed API description

    Raises:
        DocumentLoadError: If the description cannot be read or parsed
    """
    if isinstance(source, dict):
        return source

    if isinstance(source, Path):
        try:
            content = source.read_text()
        except OSError as e:
            raise DocumentLoadError(f"Failed to read specification file: {e}")
        return _parse_content(content, str(source))

    if not isinstance(source, str):
        raise DocumentLoadError(
            f"Unsupported specification source type: {type(source).__name__}"
        )

    if source.startswith(("http://", "https://")):
        logger.info("Loading specification from URL: %s", source)
        return _parse_content(_fetch_url(source, timeout), source)

    path = source_file(source)
    if path is not None:
        return load_document(path, timeout=timeout)

    return _parse_content(source, "<string>")


def source_file(source: DocumentSource) -> Optional[Path]:
    """Return the file a source refers to, or None for inline text, URLs and dicts."""
    if isinstance(source, Path):
        return source if source.is_file() else None
    if not isinstance(source, str) or source.startswith(("http://", "https://")):
        return None

    stripped = source.strip()
    if not stripped or "\n" in stripped or stripped.startswith("{"):
        return None
    try:
        path = Path(stripped)
        return path if path.is_file() else None
    except (OSError, ValueError):
        return None
