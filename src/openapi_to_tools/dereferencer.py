"""
Reference dereferencer for OpenAPI descriptions.

This module resolves $ref references throughout a description, including:
- Local references (e.g. "#/components/schemas/Pet")
- File references (e.g. "./common.yaml#/components/schemas/Error")
- URL references (e.g. "https://example.com/common.yaml#/Error")

Every reference to the same target is replaced by the same object, so a
recursive schema becomes a cyclic object graph instead of an infinite tree.
References that cannot be resolved are left in place as ``{"$ref": ...}``
nodes for the schema translator to handle.
"""

from typing import Any, Dict, Optional, Set, Tuple, Union
from pathlib import Path
import copy
import json

import httpx
import yaml

from .diagnostics import Diagnostics
from .exceptions import DereferenceError


class PathDereferencer:
    """Resolves references in an OpenAPI description."""

    def __init__(
        self,
        spec: Dict[str, Any],
        base_path: Optional[Union[str, Path]] = None,
        diagnostics: Optional[Diagnostics] = None,
        strict: bool = False,
        timeout: float = 30.0,
    ):
        """Initialize the dereferencer.

        Args:
            spec: The OpenAPI specification dictionary. It is copied, never mutated.
            base_path: Base path for resolving relative file references. If not provided,
                      uses the current working directory.
            diagnostics: Sink for unresolved references when not strict
            strict: Raise DereferenceError instead of leaving a reference unresolved
            timeout: Timeout in seconds for URL references
        """
        self.spec = copy.deepcopy(spec)
        self.base_path = Path(base_path) if base_path else Path.cwd()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.strict = strict
        self.timeout = timeout
        self._documents: Dict[str, Any] = {"": self.spec}
        self._walked: Set[int] = set()

    def _resolve_json_pointer(self, obj: Any, pointer: str) -> Any:
        """Resolve a JSON pointer within an object.

        Args:
            obj: The object to traverse
            pointer: JSON pointer (e.g. "/components/schemas/Pet")

        Returns:
            The referenced value

        Raises:
            DereferenceError: If the pointer cannot be resolved
        """
        if not pointer:
            return obj
        if not pointer.startswith("/"):
            raise DereferenceError(f"Invalid JSON pointer: {pointer}")

        current = obj
        for part in pointer[1:].split("/"):
            # Unescape JSON pointer encoding
            part = part.replace("~1", "/").replace("~0", "~")

            try:
                if isinstance(current, list):
                    current = current[int(part)]
                else:
                    current = current[part]
            except (KeyError, TypeError, IndexError, ValueError):
                raise DereferenceError(f"Could not resolve pointer {pointer}")

        return current

    def _load_external_ref(self, ref_path: str) -> Any:
        """Load an external document from file or URL.

        Args:
            ref_path: Path or URL of the external document

        Returns:
            The loaded document

        Raises:
            DereferenceError: If the document cannot be loaded
        """
        if ref_path in self._documents:
            return self._documents[ref_path]

        try:
            if ref_path.startswith(("http://", "https://")):
                response = httpx.get(ref_path, timeout=self.timeout, follow_redirects=True)
                response.raise_for_status()
                content = response.text
            else:
                content = (self.base_path / ref_path).read_text()

            if ref_path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)
        except (OSError, httpx.HTTPError, ValueError, yaml.YAMLError) as e:
            raise DereferenceError(
                f"Failed to load external reference {ref_path}: {str(e)}"
            )

        self._documents[ref_path] = data
        return data

    def _lookup(self, ref: str, document: str) -> Tuple[Any, str]:
        """Find the target of a $ref string.

        Args:
            ref: The reference string (e.g. "#/components/schemas/Pet" or "./common.yaml#/Error")
            document: Key of the document the reference appears in

        Returns:
            The referenced value and the key of the document that holds it

        Raises:
            DereferenceError: If the reference cannot be resolved
        """
        if "#" in ref:
            file_path, pointer = ref.split("#", 1)
        else:
            file_path, pointer = ref, ""

        if file_path:
            target_document = file_path
            obj = self._load_external_ref(file_path)
        else:
            target_document = document
            obj = self._documents[document]

        return self._resolve_json_pointer(obj, pointer), target_document

    def _resolve_value(self, value: Any, document: str, chain: Tuple[str, ...] = ()) -> Any:
        """Return the dereferenced form of one value.

        Args:
            value: Any value found in the description
            document: Key of the document the value belongs to
            chain: References followed to reach this value without an
                intermediate object (guards against $ref-to-$ref loops)

        Returns:
            The shared target object for a resolvable reference, the value itself otherwise
        """
        if isinstance(value, dict) and isinstance(value.get("$ref"), str):
            ref = value["$ref"]
            if ref in chain:
                self._unresolved(ref, f"Reference loop through {ref}")
                return value

            try:
                target, target_document = self._lookup(ref, document)
            except DereferenceError as e:
                self._unresolved(ref, str(e))
                return value

            target = self._resolve_value(target, target_document, chain + (ref,))

            # Preserve any additional properties next to the reference
            extras = {k: v for k, v in value.items() if k != "$ref"}
            if extras and isinstance(target, dict):
                merged = dict(target)
                for key, extra in extras.items():
                    merged[key] = self._resolve_value(extra, document)
                return merged
            return target

        if isinstance(value, (dict, list)):
            self._walk(value, document)
        return value

    def _walk(self, obj: Any, document: str) -> None:
        """Replace references nested in obj, visiting each container once."""
        if id(obj) in self._walked:
            return
        self._walked.add(id(obj))

        if isinstance(obj, dict):
            for key, value in list(obj.items()):
                obj[key] = self._resolve_value(value, document)
        elif isinstance(obj, list):
            for index, value in enumerate(obj):
                obj[index] = self._resolve_value(value, document)

    def _unresolved(self, ref: str, reason: str) -> None:
        if self.strict:
            raise DereferenceError(reason)
        self.diagnostics.warn(f"Leaving reference '{ref}' unresolved: {reason}")

    def dereference(self) -> Dict[str, Any]:
        """Dereference all references in the OpenAPI specification.

        Returns:
            The specification with resolvable references replaced by their targets

        Raises:
            DereferenceError: If strict and any reference cannot be resolved
        """
        self._walked.clear()
        self._walk(self.spec, "")
        return self.spec
