"""
Translation of OpenAPI schema objects into JSON Schema input contracts.
"""

from typing import Any, Dict, List, Optional, Set, Union

from .diagnostics import Diagnostics

# Presentation-only keys with no validation meaning.
STRIPPED_KEYS = frozenset(
    [
        "nullable",
        "example",
        "examples",
        "xml",
        "externalDocs",
        "deprecated",
        "readOnly",
        "writeOnly",
        "discriminator",
    ]
)

# Keywords holding sub-schemas; all are translated so the output stays finite.
SUBSCHEMA_KEYS = ("not", "contains", "propertyNames", "if", "then", "else")
SUBSCHEMA_LIST_KEYS = ("allOf", "anyOf", "oneOf", "prefixItems")
SUBSCHEMA_MAP_KEYS = ("properties", "patternProperties", "$defs", "definitions")

TargetSchema = Union[Dict[str, Any], bool]


def open_object_schema(description: str) -> Dict[str, Any]:
    """A schema accepting an object of any shape."""
    return {"type": "object", "additionalProperties": True, "description": description}


def _map_type(schema_type: Any) -> Any:
    if schema_type == "integer":
        return "number"
    if isinstance(schema_type, list):
        mapped: List[Any] = []
        for item in schema_type:
            item = "number" if item == "integer" else item
            if item not in mapped:
                mapped.append(item)
        return mapped
    return schema_type


def _add_null(schema_type: Any) -> Any:
    if isinstance(schema_type, list):
        return schema_type if "null" in schema_type else schema_type + ["null"]
    if isinstance(schema_type, str):
        return [schema_type, "null"]
    return "null"


def translate_schema(
    node: Any,
    visited: Optional[Set[int]] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> TargetSchema:
    """Translate one OpenAPI schema node into a JSON Schema node.

    Args:
        node: OpenAPI schema object, possibly an unresolved ``$ref`` or part
            of a cyclic graph
        visited: Identities of the nodes being translated on the current
            recursion path
        diagnostics: Sink for unresolved reference warnings

    Returns:
        The translated schema; always a finite tree
    """
    if visited is None:
        visited = set()
    if diagnostics is None:
        diagnostics = Diagnostics()

    if isinstance(node, bool):
        return node
    if not isinstance(node, dict):
        diagnostics.warn(f"Ignoring non-object schema of type {type(node).__name__}")
        return {}

    if "$ref" in node:
        ref = node["$ref"]
        diagnostics.warn(f"Unresolved $ref '{ref}'. Schema may be incomplete.")
        return open_object_schema(f"Unresolved reference: {ref}")

    if id(node) in visited:
        return open_object_schema("Circular reference")

    visited.add(id(node))
    try:
        return _translate_object(node, visited, diagnostics)
    finally:
        visited.discard(id(node))


def _translate_object(
    node: Dict[str, Any], visited: Set[int], diagnostics: Diagnostics
) -> Dict[str, Any]:
    translated: Dict[str, Any] = {
        key: value for key, value in node.items() if key not in STRIPPED_KEYS
    }

    if "type" in translated:
        translated["type"] = _map_type(translated["type"])
    if node.get("nullable") is True:
        translated["type"] = _add_null(translated.get("type"))

    for key in SUBSCHEMA_MAP_KEYS:
        if isinstance(node.get(key), dict):
            translated[key] = {
                name: translate_schema(sub, visited, diagnostics)
                for name, sub in node[key].items()
            }

    required = node.get("required")
    if required is not None and not (
        isinstance(required, list) and all(isinstance(name, str) for name in required)
    ):
        diagnostics.warn(f"Ignoring malformed 'required' in schema: {required!r}")
        del translated["required"]

    for key in ("exclusiveMinimum", "exclusiveMaximum"):
        # Boolean form qualifies minimum/maximum
        if isinstance(node.get(key), bool):
            bound = "minimum" if key == "exclusiveMinimum" else "maximum"
            del translated[key]
            if node[key] and bound in translated:
                translated[key] = translated.pop(bound)

    items = node.get("items")
    if isinstance(items, (dict, bool)):
        translated["items"] = translate_schema(items, visited, diagnostics)
    elif isinstance(items, list):
        # Tuple form is spelled prefixItems in draft 2020-12
        del translated["items"]
        translated["prefixItems"] = [translate_schema(i, visited, diagnostics) for i in items]

    additional = node.get("additionalProperties")
    if isinstance(additional, dict):
        translated["additionalProperties"] = translate_schema(additional, visited, diagnostics)

    for key in SUBSCHEMA_LIST_KEYS:
        if isinstance(node.get(key), list):
            translated[key] = [translate_schema(s, visited, diagnostics) for s in node[key]]

    for key in SUBSCHEMA_KEYS:
        if isinstance(node.get(key), dict):
            translated[key] = translate_schema(node[key], visited, diagnostics)

    return translated
