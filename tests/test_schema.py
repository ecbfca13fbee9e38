"""Tests for the OpenAPI to JSON Schema translation."""

import json

from openapi_to_tools.diagnostics import Diagnostics
from openapi_to_tools.schema import open_object_schema, translate_schema


def test_direct_self_reference_terminates():
    """A property that points back at its own schema becomes an open object."""
    node = {"type": "object", "properties": {"name": {"type": "string"}}}
    node["properties"]["parent"] = node

    result = translate_schema(node)

    assert result["properties"]["name"] == {"type": "string"}
    assert result["properties"]["parent"] == open_object_schema("Circular reference")
    json.dumps(result)


def test_mutual_reference_terminates():
    """A cycle through an intermediate schema is broken where it closes."""
    employee = {"type": "object", "properties": {}}
    team = {"type": "object", "properties": {"lead": employee}}
    employee["properties"]["team"] = team

    result = translate_schema(employee)

    lead = result["properties"]["team"]["properties"]["lead"]
    assert lead["description"] == "Circular reference"
    assert lead["type"] == "object"


def test_array_item_self_reference_terminates():
    node = {"type": "object", "properties": {"id": {"type": "string"}}}
    node["properties"]["children"] = {"type": "array", "items": node}

    result = translate_schema(node)

    children = result["properties"]["children"]
    assert children["type"] == "array"
    assert "Circular reference" in children["items"]["description"]


def test_repeated_reference_is_not_a_cycle():
    """The same schema used twice on different branches is translated twice."""
    address = {"type": "object", "properties": {"city": {"type": "string"}}}
    node = {"type": "object", "properties": {"home": address, "work": address}}

    result = translate_schema(node)

    assert result["properties"]["home"]["properties"]["city"] == {"type": "string"}
    assert result["properties"]["work"]["properties"]["city"] == {"type": "string"}


def test_integer_maps_to_number():
    assert translate_schema({"type": "integer", "minimum": 1}) == {"type": "number", "minimum": 1}
    assert translate_schema({"type": ["integer", "string"]}) == {"type": ["number", "string"]}


def test_nullable_types():
    """Test handling of nullable types."""
    assert translate_schema({"type": "string", "nullable": True}) == {"type": ["string", "null"]}
    assert translate_schema({"nullable": True}) == {"type": "null"}
    assert translate_schema({"type": "integer", "nullable": True}) == {"type": ["number", "null"]}
    assert translate_schema({"type": ["string", "null"], "nullable": True}) == {
        "type": ["string", "null"]
    }
    assert translate_schema({"type": "string", "nullable": False}) == {"type": "string"}


def test_presentation_fields_are_stripped():
    schema = {
        "type": "string",
        "description": "A name",
        "example": "Ann",
        "xml": {"name": "n"},
        "externalDocs": {"url": "https://example.com"},
        "deprecated": True,
        "readOnly": True,
        "writeOnly": False,
        "enum": ["Ann", "Bob"],
    }

    assert translate_schema(schema) == {
        "type": "string",
        "description": "A name",
        "enum": ["Ann", "Bob"],
    }


def test_unresolved_reference_is_lenient():
    """An unresolved $ref produces an open object and a warning, not an error."""
    diagnostics = Diagnostics()

    result = translate_schema({"$ref": "#/components/schemas/Missing"}, set(), diagnostics)

    assert result["type"] == "object"
    assert result["additionalProperties"] is True
    assert result["description"] == "Unresolved reference: #/components/schemas/Missing"
    assert len(diagnostics) == 1
    assert "#/components/schemas/Missing" in diagnostics.messages()[0]


def test_combinators_are_translated():
    node = {"anyOf": [{"type": "integer"}, {"type": "string", "example": "x"}]}
    node["anyOf"].append(node)

    result = translate_schema(node)

    assert result["anyOf"][0] == {"type": "number"}
    assert result["anyOf"][1] == {"type": "string"}
    assert result["anyOf"][2]["description"] == "Circular reference"


def test_visited_set_is_restored():
    """Translation leaves the caller's visited set as it found it."""
    visited = set()
    node = {"type": "object", "properties": {"a": {"type": "string"}}}

    translate_schema(node, visited)

    assert visited == set()


def test_boolean_schemas_pass_through():
    assert translate_schema(True) is True
    assert translate_schema({"type": "object", "properties": {"any": True}}) == {
        "type": "object",
        "properties": {"any": True},
    }


def test_malformed_required_is_dropped_with_warning():
    """Swagger 2 style ``required: true`` on a property is not a list of names."""
    diagnostics = Diagnostics()
    node = {"type": "object", "properties": {"owner": {"type": "object", "required": True}}}

    result = translate_schema(node, diagnostics=diagnostics)

    assert result["properties"]["owner"] == {"type": "object"}
    assert len(diagnostics) == 1
    assert "required" in diagnostics.messages()[0]


def test_boolean_exclusive_bounds_become_numeric():
    node = {"type": "integer", "minimum": 0, "exclusiveMinimum": True, "maximum": 10, "exclusiveMaximum": False}

    assert translate_schema(node) == {"type": "number", "exclusiveMinimum": 0, "maximum": 10}


def test_tuple_items_become_prefix_items():
    node = {"type": "array", "items": [{"type": "string"}, {"type": "integer"}]}

    assert translate_schema(node) == {
        "type": "array",
        "prefixItems": [{"type": "string"}, {"type": "number"}],
    }
