"""
Validation of tool call arguments against a compiled input contract.

Contracts are checked with ``jsonschema`` (draft 2020-12). Declared defaults
are filled in before validation, so a required property with a default is
satisfied when omitted. Validator errors are reported as violations with a
dotted argument path, a kind and a message.
"""

import copy
import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError, ValidationError
from pydantic import BaseModel, Field

from .models import ToolDefinition

logger = logging.getLogger(__name__)

ValidatedArguments = Dict[str, Any]


class Violation(BaseModel):
    """One way in which an argument breaks the contract."""

    path: str
    kind: str
    message: str


class ValidationFailure(BaseModel):
    """All violations found while validating one call's arguments."""

    violations: List[Violation] = Field(default_factory=list)

    def message(self, tool_name: str) -> str:
        details = ", ".join(f"{v.path} ({v.kind}): {v.message}" for v in self.violations)
        return f"Invalid arguments for tool '{tool_name}': {details}"


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def schema_error(schema: Any) -> Optional[str]:
    """Return why a schema is not valid draft 2020-12 JSON Schema, or None."""
    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as e:
        return e.message
    return None


def compile_validator(tool: ToolDefinition) -> Draft202012Validator:
    """Build the validator for a tool's input contract.

    A contract that is not valid JSON Schema gets a validator accepting any
    arguments.
    """
    problem = schema_error(tool.input_schema)
    if problem is not None:
        logger.error(
            "Cannot build a validator for tool '%s', arguments will not be checked: %s",
            tool.name,
            problem,
        )
        return Draft202012Validator(True)
    return Draft202012Validator(tool.input_schema)


def fill_defaults(value: Any, schema: Any) -> Any:
    """Return a copy of value with declared property defaults filled in."""
    if not isinstance(schema, dict):
        return value

    if isinstance(value, dict):
        result = dict(value)
        properties = schema.get("properties")
        if isinstance(properties, dict):
            for name, prop_schema in properties.items():
                if name in result:
                    result[name] = fill_defaults(result[name], prop_schema)
                elif isinstance(prop_schema, dict) and "default" in prop_schema:
                    result[name] = copy.deepcopy(prop_schema["default"])
        return result

    if isinstance(value, list):
        items = schema.get("items")
        prefix = schema.get("prefixItems")
        prefix = prefix if isinstance(prefix, list) else []
        return [
            fill_defaults(item, prefix[i] if i < len(prefix) else items)
            for i, item in enumerate(value)
        ]

    return value


def _dotted(path: List[Any]) -> str:
    return ".".join(str(part) for part in path)


def _unrecognized_keys(error: ValidationError) -> List[str]:
    properties = error.schema.get("properties") or {}
    patterns = error.schema.get("patternProperties") or {}
    return [
        key
        for key in error.instance
        if key not in properties and not any(re.search(pattern, key) for pattern in patterns)
    ]


def _violations(errors: Iterator[ValidationError]) -> List[Violation]:
    violations: List[Violation] = []
    # jsonschema reports one error per missing name, in declaration order
    missing: Dict[Tuple[Any, ...], Iterator[str]] = {}

    for error in errors:
        path = list(error.absolute_path)

        if error.validator == "required":
            key = (tuple(path), id(error.schema))
            if key not in missing:
                missing[key] = iter(
                    [name for name in error.validator_value if name not in error.instance]
                )
            name = next(missing[key], None)
            if name is not None:
                path.append(name)
            violations.append(Violation(path=_dotted(path), kind="required", message="Required"))

        elif error.validator == "type":
            allowed = error.validator_value
            allowed = allowed if isinstance(allowed, list) else [allowed]
            violations.append(
                Violation(
                    path=_dotted(path),
                    kind="invalid_type",
                    message=f"Expected {' | '.join(str(t) for t in allowed)}, "
                    f"received {_json_type(error.instance)}",
                )
            )

        elif error.validator == "enum":
            expected = " | ".join(repr(option) for option in error.validator_value)
            violations.append(
                Violation(
                    path=_dotted(path),
                    kind="invalid_enum_value",
                    message=f"Invalid enum value. Expected {expected}, received {error.instance!r}",
                )
            )

        elif error.validator == "additionalProperties" and error.validator_value is False:
            keys = ", ".join(f"'{key}'" for key in _unrecognized_keys(error))
            violations.append(
                Violation(
                    path=_dotted(path),
                    kind="unrecognized_keys",
                    message=f"Unrecognized key(s) in object: {keys}",
                )
            )

        else:
            violations.append(
                Violation(
                    path=_dotted(path),
                    kind=str(error.validator or "not_allowed"),
                    message=error.message,
                )
            )

    return violations


def validate_arguments(
    tool: ToolDefinition,
    arguments: Any,
    validator: Optional[Draft202012Validator] = None,
) -> Union[ValidatedArguments, ValidationFailure]:
    """Validate raw call arguments against a tool's input contract.

    Args:
        tool: The tool being called
        arguments: Caller-supplied arguments; anything but a mapping counts as ``{}``
        validator: A validator from ``compile_validator``; built on the fly when omitted

    Returns:
        The validated arguments with declared defaults filled in, or a
        ValidationFailure listing every violation.
    """
    if not isinstance(arguments, dict):
        arguments = {}

    validated = fill_defaults(arguments, tool.input_schema)

    if validator is None:
        validator = compile_validator(tool)

    violations = _violations(validator.iter_errors(validated))
    if violations:
        return ValidationFailure(violations=violations)
    return validated
