"""Tests for settings."""

import pytest
from pydantic import ValidationError

from openapi_to_tools.config import BridgeSettings


def test_defaults():
    settings = BridgeSettings()

    assert settings.base_url is None
    assert settings.timeout == 30.0
    assert settings.max_error_body_length == 200
    assert settings.missing_identifier_policy == "skip"
    assert settings.dereference is True


def test_from_env():
    environ = {
        "OPENAPI_TOOLS_BASE_URL": "https://api.example.com",
        "OPENAPI_TOOLS_TIMEOUT": "2.5",
        "OPENAPI_TOOLS_MAX_ERROR_BODY_LENGTH": "50",
        "OPENAPI_TOOLS_DEREFERENCE": "false",
        "OPENAPI_TOOLS_EXCLUDE_OPERATION_IDS": "a, b",
        "UNRELATED": "x",
    }

    settings = BridgeSettings.from_env(environ)

    assert settings.base_url == "https://api.example.com"
    assert settings.timeout == 2.5
    assert settings.max_error_body_length == 50
    assert settings.dereference is False
    assert settings.exclude_operation_ids == ["a", "b"]


def test_overrides_win_over_env():
    environ = {"OPENAPI_TOOLS_BASE_URL": "https://env.example.com"}

    settings = BridgeSettings.from_env(environ, base_url="https://cli.example.com", timeout=None)

    assert settings.base_url == "https://cli.example.com"
    assert settings.timeout == 30.0


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        BridgeSettings(timeout=0)
    with pytest.raises(ValidationError):
        BridgeSettings(missing_identifier_policy="guess")
