"""
Runtime settings for building and serving tools.
"""

import os
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "OPENAPI_TOOLS_"


class BridgeSettings(BaseModel):
    """Settings shared by the compiler and the dispatcher."""

    base_url: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0)
    max_error_body_length: int = Field(default=200, ge=0)
    synthesize_operation_ids: bool = True
    missing_identifier_policy: Literal["skip", "counter"] = "skip"
    dereference: bool = True
    exclude_operation_ids: List[str] = Field(default_factory=list)

    @field_validator("exclude_operation_ids", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any
    ) -> "BridgeSettings":
        """Create settings from ``OPENAPI_TOOLS_*`` environment variables.

        Args:
            environ: Environment mapping, defaults to ``os.environ``
            **overrides: Values that take precedence over the environment

        Returns:
            The validated settings
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for field_name in cls.model_fields:
            key = f"{ENV_PREFIX}{field_name.upper()}"
            if key in environ:
                values[field_name] = environ[key]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
