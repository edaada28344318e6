from __future__ import annotations

from typing import Any, Mapping

import jsonschema

from ..core.errors import ConfigurationError
from ..core.exit_codes import ERR_VALIDATION
from .catalog import load_schema


def validate_against(schema: Mapping[str, Any], payload: Any, *, label: str) -> None:
    try:
        jsonschema.validate(payload, dict(schema))
    except jsonschema.ValidationError as exc:
        pointer = "/".join(str(p) for p in exc.absolute_path)
        loc = pointer or "<root>"
        raise ConfigurationError(f"schema validation failed for {label} at {loc}: {exc.message}", ERR_VALIDATION) from exc
    except jsonschema.SchemaError as exc:
        raise ConfigurationError(f"invalid schema for {label}: {exc.message}") from exc


def validate(schema_name: str, payload: Any) -> None:
    validate_against(load_schema(schema_name), payload, label=schema_name)


__all__ = ["validate", "validate_against"]
