from .catalog import load_catalog, load_schema
from .validate import validate, validate_against

__all__ = ["load_catalog", "load_schema", "validate", "validate_against"]
