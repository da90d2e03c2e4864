"""Structured-output contracts (YAML JSON-Schemas) and their validator."""

from .validate import SCHEMAS_ROOT, load_schema, schema_path, validate_obj

__all__ = ["SCHEMAS_ROOT", "load_schema", "schema_path", "validate_obj"]
