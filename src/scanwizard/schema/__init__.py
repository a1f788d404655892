"""Workflow schema and JSON Schema validation."""

from scanwizard.schema.validator import RawSchemaError, SchemaValidator
from scanwizard.schema.workflow_schema import SCAN_ACTION, SCAN_BACKENDS, WORKFLOW_SCHEMA

__all__ = [
    "RawSchemaError",
    "SCAN_ACTION",
    "SCAN_BACKENDS",
    "SchemaValidator",
    "WORKFLOW_SCHEMA",
]
