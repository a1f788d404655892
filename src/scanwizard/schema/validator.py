"""JSON Schema validation of workflow documents (Draft 7, via ``jsonschema``)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError

from scanwizard.schema.workflow_schema import WORKFLOW_SCHEMA


def to_pointer(parts: Iterable[Any]) -> str:
    """Render path parts as a JSON pointer (``/jobs/build/steps/0``)."""
    escaped = (str(p).replace("~", "~0").replace("/", "~1") for p in parts)
    return "".join(f"/{p}" for p in escaped)


def pointer_to_path(pointer: str) -> str:
    """Convert a JSON pointer to the dotted form used by the location index."""
    if not pointer:
        return ""
    parts = pointer.lstrip("/").split("/")
    return ".".join(p.replace("~1", "/").replace("~0", "~") for p in parts)


@dataclass
class RawSchemaError:
    """One schema violation, before translation into a diagnostic."""

    instance_path: str
    keyword: str
    params: dict[str, Any] = field(default_factory=dict)
    schema_path: str = ""
    data: Any = None
    message: str = ""

    @property
    def path(self) -> str:
        """Dotted form of :attr:`instance_path`."""
        return pointer_to_path(self.instance_path)

    @property
    def segments(self) -> list[str]:
        return self.path.split(".") if self.path else []


class SchemaValidator:
    """Validates a plain workflow tree against :data:`WORKFLOW_SCHEMA`.

    Stateless after construction; one instance can serve any number of calls.
    """

    def __init__(self, schema: dict[str, Any] | None = None) -> None:
        self._schema = schema if schema is not None else WORKFLOW_SCHEMA
        Draft7Validator.check_schema(self._schema)
        self._validator = Draft7Validator(self._schema)

    def validate(self, document: Any) -> list[RawSchemaError]:
        errors: list[RawSchemaError] = []
        # jsonschema reports one ``required`` error per missing property, in
        # schema order; count them to recover which property each refers to.
        required_seen: dict[tuple[str, str], int] = {}
        for error in self._validator.iter_errors(document):
            instance_path = to_pointer(error.absolute_path)
            schema_path = to_pointer(error.absolute_schema_path)
            params = self._params(error, instance_path, schema_path, required_seen)
            errors.append(
                RawSchemaError(
                    instance_path=instance_path,
                    keyword=str(error.validator),
                    params=params,
                    schema_path=schema_path,
                    data=error.instance,
                    message=error.message,
                )
            )
        return errors

    @staticmethod
    def _params(
        error: ValidationError,
        instance_path: str,
        schema_path: str,
        required_seen: dict[tuple[str, str], int],
    ) -> dict[str, Any]:
        keyword = error.validator
        value = error.validator_value
        if keyword == "required":
            instance = error.instance if isinstance(error.instance, dict) else {}
            missing = [name for name in value if name not in instance]
            key = (instance_path, schema_path)
            position = required_seen.get(key, 0)
            required_seen[key] = position + 1
            if position < len(missing):
                return {"missingProperty": missing[position]}
            return {}
        if keyword == "type":
            return {"type": value}
        if keyword == "enum":
            return {"allowedValues": list(value)}
        if keyword in ("minLength", "maxLength", "minItems", "maxItems", "minProperties"):
            return {"limit": value}
        if keyword == "pattern":
            return {"pattern": value}
        return {}
