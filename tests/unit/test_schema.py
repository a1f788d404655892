"""Tests for the workflow JSON Schema and the raw schema validator."""

from __future__ import annotations

import pytest
from jsonschema.exceptions import SchemaError

from scanwizard.parser.loader import TrackedLoader
from scanwizard.schema import SCAN_BACKENDS, SchemaValidator
from scanwizard.schema.validator import RawSchemaError, pointer_to_path, to_pointer
from scanwizard.schema.workflow_schema import KNOWN_SCAN_INPUTS
from tests.conftest import NO_CREDENTIALS_WORKFLOW, NO_SCAN_STEP_WORKFLOW, VALID_WORKFLOW


@pytest.fixture
def schema_validator() -> SchemaValidator:
    return SchemaValidator()


def _load(text: str) -> dict:
    raw, _ = TrackedLoader().load_string(text)
    return raw


class TestPointers:
    def test_to_pointer_escapes(self) -> None:
        assert to_pointer(["jobs", "a/b", "c~d", 0]) == "/jobs/a~1b/c~0d/0"

    def test_pointer_to_path(self) -> None:
        assert pointer_to_path("/jobs/build/steps/0") == "jobs.build.steps.0"
        assert pointer_to_path("/jobs/a~1b") == "jobs.a/b"
        assert pointer_to_path("") == ""

    def test_raw_error_segments(self) -> None:
        error = RawSchemaError(instance_path="/jobs/build/steps/2", keyword="oneOf")
        assert error.path == "jobs.build.steps.2"
        assert error.segments == ["jobs", "build", "steps", "2"]
        assert RawSchemaError(instance_path="", keyword="required").segments == []


class TestSchemaValidator:
    def test_valid_workflow_has_no_errors(self, schema_validator: SchemaValidator) -> None:
        assert schema_validator.validate(_load(VALID_WORKFLOW)) == []

    def test_required_errors_name_missing_property(
        self, schema_validator: SchemaValidator
    ) -> None:
        errors = schema_validator.validate({})
        missing = [e.params["missingProperty"] for e in errors if e.keyword == "required"]
        assert missing == ["name", "on", "jobs"]

    def test_type_error_params(self, schema_validator: SchemaValidator) -> None:
        document = _load(VALID_WORKFLOW)
        document["jobs"]["security-scan"]["steps"] = "checkout"
        errors = schema_validator.validate(document)
        type_errors = [e for e in errors if e.keyword == "type"]
        assert len(type_errors) == 1
        assert type_errors[0].path == "jobs.security-scan.steps"
        assert type_errors[0].params == {"type": "array"}
        assert type_errors[0].data == "checkout"

    def test_missing_credentials_is_anyof_under_with(
        self, schema_validator: SchemaValidator
    ) -> None:
        errors = schema_validator.validate(_load(NO_CREDENTIALS_WORKFLOW))
        assert [(e.keyword, e.path) for e in errors] == [
            ("anyOf", "jobs.security-scan.steps.1.with")
        ]

    def test_scan_step_without_with(self, schema_validator: SchemaValidator) -> None:
        document = _load(NO_CREDENTIALS_WORKFLOW)
        del document["jobs"]["security-scan"]["steps"][1]["with"]
        errors = schema_validator.validate(document)
        assert len(errors) == 1
        assert errors[0].keyword == "required"
        assert errors[0].params == {"missingProperty": "with"}

    def test_no_scan_step_fails_root_anyof(self, schema_validator: SchemaValidator) -> None:
        errors = schema_validator.validate(_load(NO_SCAN_STEP_WORKFLOW))
        assert [(e.keyword, e.path) for e in errors] == [("anyOf", "")]

    def test_other_vendor_action_is_not_a_scan_step(
        self, schema_validator: SchemaValidator
    ) -> None:
        document = _load(NO_SCAN_STEP_WORKFLOW)
        document["jobs"]["test"]["steps"].append({"uses": "synopsys-sig/synopsys-action@v1"})
        errors = schema_validator.validate(document)
        assert [(e.keyword, e.path) for e in errors] == [("anyOf", "")]

    def test_custom_schema(self) -> None:
        validator = SchemaValidator({"type": "object", "required": ["name"]})
        errors = validator.validate({})
        assert errors[0].params == {"missingProperty": "name"}

    def test_invalid_schema_rejected(self) -> None:
        with pytest.raises(SchemaError):
            SchemaValidator({"type": 5})


class TestActionMetadata:
    def test_credential_inputs_are_known(self) -> None:
        for _, inputs in SCAN_BACKENDS.values():
            assert set(inputs) <= KNOWN_SCAN_INPUTS

    def test_backends(self) -> None:
        assert set(SCAN_BACKENDS) == {"polaris", "blackducksca", "coverity", "fix_pr"}
