"""Unit tests for MCP server tools: direct function calls, no transport.

FastMCP's ``@mcp.tool`` wraps functions in ``FunctionTool`` objects.  We call
the underlying function via ``.fn`` to test the business logic directly.
"""

from __future__ import annotations

import json

import pytest
from fastmcp.exceptions import ToolError

from scanwizard.mcp.server import (
    SCAN_ACTION_REFERENCE,
    check_filename,
    check_scan_steps,
    extract_workflow_variables,
    get_scan_action_reference,
    scan_action_reference,
    validate_workflow,
)
from tests.conftest import (
    BROKEN_YAML,
    NO_CREDENTIALS_WORKFLOW,
    UNTRUSTED_TITLE_WORKFLOW,
    USES_AND_RUN_WORKFLOW,
    VALID_WORKFLOW,
)

# Unwrap FunctionTool → raw functions
_validate_workflow = validate_workflow.fn
_check_scan_steps = check_scan_steps.fn
_extract_workflow_variables = extract_workflow_variables.fn
_check_filename = check_filename.fn
_get_scan_action_reference = get_scan_action_reference.fn


class TestReference:
    def test_reference_lists_backends(self) -> None:
        text = _get_scan_action_reference()
        assert text == SCAN_ACTION_REFERENCE
        assert "polaris_access_token" in text
        assert "coverity_passphrase" in text
        assert "blackduck-inc/black-duck-security-scan@v2" in text

    def test_resource_function(self) -> None:
        assert scan_action_reference.fn() == SCAN_ACTION_REFERENCE


class TestValidateWorkflow:
    def test_valid(self) -> None:
        assert _validate_workflow(VALID_WORKFLOW) == "Workflow is valid."

    def test_errors_reported(self) -> None:
        result = _validate_workflow(USES_AND_RUN_WORKFLOW)
        assert result.startswith("Workflow has 1 error(s) and 0 warning(s):")
        assert "line:7, col:" in result
        assert "Step 1 in job 'build'" in result

    def test_warnings_counted(self) -> None:
        result = _validate_workflow(UNTRUSTED_TITLE_WORKFLOW)
        assert "0 error(s) and 1 warning(s)" in result

    def test_syntax_error(self) -> None:
        result = _validate_workflow(BROKEN_YAML)
        assert "YAML syntax error" in result

    def test_empty_input(self) -> None:
        with pytest.raises(ToolError, match="must not be empty"):
            _validate_workflow("   ")


class TestCheckScanSteps:
    def test_configured(self) -> None:
        result = _check_scan_steps(VALID_WORKFLOW)
        assert "security-scan step 2 (polaris)" in result

    def test_missing_credentials(self) -> None:
        result = _check_scan_steps(NO_CREDENTIALS_WORKFLOW)
        assert result.startswith("Scan step problems:")
        assert "missing required configuration" in result

    def test_unparseable(self) -> None:
        with pytest.raises(ToolError, match="could not be parsed"):
            _check_scan_steps(BROKEN_YAML)


class TestExtractWorkflowVariables:
    def test_json_output(self) -> None:
        data = json.loads(_extract_workflow_variables(VALID_WORKFLOW))
        assert data["env"] == {"POLARIS_URL": "${{ vars.POLARIS_SERVER_URL }}"}
        assert set(data) == {"env", "secrets", "github", "bridge_cli"}


class TestCheckFilename:
    def test_valid(self) -> None:
        assert "is a valid workflow filename" in _check_filename("scan.yml")

    def test_invalid_with_suggestion(self) -> None:
        result = _check_filename("con.yml")
        assert "[reserved]" in result
        assert "Suggested name: con-workflow.yml" in result
