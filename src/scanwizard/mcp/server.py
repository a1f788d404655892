"""FastMCP server exposing ScanWizard's workflow checks as MCP tools.

Run via::

    scanwizard-mcp                       # reads .env (default: stdio)
    MCP_TRANSPORT=http scanwizard-mcp    # streamable HTTP on port 9000
    MCP_TRANSPORT=sse  scanwizard-mcp    # legacy SSE on port 9000

All tools are stateless.  Settings are loaded from environment variables and
the ``.env`` file.
"""

from __future__ import annotations

import json
import logging

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from scanwizard import __version__, variables
from scanwizard.filenames import suggest_filename_correction, validate_workflow_filename
from scanwizard.parser.loader import TrackedLoader
from scanwizard.schema.workflow_schema import (
    KNOWN_SCAN_INPUTS,
    SCAN_ACTION_EXAMPLE,
    SCAN_BACKENDS,
)
from scanwizard.settings import Settings
from scanwizard.validator import scan_check
from scanwizard.validator.pipeline import WorkflowValidator, format_diagnostics

# ---------------------------------------------------------------------------
# Server + shared state
# ---------------------------------------------------------------------------

logger = logging.getLogger("scanwizard.mcp")

mcp = FastMCP("ScanWizard")
_validator = WorkflowValidator()


def _require_text(workflow_yaml: str) -> str:
    if not workflow_yaml.strip():
        raise ToolError("workflow_yaml must not be empty")
    return workflow_yaml


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


def _scan_action_reference() -> str:
    lines = [
        "# Black Duck Security Scan action reference",
        "",
        f"Use the action as `uses: {SCAN_ACTION_EXAMPLE}` inside a job's steps.",
        "The step needs a `with` block holding at least one complete credential set:",
        "",
    ]
    for name, (label, required) in SCAN_BACKENDS.items():
        lines.append(f"- **{label}** (`{name}`): {', '.join(required)}")
    lines += [
        "",
        "Credentials belong in secrets or variables, e.g.",
        "`polaris_access_token: ${{ secrets.POLARIS_ACCESS_TOKEN }}`.",
        "",
        "## Known inputs",
        "",
        ", ".join(sorted(KNOWN_SCAN_INPUTS)),
        "",
        "## Example",
        "",
        "```yaml",
        "name: Black Duck Security Scan",
        "on:",
        "  push:",
        "    branches: [main]",
        "jobs:",
        "  security:",
        "    runs-on: ubuntu-latest",
        "    steps:",
        "      - uses: actions/checkout@v4",
        f"      - uses: {SCAN_ACTION_EXAMPLE}",
        "        with:",
        "          polaris_server_url: ${{ vars.POLARIS_SERVER_URL }}",
        "          polaris_access_token: ${{ secrets.POLARIS_ACCESS_TOKEN }}",
        "```",
    ]
    return "\n".join(lines)


SCAN_ACTION_REFERENCE = _scan_action_reference()


@mcp.resource("scanwizard://scan-action")
def scan_action_reference() -> str:
    """Reference for the Black Duck scan action: credential sets, inputs, example."""
    return SCAN_ACTION_REFERENCE


@mcp.tool
def get_scan_action_reference() -> str:
    """Get the Black Duck scan action reference.

    Call this before writing a workflow step that uses the scan action to
    learn which credential inputs each backend needs.
    """
    return SCAN_ACTION_REFERENCE


# ---------------------------------------------------------------------------
# Validation tools
# ---------------------------------------------------------------------------


@mcp.tool
def validate_workflow(workflow_yaml: str) -> str:
    """Validate a GitHub Actions workflow that runs a Black Duck scan.

    Returns ``Workflow is valid.`` or a report with one ``line:L, col:C
    message [path]`` block per problem.  Warnings (e.g. untrusted
    expressions) are listed after the error count.

    Args:
        workflow_yaml: The workflow file content.
    """
    result = _validator.validate(_require_text(workflow_yaml))
    if not result.diagnostics:
        return "Workflow is valid."
    header = (
        f"Workflow has {len(result.errors)} error(s) and "
        f"{len(result.warnings)} warning(s):"
    )
    return f"{header}\n\n{format_diagnostics(result.diagnostics)}"


@mcp.tool
def check_scan_steps(workflow_yaml: str) -> str:
    """Check that every Black Duck scan step has a complete credential set.

    Args:
        workflow_yaml: The workflow file content.
    """
    result = _validator.validate(_require_text(workflow_yaml))
    if result.document is None:
        messages = [d.message for d in result.errors]
        raise ToolError("Workflow could not be parsed: " + "; ".join(messages))
    check = scan_check.check_scan_steps(result.document)
    if check.valid:
        found = ", ".join(
            f"{s.job} step {s.step} ({'/'.join(s.backends)})" for s in check.steps
        )
        return f"Scan steps are configured: {found}"
    return "Scan step problems:\n" + "\n".join(f"- {e}" for e in check.errors)


@mcp.tool
def extract_workflow_variables(workflow_yaml: str) -> str:
    """Extract the variable and secret expressions a workflow uses, as JSON.

    Args:
        workflow_yaml: The workflow file content.
    """
    mapping = variables.extract_workflow_variables(_require_text(workflow_yaml))
    return json.dumps(mapping.model_dump(), indent=2)


@mcp.tool
def check_filename(filename: str) -> str:
    """Check a workflow filename and suggest a corrected one if needed.

    Args:
        filename: Candidate file name for ``.github/workflows``.
    """
    errors = validate_workflow_filename(filename)
    if not errors:
        return f"'{filename}' is a valid workflow filename."
    lines = [f"'{filename}' is not a valid workflow filename:"]
    lines += [f"- [{e.type.value}] {e.message}" for e in errors]
    lines.append(f"Suggested name: {suggest_filename_correction(filename)}")
    return "\n".join(lines)


def main() -> None:
    """Run the MCP server using settings from environment / .env file."""
    settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())
    logger.info(
        "ScanWizard MCP Server v%s starting (transport=%s)",
        __version__,
        settings.mcp_transport,
    )

    global _validator  # noqa: PLW0603
    _validator = WorkflowValidator(
        loader=TrackedLoader(max_document_size=settings.max_document_size)
    )

    if settings.mcp_transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(
            transport=settings.mcp_transport,
            host=settings.mcp_server_host,
            port=settings.mcp_server_port,
            log_level=settings.log_level.lower(),
        )


if __name__ == "__main__":
    main()
