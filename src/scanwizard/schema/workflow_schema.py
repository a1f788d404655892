"""Fixed GitHub Actions workflow schema with Black Duck security scan requirements.

The schema is static configuration (JSON Schema draft 7).  It encodes:

- required top-level keys (``name``, ``on``, ``jobs``);
- accepted trigger shapes;
- job requirements (``runs-on`` and at least one step);
- exactly one of ``uses``/``run`` per step;
- credentials for at least one scan backend on every scan step;
- at least one job in the workflow running the scan action.
"""

from __future__ import annotations

from typing import Any

SCAN_VENDOR_NAMESPACE = "blackduck-inc"
SCAN_ACTION = f"{SCAN_VENDOR_NAMESPACE}/black-duck-security-scan"
SCAN_ACTION_PATTERN = r"^blackduck-inc/black-duck-security-scan@"
SCAN_ACTION_EXAMPLE = f"{SCAN_ACTION}@v2"

STEP_ID_PATTERN = r"^[A-Za-z_][A-Za-z0-9_-]*$"
ACTION_REF_PATTERN = (
    r"^(\./\S+|docker://\S+|[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+(/[^@\s]+)?@[^@\s]+)$"
)

# Backend name -> (label, inputs that must all be present and non-empty)
SCAN_BACKENDS: dict[str, tuple[str, tuple[str, ...]]] = {
    "polaris": ("Polaris", ("polaris_server_url", "polaris_access_token")),
    "blackducksca": ("Black Duck SCA", ("blackducksca_url", "blackducksca_token")),
    "coverity": ("Coverity", ("coverity_url", "coverity_user", "coverity_passphrase")),
    "fix_pr": ("Fix PR", ("github_token",)),
}

KNOWN_SCAN_INPUTS: frozenset[str] = frozenset(
    {
        *(name for _, inputs in SCAN_BACKENDS.values() for name in inputs),
        "polaris_application_name",
        "polaris_project_name",
        "polaris_assessment_types",
        "polaris_branch_name",
        "polaris_prComment_enabled",
        "polaris_reports_sarif_create",
        "polaris_waitForScan",
        "blackducksca_scan_full",
        "blackducksca_scan_failure_severities",
        "blackducksca_prComment_enabled",
        "blackducksca_fixpr_enabled",
        "blackducksca_reports_sarif_create",
        "blackducksca_waitForScan",
        "coverity_project_name",
        "coverity_stream_name",
        "coverity_policy_view",
        "coverity_prComment_enabled",
        "coverity_local",
        "coverity_install_directory",
        "coverity_build_command",
        "coverity_clean_command",
        "coverity_config_path",
        "coverity_waitForScan",
        "detect_search_depth",
        "detect_args",
        "detect_execution_path",
        "detect_install_directory",
        "project_directory",
        "include_diagnostics",
        "network_airgap",
        "mark_build_status",
        "bridgecli_download_url",
        "bridgecli_download_version",
        "bridgecli_install_directory",
        "github_token",
    }
)

KNOWN_TOP_LEVEL_KEYS: frozenset[str] = frozenset(
    {"name", "run-name", "on", "permissions", "env", "defaults", "concurrency", "jobs"}
)

PULL_REQUEST_TYPES = [
    "assigned",
    "unassigned",
    "labeled",
    "unlabeled",
    "opened",
    "edited",
    "closed",
    "reopened",
    "synchronize",
    "converted_to_draft",
    "ready_for_review",
    "locked",
    "unlocked",
    "review_requested",
    "review_request_removed",
    "auto_merge_enabled",
    "auto_merge_disabled",
    "milestoned",
    "demilestoned",
    "enqueued",
    "dequeued",
]

WORKFLOW_DISPATCH_INPUT_TYPES = ["boolean", "choice", "environment", "number", "string"]

_STRING_OR_LIST: dict[str, Any] = {
    "oneOf": [
        {"type": "string"},
        {"type": "array", "items": {"type": "string"}},
    ],
}

_ENV_BLOCK: dict[str, Any] = {
    "type": "object",
    "additionalProperties": {"type": ["string", "number", "boolean"]},
}

_BRANCH_FILTERS: dict[str, Any] = {
    "branches": _STRING_OR_LIST,
    "branches-ignore": _STRING_OR_LIST,
    "tags": _STRING_OR_LIST,
    "tags-ignore": _STRING_OR_LIST,
    "paths": {"type": "array", "items": {"type": "string"}},
    "paths-ignore": {"type": "array", "items": {"type": "string"}},
}


def _nullable_object(properties: dict[str, Any]) -> dict[str, Any]:
    return {
        "oneOf": [
            {"type": "null"},
            {"type": "object", "additionalProperties": True, "properties": properties},
        ],
    }


_TRIGGER_OBJECT: dict[str, Any] = {
    "type": "object",
    "minProperties": 1,
    "additionalProperties": True,
    "properties": {
        "push": _nullable_object(_BRANCH_FILTERS),
        "pull_request": _nullable_object(
            {
                **_BRANCH_FILTERS,
                "types": {
                    "type": "array",
                    "items": {"type": "string", "enum": PULL_REQUEST_TYPES},
                },
            }
        ),
        "workflow_dispatch": _nullable_object(
            {
                "inputs": {
                    "type": "object",
                    "additionalProperties": {
                        "type": "object",
                        "properties": {
                            "description": {"type": "string"},
                            "required": {"type": "boolean"},
                            "default": {"type": ["string", "number", "boolean"]},
                            "type": {"type": "string", "enum": WORKFLOW_DISPATCH_INPUT_TYPES},
                            "options": {"type": "array", "items": {"type": "string"}},
                        },
                    },
                },
            }
        ),
        "schedule": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["cron"],
                "properties": {"cron": {"type": "string", "minLength": 1}},
            },
        },
    },
}


def _non_empty_strings(names: tuple[str, ...]) -> dict[str, Any]:
    return {
        "required": list(names),
        "properties": {name: {"type": "string", "minLength": 1} for name in names},
    }


_SCAN_CREDENTIALS: dict[str, Any] = {
    "type": "object",
    "anyOf": [_non_empty_strings(inputs) for _, inputs in SCAN_BACKENDS.values()],
}

_STEP: dict[str, Any] = {
    "type": "object",
    "additionalProperties": True,
    "properties": {
        "id": {"type": "string", "pattern": STEP_ID_PATTERN},
        "name": {"type": "string"},
        "if": {"type": ["string", "boolean"]},
        "uses": {"type": "string", "minLength": 1, "pattern": ACTION_REF_PATTERN},
        "run": {"type": "string", "minLength": 1},
        "shell": {"type": "string"},
        "working-directory": {"type": "string"},
        "continue-on-error": {"type": ["boolean", "string"]},
        "timeout-minutes": {"type": ["number", "string"]},
        "with": {"type": "object", "additionalProperties": True},
        "env": _ENV_BLOCK,
    },
    "oneOf": [
        {"required": ["uses"], "not": {"required": ["run"]}},
        {"required": ["run"], "not": {"required": ["uses"]}},
    ],
    "if": {
        "required": ["uses"],
        "properties": {"uses": {"type": "string", "pattern": SCAN_ACTION_PATTERN}},
    },
    "then": {
        "required": ["with"],
        "properties": {"with": _SCAN_CREDENTIALS},
    },
}

_JOB: dict[str, Any] = {
    "type": "object",
    "required": ["runs-on", "steps"],
    "additionalProperties": True,
    "properties": {
        "name": {"type": "string"},
        "runs-on": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {"type": "array", "minItems": 1, "items": {"type": "string"}},
                {"type": "object", "properties": {"group": {"type": "string"}}},
            ],
        },
        "needs": _STRING_OR_LIST,
        "if": {"type": ["string", "boolean"]},
        "environment": {
            "oneOf": [
                {"type": "string"},
                {
                    "type": "object",
                    "required": ["name"],
                    "properties": {"name": {"type": "string"}, "url": {"type": "string"}},
                },
            ],
        },
        "env": _ENV_BLOCK,
        "timeout-minutes": {"type": ["number", "string"]},
        "continue-on-error": {"type": ["boolean", "string"]},
        "steps": {"type": "array", "minItems": 1, "items": _STEP},
    },
}


def _job_with_step_matching(pattern: str) -> dict[str, Any]:
    return {
        "type": "object",
        "required": ["steps"],
        "properties": {
            "steps": {
                "type": "array",
                "contains": {
                    "type": "object",
                    "required": ["uses"],
                    "properties": {"uses": {"type": "string", "pattern": pattern}},
                },
            },
        },
    }


def _some_job_matching(pattern: str) -> dict[str, Any]:
    # "not every job lacks a matching step"
    return {
        "not": {
            "properties": {
                "jobs": {
                    "type": "object",
                    "additionalProperties": {"not": _job_with_step_matching(pattern)},
                },
            },
        },
    }


WORKFLOW_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "GitHub Actions workflow with Black Duck security scan",
    "type": "object",
    "required": ["name", "on", "jobs"],
    "additionalProperties": True,
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "run-name": {"type": "string"},
        "on": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {"type": "array", "minItems": 1, "items": {"type": "string"}},
                _TRIGGER_OBJECT,
            ],
        },
        "permissions": {"type": ["string", "object"]},
        "env": _ENV_BLOCK,
        "jobs": {
            "type": "object",
            "minProperties": 1,
            "additionalProperties": _JOB,
        },
    },
    "anyOf": [
        _some_job_matching(SCAN_ACTION_PATTERN),
    ],
}
