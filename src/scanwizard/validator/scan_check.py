"""Direct check of Black Duck scan steps, independent of the JSON schema."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from scanwizard.schema.workflow_schema import SCAN_ACTION, SCAN_BACKENDS
from scanwizard.validator.translator import backend_requirements


@dataclass
class ScanStepInfo:
    """A scan step found in the workflow."""

    job: str
    step: int  # 1-based
    uses: str
    backends: list[str] = field(default_factory=list)


@dataclass
class ScanCheckResult:
    """Outcome of :func:`check_scan_steps`."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    steps: list[ScanStepInfo] = field(default_factory=list)


def configured_backends(inputs: dict[str, Any]) -> list[str]:
    """Names of the backends whose credential inputs are all present and non-empty."""
    return [
        name
        for name, (_, required) in SCAN_BACKENDS.items()
        if all(isinstance(inputs.get(key), str) and inputs[key] for key in required)
    ]


def check_scan_steps(workflow: Any) -> ScanCheckResult:
    """Verify the workflow runs the scan action with usable credentials.

    Reports, per job, scan steps without a ``with`` block or without a complete
    credential set, and reports a workflow with no scan step at all.
    """
    errors: list[str] = []
    steps: list[ScanStepInfo] = []

    jobs = workflow.get("jobs") if isinstance(workflow, dict) else None
    if not isinstance(jobs, dict):
        return ScanCheckResult(valid=False, errors=["Workflow must have jobs"])

    for job_name, job in jobs.items():
        if not isinstance(job, dict) or not isinstance(job.get("steps"), list):
            continue
        for i, step in enumerate(job["steps"]):
            uses = step.get("uses") if isinstance(step, dict) else None
            if not isinstance(uses, str) or not uses.startswith(f"{SCAN_ACTION}@"):
                continue
            info = ScanStepInfo(job=job_name, step=i + 1, uses=uses)
            steps.append(info)
            inputs = step.get("with")
            if not isinstance(inputs, dict):
                errors.append(
                    f"Black Duck step in job '{job_name}' is missing the required 'with' "
                    "configuration"
                )
                continue
            info.backends = configured_backends(inputs)
            if not info.backends:
                errors.append(
                    f"Black Duck step in job '{job_name}' is missing required configuration. "
                    f"It must have one of: {backend_requirements()}"
                )

    if not steps:
        errors.append("Workflow must contain at least one Black Duck security scan step")

    return ScanCheckResult(valid=not errors, errors=errors, steps=steps)
