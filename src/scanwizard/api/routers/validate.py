"""Stateless workflow validation endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from scanwizard.api.deps import get_workflow_validator
from scanwizard.api.schemas import (
    ScanCheckResponse,
    ScanStepResponse,
    ValidateResponse,
    WorkflowRequest,
)
from scanwizard.validator.pipeline import WorkflowValidator, format_diagnostics
from scanwizard.validator.scan_check import check_scan_steps
from scanwizard.variables import VariableMapping, extract_workflow_variables

router = APIRouter()


@router.post("", response_model=ValidateResponse)
async def validate_workflow(
    body: WorkflowRequest,
    validator: WorkflowValidator = Depends(get_workflow_validator),  # noqa: B008
) -> ValidateResponse:
    """Validate a workflow and return its diagnostics."""
    result = validator.validate(body.workflow_yaml)
    return ValidateResponse(
        valid=result.valid,
        diagnostics=result.diagnostics,
        error_count=len(result.errors),
        warning_count=len(result.warnings),
    )


@router.post("/report", response_class=PlainTextResponse)
async def validate_workflow_report(
    body: WorkflowRequest,
    validator: WorkflowValidator = Depends(get_workflow_validator),  # noqa: B008
) -> str:
    """Validate a workflow and return the plain-text report."""
    return format_diagnostics(validator.get_yaml_errors(body.workflow_yaml))


@router.post("/scan-steps", response_model=ScanCheckResponse)
async def validate_scan_steps(
    body: WorkflowRequest,
    validator: WorkflowValidator = Depends(get_workflow_validator),  # noqa: B008
) -> ScanCheckResponse:
    """Check the workflow's Black Duck scan steps and their credentials."""
    result = validator.validate(body.workflow_yaml)
    if result.document is None:
        messages = [d.message for d in result.errors] or ["Workflow must be a mapping"]
        return ScanCheckResponse(valid=False, errors=messages)
    check = check_scan_steps(result.document)
    return ScanCheckResponse(
        valid=check.valid,
        errors=check.errors,
        steps=[ScanStepResponse(**asdict(s)) for s in check.steps],
    )


@router.post("/variables", response_model=VariableMapping)
async def workflow_variables(body: WorkflowRequest) -> VariableMapping:
    """Extract the variable and secret expressions used in the workflow."""
    return extract_workflow_variables(body.workflow_yaml)
