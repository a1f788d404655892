"""Workflow filename endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from scanwizard.api.schemas import (
    FilenameRequest,
    FilenameSuggestResponse,
    FilenameValidateResponse,
)
from scanwizard.filenames import suggest_filename_correction, validate_workflow_filename

router = APIRouter()


@router.post("/validate", response_model=FilenameValidateResponse)
async def validate_filename(body: FilenameRequest) -> FilenameValidateResponse:
    """Validate a workflow filename; invalid names come with a suggested fix."""
    errors = validate_workflow_filename(body.filename)
    return FilenameValidateResponse(
        filename=body.filename,
        valid=not errors,
        errors=errors,
        suggestion=suggest_filename_correction(body.filename) if errors else None,
    )


@router.post("/suggest", response_model=FilenameSuggestResponse)
async def suggest_filename(body: FilenameRequest) -> FilenameSuggestResponse:
    """Return a corrected version of a workflow filename."""
    return FilenameSuggestResponse(
        filename=body.filename, suggestion=suggest_filename_correction(body.filename)
    )
