"""API request/response Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from scanwizard.models.diagnostics import Diagnostic, FilenameValidationError
from scanwizard.service.session_timeout import SessionState


class WorkflowRequest(BaseModel):
    """Request body for the /validate endpoints."""

    workflow_yaml: str = Field(description="GitHub Actions workflow YAML content")


class ValidateResponse(BaseModel):
    """Response body for POST /validate."""

    valid: bool
    diagnostics: list[Diagnostic] = []
    error_count: int = 0
    warning_count: int = 0


class ScanStepResponse(BaseModel):
    """A scan step found in the workflow."""

    job: str
    step: int
    uses: str
    backends: list[str] = []


class ScanCheckResponse(BaseModel):
    """Response body for POST /validate/scan-steps."""

    valid: bool
    errors: list[str] = []
    steps: list[ScanStepResponse] = []


class FilenameRequest(BaseModel):
    """Request body for the /filenames endpoints."""

    filename: str


class FilenameValidateResponse(BaseModel):
    """Response body for POST /filenames/validate."""

    filename: str
    valid: bool
    errors: list[FilenameValidationError] = []
    suggestion: str | None = None


class FilenameSuggestResponse(BaseModel):
    """Response body for POST /filenames/suggest."""

    filename: str
    suggestion: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = ""
    active_sessions: int = 0


# ---------------------------------------------------------------------------
# Session schemas
# ---------------------------------------------------------------------------


class SessionCreateRequest(BaseModel):
    """Request body for POST /sessions."""

    metadata: dict[str, str] = Field(default_factory=dict)


class SessionResponse(BaseModel):
    """Single session info."""

    session_id: str
    state: SessionState
    created_at: datetime
    last_accessed_at: datetime
    expires_at: datetime
    remaining_seconds: float
    metadata: dict[str, str] = Field(default_factory=dict)


class SessionListResponse(BaseModel):
    """Response for GET /sessions."""

    sessions: list[SessionResponse]
