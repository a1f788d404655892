"""Dependency injection for FastAPI: collaborators live on ``app.state``."""

from __future__ import annotations

from fastapi import Request

from scanwizard.service.session_manager import SessionManager
from scanwizard.settings import Settings
from scanwizard.validator.pipeline import WorkflowValidator


def get_settings(request: Request) -> Settings:
    """FastAPI ``Depends`` provider for the application settings."""
    settings: Settings = request.app.state.settings
    return settings


def get_session_manager(request: Request) -> SessionManager:
    """FastAPI ``Depends`` provider for the SessionManager."""
    manager: SessionManager | None = getattr(request.app.state, "session_manager", None)
    if manager is None:
        raise RuntimeError("SessionManager not initialised; the app lifespan has not run")
    return manager


def get_workflow_validator(request: Request) -> WorkflowValidator:
    """FastAPI ``Depends`` provider for the shared WorkflowValidator."""
    validator: WorkflowValidator = request.app.state.workflow_validator
    return validator


def is_session_list_disabled(request: Request) -> bool:
    """Return True when the GET /sessions endpoint is suppressed."""
    return get_settings(request).disable_session_list
