"""Wizard session endpoints: create, inspect, keep alive, log out."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from scanwizard.api.deps import get_session_manager, is_session_list_disabled
from scanwizard.api.schemas import SessionCreateRequest, SessionListResponse, SessionResponse
from scanwizard.service.session_manager import SessionInfo, SessionManager, SessionNotFoundError

router = APIRouter()


def _session_response(info: SessionInfo) -> SessionResponse:
    """Convert a SessionInfo dataclass to a Pydantic response."""
    return SessionResponse(**asdict(info))


def _not_found(session_id: str, exc: SessionNotFoundError) -> HTTPException:
    detail = exc.args[0] if exc.args else f"Session '{session_id}' not found"
    return HTTPException(status_code=404, detail=detail)


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(
    body: SessionCreateRequest | None = None,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SessionResponse:
    """Create a new session."""
    metadata = body.metadata if body else {}
    info = mgr.create_session(metadata=metadata)
    return _session_response(info)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
    disabled: bool = Depends(is_session_list_disabled),  # noqa: B008
) -> SessionListResponse:
    """List all live sessions."""
    if disabled:
        raise HTTPException(status_code=403, detail="Session listing is disabled")
    return SessionListResponse(sessions=[_session_response(s) for s in mgr.list_sessions()])


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SessionResponse:
    """Get info for a specific session."""
    try:
        info = mgr.get_session(session_id)
    except SessionNotFoundError as exc:
        raise _not_found(session_id, exc) from None
    return _session_response(info)


@router.post("/{session_id}/activity", response_model=SessionResponse)
async def record_activity(
    session_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SessionResponse:
    """Register user activity, extending the session's expiry."""
    try:
        info = mgr.record_activity(session_id)
    except SessionNotFoundError as exc:
        raise _not_found(session_id, exc) from None
    return _session_response(info)


@router.delete("/{session_id}", status_code=204)
async def close_session(
    session_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> None:
    """Log a session out."""
    try:
        mgr.close_session(session_id)
    except SessionNotFoundError as exc:
        raise _not_found(session_id, exc) from None
