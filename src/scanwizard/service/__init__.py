"""Session services: per-session expiry state machine and session registry."""

from scanwizard.service.session_manager import SessionInfo, SessionManager, SessionNotFoundError
from scanwizard.service.session_timeout import (
    LogoutReason,
    SessionExpiredError,
    SessionRecord,
    SessionState,
    SessionTimeout,
    ThreadingScheduler,
    default_scheduler,
)

__all__ = [
    "LogoutReason",
    "SessionExpiredError",
    "SessionInfo",
    "SessionManager",
    "SessionNotFoundError",
    "SessionRecord",
    "SessionState",
    "SessionTimeout",
    "ThreadingScheduler",
    "default_scheduler",
]
