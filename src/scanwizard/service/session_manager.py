"""Session management: registry of wizard sessions, each with its own expiry timer."""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from scanwizard.service.session_timeout import (
    LogoutReason,
    Scheduler,
    SessionExpiredError,
    SessionRecord,
    SessionState,
    SessionTimeout,
    default_scheduler,
)

logger = logging.getLogger("scanwizard.session")

_ENDED_HISTORY = 1000


class SessionNotFoundError(KeyError):
    """Raised when a session ID is not found or has expired."""


@dataclass
class SessionInfo:
    """Public session metadata (returned by list/get)."""

    session_id: str
    state: SessionState
    created_at: datetime
    last_accessed_at: datetime
    expires_at: datetime
    remaining_seconds: float
    metadata: dict[str, str]


@dataclass
class _Session:
    """Internal session state."""

    session_id: str
    timeout: SessionTimeout
    metadata: dict[str, str] = field(default_factory=dict)
    # Wall-clock times for reporting
    created_at_wall: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_accessed_wall: datetime = field(default_factory=lambda: datetime.now(UTC))


class SessionManager:
    """Manages wizard sessions, each driven by a :class:`SessionTimeout`.

    Thread-safe.  Sessions created before :meth:`start` are armed when it is
    called; :meth:`stop` disarms every session's timers.  A session that
    times out or is logged out removes itself from the registry.
    """

    def __init__(
        self,
        idle_timeout: int = 1800,
        max_lifetime: int = 28800,
        warning_before: int = 300,
        check_interval: int = 60,
        hourly_interval: int = 3600,
        *,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._idle_timeout = idle_timeout
        self._max_lifetime = max_lifetime
        self._warning_before = warning_before
        self._check_interval = check_interval
        self._hourly_interval = hourly_interval
        self._scheduler: Scheduler = scheduler or default_scheduler()
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: dict[str, _Session] = {}
        self._ended: OrderedDict[str, LogoutReason] = OrderedDict()
        self._running = False

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Arm the timers of every registered session."""
        with self._lock:
            if self._running:
                return
            self._running = True
            pending = [s.timeout for s in self._sessions.values()]
        for timeout in pending:
            timeout.start()

    def stop(self) -> None:
        """Cancel every session's timers.  Sessions stay registered."""
        with self._lock:
            self._running = False
            pending = [s.timeout for s in self._sessions.values()]
        for timeout in pending:
            timeout.stop()

    # -- public API ----------------------------------------------------------

    def create_session(self, metadata: dict[str, str] | None = None) -> SessionInfo:
        """Create a new session and return its info."""
        session_id = secrets.token_hex(16)  # 32-char hex (128-bit)
        timeout = SessionTimeout(
            session_id,
            idle_timeout=self._idle_timeout,
            max_lifetime=self._max_lifetime,
            warning_before=self._warning_before,
            check_interval=self._check_interval,
            hourly_interval=self._hourly_interval,
            scheduler=self._scheduler,
            clock=self._clock,
            on_logout=self._on_logout,
        )
        session = _Session(session_id=session_id, timeout=timeout, metadata=metadata or {})
        with self._lock:
            self._sessions[session_id] = session
            running = self._running
        if running:
            timeout.start()
        logger.info("Created session %s", session_id)
        return self._session_info(session)

    def get_session(self, session_id: str) -> SessionInfo:
        """Get session info without counting as activity."""
        return self._session_info(self._lookup(session_id))

    def record_activity(self, session_id: str) -> SessionInfo:
        """Register activity on a session, extending its expiry.

        Raises :class:`SessionNotFoundError` if the session is missing or expired.
        """
        session = self._lookup(session_id)
        if session.timeout.state == SessionState.created:
            # Manager not started yet; nothing to extend
            return self._session_info(session)
        try:
            session.timeout.record_activity()
        except SessionExpiredError:
            raise SessionNotFoundError(f"Session '{session_id}' has expired") from None
        session.last_accessed_wall = datetime.now(UTC)
        return self._session_info(session)

    def close_session(self, session_id: str) -> None:
        """Explicitly log a session out."""
        session = self._lookup(session_id)
        session.timeout.logout(LogoutReason.manual)
        with self._lock:
            # Unstarted sessions never fire the logout callback
            self._sessions.pop(session_id, None)

    def list_sessions(self) -> list[SessionInfo]:
        """Return info for all live sessions."""
        with self._lock:
            sessions = list(self._sessions.values())
        return [self._session_info(s) for s in sessions if not self._has_ended(s)]

    @property
    def active_count(self) -> int:
        """Number of live sessions."""
        with self._lock:
            sessions = list(self._sessions.values())
        return sum(1 for s in sessions if not self._has_ended(s))

    def ended_reason(self, session_id: str) -> LogoutReason | None:
        """Why a recently ended session ended, or ``None`` if unknown."""
        with self._lock:
            return self._ended.get(session_id)

    # -- internal ------------------------------------------------------------

    def _lookup(self, session_id: str) -> _Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                if session_id in self._ended:
                    raise SessionNotFoundError(f"Session '{session_id}' has expired")
                raise SessionNotFoundError(f"Session '{session_id}' not found")
        if self._has_ended(session):
            raise SessionNotFoundError(f"Session '{session_id}' has expired")
        return session

    @staticmethod
    def _has_ended(session: _Session) -> bool:
        return session.timeout.state in (SessionState.expired, SessionState.logged_out)

    def _on_logout(self, record: SessionRecord, reason: LogoutReason) -> None:
        with self._lock:
            self._sessions.pop(record.session_id, None)
            self._ended[record.session_id] = reason
            while len(self._ended) > _ENDED_HISTORY:
                self._ended.popitem(last=False)

    def _session_info(self, session: _Session) -> SessionInfo:
        record = session.timeout.snapshot()
        if record.state in (SessionState.active, SessionState.warning):
            remaining = record.remaining(self._clock())
        elif record.state == SessionState.created:
            remaining = float(min(self._idle_timeout, self._max_lifetime))
        else:
            remaining = 0.0
        return SessionInfo(
            session_id=session.session_id,
            state=record.state,
            created_at=session.created_at_wall,
            last_accessed_at=session.last_accessed_wall,
            expires_at=datetime.now(UTC) + timedelta(seconds=remaining),
            remaining_seconds=remaining,
            metadata=session.metadata,
        )
