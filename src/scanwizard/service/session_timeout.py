"""Session expiry state machine: idle timeout, warning, absolute lifetime, logout.

One :class:`SessionTimeout` owns one :class:`SessionRecord`.  Four timers
drive it:

- a warning timer, firing ``warning_before`` seconds ahead of expiry;
- an expiration timer, firing at expiry;
- a periodic check, re-evaluating the record against the clock;
- an hourly check, enforcing the absolute session lifetime.

Every mutation and timer callback runs under one lock, so the record behaves
as a single logical actor.  Whenever expiry is recomputed all four timers are
cancelled and rescheduled together; a generation counter turns callbacks from
superseded timers into no-ops.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Protocol

logger = logging.getLogger("scanwizard.session")


class SessionState(str, Enum):
    """Lifecycle states of a session."""

    created = "created"
    active = "active"
    warning = "warning"
    expired = "expired"
    logged_out = "logged_out"


class LogoutReason(str, Enum):
    """Why a session ended."""

    idle_timeout = "idle_timeout"
    max_lifetime = "max_lifetime"
    manual = "manual"


class SessionExpiredError(Exception):
    """Raised when activity is recorded on a session that has already ended."""


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback after a delay; the returned handle cancels it."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ScheduledCall:
    """Handle for a callback queued on a :class:`ThreadingScheduler`."""

    __slots__ = ("callback", "cancelled", "fired", "_scheduler")

    def __init__(self, scheduler: ThreadingScheduler, callback: Callable[[], None]) -> None:
        self._scheduler = scheduler
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self._scheduler._cancel(self)  # noqa: SLF001


class ThreadingScheduler:
    """:class:`Scheduler` running every callback on one daemon worker thread.

    Pending calls sit in a heap ordered by due time and the worker sleeps on a
    condition until the earliest is due, so the number of threads does not
    grow with the number of sessions.  Cancelled calls stay in the heap until
    they surface or until they make up half of it, when it is compacted.
    The worker starts on the first :meth:`call_later` and stops on
    :meth:`shutdown`.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._cond = threading.Condition()
        self._heap: list[tuple[float, int, ScheduledCall]] = []
        self._seq = itertools.count()
        self._cancelled = 0
        self._stopping = False
        self._worker: threading.Thread | None = None

    @property
    def pending_count(self) -> int:
        with self._cond:
            return len(self._heap) - self._cancelled

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(self, callback)
        with self._cond:
            due = self._clock() + max(delay, 0.0)
            heapq.heappush(self._heap, (due, next(self._seq), call))
            if self._worker is None:
                self._stopping = False
                self._worker = threading.Thread(
                    target=self._run, name="session-scheduler", daemon=True
                )
                self._worker.start()
            self._cond.notify()
        return call

    def shutdown(self, timeout: float = 5.0) -> None:
        """Drop every pending call and stop the worker thread."""
        with self._cond:
            self._stopping = True
            self._heap.clear()
            self._cancelled = 0
            worker, self._worker = self._worker, None
            self._cond.notify_all()
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=timeout)

    def _cancel(self, call: ScheduledCall) -> None:
        with self._cond:
            if call.cancelled or call.fired:
                return
            call.cancelled = True
            self._cancelled += 1
            if self._cancelled * 2 > len(self._heap):
                self._heap = [entry for entry in self._heap if not entry[2].cancelled]
                heapq.heapify(self._heap)
                self._cancelled = 0

    def _next_due(self) -> ScheduledCall | None:
        """Block until a call is due; ``None`` once the scheduler is shut down."""
        with self._cond:
            while not self._stopping:
                if not self._heap:
                    self._cond.wait()
                    continue
                due, _, call = self._heap[0]
                wait = due - self._clock()
                if wait > 0:
                    self._cond.wait(wait)
                    continue
                heapq.heappop(self._heap)
                if call.cancelled:
                    self._cancelled -= 1
                    continue
                call.fired = True
                return call
            return None

    def _run(self) -> None:
        while (call := self._next_due()) is not None:
            try:
                call.callback()
            except Exception:
                logger.exception("Session timer callback failed")


_default_scheduler: ThreadingScheduler | None = None
_default_scheduler_lock = threading.Lock()


def default_scheduler() -> ThreadingScheduler:
    """Process-wide scheduler shared by sessions created without one."""
    global _default_scheduler
    with _default_scheduler_lock:
        if _default_scheduler is None:
            _default_scheduler = ThreadingScheduler()
        return _default_scheduler


@dataclass
class SessionRecord:
    """Snapshot of a session's timing state.  Times come from the injected clock."""

    session_id: str
    started_at: float
    last_activity: float
    expires_at: float
    deadline: float
    state: SessionState = SessionState.created
    logout_reason: LogoutReason | None = None

    def remaining(self, now: float) -> float:
        return max(self.expires_at - now, 0.0)


WarningCallback = Callable[[SessionRecord, float], None]
LogoutCallback = Callable[[SessionRecord, LogoutReason], None]


class SessionTimeout:
    """Timeout scheduling, activity tracking and forced logout for one session.

    Call :meth:`start` to activate the session and arm its timers and
    :meth:`stop` to disarm them without logging out.
    """

    def __init__(
        self,
        session_id: str,
        *,
        idle_timeout: float = 1800,
        max_lifetime: float = 28800,
        warning_before: float = 300,
        check_interval: float = 60,
        hourly_interval: float = 3600,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_warning: WarningCallback | None = None,
        on_logout: LogoutCallback | None = None,
    ) -> None:
        if idle_timeout <= 0 or max_lifetime <= 0:
            raise ValueError("idle_timeout and max_lifetime must be positive")
        self._idle_timeout = idle_timeout
        self._max_lifetime = max_lifetime
        self._warning_before = min(warning_before, idle_timeout)
        self._check_interval = check_interval
        self._hourly_interval = hourly_interval
        self._scheduler: Scheduler = scheduler or default_scheduler()
        self._clock = clock
        self._on_warning = on_warning
        self._on_logout = on_logout

        self._lock = threading.RLock()
        self._timers: list[TimerHandle] = []
        self._generation = 0
        now = clock()
        self._record = SessionRecord(
            session_id=session_id,
            started_at=now,
            last_activity=now,
            expires_at=now + idle_timeout,
            deadline=now + max_lifetime,
        )

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Activate the session and arm its timers.  No-op once started."""
        with self._lock:
            if self._record.state != SessionState.created:
                return
            now = self._clock()
            self._record.started_at = now
            self._record.last_activity = now
            self._record.deadline = now + self._max_lifetime
            self._record.expires_at = min(now + self._idle_timeout, self._record.deadline)
            self._record.state = SessionState.active
            self._reschedule()
        logger.info("Session %s started", self._record.session_id)

    def stop(self) -> None:
        """Cancel all timers without ending the session."""
        with self._lock:
            self._cancel_timers()

    # -- public API ----------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._record.session_id

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._record.state

    @property
    def is_live(self) -> bool:
        return self.state in (SessionState.active, SessionState.warning)

    def snapshot(self) -> SessionRecord:
        """Return a copy of the current record."""
        with self._lock:
            return replace(self._record)

    def remaining(self) -> float:
        """Seconds until the session expires (0 once ended)."""
        with self._lock:
            if not self.is_live:
                return 0.0
            return self._record.remaining(self._clock())

    def record_activity(self) -> SessionRecord:
        """Register user activity and push expiry out by the idle timeout.

        Expiry never moves past the absolute deadline.  Raises
        :class:`SessionExpiredError` if the session has already ended (or
        turns out to be overdue, in which case it is logged out first).
        """
        pending: list[Callable[[], None]] = []
        with self._lock:
            if self._record.state == SessionState.created:
                raise SessionExpiredError(f"Session '{self.session_id}' has not been started")
            if self.is_live and self._clock() >= self._record.expires_at:
                pending.extend(self._end(self._timeout_reason()))
            if not self.is_live:
                ended = True
            else:
                ended = False
                now = self._clock()
                self._record.last_activity = now
                self._record.expires_at = min(now + self._idle_timeout, self._record.deadline)
                self._record.state = SessionState.active
                self._reschedule()
                snapshot = replace(self._record)
        self._run(pending)
        if ended:
            raise SessionExpiredError(f"Session '{self.session_id}' has expired")
        return snapshot

    def logout(self, reason: LogoutReason = LogoutReason.manual) -> None:
        """End the session now.  No-op if it has already ended."""
        with self._lock:
            pending = self._end(reason) if self.is_live else []
        self._run(pending)

    # -- timers --------------------------------------------------------------

    def _reschedule(self) -> None:
        """Replace every timer based on the current record.  Caller holds the lock."""
        self._cancel_timers()
        self._generation += 1
        generation = self._generation
        remaining = self._record.remaining(self._clock())

        def guarded(callback: Callable[[], list[Callable[[], None]]]) -> Callable[[], None]:
            def fire() -> None:
                with self._lock:
                    if generation != self._generation or not self.is_live:
                        return
                    pending = callback()
                self._run(pending)

            return fire

        if self._record.state == SessionState.active:
            self._timers.append(
                self._scheduler.call_later(
                    max(remaining - self._warning_before, 0.0), guarded(self._warn)
                )
            )
        self._timers.append(self._scheduler.call_later(remaining, guarded(self._expire)))
        self._timers.append(
            self._scheduler.call_later(self._check_interval, guarded(self._periodic_check))
        )
        self._timers.append(
            self._scheduler.call_later(self._hourly_interval, guarded(self._hourly_check))
        )

    def _cancel_timers(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers = []
        self._generation += 1

    def _warn(self) -> list[Callable[[], None]]:
        if self._record.state != SessionState.active:
            return []
        self._record.state = SessionState.warning
        record = replace(self._record)
        remaining = record.remaining(self._clock())
        logger.info("Session %s expires in %.0fs", record.session_id, remaining)
        if self._on_warning is None:
            return []
        callback = self._on_warning
        return [lambda: callback(record, remaining)]

    def _expire(self) -> list[Callable[[], None]]:
        if self._clock() < self._record.expires_at:
            # Fired early (clock skew); re-arm against the real expiry
            self._reschedule()
            return []
        return self._end(self._timeout_reason())

    def _periodic_check(self) -> list[Callable[[], None]]:
        now = self._clock()
        if now >= self._record.expires_at:
            return self._end(self._timeout_reason())
        pending = []
        if (
            self._record.state == SessionState.active
            and self._record.expires_at - now <= self._warning_before
        ):
            pending = self._warn()
        self._rearm(self._check_interval, self._periodic_check)
        return pending

    def _hourly_check(self) -> list[Callable[[], None]]:
        if self._clock() >= self._record.deadline:
            return self._end(LogoutReason.max_lifetime)
        self._rearm(self._hourly_interval, self._hourly_check)
        return []

    def _rearm(
        self, delay: float, callback: Callable[[], list[Callable[[], None]]]
    ) -> None:
        """Schedule the next run of a recurring check within the current generation."""
        generation = self._generation

        def fire() -> None:
            with self._lock:
                if generation != self._generation or not self.is_live:
                    return
                pending = callback()
            self._run(pending)

        self._timers.append(self._scheduler.call_later(delay, fire))

    # -- transitions ---------------------------------------------------------

    def _timeout_reason(self) -> LogoutReason:
        if self._record.expires_at >= self._record.deadline:
            return LogoutReason.max_lifetime
        return LogoutReason.idle_timeout

    def _end(self, reason: LogoutReason) -> list[Callable[[], None]]:
        """Transition to a terminal state.  Caller holds the lock."""
        self._cancel_timers()
        self._record.state = (
            SessionState.logged_out if reason == LogoutReason.manual else SessionState.expired
        )
        self._record.logout_reason = reason
        record = replace(self._record)
        logger.info("Session %s ended (%s)", record.session_id, reason.value)
        if self._on_logout is None:
            return []
        callback = self._on_logout
        return [lambda: callback(record, reason)]

    @staticmethod
    def _run(pending: list[Callable[[], None]]) -> None:
        # Callbacks run outside the lock so they may call back into the session
        for callback in pending:
            callback()
