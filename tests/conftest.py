"""Shared test fixtures for ScanWizard."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from itertools import count

import pytest

from scanwizard.parser.loader import TrackedLoader
from scanwizard.service.session_manager import SessionManager
from scanwizard.validator.pipeline import WorkflowValidator


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


@dataclass
class ManualTimer:
    due: float
    seq: int
    callback: Callable[[], None]
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose timers only fire when :meth:`advance` moves the clock."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self._timers: list[ManualTimer] = []
        self._seq = count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(due=self.clock.now + delay, seq=next(self._seq), callback=callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self._timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self.clock.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self._timers.remove(timer)
            self.clock.now = max(self.clock.now, timer.due)
            timer.callback()
        self.clock.now = target


@pytest.fixture
def loader() -> TrackedLoader:
    return TrackedLoader()


@pytest.fixture
def validator() -> WorkflowValidator:
    return WorkflowValidator()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def session_manager(clock: FakeClock, scheduler: ManualScheduler) -> SessionManager:
    """Started SessionManager driven by the fake clock (30 min idle, 8 h max)."""
    mgr = SessionManager(
        idle_timeout=1800,
        max_lifetime=28800,
        warning_before=300,
        check_interval=60,
        hourly_interval=3600,
        scheduler=scheduler,
        clock=clock,
    )
    mgr.start()
    return mgr


VALID_WORKFLOW = """\
name: Black Duck Security Scan
on:
  push:
    branches: [main]
  pull_request:
    branches: [main]
jobs:
  security-scan:
    runs-on: ubuntu-latest
    steps:
      - name: Checkout
        uses: actions/checkout@v4
      - name: Black Duck scan
        id: black-duck-scan
        uses: blackduck-inc/black-duck-security-scan@v2
        with:
          polaris_server_url: ${{ vars.POLARIS_SERVER_URL }}
          polaris_access_token: ${{ secrets.POLARIS_ACCESS_TOKEN }}
          polaris_assessment_types: "SAST,SCA"
"""

MISSING_TRIGGER_WORKFLOW = """\
name: Black Duck Security Scan
jobs:
  security-scan:
    runs-on: ubuntu-latest
    steps:
      - uses: blackduck-inc/black-duck-security-scan@v2
        with:
          blackducksca_url: ${{ vars.BLACKDUCKSCA_URL }}
          blackducksca_token: ${{ secrets.BLACKDUCKSCA_TOKEN }}
"""

MISSING_RUNNER_WORKFLOW = """\
name: Black Duck Security Scan
on: push
jobs:
  scan-job:
    steps:
      - uses: blackduck-inc/black-duck-security-scan@v2
        with:
          blackducksca_url: ${{ vars.BLACKDUCKSCA_URL }}
          blackducksca_token: ${{ secrets.BLACKDUCKSCA_TOKEN }}
"""

USES_AND_RUN_WORKFLOW = """\
name: Black Duck Security Scan
on: [push, pull_request]
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
        run: echo "checked out"
      - uses: blackduck-inc/black-duck-security-scan@v2
        with:
          github_token: ${{ secrets.GITHUB_TOKEN }}
"""

NO_CREDENTIALS_WORKFLOW = """\
name: Black Duck Security Scan
on: push
jobs:
  security-scan:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - uses: blackduck-inc/black-duck-security-scan@v2
        with:
          project_directory: ./src
"""

UNTRUSTED_TITLE_WORKFLOW = """\
name: Black Duck Security Scan
on: pull_request
jobs:
  security-scan:
    runs-on: ubuntu-latest
    steps:
      - name: Greet
        run: echo "PR title ${{ github.event.pull_request.title }}"
      - uses: blackduck-inc/black-duck-security-scan@v2
        with:
          polaris_server_url: ${{ vars.POLARIS_SERVER_URL }}
          polaris_access_token: ${{ secrets.POLARIS_ACCESS_TOKEN }}
"""

NO_SCAN_STEP_WORKFLOW = """\
name: CI
on: push
jobs:
  test:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - run: make test
"""

BROKEN_YAML = """\
name: Black Duck Security Scan
on: push
jobs:
  scan:
    runs-on: ubuntu-latest: extra
"""
