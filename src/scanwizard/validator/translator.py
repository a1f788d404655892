"""Translate raw schema violations into user-facing workflow diagnostics.

Rules run in a fixed priority order and the first rule that applies decides
the outcome: a :class:`Diagnostic`, or suppression of an error that a more
specific rule already reports.  Errors no rule recognises are dropped.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from scanwizard.models.diagnostics import Diagnostic, DiagnosticType, Severity
from scanwizard.parser.locations import LocationIndex, join_path
from scanwizard.schema.validator import RawSchemaError
from scanwizard.schema.workflow_schema import (
    SCAN_ACTION_PATTERN,
    SCAN_BACKENDS,
    SCAN_VENDOR_NAMESPACE,
)

_JSON_TYPES: list[tuple[type, str]] = [
    (bool, "boolean"),
    (int, "number"),
    (float, "number"),
    (str, "string"),
    (list, "array"),
    (dict, "object"),
]

_SCAN_ACTION_RE = re.compile(SCAN_ACTION_PATTERN)

_ROOT_FIELD_EXAMPLES = {
    "name": "name: Black Duck Security Scan",
    "jobs": "jobs: { security-scan: { runs-on: ubuntu-latest, steps: [...] } }",
}


class _Suppressed:
    """Marker returned by a rule that deliberately drops an error."""


SUPPRESS = _Suppressed()

RuleResult = Diagnostic | _Suppressed | None


def json_type(value: Any) -> str:
    if value is None:
        return "null"
    for py_type, name in _JSON_TYPES:
        if isinstance(value, py_type):
            return name
    return type(value).__name__


def backend_requirements() -> str:
    """Human-readable list of the credential sets each scan backend needs."""
    parts = [f"{label} ({' + '.join(inputs)})" for label, inputs in SCAN_BACKENDS.values()]
    return ", ".join(parts[:-1]) + f", or {parts[-1]}"


@dataclass
class _ErrorContext:
    error: RawSchemaError
    index: LocationIndex
    document: Any

    @property
    def segments(self) -> list[str]:
        return self.error.segments

    @property
    def keyword(self) -> str:
        return self.error.keyword

    @property
    def missing(self) -> str | None:
        return self.error.params.get("missingProperty")

    @property
    def job_name(self) -> str | None:
        segs = self.segments
        if len(segs) >= 2 and segs[0] == "jobs":
            return segs[1]
        return None

    @property
    def step_index(self) -> int | None:
        segs = self.segments
        if len(segs) >= 4 and segs[0] == "jobs" and segs[2] == "steps" and segs[3].isdigit():
            return int(segs[3])
        return None

    @property
    def is_scan_step(self) -> bool:
        index = self.step_index
        if index is None:
            return False
        try:
            step = self.document["jobs"][self.job_name]["steps"][index]
        except (KeyError, IndexError, TypeError):
            return False
        uses = step.get("uses") if isinstance(step, dict) else None
        return isinstance(uses, str) and _SCAN_ACTION_RE.match(uses) is not None

    def diagnostic(
        self,
        type_: DiagnosticType,
        message: str,
        path: str | None = None,
        severity: Severity = Severity.error,
    ) -> Diagnostic:
        target = self.error.path if path is None else path
        span = self.index.resolve(target)
        return Diagnostic(
            type=type_,
            message=message,
            line=span.line,
            column=span.column,
            path=target or None,
            severity=severity,
        )


class ErrorTranslator:
    """Maps :class:`RawSchemaError` objects to :class:`Diagnostic` objects."""

    def __init__(self) -> None:
        self._rules: tuple[Callable[[_ErrorContext], RuleResult], ...] = (
            self._root_missing_trigger,
            self._root_missing_field,
            self._root_missing_scan_job,
            self._trigger_shape,
            self._job_runner,
            self._job_steps,
            self._jobs_block,
            self._step_uses_or_run,
            self._step_id_pattern,
            self._step_uses_pattern,
            self._scan_configuration,
            self._type_mismatch,
            self._empty_value,
            self._enum_value,
            self._too_few_items,
        )

    def translate(
        self, error: RawSchemaError, index: LocationIndex, document: Any
    ) -> Diagnostic | None:
        ctx = _ErrorContext(error=error, index=index, document=document)
        for rule in self._rules:
            result = rule(ctx)
            if result is None:
                continue
            if isinstance(result, _Suppressed):
                return None
            return result
        return None

    # -- root ------------------------------------------------------------------

    def _root_missing_trigger(self, ctx: _ErrorContext) -> RuleResult:
        if ctx.segments or ctx.keyword != "required" or ctx.missing != "on":
            return None
        return ctx.diagnostic(
            DiagnosticType.MISSING_FIELD,
            "Workflow is missing the 'on' trigger that decides when it runs. "
            "Add at least one event, e.g. 'on: [push, pull_request]' or "
            "'on: { push: { branches: [main] } }'.",
            path="on",
        )

    def _root_missing_field(self, ctx: _ErrorContext) -> RuleResult:
        if ctx.segments or ctx.keyword != "required" or not ctx.missing:
            return None
        message = f"Missing required field '{ctx.missing}'."
        example = _ROOT_FIELD_EXAMPLES.get(ctx.missing)
        if example:
            message += f" Example: '{example}'."
        return ctx.diagnostic(DiagnosticType.MISSING_FIELD, message, path=ctx.missing)

    def _root_missing_scan_job(self, ctx: _ErrorContext) -> RuleResult:
        if ctx.segments or ctx.keyword != "anyOf":
            return None
        if not isinstance(ctx.document, dict) or "jobs" not in ctx.document:
            return SUPPRESS
        return ctx.diagnostic(
            DiagnosticType.STRUCTURE,
            "Workflow must contain at least one job with a Black Duck security scan step, "
            "e.g. a step with 'uses: blackduck-inc/black-duck-security-scan@v2'.",
            path="jobs",
        )

    # -- triggers --------------------------------------------------------------

    def _trigger_shape(self, ctx: _ErrorContext) -> RuleResult:
        segs = ctx.segments
        if not segs or segs[0] != "on" or ctx.keyword not in ("oneOf", "type"):
            return None
        if len(segs) == 1:
            message = (
                "Invalid trigger configuration for 'on'. Use an event name "
                "('on: push'), a list of events ('on: [push, pull_request]'), or a "
                "mapping of events to their filters ('on: { push: { branches: [main] } }')."
            )
        else:
            message = (
                f"Invalid configuration for trigger '{segs[1]}'. Leave it empty or "
                f"provide a mapping of filters, e.g. '{segs[1]}: {{ branches: [main] }}'."
            )
        return ctx.diagnostic(DiagnosticType.CONFIGURATION, message)

    # -- jobs ------------------------------------------------------------------

    def _job_runner(self, ctx: _ErrorContext) -> RuleResult:
        job = ctx.job_name
        if job is None or ctx.step_index is not None:
            return None
        segs = ctx.segments
        missing_runner = len(segs) == 2 and ctx.keyword == "required" and ctx.missing == "runs-on"
        bad_runner = segs[2:] == ["runs-on"] and ctx.keyword in ("oneOf", "type")
        if not (missing_runner or bad_runner):
            return None
        verb = "is missing" if missing_runner else "has an invalid"
        return ctx.diagnostic(
            DiagnosticType.RUNNER_LABEL,
            f"Job '{job}' {verb} 'runs-on'. Specify the runner label to execute on, "
            "e.g. 'runs-on: ubuntu-latest'.",
            path=join_path(f"jobs.{job}", "runs-on"),
        )

    def _job_steps(self, ctx: _ErrorContext) -> RuleResult:
        job = ctx.job_name
        if job is None or ctx.step_index is not None:
            return None
        segs = ctx.segments
        missing_steps = len(segs) == 2 and ctx.keyword == "required" and ctx.missing == "steps"
        bad_steps = segs[2:] == ["steps"] and ctx.keyword in ("minItems", "type")
        if not (missing_steps or bad_steps):
            return None
        return ctx.diagnostic(
            DiagnosticType.STRUCTURE,
            f"Job '{job}' must define 'steps' as a list with at least one step, "
            "e.g. 'steps: [{ uses: actions/checkout@v4 }]'.",
            path=join_path(f"jobs.{job}", "steps"),
        )

    def _jobs_block(self, ctx: _ErrorContext) -> RuleResult:
        if ctx.segments != ["jobs"] or ctx.keyword not in ("minProperties", "type"):
            return None
        return ctx.diagnostic(
            DiagnosticType.STRUCTURE,
            "'jobs' must be a mapping with at least one job, e.g. "
            "'jobs: { security-scan: { runs-on: ubuntu-latest, steps: [...] } }'.",
        )

    # -- steps -----------------------------------------------------------------

    def _step_uses_or_run(self, ctx: _ErrorContext) -> RuleResult:
        step = ctx.step_index
        if step is None or len(ctx.segments) != 4 or ctx.keyword != "oneOf":
            return None
        data = ctx.error.data
        if not isinstance(data, dict):
            # The type mismatch on the step itself is the useful report
            return SUPPRESS
        if "uses" in data and "run" in data:
            problem = "has both 'uses' and 'run'"
        else:
            problem = "has neither 'uses' nor 'run'"
        return ctx.diagnostic(
            DiagnosticType.STRUCTURE,
            f"Step {step + 1} in job '{ctx.job_name}' {problem}. A step must have exactly "
            "one of them: 'uses' for an action (e.g. 'uses: actions/checkout@v4') or "
            "'run' for a shell command (e.g. 'run: npm test').",
        )

    def _step_id_pattern(self, ctx: _ErrorContext) -> RuleResult:
        if ctx.step_index is None or ctx.segments[4:] != ["id"] or ctx.keyword != "pattern":
            return None
        return ctx.diagnostic(
            DiagnosticType.INVALID_CHARACTER,
            f"Step id '{ctx.error.data}' is invalid. An id must start with a letter or '_' "
            "and contain only letters, digits, '-' and '_', e.g. 'black-duck-scan' or "
            "'scan_1'.",
        )

    def _step_uses_pattern(self, ctx: _ErrorContext) -> RuleResult:
        if ctx.step_index is None or ctx.segments[4:] != ["uses"] or ctx.keyword != "pattern":
            return None
        return ctx.diagnostic(
            DiagnosticType.ACTION,
            f"Invalid action reference '{ctx.error.data}'. Use the 'owner/repo@version' "
            "format, e.g. 'actions/checkout@v4' or "
            "'blackduck-inc/black-duck-security-scan@v2'.",
        )

    def _scan_configuration(self, ctx: _ErrorContext) -> RuleResult:
        mentions_vendor = SCAN_VENDOR_NAMESPACE in _as_text(ctx.error.data)
        credentials_failed = "with" in ctx.segments and ctx.keyword == "anyOf"
        # null or scalar `with` on a scan step
        if ctx.segments[4:] == ["with"] and ctx.keyword == "type" and ctx.is_scan_step:
            credentials_failed = True
        if not (mentions_vendor or credentials_failed):
            return None
        where = f" in job '{ctx.job_name}'" if ctx.job_name else ""
        path = ctx.error.path
        if ctx.step_index is not None and len(ctx.segments) == 4:
            path = join_path(path, "with")
        return ctx.diagnostic(
            DiagnosticType.CONFIGURATION,
            f"Black Duck security scan step{where} needs credentials for at least one "
            f"backend under 'with': {backend_requirements()}.",
            path=path,
        )

    # -- generic fallbacks -----------------------------------------------------

    def _type_mismatch(self, ctx: _ErrorContext) -> RuleResult:
        if ctx.keyword != "type":
            return None
        expected = ctx.error.params.get("type")
        if isinstance(expected, list):
            expected = " or ".join(expected)
        actual = json_type(ctx.error.data)
        field = ctx.error.path or "document"
        return ctx.diagnostic(
            DiagnosticType.TYPE_MISMATCH,
            f"'{field}' must be of type {expected}, but got {actual}.",
        )

    def _empty_value(self, ctx: _ErrorContext) -> RuleResult:
        if ctx.keyword != "minLength":
            return None
        return ctx.diagnostic(
            DiagnosticType.INVALID_VALUE,
            f"'{ctx.error.path}' cannot be empty.",
        )

    def _enum_value(self, ctx: _ErrorContext) -> RuleResult:
        if ctx.keyword != "enum":
            return None
        allowed = ", ".join(str(v) for v in ctx.error.params.get("allowedValues", []))
        return ctx.diagnostic(
            DiagnosticType.INVALID_VALUE,
            f"'{ctx.error.data}' is not an allowed value for '{ctx.error.path}'. "
            f"Allowed values: {allowed}.",
        )

    def _too_few_items(self, ctx: _ErrorContext) -> RuleResult:
        if ctx.keyword != "minItems":
            return None
        limit = ctx.error.params.get("limit", 1)
        return ctx.diagnostic(
            DiagnosticType.INVALID_VALUE,
            f"'{ctx.error.path}' must contain at least {limit} item(s).",
        )


def _as_text(data: Any) -> str:
    if isinstance(data, str):
        return data
    try:
        return json.dumps(data, default=str)
    except (TypeError, ValueError):
        return str(data)
