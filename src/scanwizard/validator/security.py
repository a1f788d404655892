"""Heuristic checks beyond the schema: script injection, unknown keys and inputs.

Everything reported here is a warning.  Checks are textual: step values are
searched for untrusted ``github.event`` fragments by plain containment, not
by parsing the expression language.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from typing import Any

from scanwizard.models.diagnostics import Diagnostic, DiagnosticType, Severity
from scanwizard.parser.locations import LocationIndex, join_path
from scanwizard.schema.workflow_schema import (
    KNOWN_SCAN_INPUTS,
    KNOWN_TOP_LEVEL_KEYS,
    SCAN_ACTION_PATTERN,
)

logger = logging.getLogger("scanwizard.validator")

# Attacker-controlled free text from event payloads.  No fragment is a prefix
# of another, so one value can match each fragment at most once.
UNTRUSTED_FRAGMENTS: tuple[str, ...] = (
    "github.event.issue.title",
    "github.event.issue.body",
    "github.event.pull_request.title",
    "github.event.pull_request.body",
    "github.event.pull_request.head.ref",
    "github.event.pull_request.head.label",
    "github.event.comment.body",
    "github.event.review.body",
    "github.event.review_comment.body",
    "github.event.discussion.title",
    "github.event.discussion.body",
    "github.event.head_commit.message",
    "github.event.head_commit.author.name",
    "github.event.head_commit.author.email",
    "github.event.workflow_run.head_branch",
    "github.head_ref",
)

_SCAN_ACTION_RE = re.compile(SCAN_ACTION_PATTERN)
_EXPRESSION_OPEN = "${{"
_EXPRESSION_CLOSE = "}}"


def _iter_steps(document: dict[str, Any]) -> Iterator[tuple[str, dict[str, Any]]]:
    jobs = document.get("jobs")
    if not isinstance(jobs, dict):
        return
    for job_name, job in jobs.items():
        if not isinstance(job, dict) or not isinstance(job.get("steps"), list):
            continue
        for i, step in enumerate(job["steps"]):
            if isinstance(step, dict):
                yield f"jobs.{job_name}.steps.{i}", step


def _iter_strings(node: Any, path: str) -> Iterator[tuple[str, str]]:
    match node:
        case str():
            yield path, node
        case dict():
            for key, value in node.items():
                yield from _iter_strings(value, join_path(path, key))
        case list():
            for i, item in enumerate(node):
                yield from _iter_strings(item, join_path(path, i))
        case _:
            return


def _warning(
    index: LocationIndex, type_: DiagnosticType, message: str, path: str
) -> Diagnostic:
    span = index.resolve(path)
    return Diagnostic(
        type=type_,
        message=message,
        line=span.line,
        column=span.column,
        path=path,
        severity=Severity.warning,
    )


def check_untrusted_expressions(
    document: dict[str, Any], index: LocationIndex
) -> list[Diagnostic]:
    """Warn about untrusted event fields interpolated directly into steps."""
    diagnostics: list[Diagnostic] = []
    for step_path, step in _iter_steps(document):
        # env is where the recommended fix puts the value
        fields = {key: value for key, value in step.items() if key != "env"}
        for field_path, value in _iter_strings(fields, step_path):
            for fragment in UNTRUSTED_FRAGMENTS:
                if fragment not in value:
                    continue
                diagnostics.append(
                    _warning(
                        index,
                        DiagnosticType.EXPRESSION,
                        f"'{fragment}' is attacker-controlled and is interpolated directly "
                        f"in '{field_path}'. Pass it through an environment variable instead, "
                        f"e.g. 'env: {{ VALUE: ${{{{ {fragment} }}}} }}' and use \"$VALUE\".",
                        field_path,
                    )
                )
    return diagnostics


def check_unterminated_expressions(
    document: dict[str, Any], index: LocationIndex
) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for field_path, value in _iter_strings(document, ""):
        opened = value.count(_EXPRESSION_OPEN)
        if opened and opened > value.count(_EXPRESSION_CLOSE):
            diagnostics.append(
                _warning(
                    index,
                    DiagnosticType.EXPRESSION,
                    f"Expression in '{field_path}' is not closed. Every '${{{{' needs a "
                    "matching '}}', e.g. '${{ secrets.GITHUB_TOKEN }}'.",
                    field_path,
                )
            )
    return diagnostics


def check_unexpected_keys(document: dict[str, Any], index: LocationIndex) -> list[Diagnostic]:
    allowed = ", ".join(sorted(KNOWN_TOP_LEVEL_KEYS))
    return [
        _warning(
            index,
            DiagnosticType.UNEXPECTED_KEY,
            f"Unexpected top-level key '{key}'. Workflow keys are: {allowed}.",
            key,
        )
        for key in document
        if key not in KNOWN_TOP_LEVEL_KEYS
    ]


def check_scan_inputs(document: dict[str, Any], index: LocationIndex) -> list[Diagnostic]:
    """Warn about inputs the Black Duck scan action does not recognise."""
    diagnostics: list[Diagnostic] = []
    for step_path, step in _iter_steps(document):
        uses = step.get("uses")
        inputs = step.get("with")
        if not isinstance(uses, str) or not _SCAN_ACTION_RE.match(uses):
            continue
        if not isinstance(inputs, dict):
            continue
        for name in inputs:
            if name in KNOWN_SCAN_INPUTS:
                continue
            diagnostics.append(
                _warning(
                    index,
                    DiagnosticType.UNKNOWN_INPUT,
                    f"Unknown input '{name}' for the Black Duck security scan action. "
                    "Check the spelling against the action's documented inputs, e.g. "
                    "'polaris_server_url' or 'blackducksca_token'.",
                    join_path(join_path(step_path, "with"), name),
                )
            )
    return diagnostics


_CHECKS = (
    check_unexpected_keys,
    check_untrusted_expressions,
    check_unterminated_expressions,
    check_scan_inputs,
)


def check_additional(document: dict[str, Any], index: LocationIndex) -> list[Diagnostic]:
    """Run every heuristic check; an internal failure becomes one generic warning."""
    diagnostics: list[Diagnostic] = []
    for check in _CHECKS:
        try:
            diagnostics.extend(check(document, index))
        except Exception:
            logger.warning("Additional check %s failed", check.__name__, exc_info=True)
            diagnostics.append(
                Diagnostic(
                    type=DiagnosticType.STRUCTURE,
                    message="Some additional workflow checks could not be completed.",
                    line=1,
                    column=1,
                    severity=Severity.warning,
                )
            )
    return diagnostics
