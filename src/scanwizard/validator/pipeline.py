"""Validation pipeline: YAML → location index → schema → translation → checks → dedupe."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ruamel.yaml.error import MarkedYAMLError, YAMLError

from scanwizard.models.diagnostics import Diagnostic, DiagnosticType, Severity
from scanwizard.parser.loader import TrackedLoader, YAMLSafetyError
from scanwizard.schema.validator import SchemaValidator
from scanwizard.validator.dedupe import dedupe
from scanwizard.validator.security import check_additional
from scanwizard.validator.translator import ErrorTranslator

logger = logging.getLogger("scanwizard.validator")

_SYNTAX_HINT = "Check indentation, quoting and colons."


@dataclass
class WorkflowValidation:
    """Diagnostics for one document plus the parsed tree (``None`` if unparseable)."""

    diagnostics: list[Diagnostic] = field(default_factory=list)
    document: dict[str, Any] | None = None

    @property
    def valid(self) -> bool:
        return not any(d.is_error for d in self.diagnostics)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.error]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.warning]


class WorkflowValidator:
    """Orchestrates all validation stages for a workflow document.

    Holds only stateless collaborators, so a single instance can be shared
    across threads and requests.
    """

    def __init__(self, loader: TrackedLoader | None = None) -> None:
        self._loader = loader or TrackedLoader()
        self._schema_validator = SchemaValidator()
        self._translator = ErrorTranslator()

    def get_yaml_errors(self, text: str) -> list[Diagnostic]:
        """Return the deduplicated, line-sorted diagnostics for *text*."""
        return self.validate(text).diagnostics

    def validate(self, text: str) -> WorkflowValidation:
        # Stage 1: parse (terminal on failure)
        try:
            document, index = self._loader.load_string(text)
        except YAMLSafetyError as exc:
            return WorkflowValidation(
                diagnostics=[Diagnostic(type=DiagnosticType.SYNTAX_ERROR, message=str(exc))]
            )
        except YAMLError as exc:
            return WorkflowValidation(diagnostics=[self._syntax_diagnostic(exc)])
        except Exception:
            logger.warning("Unexpected failure while parsing workflow YAML", exc_info=True)
            return WorkflowValidation(
                diagnostics=[
                    Diagnostic(
                        type=DiagnosticType.SYNTAX_ERROR,
                        message=f"Invalid YAML syntax. {_SYNTAX_HINT}",
                    )
                ]
            )

        # Stage 2: structural prerequisite
        if not isinstance(document, dict):
            return WorkflowValidation(
                diagnostics=[
                    Diagnostic(
                        type=DiagnosticType.STRUCTURE,
                        message=(
                            "Workflow must be a valid object: a mapping with keys such as "
                            "'name', 'on' and 'jobs'."
                        ),
                        line=1,
                        column=1,
                    )
                ]
            )

        # Stage 3: schema validation and translation
        diagnostics: list[Diagnostic] = []
        raw_errors = self._schema_validator.validate(document)
        for raw in raw_errors:
            diagnostic = self._translator.translate(raw, index, document)
            if diagnostic is None:
                logger.debug(
                    "Dropped schema error %s at '%s': %s",
                    raw.keyword, raw.instance_path, raw.message,
                )
                continue
            diagnostics.append(diagnostic)

        # Stage 4: heuristic warnings (never discards earlier diagnostics)
        diagnostics.extend(check_additional(document, index))

        result = dedupe(diagnostics)
        logger.debug(
            "Validated workflow: %d schema errors, %d diagnostics after dedupe",
            len(raw_errors), len(result),
        )
        return WorkflowValidation(diagnostics=result, document=document)

    @staticmethod
    def _syntax_diagnostic(exc: YAMLError) -> Diagnostic:
        mark = exc.problem_mark if isinstance(exc, MarkedYAMLError) else None
        if mark is None:
            return Diagnostic(
                type=DiagnosticType.SYNTAX_ERROR,
                message=f"Invalid YAML syntax. {_SYNTAX_HINT}",
            )
        problem = exc.problem or "unexpected content"
        return Diagnostic(
            type=DiagnosticType.SYNTAX_ERROR,
            message=f"YAML syntax error: {problem}. {_SYNTAX_HINT}",
            line=mark.line + 1,
            column=mark.column + 1,
        )


def format_diagnostics(diagnostics: list[Diagnostic]) -> str:
    """Render diagnostics as ``line:L, col:C message [path]`` blocks."""
    blocks = []
    for d in diagnostics:
        text = f"line:{d.line or 1}, col:{d.column or 1} {d.message}"
        if d.path:
            text += f" [{d.path}]"
        blocks.append(text)
    return "\n\n".join(blocks)
