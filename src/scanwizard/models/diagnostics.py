"""Diagnostic models with YAML source position tracking."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class DiagnosticType(str, Enum):
    """Closed set of diagnostic classifications."""

    SYNTAX_ERROR = "syntax-error"
    MISSING_FIELD = "missing-field"
    INVALID_VALUE = "invalid-value"
    RUNNER_LABEL = "runner-label"
    EXPRESSION = "expression"
    ACTION = "action"
    GLOB = "glob"
    CONFIGURATION = "configuration"
    STRUCTURE = "structure"
    UNEXPECTED_KEY = "unexpected-key"
    INVALID_CHARACTER = "invalid-character"
    UNKNOWN_INPUT = "unknown-input"
    UNDEFINED_PROPERTY = "undefined-property"
    TYPE_MISMATCH = "type-mismatch"


class Severity(str, Enum):
    """Severity of a diagnostic.  ``error`` outranks ``warning``."""

    error = "error"
    warning = "warning"


class SourceSpan(BaseModel):
    """Points to a location in the YAML source (1-based)."""

    line: int
    column: int
    path: str = ""


class Diagnostic(BaseModel):
    """A single reported issue in a workflow document.

    ``types`` and ``paths`` only carry entries when several diagnostics with the
    same message and position were merged into this one.
    """

    type: DiagnosticType
    message: str
    line: int | None = None
    column: int | None = None
    path: str | None = None
    severity: Severity = Severity.error
    types: list[DiagnosticType] = Field(default_factory=list)
    paths: list[str] = Field(default_factory=list)

    @property
    def key(self) -> tuple[str, int | None, int | None]:
        return (self.message, self.line, self.column)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.error


class FilenameErrorType(str, Enum):
    """Category of a workflow filename problem."""

    extension = "extension"
    characters = "characters"
    length = "length"
    reserved = "reserved"
    path = "path"


class FilenameValidationError(BaseModel):
    """A problem with a candidate workflow filename (no source position)."""

    type: FilenameErrorType
    message: str
