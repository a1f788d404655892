"""Pydantic domain models for ScanWizard."""

from scanwizard.models.diagnostics import (
    Diagnostic,
    DiagnosticType,
    FilenameErrorType,
    FilenameValidationError,
    Severity,
    SourceSpan,
)

__all__ = [
    "Diagnostic",
    "DiagnosticType",
    "FilenameErrorType",
    "FilenameValidationError",
    "Severity",
    "SourceSpan",
]
