"""Workflow validation engine."""

from scanwizard.validator.dedupe import dedupe
from scanwizard.validator.pipeline import WorkflowValidation, WorkflowValidator, format_diagnostics
from scanwizard.validator.scan_check import ScanCheckResult, check_scan_steps
from scanwizard.validator.security import check_additional
from scanwizard.validator.translator import ErrorTranslator

__all__ = [
    "ErrorTranslator",
    "ScanCheckResult",
    "WorkflowValidation",
    "WorkflowValidator",
    "check_additional",
    "check_scan_steps",
    "dedupe",
    "format_diagnostics",
]
