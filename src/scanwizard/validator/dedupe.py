"""Merge duplicate diagnostics and order them by line."""

from __future__ import annotations

from scanwizard.models.diagnostics import Diagnostic, Severity


def _merge(target: Diagnostic, other: Diagnostic) -> None:
    for type_ in (other.type, *other.types):
        if type_ != target.type and type_ not in target.types:
            target.types.append(type_)
    for path in (other.path, *other.paths):
        if path and path != target.path and path not in target.paths:
            target.paths.append(path)
    if other.severity == Severity.error:
        target.severity = Severity.error


def dedupe(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    """Collapse diagnostics sharing ``(message, line, column)``.

    Merged entries collect the other entries' types and paths and take the
    higher severity.  The result is sorted by line (no line sorts first);
    entries on the same line keep their original order.  Inputs are not
    mutated.
    """
    merged: dict[tuple[str, int | None, int | None], Diagnostic] = {}
    for diagnostic in diagnostics:
        existing = merged.get(diagnostic.key)
        if existing is None:
            merged[diagnostic.key] = diagnostic.model_copy(deep=True)
        else:
            _merge(existing, diagnostic)
    return sorted(merged.values(), key=lambda d: d.line or 0)
