"""Tests for diagnostic deduplication and ordering."""

from __future__ import annotations

from scanwizard.models.diagnostics import Diagnostic, DiagnosticType, Severity
from scanwizard.validator.dedupe import dedupe


def _diag(
    message: str = "Problem.",
    line: int | None = 3,
    column: int | None = 5,
    type_: DiagnosticType = DiagnosticType.STRUCTURE,
    severity: Severity = Severity.error,
    path: str | None = None,
) -> Diagnostic:
    return Diagnostic(
        type=type_, message=message, line=line, column=column, severity=severity, path=path
    )


class TestDedupe:
    def test_identical_key_collapses(self) -> None:
        result = dedupe([_diag(path="a"), _diag(path="b")])
        assert len(result) == 1
        assert result[0].path == "a"
        assert result[0].paths == ["b"]

    def test_different_column_kept(self) -> None:
        assert len(dedupe([_diag(column=1), _diag(column=2)])) == 2

    def test_types_are_merged(self) -> None:
        result = dedupe([
            _diag(type_=DiagnosticType.STRUCTURE),
            _diag(type_=DiagnosticType.CONFIGURATION),
            _diag(type_=DiagnosticType.STRUCTURE),
        ])
        assert result[0].type == DiagnosticType.STRUCTURE
        assert result[0].types == [DiagnosticType.CONFIGURATION]

    def test_severity_widens_to_error(self) -> None:
        result = dedupe([_diag(severity=Severity.warning), _diag(severity=Severity.error)])
        assert len(result) == 1
        assert result[0].severity == Severity.error

    def test_warnings_stay_warnings(self) -> None:
        result = dedupe([_diag(severity=Severity.warning), _diag(severity=Severity.warning)])
        assert result[0].severity == Severity.warning

    def test_sorted_by_line_stable(self) -> None:
        result = dedupe([
            _diag(message="c", line=9),
            _diag(message="a", line=2),
            _diag(message="b", line=2),
            _diag(message="none", line=None, column=None),
        ])
        assert [d.message for d in result] == ["none", "a", "b", "c"]

    def test_idempotent(self) -> None:
        once = dedupe([
            _diag(path="x", severity=Severity.warning),
            _diag(path="y", type_=DiagnosticType.EXPRESSION),
            _diag(message="other", line=1),
        ])
        twice = dedupe(once)
        assert [d.model_dump() for d in twice] == [d.model_dump() for d in once]

    def test_inputs_not_mutated(self) -> None:
        first = _diag(severity=Severity.warning, path="a")
        dedupe([first, _diag(path="b")])
        assert first.severity == Severity.warning
        assert first.paths == []

    def test_empty(self) -> None:
        assert dedupe([]) == []
