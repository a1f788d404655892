"""``scanwizard-lint``: validate workflow files from the command line."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from scanwizard import __version__
from scanwizard.filenames import suggest_filename_correction, validate_workflow_filename
from scanwizard.parser.loader import TrackedLoader
from scanwizard.settings import Settings
from scanwizard.validator.pipeline import WorkflowValidator, format_diagnostics

logger = logging.getLogger("scanwizard.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scanwizard-lint",
        description="Validate GitHub Actions workflows that run Black Duck security scans.",
    )
    parser.add_argument("files", nargs="*", type=Path, help="Workflow files to validate")
    parser.add_argument(
        "--check-filename",
        action="store_true",
        help="Also validate each file's name and suggest a corrected one",
    )
    parser.add_argument(
        "--format", choices=("text", "json"), default="text", help="Report format"
    )
    parser.add_argument(
        "--warnings-as-errors",
        action="store_true",
        help="Exit non-zero when only warnings are reported",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _check_name(path: Path) -> list[str]:
    errors = validate_workflow_filename(path.name)
    if not errors:
        return []
    lines = [f"{e.type.value}: {e.message}" for e in errors]
    lines.append(f"suggested name: {suggest_filename_correction(path.name)}")
    return lines


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.files:
        parser.error("at least one workflow file is required")

    settings = Settings()
    logging.basicConfig(level=settings.log_level.upper(), stream=sys.stderr)
    validator = WorkflowValidator(
        loader=TrackedLoader(max_document_size=settings.max_document_size)
    )

    failed = False
    json_report: dict[str, dict[str, object]] = {}
    for path in args.files:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Cannot read %s: %s", path, exc)
            failed = True
            continue

        result = validator.validate(text)
        name_problems = _check_name(path) if args.check_filename else []
        if not result.valid or name_problems:
            failed = True
        elif result.warnings and args.warnings_as_errors:
            failed = True

        if args.format == "json":
            json_report[str(path)] = {
                "valid": result.valid and not name_problems,
                "diagnostics": [d.model_dump(mode="json") for d in result.diagnostics],
                "filename": name_problems,
            }
            continue

        if not result.diagnostics and not name_problems:
            print(f"{path}: OK")
            continue
        print(f"{path}:")
        if result.diagnostics:
            print(format_diagnostics(result.diagnostics))
        for line in name_problems:
            print(f"filename {line}")
        print()

    if args.format == "json":
        print(json.dumps(json_report, indent=2))
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
