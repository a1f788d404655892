"""Workflow filename validation and correction.

Both functions are pure.  :func:`validate_workflow_filename` evaluates every
rule and reports all problems at once; :func:`suggest_filename_correction`
rewrites a name into one that passes the extension, path and reserved-name
rules.
"""

from __future__ import annotations

import re

from scanwizard.models.diagnostics import FilenameErrorType, FilenameValidationError

MAX_FILENAME_LENGTH = 100
DEFAULT_FILENAME = "workflow.yml"
DEFAULT_EXTENSION = ".yml"
VALID_EXTENSIONS = (".yml", ".yaml")

RESERVED_NAMES: frozenset[str] = frozenset(
    {"con", "prn", "aux", "nul"}
    | {f"com{i}" for i in range(1, 10)}
    | {f"lpt{i}" for i in range(1, 10)}
)

FORBIDDEN_CHARS_RE = re.compile(r'[\x00-\x1f<>:"|?*]')
DISCOURAGED_CHARS_RE = re.compile(r"[!@#$%^&()+=\[\]{};',`~]")
ALLOWED_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_PATH_SEPARATORS_RE = re.compile(r"[/\\]")
_OTHER_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]{1,5}$")


def _stem(name: str) -> str:
    return name.rsplit(".", 1)[0] if "." in name else name


def _has_valid_extension(name: str) -> bool:
    return name.lower().endswith(VALID_EXTENSIONS)


def validate_workflow_filename(name: str) -> list[FilenameValidationError]:
    """Return every problem with *name* as a workflow filename."""
    errors: list[FilenameValidationError] = []

    def report(type_: FilenameErrorType, message: str) -> None:
        errors.append(FilenameValidationError(type=type_, message=message))

    trimmed = name.strip()
    if not trimmed:
        report(FilenameErrorType.length, "Filename cannot be empty.")

    if len(name) > MAX_FILENAME_LENGTH:
        report(
            FilenameErrorType.length,
            f"Filename is {len(name)} characters long; the maximum is {MAX_FILENAME_LENGTH}.",
        )

    if _PATH_SEPARATORS_RE.search(name):
        report(
            FilenameErrorType.path,
            "Filename cannot contain path separators ('/' or '\\'). Workflow files live "
            "directly in .github/workflows.",
        )

    if not _has_valid_extension(trimmed):
        report(FilenameErrorType.extension, "Filename must end with .yml or .yaml.")

    if FORBIDDEN_CHARS_RE.search(name):
        report(
            FilenameErrorType.characters,
            'Filename cannot contain control characters or any of < > : " | ? *.',
        )

    discouraged = sorted(set(DISCOURAGED_CHARS_RE.findall(name)))
    if discouraged:
        report(
            FilenameErrorType.characters,
            f"Filename should not contain these characters: {' '.join(discouraged)}.",
        )

    if trimmed and not ALLOWED_NAME_RE.match(trimmed):
        report(
            FilenameErrorType.characters,
            "Filename should only contain letters, digits, dots, hyphens and underscores.",
        )

    if _stem(trimmed).lower() in RESERVED_NAMES:
        report(
            FilenameErrorType.reserved,
            f"'{_stem(trimmed)}' is a reserved device name and cannot be used as a filename.",
        )

    if trimmed.startswith(".") or trimmed.endswith("."):
        report(FilenameErrorType.characters, "Filename cannot start or end with a dot.")

    if ".." in name:
        report(FilenameErrorType.path, "Filename cannot contain consecutive dots ('..').")

    if " " in name:
        report(
            FilenameErrorType.characters,
            "Filename should not contain spaces; use hyphens or underscores instead.",
        )

    return errors


def suggest_filename_correction(name: str) -> str:
    """Rewrite *name* into a usable workflow filename.

    Deterministic: separators and unsafe characters become hyphens, repeated
    dots and hyphens collapse, the extension is normalised to ``.yml`` when
    missing or invalid, the stem is truncated to fit :data:`MAX_FILENAME_LENGTH`
    and a reserved stem then gets a ``-workflow`` suffix.
    """
    cleaned = name.strip()
    cleaned = _PATH_SEPARATORS_RE.sub("-", cleaned)
    cleaned = FORBIDDEN_CHARS_RE.sub("-", cleaned)
    cleaned = DISCOURAGED_CHARS_RE.sub("-", cleaned)
    cleaned = re.sub(r"\s+", "-", cleaned)
    cleaned = re.sub(r"[^A-Za-z0-9_.-]", "-", cleaned)
    cleaned = re.sub(r"\.{2,}", ".", cleaned)
    cleaned = re.sub(r"-{2,}", "-", cleaned)
    cleaned = cleaned.strip(".-")

    if not cleaned or cleaned.lower() in ("yml", "yaml"):
        return DEFAULT_FILENAME

    if _has_valid_extension(cleaned):
        stem, ext = cleaned.rsplit(".", 1)
        extension = f".{ext}"
    else:
        stem = _OTHER_EXTENSION_RE.sub("", cleaned)
        extension = DEFAULT_EXTENSION

    stem = stem.strip(".-")
    if not stem:
        return DEFAULT_FILENAME

    stem = stem[: MAX_FILENAME_LENGTH - len(extension)].rstrip(".-")
    if not stem:
        return DEFAULT_FILENAME

    # a truncated stem can itself be reserved
    if stem.lower() in RESERVED_NAMES:
        stem = f"{stem}-workflow"
    return f"{stem}{extension}"
