"""Location index: maps dotted document paths to source line/column.

Trees produced by :class:`~scanwizard.parser.loader.TrackedLoader` keep
ruamel.yaml node positions, so their index is exact.  Plain ``dict``/``list``
trees have no positions; for those a best-effort textual search over the raw
text is used instead (first matching ``key:`` line at or after the parent's
line, and the N-th ``-`` marker for list items).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from ruamel.yaml.comments import CommentedMap, CommentedSeq

from scanwizard.models.diagnostics import SourceSpan


def join_path(prefix: str, segment: object) -> str:
    return f"{prefix}.{segment}" if prefix else str(segment)


@dataclass
class LocationIndex:
    """Maps dotted document paths (``jobs.build.steps.0.uses``) to positions."""

    _positions: dict[str, SourceSpan] = field(default_factory=dict)

    def add(self, path: str, line: int, column: int) -> None:
        self._positions[path] = SourceSpan(line=line, column=column, path=path)

    def get(self, path: str) -> SourceSpan | None:
        return self._positions.get(path)

    def resolve(self, path: str) -> SourceSpan:
        """Return the span for *path*, or for its nearest indexed ancestor.

        Falls back to line 1, column 1 when nothing on the way up is indexed.
        """
        current = path
        while current:
            span = self._positions.get(current)
            if span is not None:
                return span
            current = current.rpartition(".")[0]
        return SourceSpan(line=1, column=1, path=path)

    def __len__(self) -> int:
        return len(self._positions)


def build_location_map(text: str, tree: Any) -> LocationIndex:
    """Build a :class:`LocationIndex` for *tree* parsed from *text*."""
    index = LocationIndex()
    if isinstance(tree, (CommentedMap, CommentedSeq)):
        _index_spans(tree, "", index)
    else:
        _TextualIndexer(text).index(tree, index)
    return index


# ---------------------------------------------------------------------------
# Exact positions from ruamel.yaml nodes
# ---------------------------------------------------------------------------


def _index_spans(data: Any, prefix: str, index: LocationIndex) -> None:
    if isinstance(data, CommentedMap):
        for key in data:
            key_path = join_path(prefix, key)
            try:
                line, col = data.lc.key(key)
                index.add(key_path, line + 1, col + 1)
            except (AttributeError, KeyError, TypeError):
                # Keys merged in from anchors carry no position of their own
                try:
                    index.add(key_path, data.lc.line + 1, data.lc.col + 1)
                except (AttributeError, TypeError):
                    pass
            _index_spans(data[key], key_path, index)
    elif isinstance(data, CommentedSeq):
        for i, item in enumerate(data):
            item_path = join_path(prefix, i)
            try:
                line, col = data.lc.item(i)
                index.add(item_path, line + 1, col + 1)
            except (AttributeError, KeyError, TypeError, IndexError):
                pass
            _index_spans(item, item_path, index)


# ---------------------------------------------------------------------------
# Best-effort textual search for span-less trees
# ---------------------------------------------------------------------------


class _TextualIndexer:
    """Locates keys and list items by scanning the raw text."""

    def __init__(self, text: str) -> None:
        self._lines = text.splitlines()

    def index(self, tree: Any, index: LocationIndex) -> None:
        self._visit(tree, "", 0, -1, index)

    def _visit(
        self, node: Any, prefix: str, start: int, parent_indent: int, index: LocationIndex
    ) -> None:
        match node:
            case dict():
                for key, value in node.items():
                    path = join_path(prefix, key)
                    found = self._find_key(str(key), start)
                    if found is None:
                        self._visit(value, path, start, parent_indent, index)
                        continue
                    line_no, col = found
                    index.add(path, line_no + 1, col + 1)
                    self._visit(value, path, line_no + 1, col, index)
            case list():
                markers = self._list_markers(start, parent_indent)
                for i, item in enumerate(node):
                    path = join_path(prefix, i)
                    if i < len(markers):
                        line_no, col = markers[i]
                        index.add(path, line_no + 1, col + 1)
                        # The first key of a mapping item sits on the marker line
                        self._visit(item, path, line_no, col, index)
                    else:
                        self._visit(item, path, start, parent_indent, index)
            case _:
                return

    def _is_content(self, line: str) -> bool:
        stripped = line.strip()
        return bool(stripped) and not stripped.startswith("#")

    def _find_key(self, segment: str, start: int) -> tuple[int, int] | None:
        pattern = re.compile(
            r"^(\s*(?:-\s+)?)[\"']?" + re.escape(segment) + r"[\"']?\s*:(\s|$)"
        )
        for line_no in (*range(start, len(self._lines)), *range(0, start)):
            line = self._lines[line_no]
            if not self._is_content(line):
                continue
            m = pattern.match(line)
            if m:
                return line_no, len(m.group(1))
        return None

    def _list_markers(self, start: int, parent_indent: int) -> list[tuple[int, int]]:
        markers: list[tuple[int, int]] = []
        for line_no in range(start, len(self._lines)):
            line = self._lines[line_no]
            if not self._is_content(line):
                continue
            indent = len(line) - len(line.lstrip())
            stripped = line.lstrip()
            if indent < parent_indent or (
                indent == parent_indent and not stripped.startswith("-")
            ):
                break
            if stripped == "-" or stripped.startswith("- "):
                markers.append((line_no, indent))
        if not markers:
            return markers
        outer = min(col for _, col in markers)
        return [(line_no, col) for line_no, col in markers if col == outer]
