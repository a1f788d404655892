"""YAML loader with position tracking for rich diagnostics."""

from __future__ import annotations

from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.scalarbool import ScalarBoolean

from scanwizard.parser.locations import LocationIndex, build_location_map

# ---------------------------------------------------------------------------
# Safety limits
# ---------------------------------------------------------------------------

_MAX_DOCUMENT_SIZE = 1_000_000  # 1M characters
_MAX_NODE_COUNT = 50_000
_MAX_DEPTH = 40


class YAMLSafetyError(Exception):
    """Raised when YAML input violates safety constraints.

    Distinct from parse errors: these indicate oversized or pathological
    input (huge documents, excessive node counts or nesting).
    """


class TrackedLoader:
    """YAML loader that tracks source positions for diagnostics.

    Uses ruamel.yaml in round-trip mode, which preserves line/column info on
    every parsed mapping and sequence.  Parse failures propagate as
    ``ruamel.yaml.error.YAMLError``.
    """

    def __init__(self, max_document_size: int = _MAX_DOCUMENT_SIZE) -> None:
        self._yaml = YAML()
        self._yaml.preserve_quotes = True
        self._max_document_size = max_document_size

    # -- safety checks -------------------------------------------------------

    def _check_document_size(self, content: str) -> None:
        if len(content) > self._max_document_size:
            raise YAMLSafetyError(
                f"YAML document exceeds maximum size "
                f"({len(content):,} chars > {self._max_document_size:,} limit)"
            )

    @staticmethod
    def _check_node_count(data: Any, limit: int = _MAX_NODE_COUNT) -> None:
        """Post-parse check: reject documents with too many nodes or deep nesting."""
        count = 0
        stack: list[tuple[Any, int]] = [(data, 0)]
        while stack:
            node, depth = stack.pop()
            count += 1
            if count > limit:
                raise YAMLSafetyError(f"YAML document exceeds maximum node count ({limit:,})")
            if depth > _MAX_DEPTH:
                raise YAMLSafetyError(f"YAML document exceeds maximum nesting depth ({_MAX_DEPTH})")
            if isinstance(node, dict):
                stack.extend((v, depth + 1) for v in node.values())
            elif isinstance(node, list):
                stack.extend((v, depth + 1) for v in node)

    # -- public loading API --------------------------------------------------

    def load_string(self, content: str) -> tuple[Any, LocationIndex]:
        """Parse *content* and return the plain tree plus its location index.

        The tree is whatever the document holds (mapping, list, scalar or
        ``None`` for an empty document); callers decide what shape they accept.
        """
        self._check_document_size(content)
        data = self._yaml.load(content)
        if data is None:
            return None, LocationIndex()
        self._check_node_count(data)
        index = build_location_map(content, data)
        return self._to_plain_value(data), index

    def _to_plain_value(self, data: Any) -> Any:
        """Convert ruamel.yaml CommentedMap/Seq and scalar subclasses to plain values."""
        if isinstance(data, (CommentedMap, dict)):
            return {str(k): self._to_plain_value(v) for k, v in data.items()}
        if isinstance(data, (CommentedSeq, list)):
            return [self._to_plain_value(item) for item in data]
        if isinstance(data, (bool, ScalarBoolean)):
            return bool(data)
        if isinstance(data, str):
            return str(data)
        return data
