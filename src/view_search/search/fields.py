"""Field extraction for indexing and highlighting.

A field name with dots (``"deep.structure.text"``) is a path walked segment by
segment. Documents are classified into a small set of value shapes before each
step so traversal never has to guess what a step means:

* ``ABSENT``   - missing or null; the walk stops with no text
* ``SCALAR``   - strings, numbers, booleans; a path step on a scalar is absent
* ``SEQUENCE`` - lists and tuples; the remaining path maps over every element
* ``MAPPING``  - objects; a path step looks up the key
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

from view_search.domain.search import FieldSpec


class ValueKind(str, Enum):
    """Shapes a document value can take during traversal."""

    ABSENT = "absent"
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def classify(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.ABSENT
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    return ValueKind.SCALAR


def walk(value: Any, path: Sequence[str]) -> Any:
    """Follow ``path`` through ``value``; sequences fan the remaining path out."""

    kind = classify(value)
    if not path:
        return value
    if kind is ValueKind.SEQUENCE:
        return [_as_text(walk(item, path)) for item in value]
    if kind is ValueKind.MAPPING:
        return walk(value.get(path[0]), path[1:])
    return None


def _as_text(value: Any) -> str | None:
    """Collapse a traversal result into a single text value."""

    kind = classify(value)
    if kind is ValueKind.ABSENT:
        return None
    if kind is ValueKind.SEQUENCE:
        return " ".join("" if part is None else _stringify(part) for part in value)
    if kind is ValueKind.MAPPING:
        return None
    return _stringify(value)


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if part is None else _stringify(part) for part in value)
    return str(value)


def extract_text(field: FieldSpec, document: Mapping[str, Any]) -> str | None:
    """Return the indexable text of ``field`` in ``document``, or ``None`` when absent or empty."""

    if field.is_deep:
        raw = walk(document, field.path)
    else:
        raw = document.get(field.name)
    text = _as_text(raw)
    return text or None
