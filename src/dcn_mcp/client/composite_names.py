"""Child-reference extraction for catalog definitions.

The catalog's definition format changed several times, and every historical
shape must resolve to the same tree. Child references are recognized in this
order (first match wins):

    1. ``composite_names``: ["B", "", "C"]
    2. ``compositeNames``:  ["B", "", "C"]            (legacy camel case)
    3. ``composites``:      ["B", {"name": "C"}, ""]
    4. ``composites``:      {"0": "B", "2": "C"}      (sparse dimension map)

The sparse map is densified to ``max(expected_dimensions, max_key + 1)``
entries with ``""`` in unmapped slots. A map whose highest key reaches past
both ``expected_dimensions`` and ``MAX_SPARSE_DIMENSIONS`` is unrecognized.
An empty name marks a scalar slot. Anything unrecognized yields no children.

These helpers are **pure**: no network or state. The resolver decides whether
a feature dimension count is worth fetching via ``needs_dimension_count``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

JsonDict = Dict[str, Any]

# Upper bound on a densified map when no larger feature dimension count is known
MAX_SPARSE_DIMENSIONS = 4096


class CompositeShape(str, Enum):
    """Which child-reference shape a definition used."""

    NAMES = "composite_names"
    CAMEL_NAMES = "compositeNames"
    ENTRIES = "composites_list"
    DIMENSION_MAP = "composites_map"
    NONE = "none"


@dataclass(frozen=True)
class ParsedComposites:
    shape: CompositeShape
    names: List[str] = field(default_factory=list)


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    if not all(isinstance(item, str) for item in value):
        return None
    return [item.strip() for item in value]


def _entry_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    names: List[str] = []
    for item in value:
        if isinstance(item, str):
            names.append(item.strip())
        elif isinstance(item, dict) and isinstance(item.get("name"), str):
            names.append(item["name"].strip())
        else:
            return None
    return names


def _parse_dimension_key(key: Any) -> Optional[int]:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key if key >= 0 else None
    if isinstance(key, str):
        text = key.strip()
        if text.isascii() and text.isdigit():
            return int(text)
    return None


def _dimension_map(value: Any, expected_dimensions: int) -> Optional[List[str]]:
    if not isinstance(value, dict):
        return None

    slots: Dict[int, str] = {}
    for key, child in value.items():
        index = _parse_dimension_key(key)
        if index is None or not isinstance(child, str):
            return None
        slots[index] = child.strip()

    expected = max(expected_dimensions, 0)
    highest = max(slots) + 1 if slots else 0
    if highest > max(expected, MAX_SPARSE_DIMENSIONS):
        return None

    size = max(expected, highest)
    return [slots.get(i, "") for i in range(size)]


def parse_composites(definition: Any, expected_dimensions: int = 0) -> ParsedComposites:
    """Parse a definition's child references into a tagged result.

    Never raises: a non-dict definition or an unknown shape parses as
    ``CompositeShape.NONE`` with no names.
    """
    if not isinstance(definition, dict):
        return ParsedComposites(CompositeShape.NONE)

    names = _string_list(definition.get("composite_names"))
    if names is not None:
        return ParsedComposites(CompositeShape.NAMES, names)

    names = _string_list(definition.get("compositeNames"))
    if names is not None:
        return ParsedComposites(CompositeShape.CAMEL_NAMES, names)

    composites = definition.get("composites")

    names = _entry_list(composites)
    if names is not None:
        return ParsedComposites(CompositeShape.ENTRIES, names)

    names = _dimension_map(composites, expected_dimensions)
    if names is not None:
        return ParsedComposites(CompositeShape.DIMENSION_MAP, names)

    return ParsedComposites(CompositeShape.NONE)


def extract_composite_names(definition: Any, expected_dimensions: int = 0) -> List[str]:
    """Return the ordered child names of a definition (possibly empty)."""
    return list(parse_composites(definition, expected_dimensions).names)


def feature_reference(definition: Any) -> str:
    """Return the trimmed ``feature_name`` of a definition, or ''."""
    if not isinstance(definition, dict):
        return ""
    value = definition.get("feature_name")
    return value.strip() if isinstance(value, str) else ""


def needs_dimension_count(definition: Any) -> bool:
    """True when a feature dimension count can change the extracted names.

    Only the sparse dimension map is sized against the feature, and only a
    definition that names its feature can be sized.
    """
    if not feature_reference(definition):
        return False
    return parse_composites(definition).shape is CompositeShape.DIMENSION_MAP


def is_scalar(names: List[str]) -> bool:
    """A node is scalar when none of its child names is non-empty."""
    return all(not name.strip() for name in names)
