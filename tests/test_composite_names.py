"""
Unit tests for child-reference extraction.

Verifies:
1. Shape precedence (composite_names > compositeNames > composites list > map).
2. Sparse dimension-map densification against an expected dimension count.
3. Unknown shapes resolving to no children instead of raising.
4. Purity of the extraction.
"""

import copy

import pytest

from dcn_mcp.client.composite_names import (
    MAX_SPARSE_DIMENSIONS,
    CompositeShape,
    extract_composite_names,
    feature_reference,
    is_scalar,
    needs_dimension_count,
    parse_composites,
)

# -----------------------------------------------------------------------------
# SHAPE PRECEDENCE
# -----------------------------------------------------------------------------

def test_primary_field_wins_over_legacy_fields() -> None:
    """TC-01: composite_names takes precedence when several shapes are present."""
    definition = {
        "name": "A",
        "composite_names": ["B", ""],
        "compositeNames": ["X"],
        "composites": {"0": "Y"},
    }
    parsed = parse_composites(definition)

    assert parsed.shape is CompositeShape.NAMES
    assert parsed.names == ["B", ""]


def test_camel_case_field_is_accepted() -> None:
    """TC-02: Legacy compositeNames is used when composite_names is absent."""
    parsed = parse_composites({"name": "A", "compositeNames": ["", "C"]})

    assert parsed.shape is CompositeShape.CAMEL_NAMES
    assert parsed.names == ["", "C"]


def test_composite_entries_mix_strings_and_objects() -> None:
    """TC-03: composites may list plain strings or objects with a name."""
    definition = {"composites": ["B", {"name": "C", "dim": 1}, ""]}

    assert parse_composites(definition).shape is CompositeShape.ENTRIES
    assert extract_composite_names(definition) == ["B", "C", ""]


def test_malformed_primary_falls_through_to_next_shape() -> None:
    """TC-04: A non-string entry disqualifies a shape without raising."""
    definition = {"composite_names": ["B", None], "compositeNames": ["C"]}

    assert extract_composite_names(definition) == ["C"]


# -----------------------------------------------------------------------------
# SPARSE DIMENSION MAP
# -----------------------------------------------------------------------------

def test_sparse_map_is_densified_with_empty_slots() -> None:
    """TC-05: Unmapped indices become empty strings up to max key + 1."""
    definition = {"composites": {"2": "C", "0": "A"}}

    assert extract_composite_names(definition) == ["A", "", "C"]


def test_sparse_map_grows_to_expected_dimensions() -> None:
    """TC-06: The expected dimension count extends the list when larger."""
    definition = {"composites": {"1": "B"}}

    assert extract_composite_names(definition, expected_dimensions=4) == ["", "B", "", ""]
    assert extract_composite_names(definition, expected_dimensions=1) == ["", "B"]


def test_empty_map_uses_expected_dimensions_only() -> None:
    """TC-07: An empty map yields one scalar slot per feature dimension."""
    names = extract_composite_names({"composites": {}}, expected_dimensions=2)

    assert names == ["", ""]
    assert is_scalar(names)


@pytest.mark.parametrize("bad_map", [{"-1": "A"}, {"x": "A"}, {"0": 5}, {"\u00b2": "B"}, {"\u0663": "B"}])
def test_invalid_map_keys_or_values_yield_no_children(bad_map: dict) -> None:
    """TC-08: Negative, non-ASCII-digit keys or non-string names are not a map shape."""
    parsed = parse_composites({"composites": bad_map})

    assert parsed.shape is CompositeShape.NONE
    assert parsed.names == []


def test_oversized_map_key_is_not_densified() -> None:
    """TC-13: A key far beyond any known dimension count is rejected, not allocated."""
    assert parse_composites({"composites": {"4294967295": "X"}}).shape is CompositeShape.NONE
    assert extract_composite_names({"composites": {str(MAX_SPARSE_DIMENSIONS): "X"}}) == []

    last = MAX_SPARSE_DIMENSIONS - 1
    names = extract_composite_names({"composites": {str(last): "X"}})
    assert len(names) == MAX_SPARSE_DIMENSIONS
    assert names[last] == "X"

    wide = extract_composite_names({"composites": {"5000": "X"}}, expected_dimensions=6000)
    assert len(wide) == 6000


# -----------------------------------------------------------------------------
# UNKNOWN SHAPES, TRIMMING & PURITY
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("definition", [{}, {"name": "A"}, {"composites": "B"}, None, ["B"]])
def test_unrecognized_shapes_are_scalar(definition: object) -> None:
    """TC-09: Anything unrecognized is treated as having no children."""
    names = extract_composite_names(definition)

    assert names == []
    assert is_scalar(names)


def test_names_are_trimmed() -> None:
    """TC-10: Whitespace-only names count as empty."""
    names = extract_composite_names({"composite_names": ["  B ", "   "]})

    assert names == ["B", ""]
    assert not is_scalar(names)


def test_extraction_is_pure() -> None:
    """TC-11: Extraction neither mutates its input nor varies between calls."""
    definition = {"feature_name": "F", "composites": {"1": "B", "3": "D"}}
    snapshot = copy.deepcopy(definition)

    first = extract_composite_names(definition, 5)
    second = extract_composite_names(definition, 5)

    assert first == second == ["", "B", "", "D", ""]
    assert definition == snapshot


def test_dimension_count_only_needed_for_feature_backed_maps() -> None:
    """TC-12: Only a sparse map with a feature reference needs a dimension lookup."""
    assert needs_dimension_count({"feature_name": "F", "composites": {"0": "A"}})
    assert not needs_dimension_count({"feature_name": "F", "composite_names": ["A"]})
    assert not needs_dimension_count({"feature_name": "  ", "composites": {"0": "A"}})
    assert feature_reference({"feature_name": " F "}) == "F"
