"""Tests for the normalized forest representation."""

from __future__ import annotations

import pytest

from conftest import bullet, heading
from mapweaver.core.errors import TreeIntegrityError
from mapweaver.core.normalized import (
    NormalizedData,
    collect_integrity_errors,
    denormalize,
    normalize,
    strip_layout,
)
from mapweaver.models.node import MindMapNode


def _dump(roots: list[MindMapNode]) -> list[dict]:
    return [root.model_dump() for root in roots]


def test_normalize_builds_all_four_maps(forest: list[MindMapNode]) -> None:
    """It should index nodes, parents, ordered children and roots."""

    data = normalize(forest)

    assert data.root_node_ids == ["R"]
    assert set(data.nodes) == {"R", "A", "A1", "B"}
    assert data.children_map["R"] == ["A", "B"]
    assert data.children_map["A"] == ["A1"]
    assert data.children_map["B"] == []
    assert data.parent_map == {"A": "R", "B": "R", "A1": "A"}
    assert all(node.children == [] for node in data.nodes.values())


def test_round_trip_preserves_ids_attributes_and_order(forest: list[MindMapNode]) -> None:
    """It should rebuild exactly the forest it was given."""

    forest[0].children[1].x = 42.0
    assert _dump(denormalize(normalize(forest))) == _dump(forest)


def test_round_trip_keeps_multiple_roots_in_order() -> None:
    """It should keep several roots in their original order."""

    roots = [heading("R2", 1), heading("R1", 1, children=[bullet("x")])]

    rebuilt = denormalize(normalize(roots))

    assert [root.id for root in rebuilt] == ["R2", "R1"]
    assert rebuilt[1].children[0].id == "x"


def test_normalize_and_denormalize_do_not_alias(forest: list[MindMapNode]) -> None:
    """It should allocate fresh nodes in both directions."""

    data = normalize(forest)
    forest[0].text = "mutated input"
    forest[0].children[0].markdown_meta.level = 5
    assert data.nodes["R"].text == "Root"
    assert data.nodes["A"].markdown_meta.level == 2

    rebuilt = denormalize(data)
    rebuilt[0].children[0].text = "mutated output"
    assert data.nodes["A"].text == "Alpha"


def test_normalize_rejects_duplicate_ids() -> None:
    """It should reject forests with duplicate node ids."""

    with pytest.raises(TreeIntegrityError):
        normalize([heading("R", 1, children=[bullet("x"), bullet("x")])])


def test_normalize_empty_forest() -> None:
    """It should map an empty forest to empty data and back."""

    data = normalize(None)
    assert data == NormalizedData()
    assert denormalize(data) == []


def test_denormalize_reports_missing_nodes(forest: list[MindMapNode]) -> None:
    """It should raise when a referenced node is missing from the map."""

    data = normalize(forest)
    data.nodes.pop("B")

    with pytest.raises(TreeIntegrityError):
        denormalize(data)


def test_siblings_of_root_is_root_list() -> None:
    """It should treat the root list as the siblings of a root."""

    data = normalize([heading("R1", 1), heading("R2", 1)])

    assert data.siblings_of("R2") == ["R1", "R2"]
    assert data.is_root("R1")
    assert data.parent_of("R1") is None


def test_is_descendant(forest: list[MindMapNode]) -> None:
    """It should report strict descendants only."""

    data = normalize(forest)

    assert data.is_descendant("R", "A1")
    assert data.is_descendant("A", "A1")
    assert not data.is_descendant("A1", "A")
    assert not data.is_descendant("B", "A1")
    assert not data.is_descendant("A", "A")


def test_iter_subtree_is_preorder(forest: list[MindMapNode]) -> None:
    """It should walk a subtree in preorder."""

    data = normalize(forest)
    assert list(data.iter_subtree("R")) == ["R", "A", "A1", "B"]


def test_strip_layout_ignores_coordinates(forest: list[MindMapNode]) -> None:
    """It should treat trees differing only in x/y as equal."""

    before = strip_layout(forest)
    forest[0].x = 300.0
    forest[0].children[0].children[0].y = -12.5
    assert strip_layout(forest) == before

    forest[0].children[0].text = "changed"
    assert strip_layout(forest) != before


def test_integrity_report_is_empty_for_valid_data(forest: list[MindMapNode]) -> None:
    """It should report no problems for freshly normalized data."""

    assert collect_integrity_errors(normalize(forest)) == []


def test_integrity_report_flags_broken_maps(forest: list[MindMapNode]) -> None:
    """It should describe dangling children, wrong roots and cycles."""

    data = normalize(forest)
    data.children_map["B"] = ["ghost"]
    assert any("ghost" in error for error in collect_integrity_errors(data))

    data = normalize(forest)
    data.root_node_ids.append("A")
    errors = collect_integrity_errors(data)
    assert any("root" in error for error in errors)

    data = normalize(forest)
    data.parent_map["R"] = "A1"
    data.children_map["A1"] = ["R"]
    data.root_node_ids = []
    assert any("cycle" in error for error in collect_integrity_errors(data))
