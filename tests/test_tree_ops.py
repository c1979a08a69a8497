"""Tests for pure structural operations."""

from __future__ import annotations

import pytest

from conftest import bullet, heading
from mapweaver.core import tree_ops
from mapweaver.core.errors import TreeIntegrityError
from mapweaver.core.normalized import NormalizedData, collect_integrity_errors, normalize
from mapweaver.models.node import MarkdownMeta, MindMapNode


def _table(node_id: str) -> MindMapNode:
    return MindMapNode(id=node_id, kind="table", markdown_meta=MarkdownMeta(type="table"))


@pytest.fixture
def data(forest: list[MindMapNode]) -> NormalizedData:
    return normalize(forest)


def test_add_child_appends_and_leaves_input_untouched(data: NormalizedData) -> None:
    """It should append the child in a copy and leave the input unchanged."""

    out = tree_ops.add_child(data, "R", MindMapNode(id="C"))

    assert out.children_map["R"] == ["A", "B", "C"]
    assert out.parent_map["C"] == "R"
    assert out.children_map["C"] == []
    assert "C" not in data.nodes
    assert data.children_map["R"] == ["A", "B"]
    assert collect_integrity_errors(out) == []


def test_add_child_rejects_table_parent_and_duplicates(data: NormalizedData) -> None:
    """It should refuse table parents, duplicate ids and unknown parents."""

    with_table = tree_ops.add_child(data, "R", _table("T"))

    with pytest.raises(TreeIntegrityError):
        tree_ops.add_child(with_table, "T", MindMapNode(id="C"))
    with pytest.raises(TreeIntegrityError):
        tree_ops.add_child(data, "R", MindMapNode(id="A"))
    with pytest.raises(TreeIntegrityError):
        tree_ops.add_child(data, "missing", MindMapNode(id="C"))


def test_add_sibling_before_and_after(data: NormalizedData) -> None:
    """It should insert a sibling on either side of the reference."""

    after = tree_ops.add_sibling(data, "A", MindMapNode(id="C"), insert_after=True)
    before = tree_ops.add_sibling(data, "A", MindMapNode(id="C"), insert_after=False)

    assert after.children_map["R"] == ["A", "C", "B"]
    assert before.children_map["R"] == ["C", "A", "B"]


def test_add_sibling_requires_a_parent(data: NormalizedData) -> None:
    """It should refuse a plain sibling insert next to a root."""

    with pytest.raises(TreeIntegrityError):
        tree_ops.add_sibling(data, "R", MindMapNode(id="C"))


def test_add_root_sibling(data: NormalizedData) -> None:
    """It should insert new roots on either side of a root."""

    out = tree_ops.add_root_sibling(data, "R", MindMapNode(id="R2"))
    out = tree_ops.add_root_sibling(out, "R", MindMapNode(id="R0"), insert_after=False)

    assert out.root_node_ids == ["R0", "R", "R2"]
    assert collect_integrity_errors(out) == []


def test_delete_subtree_removes_descendants(data: NormalizedData) -> None:
    """It should remove the node and its descendants from every map."""

    out = tree_ops.delete_subtree(data, "A")

    assert set(out.nodes) == {"R", "B"}
    assert "A1" not in out.parent_map
    assert "A" not in out.children_map
    assert out.children_map["R"] == ["B"]
    assert collect_integrity_errors(out) == []
    assert "A1" in data.nodes


def test_delete_subtree_refuses_last_root(data: NormalizedData) -> None:
    """It should refuse to delete the last root."""

    with pytest.raises(TreeIntegrityError, match="last root"):
        tree_ops.delete_subtree(data, "R")


def test_delete_root_among_several() -> None:
    """It should delete a root with its subtree when other roots remain."""

    data = normalize([heading("R1", 1, children=[bullet("x")]), heading("R2", 1)])

    out = tree_ops.delete_subtree(data, "R1")

    assert out.root_node_ids == ["R2"]
    assert set(out.nodes) == {"R2"}


def test_move_node_rejects_cycles(data: NormalizedData) -> None:
    """It should refuse to move a node below itself or its descendants."""

    result, out = tree_ops.move_node(data, "A", "A1")
    assert not result.success
    assert "descendant" in result.reason
    assert out is data

    result, _ = tree_ops.move_node(data, "A", "A")
    assert not result.success
    assert "itself" in result.reason


def test_move_node_rejects_root_and_unknown_nodes(data: NormalizedData) -> None:
    """It should refuse to move roots or unknown nodes."""

    assert tree_ops.move_node(data, "R", "B")[0].reason == "root nodes cannot be moved"
    assert not tree_ops.move_node(data, "nope", "B")[0].success
    assert not tree_ops.move_node(data, "A", "nope")[0].success


def test_move_node_reparents_as_last_child(data: NormalizedData) -> None:
    """It should append the moved node as the last child of its new parent."""

    result, out = tree_ops.move_node(data, "B", "A")

    assert result.success
    assert out.children_map["A"] == ["A1", "B"]
    assert out.children_map["R"] == ["A"]
    assert out.parent_map["B"] == "A"
    assert collect_integrity_errors(out) == []


def test_move_node_to_current_parent_is_successful_noop(data: NormalizedData) -> None:
    """It should succeed without copying when the parent is unchanged."""

    result, out = tree_ops.move_node(data, "B", "R")
    assert result.success
    assert out is data


def test_move_rejects_heading_under_list_and_deep_headings() -> None:
    """It should refuse headings under list items and beyond six levels."""

    data = normalize(
        [
            heading(
                "R",
                1,
                children=[bullet("L"), heading("H", 2), heading("H6", 6)],
            )
        ]
    )

    result, _ = tree_ops.move_node(data, "H", "L")
    assert result.reason == "a list item cannot contain a heading"

    result, _ = tree_ops.move_node(data, "H", "H6")
    assert "6 levels" in result.reason

    result, _ = tree_ops.move_node(data, "L", "H6")
    assert result.success


def test_move_rejects_table_and_preface_targets(data: NormalizedData) -> None:
    """It should refuse tables and prefaces as move targets."""

    data = tree_ops.add_child(data, "R", _table("T"))
    data = tree_ops.add_child(data, "R", MindMapNode(id="P", markdown_meta=MarkdownMeta(type="preface")))

    assert not tree_ops.move_node(data, "B", "T")[0].success
    assert not tree_ops.move_node(data, "B", "P")[0].success
    assert not tree_ops.move_node_with_position(data, "B", "T", "child")[0].success


def test_table_may_only_be_first_among_siblings(data: NormalizedData) -> None:
    """It should only allow a table as the first of its siblings."""

    data = tree_ops.add_child(data, "R", _table("T"))

    result, _ = tree_ops.move_node(data, "T", "A")
    assert not result.success

    result, out = tree_ops.move_node_with_position(data, "T", "A1", "before")
    assert result.success
    assert out.children_map["A"] == ["T", "A1"]

    result, _ = tree_ops.move_node_with_position(data, "T", "A1", "after")
    assert not result.success


def test_move_with_position_before_after_child(data: NormalizedData) -> None:
    """It should move before, after or into a target node."""

    result, out = tree_ops.move_node_with_position(data, "B", "A", "before")
    assert result.success
    assert out.children_map["R"] == ["B", "A"]

    result, out = tree_ops.move_node_with_position(data, "A1", "A", "before")
    assert result.success
    assert out.children_map["R"] == ["A1", "A", "B"]
    assert out.children_map["A"] == []
    assert out.parent_map["A1"] == "R"

    result, out = tree_ops.move_node_with_position(data, "A1", "B", "child")
    assert result.success
    assert out.children_map["B"] == ["A1"]
    assert collect_integrity_errors(out) == []


def test_move_with_position_next_to_root_fails(data: NormalizedData) -> None:
    """It should refuse to place a node beside a root."""

    result, _ = tree_ops.move_node_with_position(data, "B", "R", "before")
    assert not result.success


def test_move_with_unknown_position_fails(data: NormalizedData) -> None:
    """It should reject unknown drop positions."""

    result, _ = tree_ops.move_node_with_position(data, "B", "A", "inside")  # type: ignore[arg-type]
    assert "unknown position" in result.reason


def test_list_items_stay_ahead_of_heading_siblings() -> None:
    """It should keep list items in front of headings under a heading parent."""

    data = normalize([heading("R", 1, children=[heading("P", 2, children=[heading("H", 3)]), bullet("M")])])

    result, _ = tree_ops.move_node_with_position(data, "M", "H", "after")
    assert not result.success

    result, out = tree_ops.move_node_with_position(data, "M", "H", "before")
    assert result.success
    assert out.children_map["P"] == ["M", "H"]


def test_change_sibling_order(data: NormalizedData) -> None:
    """It should reorder siblings in a copy and skip no-op reorders."""

    out = tree_ops.change_sibling_order(data, "B", "A", insert_before=True)
    assert out.children_map["R"] == ["B", "A"]
    assert data.children_map["R"] == ["A", "B"]

    assert tree_ops.change_sibling_order(data, "B", "A", insert_before=False) is data


def test_change_sibling_order_for_roots() -> None:
    """It should reorder roots."""

    data = normalize([heading("R1", 1), heading("R2", 1)])

    out = tree_ops.change_sibling_order(data, "R2", "R1")

    assert out.root_node_ids == ["R2", "R1"]


def test_change_sibling_order_requires_shared_parent(data: NormalizedData) -> None:
    """It should refuse to reorder nodes with different parents."""

    with pytest.raises(TreeIntegrityError):
        tree_ops.change_sibling_order(data, "A1", "B")
