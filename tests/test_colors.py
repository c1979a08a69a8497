"""Tests for node colour derivation and initial placement."""

from __future__ import annotations

from conftest import bullet, heading
from mapweaver.core.colors import (
    COLOR_SETS,
    NODE_COLORS,
    ROOT_COLOR,
    UNKNOWN_COLOR,
    branch_color,
    branch_shades,
    color_set,
    palette_color,
)
from mapweaver.core.geometry import NodeSize, dynamic_spacing, estimate_node_size, initial_child_position
from mapweaver.core.normalized import normalize
from mapweaver.models.node import MindMapNode


def test_palette_cycles() -> None:
    """It should cycle through the node palette by index."""

    assert palette_color(0) == "#FF6B6B"
    assert palette_color(len(NODE_COLORS)) == palette_color(0)
    assert palette_color(13) == NODE_COLORS[1]


def test_unknown_color_set_falls_back_to_vibrant() -> None:
    """It should fall back to the vibrant set for unknown names."""

    assert color_set("nope") == COLOR_SETS["vibrant"]
    assert all(len(colors) == 6 for colors in COLOR_SETS.values())


def test_branch_shades_darken_and_clamp() -> None:
    """It should step lightness down by 4% per shade and never go below 20%."""

    assert branch_shades("#4A4A4A") == ["#4A4A4A", "#404040", "#363636", "#333333", "#333333", "#333333"]


def test_branch_color_follows_lineage() -> None:
    """It should shade each branch from its first-level ancestor and darken one step per list level."""

    data = normalize(
        [
            heading(
                "R",
                1,
                children=[
                    heading("A", 2, children=[bullet("A1"), bullet("A2", children=[bullet("A2a")])]),
                    heading("B", 2),
                ],
            )
        ]
    )
    shades_a = branch_shades(COLOR_SETS["nord"][0])

    assert branch_color(data, "R", "nord") == ROOT_COLOR
    assert branch_color(data, "A", "nord") == shades_a[0]
    assert branch_color(data, "B", "nord") == COLOR_SETS["nord"][1]
    assert branch_color(data, "A1", "nord") == shades_a[0]
    assert branch_color(data, "A2", "nord") == shades_a[1]
    assert branch_color(data, "A2a", "nord") == shades_a[1]
    assert branch_color(data, "ghost", "nord") == UNKNOWN_COLOR


def test_dynamic_spacing_has_toggle_minimum() -> None:
    """It should keep room for the collapse toggle and grow with wide nodes."""

    assert dynamic_spacing(NodeSize(10, 10), NodeSize(10, 10)) == 35
    assert dynamic_spacing(NodeSize(200, 10), NodeSize(150, 10)) == 40


def test_estimate_node_size_grows_with_text() -> None:
    """It should grow wider with longer text and taller with extra lines."""

    short = estimate_node_size(MindMapNode(id="a", text="hi"), 14)
    long = estimate_node_size(MindMapNode(id="b", text="a considerably longer label"), 14)
    two_lines = estimate_node_size(MindMapNode(id="c", text="hi\nthere"), 14)

    assert long.width > short.width
    assert two_lines.height > short.height


def test_child_is_placed_right_of_parent() -> None:
    """It should place a new child to the right of its parent at the same height."""

    parent = MindMapNode(id="p", text="Parent", x=100.0, y=40.0)
    child = MindMapNode(id="c", text="Child")

    x, y = initial_child_position(child, parent, 14)

    parent_right = parent.x + estimate_node_size(parent, 14).width / 2
    assert x - estimate_node_size(child, 14).width / 2 >= parent_right + 35
    assert y == 40.0
