"""Best-effort initial placement for freshly inserted nodes.

Real coordinates come from the layout collaborator. This heuristic only gives a new node a
plausible spot to the right of its parent so it does not flash at the origin before the next
layout pass.
"""

from __future__ import annotations

from dataclasses import dataclass

from mapweaver.models.node import MindMapNode


TOGGLE_BUTTON_WIDTH = 20
MIN_TOGGLE_TO_CHILD_SPACING = 15
BASE_EDGE_SPACING = 30

_CHAR_WIDTH_RATIO = 0.6
_LINE_HEIGHT_RATIO = 1.5
_VERTICAL_PADDING = 8


@dataclass(frozen=True)
class NodeSize:
    width: float
    height: float


def horizontal_padding(text_length: int) -> float:
    return 12 + min(text_length / 25, 1) * 13


def estimate_node_size(node: MindMapNode, font_size: int | None = None) -> NodeSize:
    """Approximate the rendered box of ``node`` from its text and font size."""

    size = font_size or node.font_size
    if size <= 0:
        raise ValueError(f"font size must be positive, got {size}")
    lines = node.text.splitlines() or [""]
    longest = max(len(line) for line in lines)
    width = longest * size * _CHAR_WIDTH_RATIO + 2 * horizontal_padding(longest)
    height = len(lines) * size * _LINE_HEIGHT_RATIO + 2 * _VERTICAL_PADDING
    return NodeSize(width=max(width, size * 4), height=height)


def dynamic_spacing(parent_size: NodeSize, child_size: NodeSize) -> int:
    """Edge-to-edge distance between a parent and its child."""

    parent_factor = min(parent_size.width / 100, 1) * 5
    child_factor = min(child_size.width / 100, 1) * 5
    spacing = BASE_EDGE_SPACING + parent_factor + child_factor
    return round(max(spacing, TOGGLE_BUTTON_WIDTH + MIN_TOGGLE_TO_CHILD_SPACING))


def _toggle_margin(size: NodeSize, font_size: int) -> float:
    base = max(font_size * 1.5, 20)
    width_adjustment = min(max(0.0, (size.width - font_size * 4) * 0.04), 20)
    return min(max(base + width_adjustment, 12), 35)


def child_x(parent: MindMapNode, child_size: NodeSize, edge_distance: float, font_size: int) -> float:
    """Horizontal centre of a child placed right of ``parent``, clear of its collapse toggle."""

    parent_size = estimate_node_size(parent, font_size)
    parent_right = parent.x + parent_size.width / 2
    basic_left = parent_right + edge_distance
    toggle_x = parent_right + _toggle_margin(parent_size, font_size)
    required_left = toggle_x + TOGGLE_BUTTON_WIDTH / 2 + MIN_TOGGLE_TO_CHILD_SPACING
    return max(basic_left, required_left) + child_size.width / 2


def initial_child_position(node: MindMapNode, parent: MindMapNode, font_size: int) -> tuple[float, float]:
    """Coordinates for ``node`` inserted under ``parent``; raises on unusable geometry."""

    parent_size = estimate_node_size(parent, font_size)
    child_size = estimate_node_size(node, font_size)
    edge = dynamic_spacing(parent_size, child_size)
    return child_x(parent, child_size, edge, font_size), parent.y
