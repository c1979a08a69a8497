"""Node colour assignment.

Children of a root cycle through ``NODE_COLORS``. Deeper nodes take a branch colour: the
branch's base colour comes from the configured colour set, and direct children of the branch
head get progressively darker shades of it.
"""

from __future__ import annotations

import colorsys

from mapweaver.core.normalized import NormalizedData


NODE_COLORS: tuple[str, ...] = (
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4",
    "#FECA57", "#FF9FF3", "#54A0FF", "#5F27CD",
    "#00D2D3", "#FF9F43", "#EE5A24", "#0ABDE3",
)

COLOR_SETS: dict[str, tuple[str, ...]] = {
    "vibrant": ("#FF6B6B", "#4ECDC4", "#FECA57", "#54A0FF", "#FF9FF3", "#96CEB4"),
    "gentle": ("#FFB5B5", "#A8E6CF", "#FFE699", "#B5D7FF", "#FFD4F0", "#C4E8C2"),
    "pastel": ("#FFD1DC", "#B4E7CE", "#FFF4C2", "#C2E0FF", "#E8D4FF", "#D4F1D4"),
    "nord": ("#BF616A", "#88C0D0", "#EBCB8B", "#5E81AC", "#B48EAD", "#A3BE8C"),
    "warm": ("#FF6B6B", "#FF9F43", "#FECA57", "#FFB142", "#FF7979", "#F8B739"),
    "cool": ("#5DADE2", "#48C9B0", "#85C1E2", "#52B788", "#6C9BD1", "#45B39D"),
    "monochrome": ("#4A4A4A", "#707070", "#909090", "#B0B0B0", "#D0D0D0", "#606060"),
    "sunset": ("#FF6B9D", "#FF8E53", "#FFB627", "#FFA45B", "#FF7B89", "#FFAA5C"),
}

ROOT_COLOR = "#333"
UNKNOWN_COLOR = "#666"

_SHADES = 5
_SHADE_STEP = 4


def color_set(name: str = "vibrant") -> tuple[str, ...]:
    return COLOR_SETS.get(name, COLOR_SETS["vibrant"])


def palette_color(index: int) -> str:
    """Colour of the ``index``-th child of a root."""

    return NODE_COLORS[index % len(NODE_COLORS)]


def _hex_to_hls(value: str) -> tuple[float, float, float]:
    raw = value.lstrip("#")
    r, g, b = (int(raw[i : i + 2], 16) / 255 for i in (0, 2, 4))
    return colorsys.rgb_to_hls(r, g, b)


def _hls_to_hex(h: float, lightness: float, s: float) -> str:
    r, g, b = colorsys.hls_to_rgb(h, lightness, s)
    return "#" + "".join(f"{round(c * 255):02x}" for c in (r, g, b))


def branch_shades(base_color: str) -> list[str]:
    """The base colour followed by five darker shades (lightness clamped to 20..80%)."""

    h, lightness, s = _hex_to_hls(base_color)
    base_pct = round(lightness * 100)
    shades = [base_color]
    for i in range(1, _SHADES + 1):
        pct = max(20, min(80, base_pct - i * _SHADE_STEP))
        shades.append(_hls_to_hex(h, pct / 100, s))
    return shades


def _branch_head(data: NormalizedData, node_id: str) -> str | None:
    # the ancestor (or self) whose parent is a root
    current = node_id
    while True:
        parent_id = data.parent_map.get(current)
        if parent_id is None:
            return None
        if parent_id not in data.parent_map:
            return current
        current = parent_id


def branch_color(data: NormalizedData, node_id: str, color_set_name: str = "vibrant") -> str:
    """Deterministic colour of ``node_id`` derived from its lineage."""

    if node_id not in data.nodes:
        return UNKNOWN_COLOR
    if node_id not in data.parent_map:
        return ROOT_COLOR

    head_id = _branch_head(data, node_id)
    if head_id is None:
        return UNKNOWN_COLOR
    root_children = data.children_map.get(data.parent_map[head_id], [])
    if head_id not in root_children:
        return UNKNOWN_COLOR

    colors = color_set(color_set_name)
    shades = branch_shades(colors[root_children.index(head_id) % len(colors)])
    if node_id == head_id:
        return shades[0]

    current = node_id
    while True:
        parent_id = data.parent_map[current]
        if parent_id == head_id:
            siblings = data.children_map.get(parent_id, [])
            if current not in siblings:
                return UNKNOWN_COLOR
            return shades[siblings.index(current) % len(shades)]
        current = parent_id
