"""Markdown metadata inheritance for newly inserted nodes.

A new node takes its outline role from its neighbourhood:

- a usable (non-table) sibling is copied verbatim, with checkboxes reset to unchecked;
- table nodes have nothing to inherit, so the search moves outward from the insertion point,
  alternating one step left and one step right, to the nearest non-table sibling with metadata;
- without a usable sibling the parent decides: headings nest one level deeper (a level-7 heading
  is demoted to a top-level bullet), list items nest one indent deeper keeping the list type;
- a root with no usable sibling becomes a level-1 heading.

Derived metadata never carries a source line number.
"""

from __future__ import annotations

from typing import Sequence

from mapweaver.core.normalized import NormalizedData
from mapweaver.models.node import UNASSIGNED_LINE, MarkdownMeta, MindMapNode


HEADING_MAX_LEVEL = 6
LIST_INDENT_STEP = 2

_LIST_TYPES = ("unordered-list", "ordered-list")


def heading_meta(level: int) -> MarkdownMeta:
    return MarkdownMeta(
        type="heading",
        level=level,
        original_format="#" * level,
        indent_level=0,
        line_number=UNASSIGNED_LINE,
    )


def default_root_meta() -> MarkdownMeta:
    """Metadata for a root inserted with nothing to inherit from."""

    return heading_meta(1)


def inherit_from_sibling(meta: MarkdownMeta) -> MarkdownMeta:
    """Copy a sibling's metadata for a new node."""

    update: dict[str, object] = {"line_number": UNASSIGNED_LINE}
    if meta.is_checkbox:
        update["is_checked"] = False
    return meta.model_copy(update=update)


def derive_from_parent(parent_meta: MarkdownMeta | None) -> MarkdownMeta | None:
    """Metadata of a first child under a parent with ``parent_meta``."""

    if parent_meta is None:
        return None

    if parent_meta.type == "heading":
        child_level = parent_meta.level + 1
        if child_level > HEADING_MAX_LEVEL:
            return MarkdownMeta(
                type="unordered-list",
                level=1,
                original_format="-",
                indent_level=0,
                line_number=UNASSIGNED_LINE,
            )
        return heading_meta(child_level)

    derived = MarkdownMeta(
        type=parent_meta.type,
        level=parent_meta.level + 1,
        original_format=parent_meta.original_format,
        indent_level=parent_meta.indent_level + LIST_INDENT_STEP,
        line_number=UNASSIGNED_LINE,
    )
    if parent_meta.is_checkbox:
        derived.is_checkbox = True
        derived.is_checked = False
    return derived


def nearest_non_table_meta(
    data: NormalizedData,
    siblings: Sequence[str],
    index: int,
) -> MarkdownMeta | None:
    """Search outward from ``index``, left before right, for inheritable metadata."""

    count = len(siblings)
    for offset in range(1, count):
        for candidate in (index - offset, index + offset):
            if 0 <= candidate < count:
                sibling = data.nodes.get(siblings[candidate])
                if sibling is not None and not sibling.is_table and sibling.markdown_meta is not None:
                    return inherit_from_sibling(sibling.markdown_meta)
    return None


def derive_child_meta(parent: MindMapNode, children: Sequence[MindMapNode]) -> MarkdownMeta | None:
    """Metadata for a node appended under ``parent`` after ``children``."""

    usable = [child for child in children if not child.is_table]
    if usable and usable[-1].markdown_meta is not None:
        return inherit_from_sibling(usable[-1].markdown_meta)
    return derive_from_parent(parent.markdown_meta)


def derive_sibling_meta(data: NormalizedData, reference: MindMapNode) -> MarkdownMeta | None:
    """Metadata for a node inserted next to ``reference``."""

    if not reference.is_table:
        if reference.markdown_meta is None:
            return None
        return inherit_from_sibling(reference.markdown_meta)

    parent_id = data.parent_map.get(reference.id)
    siblings = data.siblings_of(reference.id)
    index = siblings.index(reference.id) if reference.id in siblings else -1
    meta = nearest_non_table_meta(data, siblings, index) if index >= 0 else None
    if meta is not None:
        return meta

    if parent_id is None:
        return default_root_meta()

    parent = data.nodes.get(parent_id)
    parent_meta = parent.markdown_meta if parent is not None else None
    if parent_meta is not None and parent_meta.type in ("heading", *_LIST_TYPES):
        return derive_from_parent(parent_meta)
    return default_root_meta()
