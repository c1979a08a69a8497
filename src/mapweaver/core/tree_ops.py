"""Pure structural operations over ``NormalizedData``.

Every function returns a new ``NormalizedData`` and leaves its input untouched, so a caller that
catches ``TreeIntegrityError`` still holds the previous, consistent state. Move operations report
constraint violations as ``MoveResult`` failures instead of raising.
"""

from __future__ import annotations

from mapweaver.core.errors import TreeIntegrityError
from mapweaver.core.normalized import NormalizedData
from mapweaver.models.node import MindMapNode
from mapweaver.models.results import MovePosition, MoveResult


HEADING_MAX_LEVEL = 6

_LIST_TYPES = ("unordered-list", "ordered-list")


def _meta_type(node: MindMapNode | None) -> str | None:
    if node is None or node.markdown_meta is None:
        return None
    return node.markdown_meta.type


def _detached(node: MindMapNode) -> MindMapNode:
    if node.children:
        return node.model_copy(update={"children": []})
    return node


def replace_node(data: NormalizedData, node: MindMapNode) -> NormalizedData:
    """Swap the attributes of an existing node."""

    if node.id not in data.nodes:
        raise TreeIntegrityError(f"node not found: {node.id}")
    out = data.clone()
    out.nodes[node.id] = _detached(node)
    return out


def add_child(data: NormalizedData, parent_id: str, node: MindMapNode) -> NormalizedData:
    """Append ``node`` as the last child of ``parent_id``."""

    if node.id in data.nodes:
        raise TreeIntegrityError(f"node already exists: {node.id}")
    parent = data.nodes.get(parent_id)
    if parent is None:
        raise TreeIntegrityError(f"parent node not found: {parent_id}")
    if parent.is_table:
        raise TreeIntegrityError(f"table node {parent_id} cannot have children")

    out = data.clone()
    out.nodes[node.id] = _detached(node)
    out.parent_map[node.id] = parent_id
    out.children_map[parent_id] = [*data.children_map.get(parent_id, []), node.id]
    out.children_map[node.id] = []
    return out


def add_sibling(
    data: NormalizedData,
    sibling_id: str,
    node: MindMapNode,
    insert_after: bool = True,
) -> NormalizedData:
    """Insert ``node`` next to ``sibling_id`` inside the sibling's parent."""

    parent_id = data.parent_map.get(sibling_id)
    if parent_id is None:
        raise TreeIntegrityError(f"parent not found for sibling node: {sibling_id}")
    if node.id in data.nodes:
        raise TreeIntegrityError(f"node already exists: {node.id}")

    siblings = data.children_map.get(parent_id, [])
    if sibling_id not in siblings:
        raise TreeIntegrityError(f"sibling {sibling_id} missing from the children of {parent_id}")
    index = siblings.index(sibling_id) + (1 if insert_after else 0)

    out = data.clone()
    out.nodes[node.id] = _detached(node)
    out.parent_map[node.id] = parent_id
    out.children_map[parent_id] = [*siblings[:index], node.id, *siblings[index:]]
    out.children_map[node.id] = []
    return out


def add_root_sibling(
    data: NormalizedData,
    sibling_root_id: str,
    node: MindMapNode,
    insert_after: bool = True,
) -> NormalizedData:
    """Insert ``node`` as a new root next to ``sibling_root_id``."""

    if node.id in data.nodes:
        raise TreeIntegrityError(f"node already exists: {node.id}")
    roots = data.root_node_ids
    if sibling_root_id not in roots:
        raise TreeIntegrityError(f"root sibling node not found: {sibling_root_id}")
    index = roots.index(sibling_root_id) + (1 if insert_after else 0)

    out = data.clone()
    out.nodes[node.id] = _detached(node)
    out.root_node_ids = [*roots[:index], node.id, *roots[index:]]
    out.children_map[node.id] = []
    return out


def delete_subtree(data: NormalizedData, node_id: str) -> NormalizedData:
    """Remove ``node_id`` and all of its descendants from every map."""

    if node_id not in data.nodes:
        raise TreeIntegrityError(f"node not found: {node_id}")

    parent_id = data.parent_map.get(node_id)
    is_root = parent_id is None
    if is_root:
        if node_id not in data.root_node_ids:
            raise TreeIntegrityError(f"parentless node {node_id} is not a root")
        if len(data.root_node_ids) <= 1:
            raise TreeIntegrityError("cannot delete the last root node")

    doomed = list(data.iter_subtree(node_id))
    out = data.clone()
    for doomed_id in doomed:
        out.nodes.pop(doomed_id, None)
        out.parent_map.pop(doomed_id, None)
        out.children_map.pop(doomed_id, None)

    if is_root:
        out.root_node_ids = [rid for rid in data.root_node_ids if rid != node_id]
    else:
        out.children_map[parent_id] = [cid for cid in data.children_map.get(parent_id, []) if cid != node_id]
    return out


def _validate_parent_kind(data: NormalizedData, node_id: str, new_parent_id: str) -> str | None:
    node = data.nodes.get(node_id)
    new_parent = data.nodes.get(new_parent_id)
    if node is None or new_parent is None:
        return "node not found"

    node_type = _meta_type(node)
    parent_type = _meta_type(new_parent)

    if node_type == "heading" and parent_type in _LIST_TYPES:
        return "a list item cannot contain a heading"
    if node_type == "heading" and parent_type == "heading":
        parent_level = new_parent.markdown_meta.level if new_parent.markdown_meta else 1
        if parent_level + 1 > HEADING_MAX_LEVEL:
            return f"headings are limited to {HEADING_MAX_LEVEL} levels"
    return None


def _heading_order_violation(
    data: NormalizedData,
    node_id: str,
    parent_id: str,
    siblings_after: list[str],
) -> str | None:
    # list items must precede every heading among the same children
    node_type = _meta_type(data.nodes.get(node_id))
    if node_type not in _LIST_TYPES or _meta_type(data.nodes.get(parent_id)) != "heading":
        return None
    index = siblings_after.index(node_id)
    if any(_meta_type(data.nodes.get(sid)) == "heading" for sid in siblings_after[:index]):
        return "a list item may only be placed before its heading siblings"
    return None


def _guard_move(data: NormalizedData, node_id: str, target_id: str) -> str | None:
    if node_id not in data.nodes:
        return f"node not found: {node_id}"
    if node_id not in data.parent_map:
        return "root nodes cannot be moved"
    if target_id not in data.nodes:
        return f"target node not found: {target_id}"
    if target_id == node_id:
        return "a node cannot be moved onto itself"
    if data.is_descendant(node_id, target_id):
        return "a node cannot be moved below its own descendant"
    return None


def _relink(
    data: NormalizedData,
    node_id: str,
    new_parent_id: str,
    new_siblings: list[str],
) -> NormalizedData:
    old_parent_id = data.parent_map[node_id]
    out = data.clone()
    out.parent_map[node_id] = new_parent_id
    if old_parent_id != new_parent_id:
        out.children_map[old_parent_id] = [cid for cid in data.children_map.get(old_parent_id, []) if cid != node_id]
    out.children_map[new_parent_id] = new_siblings
    return out


def move_node(
    data: NormalizedData,
    node_id: str,
    new_parent_id: str,
) -> tuple[MoveResult, NormalizedData]:
    """Re-parent ``node_id`` as the last child of ``new_parent_id``."""

    reason = _guard_move(data, node_id, new_parent_id)
    if reason:
        return MoveResult.fail(reason), data

    target = data.nodes[new_parent_id]
    if target.is_table:
        return MoveResult.fail("table nodes cannot have children"), data
    if target.is_preface:
        return MoveResult.fail("preface nodes cannot have children"), data

    reason = _validate_parent_kind(data, node_id, new_parent_id)
    if reason:
        return MoveResult.fail(reason), data

    if data.parent_map[node_id] == new_parent_id:
        return MoveResult.ok(), data

    existing = data.children_map.get(new_parent_id, [])
    if data.nodes[node_id].is_table and existing:
        return MoveResult.fail("a table node may only be placed first among its siblings"), data

    return MoveResult.ok(), _relink(data, node_id, new_parent_id, [*existing, node_id])


def move_node_with_position(
    data: NormalizedData,
    node_id: str,
    target_id: str,
    position: MovePosition,
) -> tuple[MoveResult, NormalizedData]:
    """Move ``node_id`` before, after or into ``target_id``."""

    if position not in ("before", "after", "child"):
        return MoveResult.fail(f"unknown position: {position}"), data

    reason = _guard_move(data, node_id, target_id)
    if reason:
        return MoveResult.fail(reason), data

    if position == "child":
        target = data.nodes[target_id]
        if target.is_table:
            return MoveResult.fail("table nodes cannot have children"), data
        if target.is_preface:
            return MoveResult.fail("preface nodes cannot have children"), data
        new_parent_id = target_id
    else:
        parent_of_target = data.parent_map.get(target_id)
        if parent_of_target is None:
            return MoveResult.fail("the target node has no parent"), data
        new_parent_id = parent_of_target

    if new_parent_id == node_id or data.is_descendant(node_id, new_parent_id):
        return MoveResult.fail("a node cannot be moved below its own descendant"), data

    reason = _validate_parent_kind(data, node_id, new_parent_id)
    if reason:
        return MoveResult.fail(reason), data

    new_siblings = [cid for cid in data.children_map.get(new_parent_id, []) if cid != node_id]
    if position == "child":
        index = len(new_siblings)
    else:
        if target_id not in new_siblings:
            return MoveResult.fail(f"target node missing from its parent's children: {target_id}"), data
        index = new_siblings.index(target_id) + (1 if position == "after" else 0)
    new_siblings.insert(index, node_id)

    if data.nodes[node_id].is_table and index != 0:
        return MoveResult.fail("a table node may only be placed first among its siblings"), data

    reason = _heading_order_violation(data, node_id, new_parent_id, new_siblings)
    if reason:
        return MoveResult.fail(reason), data

    return MoveResult.ok(), _relink(data, node_id, new_parent_id, new_siblings)


def change_sibling_order(
    data: NormalizedData,
    dragged_id: str,
    target_id: str,
    insert_before: bool = True,
) -> NormalizedData:
    """Reorder two nodes sharing one parent (or both roots).

    Returns ``data`` itself when nothing changes.
    """

    if dragged_id not in data.nodes or target_id not in data.nodes:
        raise TreeIntegrityError("one of the nodes does not exist")
    parent_id = data.parent_map.get(dragged_id)
    if parent_id != data.parent_map.get(target_id):
        raise TreeIntegrityError("nodes must share a parent to change sibling order")
    if dragged_id == target_id:
        return data

    siblings = data.siblings_of(dragged_id)
    if dragged_id not in siblings or target_id not in siblings:
        raise TreeIntegrityError("one of the nodes is missing from its parent's children")

    reordered = [sid for sid in siblings if sid != dragged_id]
    index = reordered.index(target_id) + (0 if insert_before else 1)
    reordered.insert(index, dragged_id)
    if reordered == siblings:
        return data

    out = data.clone()
    if parent_id is None:
        out.root_node_ids = reordered
    else:
        out.children_map[parent_id] = reordered
    return out
