"""Normalized (flat, id-indexed) representation of the outline forest.

``normalize`` flattens nested trees into four maps; ``denormalize`` rebuilds them. Both allocate
fresh node objects so that history snapshots never alias the live store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from mapweaver.core.errors import TreeIntegrityError
from mapweaver.models.node import MindMapNode


LAYOUT_FIELDS = frozenset({"x", "y"})


@dataclass
class NormalizedData:
    """Flat view of a forest.

    ``children_map`` lists are treated as immutable: operations replace them instead of
    mutating them, so ``clone()`` only needs to copy the containers.
    """

    nodes: dict[str, MindMapNode] = field(default_factory=dict)
    root_node_ids: list[str] = field(default_factory=list)
    parent_map: dict[str, str] = field(default_factory=dict)
    children_map: dict[str, list[str]] = field(default_factory=dict)

    def clone(self) -> "NormalizedData":
        return NormalizedData(
            nodes=dict(self.nodes),
            root_node_ids=list(self.root_node_ids),
            parent_map=dict(self.parent_map),
            children_map=dict(self.children_map),
        )

    def parent_of(self, node_id: str) -> str | None:
        return self.parent_map.get(node_id)

    def siblings_of(self, node_id: str) -> list[str]:
        """Ordered ids sharing ``node_id``'s parent (the root list for roots)."""

        parent_id = self.parent_map.get(node_id)
        if parent_id is None:
            return self.root_node_ids
        return self.children_map.get(parent_id, [])

    def is_root(self, node_id: str) -> bool:
        return node_id in self.nodes and node_id not in self.parent_map

    def iter_subtree(self, node_id: str) -> Iterator[str]:
        """Yield ``node_id`` and all of its descendants, pre-order."""

        stack = [node_id]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(self.children_map.get(current, [])))

    def is_descendant(self, ancestor_id: str, node_id: str) -> bool:
        """True when ``node_id`` lies strictly below ``ancestor_id``."""

        current = self.parent_map.get(node_id)
        steps = 0
        while current is not None:
            if current == ancestor_id:
                return True
            current = self.parent_map.get(current)
            steps += 1
            if steps > len(self.nodes):
                raise TreeIntegrityError(f"cycle detected above node {node_id}")
        return False


def _attributes(node: MindMapNode) -> MindMapNode:
    # drop children before the deep copy so each node is copied once
    return node.model_copy(update={"children": []}).model_copy(deep=True)


def normalize(root_nodes: Iterable[MindMapNode] | None) -> NormalizedData:
    """Flatten nested trees into a ``NormalizedData`` preserving sibling order."""

    data = NormalizedData()
    if not root_nodes:
        return data

    roots = list(root_nodes)
    # (node, parent_id) pairs; explicit stack keeps deep outlines off the recursion limit
    stack: list[tuple[MindMapNode, str | None]] = [(root, None) for root in reversed(roots)]
    while stack:
        node, parent_id = stack.pop()
        if node.id in data.nodes:
            raise TreeIntegrityError(f"duplicate node id: {node.id}")
        data.nodes[node.id] = _attributes(node)
        if parent_id is not None:
            data.parent_map[node.id] = parent_id
        data.children_map[node.id] = [child.id for child in node.children]
        stack.extend((child, node.id) for child in reversed(node.children))

    data.root_node_ids = [root.id for root in roots]
    return data


def denormalize(data: NormalizedData) -> list[MindMapNode]:
    """Rebuild nested trees following ``root_node_ids`` / ``children_map`` order."""

    def build(node_id: str) -> MindMapNode:
        node = data.nodes.get(node_id)
        if node is None:
            raise TreeIntegrityError(f"node not found: {node_id}")
        children = [build(child_id) for child_id in data.children_map.get(node_id, [])]
        return node.model_copy(update={"children": children}, deep=True)

    return [build(root_id) for root_id in data.root_node_ids]


def strip_layout(root_nodes: Iterable[MindMapNode]) -> list[dict[str, Any]]:
    """Dump trees to plain data without layout-only fields, for structural comparison."""

    out: list[dict[str, Any]] = []
    for node in root_nodes:
        payload = node.model_dump(exclude=set(LAYOUT_FIELDS) | {"children"})
        payload["children"] = strip_layout(node.children)
        out.append(payload)
    return out


def collect_integrity_errors(data: NormalizedData) -> list[str]:
    """Check the data-model invariants and describe every violation found."""

    errors: list[str] = []
    nodes = data.nodes

    seen_in_lists: dict[str, str] = {}
    for parent_id, child_ids in data.children_map.items():
        if parent_id not in nodes:
            errors.append(f"children_map key {parent_id} has no node")
        for child_id in child_ids:
            if child_id not in nodes:
                errors.append(f"child {child_id} of {parent_id} has no node")
            if data.parent_map.get(child_id) != parent_id:
                errors.append(f"child {child_id} of {parent_id} does not point back to its parent")
            if child_id in seen_in_lists:
                errors.append(f"{child_id} listed under both {seen_in_lists[child_id]} and {parent_id}")
            seen_in_lists[child_id] = parent_id

    for child_id, parent_id in data.parent_map.items():
        if child_id not in nodes:
            errors.append(f"parent_map key {child_id} has no node")
        if parent_id not in nodes:
            errors.append(f"parent {parent_id} of {child_id} has no node")
        if child_id not in data.children_map.get(parent_id, []):
            errors.append(f"{child_id} missing from the children of {parent_id}")

    if len(set(data.root_node_ids)) != len(data.root_node_ids):
        errors.append("root_node_ids contains duplicates")
    for root_id in data.root_node_ids:
        if root_id not in nodes:
            errors.append(f"root {root_id} has no node")
        if root_id in seen_in_lists:
            errors.append(f"root {root_id} is also listed under {seen_in_lists[root_id]}")
    expected_roots = {node_id for node_id in nodes if node_id not in data.parent_map}
    if expected_roots != set(data.root_node_ids):
        errors.append("root_node_ids differs from the set of parentless nodes")

    limit = len(nodes)
    for node_id in nodes:
        current: str | None = node_id
        steps = 0
        while current is not None and steps <= limit:
            current = data.parent_map.get(current)
            steps += 1
        if current is not None:
            errors.append(f"cycle reachable from {node_id}")
            break

    return errors
