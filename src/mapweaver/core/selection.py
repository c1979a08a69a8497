"""Selection and editing bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mapweaver.core.normalized import NormalizedData


class EditingMode(str, Enum):
    """Where the caret goes when editing starts."""

    SELECT_ALL = "select-all"
    CURSOR_AT_END = "cursor-at-end"
    CURSOR_AT_START = "cursor-at-start"


@dataclass
class SelectionController:
    """Selected node, edit buffer and the insert-rollback reference.

    ``fallback_before_insert_id`` is one-shot: it remembers where selection was anchored before a
    node was inserted, so that abandoning the new node with empty text can restore it.
    """

    selected_node_id: str | None = None
    editing_node_id: str | None = None
    edit_text: str = ""
    editing_mode: EditingMode | None = None
    fallback_before_insert_id: str | None = None

    @property
    def is_editing(self) -> bool:
        return self.editing_node_id is not None

    def select(self, node_id: str | None) -> None:
        self.selected_node_id = node_id

    def start_editing(self, node_id: str, text: str, mode: EditingMode = EditingMode.SELECT_ALL) -> None:
        self.editing_node_id = node_id
        self.edit_text = text
        self.editing_mode = mode

    def stop_editing(self) -> None:
        self.editing_node_id = None
        self.edit_text = ""
        self.editing_mode = None

    def remember_insert(self, reference_id: str | None) -> None:
        self.fallback_before_insert_id = reference_id

    def take_fallback(self) -> str | None:
        reference_id, self.fallback_before_insert_id = self.fallback_before_insert_id, None
        return reference_id

    def reset(self) -> None:
        self.selected_node_id = None
        self.fallback_before_insert_id = None
        self.stop_editing()

    def prune(self, data: NormalizedData) -> None:
        """Forget ids that no longer exist in ``data``."""

        if self.selected_node_id is not None and self.selected_node_id not in data.nodes:
            self.selected_node_id = None
        if self.editing_node_id is not None and self.editing_node_id not in data.nodes:
            self.stop_editing()
        if self.fallback_before_insert_id is not None and self.fallback_before_insert_id not in data.nodes:
            self.fallback_before_insert_id = None


def fallback_after_delete(data: NormalizedData, node_id: str) -> str | None:
    """Node to select once ``node_id`` is deleted.

    Next sibling, then previous sibling, then the parent, then the first remaining root.
    """

    siblings = data.siblings_of(node_id)
    if node_id in siblings:
        index = siblings.index(node_id)
        if index + 1 < len(siblings):
            return siblings[index + 1]
        if index > 0:
            return siblings[index - 1]

    parent_id = data.parent_map.get(node_id)
    if parent_id is not None:
        return parent_id

    for root_id in data.root_node_ids:
        if root_id != node_id:
            return root_id
    return None
