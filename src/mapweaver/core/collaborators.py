"""Interfaces of the collaborators a document talks to.

The document decides *when* to sync and *when* to ask for layout; implementations decide how.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from mapweaver.models.node import MindMapNode


class DocumentSync(ABC):
    """Receives the denormalized forest after every mutation (persistence, markdown sync)."""

    @abstractmethod
    def sync_to_document(self, root_nodes: list[MindMapNode]) -> None:
        """Accept the current forest. ``root_nodes`` is a fresh copy the sync may keep."""

    def flush(self) -> None:
        """Persist anything buffered. Called after deferred resyncs."""


class LayoutEngine(ABC):
    """Computes node coordinates."""

    @abstractmethod
    def compute_layout(self, root_nodes: list[MindMapNode]) -> list[MindMapNode]:
        """Return the forest with ``x``/``y`` filled in.

        Only coordinates are read back; structural changes in the result are ignored.
        """


class InMemoryDocumentSync(DocumentSync):
    """Keeps the latest synced forest; useful for tests and embedding."""

    def __init__(self) -> None:
        self.root_nodes: list[MindMapNode] = []
        self.sync_count = 0
        self.flush_count = 0

    def sync_to_document(self, root_nodes: list[MindMapNode]) -> None:
        self.root_nodes = root_nodes
        self.sync_count += 1

    def flush(self) -> None:
        self.flush_count += 1
