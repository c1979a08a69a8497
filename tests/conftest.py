"""Shared fixtures for document tests."""

from __future__ import annotations

import pytest

from mapweaver.config import Settings
from mapweaver.core.collaborators import InMemoryDocumentSync, LayoutEngine
from mapweaver.core.document import MindMapDocument
from mapweaver.core.scheduler import ManualScheduler
from mapweaver.models.node import MarkdownMeta, MindMapNode


class RecordingLayout(LayoutEngine):
    """Places nodes on a grid: x by depth, y by visit order."""

    def __init__(self) -> None:
        self.calls = 0

    def compute_layout(self, root_nodes: list[MindMapNode]) -> list[MindMapNode]:
        self.calls += 1
        order = 0
        stack = [(root, 0) for root in reversed(root_nodes)]
        while stack:
            node, depth = stack.pop()
            node.x = depth * 100.0
            node.y = order * 10.0
            order += 1
            stack.extend((child, depth + 1) for child in reversed(node.children))
        return root_nodes


def heading(node_id: str, level: int, text: str = "", children: list[MindMapNode] | None = None, **fields) -> MindMapNode:
    return MindMapNode(
        id=node_id,
        text=text or node_id,
        markdown_meta=MarkdownMeta(type="heading", level=level, original_format="#" * level, line_number=level),
        children=children or [],
        **fields,
    )


def bullet(node_id: str, text: str = "", children: list[MindMapNode] | None = None, **meta) -> MindMapNode:
    return MindMapNode(
        id=node_id,
        text=text or node_id,
        markdown_meta=MarkdownMeta(type="unordered-list", level=1, original_format="-", line_number=9, **meta),
        children=children or [],
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(history_debounce_ms=120, layout_debounce_ms=50, frame_interval_ms=16)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def sync() -> InMemoryDocumentSync:
    return InMemoryDocumentSync()


@pytest.fixture
def forest() -> list[MindMapNode]:
    """R(h1) -> [A(h2) -> [A1 (checked checkbox bullet)], B(h2)]."""

    return [
        heading(
            "R",
            1,
            "Root",
            children=[
                heading("A", 2, "Alpha", children=[bullet("A1", "task", is_checkbox=True, is_checked=True)]),
                heading("B", 2, "Beta"),
            ],
        )
    ]


@pytest.fixture
def doc(forest: list[MindMapNode], settings: Settings, scheduler: ManualScheduler, sync: InMemoryDocumentSync) -> MindMapDocument:
    return MindMapDocument(forest, settings=settings, scheduler=scheduler, sync=sync, document_id="map_test")
