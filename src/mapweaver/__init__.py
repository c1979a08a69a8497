"""MapWeaver: normalized outline / mind-map document core."""

from __future__ import annotations

from mapweaver.core.document import MindMapDocument, create_document
from mapweaver.models import MarkdownMeta, MindMapNode, MoveResult

__all__ = [
    "MarkdownMeta",
    "MindMapDocument",
    "MindMapNode",
    "MoveResult",
    "create_document",
]
