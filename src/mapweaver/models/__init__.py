"""Pydantic models used across the project."""

from __future__ import annotations

from mapweaver.models.node import (
    MarkdownMeta,
    MarkdownType,
    MindMapNode,
    NodeKind,
    NodeLink,
)
from mapweaver.models.results import MovePosition, MoveResult, RejectReason

__all__ = [
    "MarkdownMeta",
    "MarkdownType",
    "MindMapNode",
    "MovePosition",
    "MoveResult",
    "NodeKind",
    "NodeLink",
    "RejectReason",
]
