"""Mind-map node models.

A document is a forest of ``MindMapNode`` trees. Each node optionally carries ``MarkdownMeta``
describing which outline construct it maps onto (heading, list item, preface, table).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


NodeKind = Literal["plain", "table"]
MarkdownType = Literal["heading", "unordered-list", "ordered-list", "preface", "table"]

# Line numbers are owned by the markdown-sync collaborator; derived metadata starts unassigned.
UNASSIGNED_LINE = -1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarkdownMeta(BaseModel):
    """Outline metadata of a node."""

    type: MarkdownType
    level: int = Field(default=1, ge=1)
    indent_level: int = Field(default=0, ge=0)
    original_format: str = ""
    line_number: int = UNASSIGNED_LINE

    is_checkbox: bool | None = None
    is_checked: bool | None = None


class NodeLink(BaseModel):
    """A hyperlink or in-map reference attached to a node."""

    id: str
    title: str | None = None
    url: str | None = None
    description: str | None = None

    target_node_id: str | None = None
    target_map_id: str | None = None
    target_anchor: str | None = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime | None = None


class MindMapNode(BaseModel):
    """A node in the outline forest.

    ``x``/``y`` are a layout cache and are ignored when history compares snapshots.
    Inside the normalized store ``children`` is always empty; ordering lives in the children map.
    """

    id: str
    text: str = ""
    collapsed: bool = False
    color: str | None = None
    kind: NodeKind = "plain"
    markdown_meta: MarkdownMeta | None = None

    note: str | None = None
    font_size: int = 14
    font_weight: str = "normal"
    table_data: dict[str, Any] | None = None
    links: list[NodeLink] = Field(default_factory=list)

    x: float = 0.0
    y: float = 0.0

    children: list["MindMapNode"] = Field(default_factory=list)

    @property
    def is_table(self) -> bool:
        return self.kind == "table"

    @property
    def is_preface(self) -> bool:
        return self.markdown_meta is not None and self.markdown_meta.type == "preface"

    @property
    def is_checkbox(self) -> bool:
        return bool(self.markdown_meta is not None and self.markdown_meta.is_checkbox)
