"""Event model emitted by a document to its listeners.

The UI, the markdown-sync collaborator and diagnostics tooling subscribe to these events to learn
when the model, the layout or the history changed, without polling the document.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Document event categories."""

    MODEL_CHANGED = "model.changed"
    LAYOUT_APPLIED = "layout.applied"
    HISTORY_COMMITTED = "history.committed"
    HISTORY_RESTORED = "history.restored"


class DocumentEvent(BaseModel):
    """A single event emitted by a document."""

    document_id: str
    event_type: EventType
    source: str
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    metadata: dict[str, str | int | float | bool | None] = Field(default_factory=dict)


EventListener = Callable[[DocumentEvent], None]
