"""Structured results returned by document operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal


MovePosition = Literal["before", "after", "child"]


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a move; failures carry a human-readable reason."""

    success: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> "MoveResult":
        return cls(success=True)

    @classmethod
    def fail(cls, reason: str) -> "MoveResult":
        return cls(success=False, reason=reason)

    def __bool__(self) -> bool:
        return self.success


class RejectReason(str, Enum):
    """Why an insertion was silently rejected."""

    MISSING_NODE = "missing_node"
    TABLE_PARENT = "table_parent"
    PREFACE_PARENT = "preface_parent"
