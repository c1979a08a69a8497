"""Exceptions raised inside the document core.

Expected precondition failures never surface as exceptions from ``MindMapDocument``; these
types describe programming errors or corrupted state.
"""

from __future__ import annotations


class MapWeaverError(Exception):
    """Base class for MapWeaver errors."""


class TreeIntegrityError(MapWeaverError):
    """Raised when normalized maps are inconsistent or a pure tree operation is misused."""


class ReentrantMutationError(MapWeaverError):
    """Raised when a structural mutation starts while another one is still running."""
