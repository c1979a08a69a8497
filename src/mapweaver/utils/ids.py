"""ID utilities."""

from __future__ import annotations

import uuid


def generate_node_id(prefix: str = "node_") -> str:
    """Return a fresh, stable node id.

    Args:
        prefix: ID prefix.

    Returns:
        A unique id such as ``node_3f2a9c1d7b4e``.
    """

    return f"{prefix}{uuid.uuid4().hex[:12]}"


def generate_link_id(prefix: str = "link_") -> str:
    """Return a fresh node-link id."""

    return f"{prefix}{uuid.uuid4().hex[:12]}"


def generate_document_id(prefix: str = "map_") -> str:
    """Return a fresh document id used for log and event context."""

    return f"{prefix}{uuid.uuid4().hex[:8]}"
