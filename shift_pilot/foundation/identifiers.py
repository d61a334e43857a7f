"""Random identifiers for subscriptions and persisted trips."""

from __future__ import annotations

from uuid import UUID, uuid4


def new_id() -> UUID:
    """Generate a new random UUID v4."""
    return uuid4()


def new_trip_id() -> str:
    """Identifier handed back to callers for a classified trip."""
    return f"trip_{uuid4().hex}"
