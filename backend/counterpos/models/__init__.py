"""SQLAlchemy models for counterpos."""

from counterpos.models.snapshot import Snapshot

__all__ = [
    "Snapshot",
]
