"""Key/value snapshot model - one row per persisted collection."""

from datetime import datetime

from sqlalchemy import String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from counterpos.db.base import Base


class Snapshot(Base):
    __tablename__ = "kv_snapshots"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Full JSON snapshot of the collection, rewritten on every change
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Snapshot {self.key} ({len(self.value)} bytes)>"
