"""Snapshot ledger: one row per point-in-time Parquet materialization."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from snaplake.models.base import Base

SNAPSHOT_STATUSES = ("pending", "writing", "complete", "failed")
TERMINAL_STATUSES = frozenset({"complete", "failed"})


class Snapshot(Base):
    __tablename__ = "snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Not a foreign key: orphaned snapshots are tolerated
    table_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,  # pending | writing | complete | failed
    )

    # Single object key, or the chunk directory for chunked snapshots
    s3_key: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    row_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    chunk_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (Index("ix_snapshots_table_name_status", "table_name", "status"),)

    @property
    def is_chunked(self) -> bool:
        return bool(self.chunk_count and self.chunk_count > 0)
