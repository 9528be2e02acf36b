"""Registry of tables that can be snapshotted to Parquet."""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from snaplake.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegisteredTable(Base):
    """A logical table with its column mapping and storage prefix.

    ``columns`` is an ordered list of ``{"source", "target", "type"}`` objects:
    ``source`` is the field read from caller rows, ``target`` the Parquet column
    name and ``type`` a DuckDB type tag (VARCHAR, INTEGER, DOUBLE, ...).
    """

    __tablename__ = "registered_tables"

    table_name: Mapped[str] = mapped_column(String(255), primary_key=True)

    columns: Mapped[list] = mapped_column(JSON, nullable=False)

    s3_key_prefix: Mapped[str] = mapped_column(String(1024), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )
