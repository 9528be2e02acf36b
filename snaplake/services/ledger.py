"""Snapshot ledger - lifecycle records for every snapshot attempt.

State machine::

    pending -> writing -> complete
    pending -> writing -> failed
    pending -> complete            (chunked path, see services.chunks)
    pending -> failed

``complete`` and ``failed`` are terminal. Only ``complete`` snapshots are ever
returned by :meth:`SnapshotLedger.get_latest_snapshot`, so readers never see an
artifact that is still being written.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from snaplake.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from snaplake.core.logging import get_logger
from snaplake.models.snapshots import SNAPSHOT_STATUSES, TERMINAL_STATUSES, Snapshot

log = get_logger("ledger")

DEFAULT_LIST_LIMIT = 20

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"writing", "complete", "failed"}),
    "writing": frozenset({"complete", "failed"}),
    "complete": frozenset(),
    "failed": frozenset(),
}


class SnapshotLedger:
    """Snapshot records keyed by id, one commit per operation."""

    def __init__(self, db: Session):
        self.db = db

    def create_snapshot(self, table_name: str) -> int:
        """Insert a ``pending`` snapshot and return its id.

        Registration is not checked here; that belongs to the orchestrator.
        """
        name = (table_name or "").strip()
        if not name:
            raise ValidationError("table_name must be non-empty")

        snapshot = Snapshot(
            table_name=name,
            status="pending",
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(snapshot)
        self.db.commit()
        self.db.refresh(snapshot)
        log.debug(f"Created snapshot {snapshot.id} for {name}")
        return snapshot.id

    def update_snapshot(
        self,
        snapshot_id: int,
        status: str,
        s3_key: Optional[str] = None,
        row_count: Optional[int] = None,
        chunk_count: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        """Apply a partial update; terminal statuses also stamp ``completed_at``."""
        if status not in SNAPSHOT_STATUSES:
            raise ValidationError(f"unknown snapshot status: {status!r}")

        snapshot = self.db.get(Snapshot, snapshot_id)
        if snapshot is None:
            raise NotFoundError(f"Snapshot {snapshot_id} not found")

        if status not in ALLOWED_TRANSITIONS[snapshot.status]:
            raise InvalidTransitionError(snapshot_id, snapshot.status, status)

        snapshot.status = status
        if s3_key is not None:
            snapshot.s3_key = s3_key
        if row_count is not None:
            snapshot.row_count = row_count
        if chunk_count is not None:
            snapshot.chunk_count = chunk_count
        if error is not None:
            snapshot.error = error
        if status in TERMINAL_STATUSES:
            snapshot.completed_at = datetime.now(timezone.utc)

        self.db.commit()
        log.debug(f"Snapshot {snapshot_id} -> {status}")

    def get_snapshot(self, snapshot_id: int) -> Optional[Snapshot]:
        return self.db.get(Snapshot, snapshot_id)

    def get_latest_snapshot(self, table_name: str) -> Optional[Snapshot]:
        """Most recently created ``complete`` snapshot for a table."""
        name = (table_name or "").strip()
        if not name:
            return None
        stmt = (
            select(Snapshot)
            .where(Snapshot.table_name == name, Snapshot.status == "complete")
            .order_by(Snapshot.created_at.desc(), Snapshot.id.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_snapshots(
        self,
        table_name: Optional[str] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> List[Snapshot]:
        """Newest-first snapshots of any status, optionally for one table."""
        stmt = select(Snapshot)
        if table_name:
            name = table_name.strip()
            if not name:
                return []
            stmt = stmt.where(Snapshot.table_name == name)

        stmt = stmt.order_by(Snapshot.created_at.desc(), Snapshot.id.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def delete_snapshot(self, snapshot_id: int) -> None:
        snapshot = self.db.get(Snapshot, snapshot_id)
        if snapshot is None:
            return
        self.db.delete(snapshot)
        self.db.commit()
        log.info(f"Deleted snapshot {snapshot_id} ({snapshot.table_name})")
