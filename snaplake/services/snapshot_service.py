"""Snapshot orchestration: single-shot writes, chunked sessions and queries."""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional, Sequence

from sqlalchemy.orm import Session

from snaplake.core.errors import NotFoundError
from snaplake.core.logging import get_logger, snapshot_logger
from snaplake.engine.base import QueryEngine, SnapshotWriter
from snaplake.models.registered_tables import RegisteredTable
from snaplake.schemas.api import QueryResult, SnapshotResult
from snaplake.services.chunks import ChunkedSnapshot
from snaplake.services.ledger import SnapshotLedger
from snaplake.services.registry import TableRegistry
from snaplake.services.resolver import QueryResolver

log = get_logger("snapshot_service")


_last_timestamp_ms = 0
_timestamp_lock = threading.Lock()


def _next_timestamp_ms() -> int:
    """Wall-clock millis, bumped past the previous value so keys never repeat in-process."""
    global _last_timestamp_ms
    with _timestamp_lock:
        _last_timestamp_ms = max(int(time.time() * 1000), _last_timestamp_ms + 1)
        return _last_timestamp_ms


def snapshot_key_for(s3_key_prefix: str, timestamp_ms: Optional[int] = None) -> str:
    """Object key of a single-shot snapshot: ``<prefix>/<unix millis>.parquet``."""
    if timestamp_ms is None:
        timestamp_ms = _next_timestamp_ms()
    return f"{s3_key_prefix}/{timestamp_ms}.parquet"


class SnapshotService:
    """Sequences registry lookups, ledger transitions and writer calls.

    Responsibilities:
    - Validate that a table is registered before any snapshot is created
    - Drive the ledger through pending -> writing -> complete/failed
    - Hand out chunk accumulators for paginated snapshots
    - Resolve and run SQL queries over the latest complete snapshots
    """

    def __init__(
        self,
        db: Session,
        writer: SnapshotWriter,
        engine: QueryEngine,
        strict_queries: bool = False,
    ):
        self.db = db
        self.writer = writer
        self.registry = TableRegistry(db)
        self.ledger = SnapshotLedger(db)
        self.resolver = QueryResolver(self.registry, self.ledger, engine, strict=strict_queries)

    def _require_table(self, table_name: str) -> RegisteredTable:
        table = self.registry.get_registered_table(table_name)
        if table is None:
            raise NotFoundError(f'Table "{table_name}" is not registered')
        return table

    def snapshot(self, table_name: str, data: Sequence[Dict[str, Any]]) -> SnapshotResult:
        """Write all rows as one Parquet file and record the outcome.

        Writer failures are recorded on the ledger as ``failed`` and the
        original exception is re-raised.
        """
        table = self._require_table(table_name)
        snapshot_id = self.ledger.create_snapshot(table.table_name)
        s3_key = snapshot_key_for(table.s3_key_prefix)
        slog = snapshot_logger("snapshot_service", table.table_name, snapshot_id)

        try:
            self.ledger.update_snapshot(snapshot_id, status="writing")
            slog.info(f"Writing {len(data)} rows to {s3_key}")

            row_count = self.writer.write(s3_key, table.columns, data)

            self.ledger.update_snapshot(
                snapshot_id,
                status="complete",
                s3_key=s3_key,
                row_count=row_count,
            )
        except Exception as exc:
            slog.error(f"Snapshot write failed: {exc}")
            self._record_failure(snapshot_id, exc)
            raise

        slog.info(f"Snapshot complete | rows={row_count}")
        return SnapshotResult(snapshot_id=snapshot_id, s3_key=s3_key, row_count=row_count)

    def _record_failure(self, snapshot_id: int, exc: Exception) -> None:
        """Mark a snapshot ``failed``; a ledger error here must not mask ``exc``."""
        try:
            self.db.rollback()
            self.ledger.update_snapshot(snapshot_id, status="failed", error=str(exc) or exc.__class__.__name__)
        except Exception:
            log.exception(f"Could not record failure of snapshot {snapshot_id}; it stays unfinished")

    def start_snapshot(self, table_name: str) -> ChunkedSnapshot:
        """Create a ``pending`` snapshot and an accumulator to fill it."""
        table = self._require_table(table_name)
        snapshot_id = self.ledger.create_snapshot(table.table_name)
        log.info(f"Started chunked snapshot {snapshot_id} for {table.table_name}")
        return ChunkedSnapshot(
            writer=self.writer,
            snapshot_id=snapshot_id,
            table_name=table.table_name,
            columns=table.columns,
            s3_key_prefix=table.s3_key_prefix,
        )

    def finalize(self, chunked: ChunkedSnapshot) -> SnapshotResult:
        return chunked.finalize(self.ledger)

    def query(self, sql: str, table_names: Optional[Sequence[str]] = None) -> QueryResult:
        return self.resolver.query(sql, table_names)
