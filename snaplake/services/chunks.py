"""Chunked snapshots for tables too large for a single write.

A :class:`ChunkedSnapshot` is handed out by ``SnapshotService.start_snapshot``
and driven by the caller while paginating its own data source::

    chunked = service.start_snapshot("production_jobs")
    for page in pages:
        chunked.append_chunk(page)
    service.finalize(chunked)

Progress lives only in this object. If the process dies before ``finalize``
the snapshot stays ``pending`` and the chunks already written are orphaned.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Sequence

from snaplake.core.errors import InvalidTransitionError
from snaplake.core.logging import snapshot_logger
from snaplake.engine.base import SnapshotWriter
from snaplake.schemas.api import ChunkResult, SnapshotResult
from snaplake.services.ledger import SnapshotLedger


def chunk_dir_for(s3_key_prefix: str, snapshot_id: int) -> str:
    return f"{s3_key_prefix}/chunks/{snapshot_id}"


def chunk_key_for(s3_key_prefix: str, snapshot_id: int, chunk_index: int) -> str:
    return f"{chunk_dir_for(s3_key_prefix, snapshot_id)}/chunk_{chunk_index:06d}.parquet"


class ChunkedSnapshot:
    """Sequencing state for one paginated snapshot session."""

    def __init__(
        self,
        writer: SnapshotWriter,
        snapshot_id: int,
        table_name: str,
        columns: Sequence[Dict[str, str]],
        s3_key_prefix: str,
    ):
        self.writer = writer
        self.snapshot_id = snapshot_id
        self.table_name = table_name
        self.columns = list(columns)
        self.s3_key_prefix = s3_key_prefix
        self._chunk_index = 0
        self._total_rows = 0
        self._chunk_keys: List[str] = []
        self._finalized = False
        # Serializes append_chunk/finalize when one session is shared across requests
        self._lock = threading.Lock()
        self.log = snapshot_logger("chunks", table_name, snapshot_id)

    @property
    def chunk_index(self) -> int:
        """Sequence number the next chunk will be written under."""
        return self._chunk_index

    @property
    def total_rows(self) -> int:
        return self._total_rows

    @property
    def chunk_keys(self) -> List[str]:
        return list(self._chunk_keys)

    @property
    def chunk_dir(self) -> str:
        return chunk_dir_for(self.s3_key_prefix, self.snapshot_id)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def append_chunk(self, data: Sequence[Dict[str, Any]]) -> ChunkResult:
        """Write one page of rows as the next numbered chunk.

        Writer errors propagate untouched and leave the counters unchanged, so
        the caller may retry the same page under the same index.
        """
        with self._lock:
            return self._append_chunk(data)

    def _append_chunk(self, data: Sequence[Dict[str, Any]]) -> ChunkResult:
        if self._finalized:
            raise InvalidTransitionError(
                self.snapshot_id, "complete", "pending", f"Snapshot {self.snapshot_id} is already finalized"
            )

        index = self._chunk_index
        key = chunk_key_for(self.s3_key_prefix, self.snapshot_id, index)
        row_count = self.writer.write(key, self.columns, data)

        self._chunk_index += 1
        self._total_rows += row_count
        self._chunk_keys.append(key)
        self.log.debug(f"Chunk {index} -> {key} ({row_count} rows)")
        return ChunkResult(s3_key=key, row_count=row_count, chunk_index=index)

    def finalize(self, ledger: SnapshotLedger) -> SnapshotResult:
        """Mark the snapshot ``complete`` with the chunk directory as its key."""
        with self._lock:
            return self._finalize(ledger)

    def _finalize(self, ledger: SnapshotLedger) -> SnapshotResult:
        if self._finalized:
            raise InvalidTransitionError(
                self.snapshot_id, "complete", "complete", f"Snapshot {self.snapshot_id} is already finalized"
            )

        if self._chunk_index == 0:
            ledger.update_snapshot(self.snapshot_id, status="failed", error="no chunks were appended")
            self._finalized = True
            raise InvalidTransitionError(
                self.snapshot_id,
                "pending",
                "complete",
                f"Snapshot {self.snapshot_id} cannot be finalized without any chunks",
            )

        ledger.update_snapshot(
            self.snapshot_id,
            status="complete",
            s3_key=self.chunk_dir,
            row_count=self._total_rows,
            chunk_count=self._chunk_index,
        )
        self._finalized = True
        self.log.info(f"Finalized chunked snapshot | chunks={self._chunk_index} rows={self._total_rows}")
        return SnapshotResult(
            snapshot_id=self.snapshot_id,
            s3_key=self.chunk_dir,
            row_count=self._total_rows,
            chunk_count=self._chunk_index,
        )
