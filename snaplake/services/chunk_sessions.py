"""Process-local registry of open chunked snapshot sessions for the HTTP API."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from snaplake.services.chunks import ChunkedSnapshot


class ChunkSessionStore:
    """Open accumulators keyed by snapshot id.

    Nothing here is persisted: a restart drops every open session and the
    corresponding snapshots stay ``pending``.
    """

    def __init__(self):
        self._sessions: Dict[int, ChunkedSnapshot] = {}
        self._lock = threading.Lock()

    def open(self, chunked: ChunkedSnapshot) -> None:
        with self._lock:
            self._sessions[chunked.snapshot_id] = chunked

    def get(self, snapshot_id: int) -> Optional[ChunkedSnapshot]:
        with self._lock:
            return self._sessions.get(snapshot_id)

    def close(self, snapshot_id: int) -> Optional[ChunkedSnapshot]:
        with self._lock:
            return self._sessions.pop(snapshot_id, None)

    def close_table(self, table_name: str) -> List[int]:
        """Drop every open session for ``table_name``; returns the closed snapshot ids."""
        with self._lock:
            closed = [sid for sid, chunked in self._sessions.items() if chunked.table_name == table_name]
            for sid in closed:
                del self._sessions[sid]
        return sorted(closed)

    def open_ids(self) -> List[int]:
        with self._lock:
            return sorted(self._sessions)


chunk_sessions = ChunkSessionStore()
