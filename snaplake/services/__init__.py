# Services package
from snaplake.services.chunk_sessions import ChunkSessionStore, chunk_sessions
from snaplake.services.chunks import ChunkedSnapshot
from snaplake.services.ledger import SnapshotLedger
from snaplake.services.registry import TableRegistry
from snaplake.services.resolver import QueryResolver
from snaplake.services.snapshot_service import SnapshotService

__all__ = [
    "ChunkSessionStore",
    "chunk_sessions",
    "ChunkedSnapshot",
    "SnapshotLedger",
    "TableRegistry",
    "QueryResolver",
    "SnapshotService",
]
