from snaplake.engine.base import ObjectStore, QueryEngine, SnapshotWriter
from snaplake.engine.duckdb_engine import DuckDBEngine
from snaplake.engine.s3_store import S3ObjectStore

__all__ = [
    "ObjectStore",
    "QueryEngine",
    "SnapshotWriter",
    "DuckDBEngine",
    "S3ObjectStore",
]
