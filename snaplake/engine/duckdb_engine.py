"""DuckDB-backed Parquet writer and query engine.

Writes go through an in-memory DuckDB database: rows are inserted into a typed
table built from the column mapping, exported with ``COPY ... (FORMAT PARQUET)``
and the resulting file is handed to the object store. Queries bind one view per
table locator with ``read_parquet`` and run the caller's SQL over those views.
"""

from __future__ import annotations

import re
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import duckdb

from snaplake.core.errors import DelegateFailure
from snaplake.core.logging import get_logger
from snaplake.engine.base import ObjectStore, QueryEngine, SnapshotWriter
from snaplake.engine.s3_store import S3ObjectStore
from snaplake.schemas.api import QueryResult, StorageConfig, TableLocator

log = get_logger("engine.duckdb")

# Engine-native integer types wider than a double can represent exactly
WIDE_INTEGER_TYPES = frozenset({"BIGINT", "UBIGINT", "HUGEINT", "UHUGEINT"})


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _narrow(value: Any, type_name: str) -> Any:
    """Down-convert 64/128-bit integers to float (precision loss above 2**53)."""
    if type_name in WIDE_INTEGER_TYPES and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value


class DuckDBEngine(SnapshotWriter, QueryEngine):
    """Implements both the snapshot writer and the query engine on DuckDB."""

    def __init__(
        self,
        store: ObjectStore,
        storage: Optional[StorageConfig] = None,
        scratch_dir: Optional[str] = None,
    ):
        if store.remote and storage is None:
            raise ValueError("storage config is required for a remote object store")
        self.store = store
        self.storage = storage
        self.scratch_dir = scratch_dir

    @classmethod
    def from_storage(cls, storage: StorageConfig, scratch_dir: Optional[str] = None) -> "DuckDBEngine":
        return cls(S3ObjectStore(storage), storage=storage, scratch_dir=scratch_dir)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------
    def write(self, key: str, columns: Sequence[Dict[str, str]], rows: Sequence[Dict[str, Any]]) -> int:
        col_defs = ", ".join(f"{quote_identifier(c['target'])} {c['type']}" for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        values = [[row.get(c["source"]) for c in columns] for row in rows]

        try:
            with tempfile.TemporaryDirectory(prefix="snaplake_", dir=self.scratch_dir) as tmp:
                parquet_path = Path(tmp) / "export.parquet"
                conn = duckdb.connect(":memory:")
                try:
                    conn.execute(f"CREATE TABLE export_data ({col_defs})")
                    if values:
                        conn.executemany(f"INSERT INTO export_data VALUES ({placeholders})", values)
                    conn.execute(
                        f"COPY export_data TO {sql_literal(str(parquet_path))} (FORMAT PARQUET, COMPRESSION ZSTD)"
                    )
                finally:
                    conn.close()
                body = parquet_path.read_bytes()
        except duckdb.Error as exc:
            raise DelegateFailure(f"Failed to build Parquet for {key}: {exc}") from exc

        self.store.put_object(key, body)
        log.info(f"Wrote {len(rows)} rows to {key}")
        return len(rows)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------
    def execute(self, sql: str, locators: List[TableLocator]) -> QueryResult:
        conn = duckdb.connect(":memory:")
        try:
            if self.store.remote:
                self._configure_httpfs(conn)

            for locator in locators:
                uri = self.store.uri_for(locator.s3_path)
                conn.execute(
                    f"CREATE VIEW {quote_identifier(locator.table_name)} AS "
                    f"SELECT * FROM read_parquet({sql_literal(uri)})"
                )

            relation = conn.sql(sql)
            if relation is None:
                # Statement produced no result set
                return QueryResult.empty()

            names = list(relation.columns)
            types = [str(t).upper() for t in relation.types]
            records = relation.fetchall()
        except duckdb.Error as exc:
            raise DelegateFailure(f"Query failed: {exc}") from exc
        finally:
            conn.close()

        columns = names if records else []
        rows = [
            {name: _narrow(value, type_name) for name, type_name, value in zip(names, types, record)}
            for record in records
        ]
        log.debug(f"Query over {len(locators)} tables returned {len(rows)} rows")
        return QueryResult(columns=columns, rows=rows, row_count=len(rows))

    def _configure_httpfs(self, conn: duckdb.DuckDBPyConnection) -> None:
        cfg = self.storage
        use_ssl = cfg.endpoint.lower().startswith("https://")
        host = re.sub(r"^https?://", "", cfg.endpoint, flags=re.IGNORECASE).rstrip("/")

        conn.execute("INSTALL httpfs")
        conn.execute("LOAD httpfs")
        options = {
            "s3_endpoint": host,
            "s3_access_key_id": cfg.access_key_id,
            "s3_secret_access_key": cfg.secret_access_key,
            "s3_region": cfg.effective_region,
            "s3_url_style": "path" if cfg.path_style else "vhost",
        }
        for name, value in options.items():
            conn.execute(f"SET {name}={sql_literal(value)}")
        conn.execute(f"SET s3_use_ssl={'true' if use_ssl else 'false'}")
