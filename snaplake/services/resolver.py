"""Query path resolution - which stored artifacts are "current" for each table."""

from __future__ import annotations

from typing import List, Optional, Sequence

from snaplake.core.errors import NotFoundError
from snaplake.core.logging import get_logger
from snaplake.engine.base import QueryEngine
from snaplake.schemas.api import QueryResult, TableLocator
from snaplake.services.ledger import SnapshotLedger
from snaplake.services.registry import TableRegistry

log = get_logger("resolver")


class QueryResolver:
    """Expands table names into locators and runs SQL over them.

    Tables that are unregistered or have no complete snapshot are skipped,
    unless ``strict`` is set, in which case they raise :class:`NotFoundError`.
    """

    def __init__(
        self,
        registry: TableRegistry,
        ledger: SnapshotLedger,
        engine: QueryEngine,
        strict: bool = False,
    ):
        self.registry = registry
        self.ledger = ledger
        self.engine = engine
        self.strict = strict

    def resolve(self, table_names: Optional[Sequence[str]] = None) -> List[TableLocator]:
        if table_names is None:
            table_names = [t.table_name for t in self.registry.list_registered_tables()]

        locators: List[TableLocator] = []
        for table_name in table_names:
            table = self.registry.get_registered_table(table_name)
            if table is None:
                self._skip(table_name, "not registered")
                continue

            snapshot = self.ledger.get_latest_snapshot(table.table_name)
            if snapshot is None or not snapshot.s3_key:
                self._skip(table_name, "has no complete snapshot")
                continue

            if snapshot.is_chunked:
                s3_path = f"{snapshot.s3_key}/*.parquet"
            else:
                s3_path = snapshot.s3_key
            locators.append(TableLocator(table_name=table.table_name, s3_path=s3_path))
        return locators

    def query(self, sql: str, table_names: Optional[Sequence[str]] = None) -> QueryResult:
        locators = self.resolve(table_names)
        if not locators:
            # Nothing to bind; running the SQL would only fail inside the engine
            log.info("No tables with complete snapshots; returning empty result")
            return QueryResult.empty()

        log.info(f"Running query over {[loc.table_name for loc in locators]}")
        return self.engine.execute(sql, locators)

    def _skip(self, table_name: str, reason: str) -> None:
        if self.strict:
            raise NotFoundError(f'Table "{table_name}" {reason}')
        log.debug(f"Skipping table {table_name!r}: {reason}")
