"""Query routes - Run SQL over the latest snapshots."""

from fastapi import APIRouter, Depends

from snaplake.api.deps import get_snapshot_service, to_http_exception
from snaplake.core.errors import SnapLakeError
from snaplake.core.logging import get_logger
from snaplake.schemas.api import QueryRequest, QueryResult
from snaplake.services.snapshot_service import SnapshotService

router = APIRouter(prefix="/query", tags=["query"])
log = get_logger("query_routes")


@router.post("", response_model=QueryResult)
def run_query(payload: QueryRequest, service: SnapshotService = Depends(get_snapshot_service)):
    """
    Run a SQL query over snapshotted Parquet data.

    Every table in `table_names` (default: all registered tables) is exposed as
    a view over its latest complete snapshot. Tables without one are skipped.
    """
    try:
        return service.query(payload.sql, payload.table_names)
    except SnapLakeError as exc:
        log.error(f"Query failed: {exc}")
        raise to_http_exception(exc) from exc
