"""Table routes - Register, inspect and remove tables available for snapshots."""

from fastapi import APIRouter, Depends, HTTPException, status

from snaplake.api.deps import get_chunk_sessions, get_snapshot_service, to_http_exception
from snaplake.core.errors import SnapLakeError
from snaplake.core.logging import get_logger
from snaplake.schemas.api import DeleteTableResponse, RegisterTableRequest, RegisteredTableOut
from snaplake.services.chunk_sessions import ChunkSessionStore
from snaplake.services.snapshot_service import SnapshotService

router = APIRouter(prefix="/tables", tags=["tables"])
log = get_logger("table_routes")


@router.post("", status_code=status.HTTP_204_NO_CONTENT)
def register_table(
    payload: RegisterTableRequest,
    service: SnapshotService = Depends(get_snapshot_service),
):
    """
    Register a table for analytics export, or update its column mapping.

    The storage prefix defaults to the table name on first registration and is
    only replaced when `s3_key_prefix` is sent explicitly.
    """
    try:
        service.registry.register_table(payload.table_name, payload.columns, payload.s3_key_prefix)
    except SnapLakeError as exc:
        raise to_http_exception(exc) from exc


@router.get("", response_model=list[RegisteredTableOut])
def list_tables(service: SnapshotService = Depends(get_snapshot_service)):
    """List all registered tables."""
    tables = service.registry.list_registered_tables()
    return [RegisteredTableOut.model_validate(t) for t in tables]


@router.get("/{table_name}", response_model=RegisteredTableOut)
def get_table(table_name: str, service: SnapshotService = Depends(get_snapshot_service)):
    """Get a registered table's configuration."""
    table = service.registry.get_registered_table(table_name)
    if not table:
        raise HTTPException(status_code=404, detail=f"Table '{table_name}' is not registered")
    return RegisteredTableOut.model_validate(table)


@router.delete("/{table_name}", response_model=DeleteTableResponse)
def delete_table(
    table_name: str,
    service: SnapshotService = Depends(get_snapshot_service),
    sessions: ChunkSessionStore = Depends(get_chunk_sessions),
):
    """Delete a registered table together with all of its snapshot records.

    Open chunked sessions for the table are dropped so no further chunks land
    under its prefix.
    """
    try:
        deleted = service.registry.delete_registered_table(table_name)
    except SnapLakeError as exc:
        raise to_http_exception(exc) from exc
    abandoned = sessions.close_table(table_name.strip())
    log.info(f"Table {table_name} deleted via API | snapshots_removed={deleted} sessions_closed={abandoned}")
    return DeleteTableResponse(deleted_snapshots=deleted)
