"""Snapshot routes - Trigger single-shot and chunked snapshots, inspect the ledger."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from snaplake.api.deps import get_chunk_sessions, get_snapshot_service, to_http_exception
from snaplake.core.config import settings
from snaplake.core.errors import NotFoundError, SnapLakeError
from snaplake.core.logging import get_logger
from snaplake.schemas.api import (
    ChunkedSnapshotStarted,
    ChunkResult,
    SnapshotDataRequest,
    SnapshotOut,
    SnapshotResult,
)
from snaplake.services.chunk_sessions import ChunkSessionStore
from snaplake.services.snapshot_service import SnapshotService

router = APIRouter(prefix="/snapshots", tags=["snapshots"])
log = get_logger("snapshot_routes")


# -----------------------------------------------------------------------------
# Ledger
# -----------------------------------------------------------------------------


@router.get("", response_model=list[SnapshotOut])
def list_snapshots(
    table_name: Optional[str] = Query(None, description="Filter by table name"),
    limit: int = Query(settings.SNAPSHOT_LIST_LIMIT, ge=1, le=500, description="Number of snapshots to return"),
    service: SnapshotService = Depends(get_snapshot_service),
):
    """List snapshots newest first, in any status."""
    snapshots = service.ledger.list_snapshots(table_name=table_name, limit=limit)
    return [SnapshotOut.model_validate(s) for s in snapshots]


@router.get("/latest/{table_name}", response_model=SnapshotOut)
def get_latest_snapshot(table_name: str, service: SnapshotService = Depends(get_snapshot_service)):
    """Get the most recent complete snapshot for a table."""
    snapshot = service.ledger.get_latest_snapshot(table_name)
    if not snapshot:
        raise HTTPException(status_code=404, detail=f"No complete snapshot for '{table_name}'")
    return SnapshotOut.model_validate(snapshot)


@router.get("/{snapshot_id}", response_model=SnapshotOut)
def get_snapshot(snapshot_id: int, service: SnapshotService = Depends(get_snapshot_service)):
    snapshot = service.ledger.get_snapshot(snapshot_id)
    if not snapshot:
        raise HTTPException(status_code=404, detail=f"Snapshot {snapshot_id} not found")
    return SnapshotOut.model_validate(snapshot)


@router.delete("/{snapshot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_snapshot(
    snapshot_id: int,
    service: SnapshotService = Depends(get_snapshot_service),
    sessions: ChunkSessionStore = Depends(get_chunk_sessions),
):
    """Delete a snapshot record. Stored Parquet objects are left in place."""
    sessions.close(snapshot_id)
    service.ledger.delete_snapshot(snapshot_id)


# -----------------------------------------------------------------------------
# Single-shot
# -----------------------------------------------------------------------------


@router.post("/{table_name}", response_model=SnapshotResult)
def snapshot_table(
    table_name: str,
    payload: SnapshotDataRequest,
    service: SnapshotService = Depends(get_snapshot_service),
):
    """
    Snapshot rows to object storage as one Parquet file.

    The caller fetches its own data and posts it here. A failed write is
    recorded on the ledger as `failed` before the error is returned.
    """
    try:
        return service.snapshot(table_name, payload.data)
    except SnapLakeError as exc:
        raise to_http_exception(exc) from exc


# -----------------------------------------------------------------------------
# Chunked
# -----------------------------------------------------------------------------


@router.post("/{table_name}/chunked", response_model=ChunkedSnapshotStarted, status_code=status.HTTP_201_CREATED)
def start_chunked_snapshot(
    table_name: str,
    service: SnapshotService = Depends(get_snapshot_service),
    sessions: ChunkSessionStore = Depends(get_chunk_sessions),
):
    """Start a chunked snapshot; append pages to it, then finalize."""
    try:
        chunked = service.start_snapshot(table_name)
    except SnapLakeError as exc:
        raise to_http_exception(exc) from exc

    sessions.open(chunked)
    return ChunkedSnapshotStarted(
        snapshot_id=chunked.snapshot_id,
        table_name=chunked.table_name,
        chunk_dir=chunked.chunk_dir,
    )


@router.post("/chunked/{snapshot_id}/chunks", response_model=ChunkResult)
def append_chunk(
    snapshot_id: int,
    payload: SnapshotDataRequest,
    sessions: ChunkSessionStore = Depends(get_chunk_sessions),
):
    """Write one page of rows as the next chunk of an open session."""
    chunked = sessions.get(snapshot_id)
    if chunked is None:
        raise HTTPException(status_code=404, detail=f"No open chunked session for snapshot {snapshot_id}")
    try:
        return chunked.append_chunk(payload.data)
    except SnapLakeError as exc:
        log.error(f"Chunk {chunked.chunk_index} of snapshot {snapshot_id} failed: {exc}")
        raise to_http_exception(exc) from exc


@router.post("/chunked/{snapshot_id}/finalize", response_model=SnapshotResult)
def finalize_chunked_snapshot(
    snapshot_id: int,
    service: SnapshotService = Depends(get_snapshot_service),
    sessions: ChunkSessionStore = Depends(get_chunk_sessions),
):
    """Mark a chunked snapshot complete and close its session."""
    chunked = sessions.get(snapshot_id)
    if chunked is None:
        raise HTTPException(status_code=404, detail=f"No open chunked session for snapshot {snapshot_id}")
    try:
        return service.finalize(chunked)
    except NotFoundError as exc:
        # Ledger row is gone (snapshot or table deleted); the session can never finalize
        sessions.close(snapshot_id)
        raise to_http_exception(exc) from exc
    except SnapLakeError as exc:
        raise to_http_exception(exc) from exc
    finally:
        if chunked.finalized:
            sessions.close(snapshot_id)
