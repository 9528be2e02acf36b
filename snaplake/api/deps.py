"""API dependencies"""

from functools import lru_cache
from typing import Generator

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from snaplake.core.config import settings
from snaplake.core.db import SessionLocal
from snaplake.core.errors import (
    DelegateFailure,
    InvalidTransitionError,
    NotFoundError,
    SnapLakeError,
    ValidationError,
)
from snaplake.engine.base import QueryEngine, SnapshotWriter
from snaplake.engine.duckdb_engine import DuckDBEngine
from snaplake.services.chunk_sessions import ChunkSessionStore, chunk_sessions
from snaplake.services.snapshot_service import SnapshotService


def get_db() -> Generator[Session, None, None]:
    """Database dependency"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_duckdb_engine() -> DuckDBEngine:
    return DuckDBEngine.from_storage(settings.storage)


def get_writer() -> SnapshotWriter:
    return get_duckdb_engine()


def get_query_engine() -> QueryEngine:
    return get_duckdb_engine()


def get_chunk_sessions() -> ChunkSessionStore:
    return chunk_sessions


def get_snapshot_service(
    db: Session = Depends(get_db),
    writer: SnapshotWriter = Depends(get_writer),
    engine: QueryEngine = Depends(get_query_engine),
) -> SnapshotService:
    return SnapshotService(db, writer, engine, strict_queries=settings.QUERY_STRICT_TABLES)


_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    InvalidTransitionError: 409,
    DelegateFailure: 502,
}


def to_http_exception(exc: SnapLakeError) -> HTTPException:
    """Map the error taxonomy onto HTTP status codes."""
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
