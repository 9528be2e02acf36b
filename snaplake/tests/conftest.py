"""Shared fixtures: in-memory metadata DB, recording collaborators, local object store."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("RUN_MIGRATIONS", "false")

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from snaplake.engine.base import ObjectStore, QueryEngine, SnapshotWriter
from snaplake.models import Base
from snaplake.schemas.api import QueryResult, TableLocator
from snaplake.services.snapshot_service import SnapshotService

JOB_COLUMNS = [
    {"source": "job_number", "target": "job_number", "type": "VARCHAR"},
    {"source": "status", "target": "status", "type": "VARCHAR"},
    {"source": "quantity", "target": "quantity", "type": "INTEGER"},
]


class RecordingWriter(SnapshotWriter):
    """Writer that records every call instead of producing Parquet."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None
        self.on_write: Optional[Callable[[str], None]] = None

    def write(self, key: str, columns: Sequence[Dict[str, str]], rows: Sequence[Dict[str, Any]]) -> int:
        if self.on_write:
            self.on_write(key)
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append({"key": key, "columns": list(columns), "rows": list(rows)})
        return len(rows)


class RecordingQueryEngine(QueryEngine):
    """Query engine that records locators and returns a canned result."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.result = QueryResult(columns=["n"], rows=[{"n": 1.0}], row_count=1)

    def execute(self, sql: str, locators: List[TableLocator]) -> QueryResult:
        self.calls.append({"sql": sql, "locators": list(locators)})
        return self.result


class LocalObjectStore(ObjectStore):
    """Object store over a local directory, scanned directly by DuckDB."""

    remote = False

    def __init__(self, root: Path):
        self.root = Path(root)

    def put_object(self, key: str, body: bytes) -> None:
        path = self.root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(body)

    def get_object(self, key: str) -> bytes:
        return (self.root / key).read_bytes()

    def uri_for(self, key: str) -> str:
        return str(self.root / key)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    TestingSessionLocal = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def writer():
    return RecordingWriter()


@pytest.fixture
def query_engine():
    return RecordingQueryEngine()


@pytest.fixture
def service(db_session, writer, query_engine):
    return SnapshotService(db_session, writer, query_engine)


@pytest.fixture
def jobs_table(service):
    """Registers the production_jobs table used across tests."""
    service.registry.register_table("production_jobs", JOB_COLUMNS)
    return "production_jobs"
