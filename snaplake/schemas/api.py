from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

SnapshotStatus = Literal["pending", "writing", "complete", "failed"]


class StorageConfig(BaseModel):
    """S3-compatible storage configuration.

    Field aliases are the wire contract shared with clients
    (``accessKeyId``, ``secretAccessKey``, ``forcePathStyle``).
    """

    endpoint: str
    bucket: str
    region: Optional[str] = None
    access_key_id: str = Field(alias="accessKeyId")
    secret_access_key: str = Field(alias="secretAccessKey")
    force_path_style: Optional[bool] = Field(default=None, alias="forcePathStyle")

    class Config:
        populate_by_name = True

    @property
    def effective_region(self) -> str:
        return self.region or "us-east-1"

    @property
    def path_style(self) -> bool:
        return True if self.force_path_style is None else self.force_path_style


class ColumnMapping(BaseModel):
    """How a source field becomes a typed Parquet column."""

    source: str
    target: str
    type: str  # DuckDB type: VARCHAR, INTEGER, DOUBLE, BOOLEAN, TIMESTAMP, etc.


class RegisterTableRequest(BaseModel):
    table_name: str
    columns: list[ColumnMapping]
    s3_key_prefix: Optional[str] = None


class RegisteredTableOut(BaseModel):
    table_name: str
    columns: list[ColumnMapping]
    s3_key_prefix: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DeleteTableResponse(BaseModel):
    deleted_snapshots: int


class SnapshotOut(BaseModel):
    id: int
    table_name: str
    status: SnapshotStatus
    s3_key: Optional[str] = None
    row_count: Optional[int] = None
    chunk_count: Optional[int] = None
    error: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SnapshotDataRequest(BaseModel):
    data: list[dict[str, Any]]


class SnapshotResult(BaseModel):
    snapshot_id: int
    s3_key: str
    row_count: int
    chunk_count: Optional[int] = None


class ChunkedSnapshotStarted(BaseModel):
    snapshot_id: int
    table_name: str
    chunk_dir: str


class ChunkResult(BaseModel):
    s3_key: str
    row_count: int
    chunk_index: int


class TableLocator(BaseModel):
    """A table name bound to a single Parquet key or a glob over a chunk directory."""

    table_name: str
    s3_path: str


class QueryRequest(BaseModel):
    sql: str
    table_names: Optional[list[str]] = None


class QueryResult(BaseModel):
    columns: list[str]
    rows: list[dict[str, Any]]
    row_count: int

    @classmethod
    def empty(cls) -> "QueryResult":
        return cls(columns=[], rows=[], row_count=0)


class HealthResponse(BaseModel):
    database: str
    last_snapshot_status: str | None
