"""Table registry - CRUD over table name -> column mapping + storage prefix."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from snaplake.core.errors import ValidationError
from snaplake.core.logging import get_logger
from snaplake.models.registered_tables import RegisteredTable
from snaplake.models.snapshots import Snapshot
from snaplake.schemas.api import ColumnMapping

log = get_logger("registry")

ColumnInput = Union[ColumnMapping, Mapping[str, Any]]


def normalize_columns(columns: Sequence[ColumnInput]) -> List[Dict[str, str]]:
    """Trim every column field and ensure Parquet column names are unique."""
    if not columns:
        raise ValidationError("columns must be non-empty")

    seen: set[str] = set()
    normalized: List[Dict[str, str]] = []
    for col in columns:
        raw = col.model_dump() if isinstance(col, ColumnMapping) else dict(col)
        fields: Dict[str, str] = {}
        for field in ("source", "target", "type"):
            value = str(raw.get(field) or "").strip()
            if not value:
                raise ValidationError(f"columns[].{field} must be non-empty")
            fields[field] = value
        if fields["target"] in seen:
            raise ValidationError(f'duplicate columns[].target: "{fields["target"]}"')
        seen.add(fields["target"])
        normalized.append(fields)
    return normalized


class TableRegistry:
    """Registered tables keyed by trimmed table name."""

    def __init__(self, db: Session):
        self.db = db

    def register_table(
        self,
        table_name: str,
        columns: Sequence[ColumnInput],
        s3_key_prefix: Optional[str] = None,
    ) -> None:
        """Insert or update a registration.

        Re-registering replaces the columns; the storage prefix only changes
        when a new one is passed explicitly.
        """
        name = (table_name or "").strip()
        if not name:
            raise ValidationError("table_name must be non-empty")

        prefix = None if s3_key_prefix is None else s3_key_prefix.strip()
        if s3_key_prefix is not None and not prefix:
            raise ValidationError("s3_key_prefix must be non-empty when provided")

        normalized = normalize_columns(columns)

        existing = self.db.get(RegisteredTable, name)
        if existing:
            existing.columns = normalized
            existing.s3_key_prefix = prefix or existing.s3_key_prefix
            log.info(f"Updated registration for {name} | columns={len(normalized)} prefix={existing.s3_key_prefix}")
        else:
            self.db.add(
                RegisteredTable(
                    table_name=name,
                    columns=normalized,
                    s3_key_prefix=prefix or name,
                )
            )
            log.info(f"Registered table {name} | columns={len(normalized)} prefix={prefix or name}")
        self.db.commit()

    def get_registered_table(self, table_name: str) -> Optional[RegisteredTable]:
        name = (table_name or "").strip()
        if not name:
            return None
        return self.db.get(RegisteredTable, name)

    def list_registered_tables(self) -> List[RegisteredTable]:
        stmt = select(RegisteredTable).order_by(RegisteredTable.created_at.asc(), RegisteredTable.table_name.asc())
        return list(self.db.execute(stmt).scalars().all())

    def delete_registered_table(self, table_name: str) -> int:
        """Delete a table and all of its snapshots in one transaction.

        Returns the number of snapshot records removed.
        """
        name = (table_name or "").strip()
        if not name:
            raise ValidationError("table_name must be non-empty")

        try:
            result = self.db.execute(delete(Snapshot).where(Snapshot.table_name == name))
            deleted = result.rowcount or 0

            table = self.db.get(RegisteredTable, name)
            if table:
                self.db.delete(table)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        log.info(f"Deleted table {name} | snapshots_removed={deleted}")
        return deleted
