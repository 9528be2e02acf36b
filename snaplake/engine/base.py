"""Abstract interfaces for the external storage and SQL collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from snaplake.schemas.api import QueryResult, TableLocator


class ObjectStore(ABC):
    """Byte blobs addressed by key within one bucket."""

    # True when the SQL engine needs a remote-read protocol (httpfs) to scan keys
    remote: bool = True

    @abstractmethod
    def put_object(self, key: str, body: bytes) -> None:
        """Durably store ``body`` at ``key``."""

    @abstractmethod
    def get_object(self, key: str) -> bytes:
        """Return the bytes stored at ``key``."""

    @abstractmethod
    def uri_for(self, key: str) -> str:
        """URI the SQL engine can scan for ``key`` (a file or a glob)."""


class SnapshotWriter(ABC):
    """Turns caller rows into one columnar artifact at a storage key."""

    @abstractmethod
    def write(self, key: str, columns: Sequence[Dict[str, str]], rows: Sequence[Dict[str, Any]]) -> int:
        """Write ``rows`` projected through ``columns`` to ``key``; return the row count."""


class QueryEngine(ABC):
    """Runs SQL against views bound to stored artifacts."""

    @abstractmethod
    def execute(self, sql: str, locators: List[TableLocator]) -> QueryResult:
        """Bind one view per locator, run ``sql`` and return the row set."""
