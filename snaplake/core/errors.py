"""Error taxonomy for the registry, ledger and snapshot orchestration."""


class SnapLakeError(Exception):
    """Base class for all snaplake errors."""


class ValidationError(SnapLakeError):
    """Malformed input (empty names, empty column list, duplicate targets).

    Raised before any persistent state changes.
    """


class NotFoundError(SnapLakeError):
    """Operation targets a table or snapshot that does not exist."""


class InvalidTransitionError(SnapLakeError):
    """Snapshot status change that the ledger state machine does not allow."""

    def __init__(self, snapshot_id: int, current: str, requested: str, message: str | None = None):
        self.snapshot_id = snapshot_id
        self.current = current
        self.requested = requested
        super().__init__(message or f"Snapshot {snapshot_id} cannot move from '{current}' to '{requested}'")


class DelegateFailure(SnapLakeError):
    """The SQL engine or object store failed while writing or querying."""
