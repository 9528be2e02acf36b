from snaplake.models.base import Base
from snaplake.models.registered_tables import RegisteredTable
from snaplake.models.snapshots import SNAPSHOT_STATUSES, TERMINAL_STATUSES, Snapshot

__all__ = [
    "Base",
    "RegisteredTable",
    "Snapshot",
    "SNAPSHOT_STATUSES",
    "TERMINAL_STATUSES",
]
