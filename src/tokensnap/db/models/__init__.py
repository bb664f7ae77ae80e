from tokensnap.db.models.snapshot import SnapshotEntryRecord, SnapshotRecord

__all__ = [
    "SnapshotEntryRecord",
    "SnapshotRecord",
]
