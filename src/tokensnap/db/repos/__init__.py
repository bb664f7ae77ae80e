from tokensnap.db.repos.snapshot_repo import SnapshotRepo

__all__ = [
    "SnapshotRepo",
]
