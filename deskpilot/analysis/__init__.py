"""Directory analysis: hashing, categorization and duplicate grouping."""

from .scanner import (
    Scanner,
    category_breakdown,
    collect_snapshots,
    group_by_hash,
    snapshot_file,
)

__all__ = [
    "Scanner",
    "category_breakdown",
    "collect_snapshots",
    "group_by_hash",
    "snapshot_file",
]
