"""Activity reporting."""

from .reporter import (
    ActivityEntry,
    ActivityReport,
    CategoryShare,
    DuplicateStats,
    ExtensionStats,
    Reporter,
    ScanOverview,
)

__all__ = [
    "ActivityEntry",
    "ActivityReport",
    "CategoryShare",
    "DuplicateStats",
    "ExtensionStats",
    "Reporter",
    "ScanOverview",
]
