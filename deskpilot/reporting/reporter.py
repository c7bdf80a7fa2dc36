"""
Activity report built from the durable store.

Summarizes past scans and transactions: overall totals, the category and
duplicate picture of the latest scan, and recent activity.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.types import TransactionStatus, TransactionSummary, TransactionType
from ..db.store import SQLStore

logger = logging.getLogger(__name__)


class ScanOverview(BaseModel):
    """One row of the recent scans list."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    scan_id: str
    scanned_path: Path
    total_files: int
    total_size: int
    duplicates_count: int
    created_at: datetime


class CategoryShare(BaseModel):
    """Share of the latest scan taken by one category."""

    category: str
    count: int
    size: int
    percentage: float = Field(description="Share of files, 0-100")


class ExtensionStats(BaseModel):
    extension: str
    count: int
    size: int


class ActivityEntry(BaseModel):
    """One recent transaction."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    transaction_id: str
    type: TransactionType
    status: TransactionStatus
    dry_run: bool
    target_path: Path
    summary: TransactionSummary
    created_at: datetime


class DuplicateStats(BaseModel):
    """Duplicate picture of the latest scan."""

    groups: int = 0
    duplicate_files: int = 0
    wasted_bytes: int = 0


class ActivityReport(BaseModel):
    """Everything the report command shows."""

    total_scans: int = 0
    total_files_scanned: int = 0
    total_duplicates_found: int = 0
    disk_space_saved: int = Field(
        default=0, description="Bytes freed by dedupes that were not rolled back"
    )
    total_transactions: int = 0
    recent_scans: List[ScanOverview] = Field(default_factory=list)
    category_breakdown: List[CategoryShare] = Field(default_factory=list)
    top_extensions: List[ExtensionStats] = Field(default_factory=list)
    recent_activity: List[ActivityEntry] = Field(default_factory=list)
    duplicate_stats: Optional[DuplicateStats] = None
    generated_at: datetime = Field(default_factory=datetime.now)


class Reporter:
    """Build activity reports from a store."""

    def __init__(self, store: SQLStore, recent_limit: int = 5, extension_limit: int = 10):
        self.store = store
        self.recent_limit = recent_limit
        self.extension_limit = extension_limit

    def disk_space_saved(self) -> int:
        """
        Bytes saved by live dedupes, minus those since rolled back.

        Never negative.
        """
        dedupes = self.store.list_transactions(
            limit=None, type=TransactionType.DEDUPE, dry_run=False
        )
        saved = sum(t.summary.saved_bytes for t in dedupes)
        restored = sum(
            t.summary.saved_bytes
            for t in dedupes
            if t.status == TransactionStatus.ROLLED_BACK
        )
        return max(0, saved - restored)

    def generate(self) -> ActivityReport:
        """
        Generate the activity report.

        Returns:
            ActivityReport
        """
        report = ActivityReport(
            total_scans=self.store.count_scans(),
            total_files_scanned=self.store.count_file_records(),
            total_duplicates_found=self.store.count_file_records(duplicates_only=True),
            disk_space_saved=self.disk_space_saved(),
            total_transactions=self.store.count_transactions(),
        )

        scans = self.store.list_scans(limit=self.recent_limit)
        report.recent_scans = [
            ScanOverview(
                scan_id=s.scan_id,
                scanned_path=s.scanned_path,
                total_files=s.total_files,
                total_size=s.total_size,
                duplicates_count=s.duplicates_count,
                created_at=s.created_at,
            )
            for s in scans
        ]

        if scans:
            latest = scans[0]
            total = latest.total_files or 0
            for name, stats in (latest.categories or {}).items():
                count = stats.get("count", 0)
                report.category_breakdown.append(
                    CategoryShare(
                        category=name,
                        count=count,
                        size=stats.get("size", 0),
                        percentage=round(count / total * 100, 1) if total else 0.0,
                    )
                )
            report.duplicate_stats = DuplicateStats(
                groups=self.store.duplicate_group_count(latest.scan_id),
                duplicate_files=latest.duplicates_count,
                wasted_bytes=latest.duplicates_size,
            )

        report.top_extensions = [
            ExtensionStats(extension=ext or "(none)", count=count, size=size)
            for ext, count, size in self.store.extension_stats(limit=self.extension_limit)
        ]

        report.recent_activity = [
            ActivityEntry(
                transaction_id=t.transaction_id,
                type=t.type,
                status=t.status,
                dry_run=t.dry_run,
                target_path=t.target_path,
                summary=t.summary,
                created_at=t.created_at,
            )
            for t in self.store.list_transactions(limit=self.recent_limit)
        ]

        logger.debug(
            f"Generated report: {report.total_scans} scans, "
            f"{report.total_transactions} transactions"
        )
        return report
