"""
Durable store for scans and transactions.

Components depend on the narrow TransactionStore interface; SQLStore is the
SQLAlchemy implementation. A store is built once per process with
create_store() and passed to every component that persists anything.
"""

import logging
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from deskpilot.config import Settings
from deskpilot.core.types import (
    ROLLBACKABLE_STATUSES,
    FileSnapshot,
    ScanReport,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from deskpilot.errors import TransactionNotFoundError

from .connection import engine_from_settings, init_db, make_session_factory, session_scope
from .models import FileRecord, ScanRecord, TransactionRecord
from .serializers import (
    apply_transaction,
    deserialize_transaction,
    serialize_file_records,
    serialize_scan,
)

logger = logging.getLogger(__name__)

FILE_RECORD_BATCH_SIZE = 100


class TransactionStore(Protocol):
    """What the scanner, ledger and rollback engine need from storage."""

    def save_scan(self, report: ScanReport) -> None: ...

    def save_file_records(self, files: Iterable[FileSnapshot], scan_id: str) -> None: ...

    def create_transaction(self, txn: Transaction) -> None: ...

    def update_transaction(self, txn: Transaction) -> None: ...

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]: ...

    def list_rollbackable(self) -> List[Transaction]: ...


class SQLStore:
    """SQLAlchemy-backed store. Every write commits before returning."""

    def __init__(self, engine: Engine):
        """
        Initialize the store.

        Args:
            engine: Engine for the target database (tables are created)
        """
        self.engine = engine
        init_db(engine)
        self._session_factory = make_session_factory(engine)

    def _session(self):
        return session_scope(self._session_factory)

    # Scans

    def save_scan(self, report: ScanReport) -> None:
        """Persist the summary of a scan."""
        with self._session() as session:
            session.add(serialize_scan(report))
        logger.debug(f"Saved scan {report.scan_id}")

    def save_file_records(
        self,
        files: Iterable[FileSnapshot],
        scan_id: str,
        batch_size: int = FILE_RECORD_BATCH_SIZE,
    ) -> None:
        """
        Persist one record per scanned file, committing in batches.

        Args:
            files: Snapshots from the scan
            scan_id: Owning scan (must already be saved)
            batch_size: Records per commit
        """
        records = serialize_file_records(files, scan_id)
        for start in range(0, len(records), batch_size):
            with self._session() as session:
                session.add_all(records[start : start + batch_size])
        logger.debug(f"Saved {len(records)} file records for scan {scan_id}")

    def list_scans(self, limit: int = 10) -> List[ScanRecord]:
        """Most recent scans first."""
        with self._session() as session:
            stmt = select(ScanRecord).order_by(ScanRecord.created_at.desc()).limit(limit)
            return list(session.scalars(stmt))

    def latest_scan(self) -> Optional[ScanRecord]:
        scans = self.list_scans(limit=1)
        return scans[0] if scans else None

    def get_file_records(
        self, scan_id: str, duplicates_only: bool = False
    ) -> List[FileRecord]:
        with self._session() as session:
            stmt = select(FileRecord).where(FileRecord.scan_id == scan_id)
            if duplicates_only:
                stmt = stmt.where(FileRecord.is_duplicate.is_(True))
            return list(session.scalars(stmt.order_by(FileRecord.id)))

    def count_scans(self) -> int:
        with self._session() as session:
            return session.scalar(select(func.count()).select_from(ScanRecord)) or 0

    def count_file_records(self, duplicates_only: bool = False) -> int:
        with self._session() as session:
            stmt = select(func.count()).select_from(FileRecord)
            if duplicates_only:
                stmt = stmt.where(FileRecord.is_duplicate.is_(True))
            return session.scalar(stmt) or 0

    def extension_stats(
        self,
        limit: int = 10,
        scan_id: Optional[str] = None,
        duplicates_only: bool = False,
    ) -> List[Tuple[str, int, int]]:
        """
        Group file records by extension.

        Args:
            limit: Maximum rows
            scan_id: Restrict to one scan
            duplicates_only: Only count files flagged as duplicates

        Returns:
            (extension, count, total_size) tuples, most frequent first
        """
        with self._session() as session:
            count = func.count(FileRecord.id).label("count")
            stmt = select(
                FileRecord.extension, count, func.coalesce(func.sum(FileRecord.size), 0)
            )
            if scan_id:
                stmt = stmt.where(FileRecord.scan_id == scan_id)
            if duplicates_only:
                stmt = stmt.where(FileRecord.is_duplicate.is_(True))
            stmt = (
                stmt.group_by(FileRecord.extension)
                .order_by(count.desc(), FileRecord.extension)
                .limit(limit)
            )
            return [(ext, int(n), int(size)) for ext, n, size in session.execute(stmt)]

    def duplicate_group_count(self, scan_id: str) -> int:
        """Number of distinct hashes with at least one duplicate in a scan."""
        with self._session() as session:
            stmt = select(func.count(func.distinct(FileRecord.content_hash))).where(
                FileRecord.scan_id == scan_id, FileRecord.is_duplicate.is_(True)
            )
            return session.scalar(stmt) or 0

    # Transactions

    def create_transaction(self, txn: Transaction) -> None:
        """Persist a new transaction."""
        with self._session() as session:
            session.add(apply_transaction(TransactionRecord(), txn))
        logger.debug(f"Created transaction {txn.transaction_id} ({txn.type.value})")

    def update_transaction(self, txn: Transaction) -> None:
        """
        Overwrite the stored copy of a transaction.

        Raises:
            TransactionNotFoundError: If it was never created
        """
        with self._session() as session:
            record = session.get(TransactionRecord, txn.transaction_id)
            if record is None:
                raise TransactionNotFoundError(txn.transaction_id)
            apply_transaction(record, txn)

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        with self._session() as session:
            record = session.get(TransactionRecord, transaction_id)
            return deserialize_transaction(record) if record else None

    def list_rollbackable(self) -> List[Transaction]:
        """Live organize/dedupe transactions that completed (fully or partly)."""
        return self.list_transactions(
            limit=None,
            statuses=ROLLBACKABLE_STATUSES,
            dry_run=False,
            exclude_types=(TransactionType.ROLLBACK,),
        )

    def list_transactions(
        self,
        limit: Optional[int] = 10,
        type: Optional[TransactionType] = None,
        statuses: Optional[Sequence[TransactionStatus]] = None,
        dry_run: Optional[bool] = None,
        exclude_types: Sequence[TransactionType] = (),
    ) -> List[Transaction]:
        """
        Query transactions, newest first.

        Args:
            limit: Maximum rows (None for all)
            type: Only this transaction type
            statuses: Only these statuses
            dry_run: Only dry-run (True) or live (False) transactions
            exclude_types: Types to leave out

        Returns:
            Matching transactions
        """
        with self._session() as session:
            stmt = select(TransactionRecord)
            if type is not None:
                stmt = stmt.where(TransactionRecord.type == type.value)
            if statuses:
                stmt = stmt.where(TransactionRecord.status.in_([s.value for s in statuses]))
            if dry_run is not None:
                stmt = stmt.where(TransactionRecord.dry_run.is_(dry_run))
            if exclude_types:
                stmt = stmt.where(
                    TransactionRecord.type.not_in([t.value for t in exclude_types])
                )
            stmt = stmt.order_by(TransactionRecord.created_at.desc())
            if limit is not None:
                stmt = stmt.limit(limit)
            return [deserialize_transaction(r) for r in session.scalars(stmt)]

    def count_transactions(self) -> int:
        with self._session() as session:
            return (
                session.scalar(select(func.count()).select_from(TransactionRecord)) or 0
            )


def create_store(settings: Settings) -> SQLStore:
    """Build the process-wide store from settings."""
    return SQLStore(engine_from_settings(settings))
