"""
Serializers for converting between Pydantic models and ORM records.

- serialize_*: Pydantic model → ORM record / JSON-serializable dict
- deserialize_*: ORM record → Pydantic model
"""

from typing import Any, Dict, Iterable, List

from deskpilot.core.types import (
    FileSnapshot,
    ScanReport,
    Transaction,
    TransactionAction,
    TransactionSummary,
)

from .models import FileRecord, ScanRecord, TransactionRecord


def serialize_scan(report: ScanReport) -> ScanRecord:
    """
    Build the summary record for a scan.

    Args:
        report: Scan report

    Returns:
        ScanRecord (not yet added to a session)
    """
    return ScanRecord(
        scan_id=report.scan_id,
        scanned_path=str(report.scanned_path),
        total_files=report.total_files,
        total_size=report.total_size,
        duplicates_count=report.duplicates_count,
        duplicates_size=report.duplicates_size,
        categories={
            name: stats.model_dump() for name, stats in report.categories.items()
        },
        created_at=report.created_at,
    )


def serialize_file_records(
    files: Iterable[FileSnapshot], scan_id: str
) -> List[FileRecord]:
    """Build one FileRecord per snapshot."""
    return [
        FileRecord(
            scan_id=scan_id,
            file_name=f.name,
            file_path=str(f.path),
            content_hash=f.content_hash,
            extension=f.extension,
            category=f.category.value,
            size=f.size,
            is_duplicate=f.is_duplicate,
            duplicate_of=str(f.duplicate_of) if f.duplicate_of else None,
            file_created_at=f.created_at,
            file_modified_at=f.modified_at,
        )
        for f in files
    ]


def serialize_actions(actions: Iterable[TransactionAction]) -> List[Dict[str, Any]]:
    """Actions as JSON-safe dicts (paths and enums become strings)."""
    return [action.model_dump(mode="json") for action in actions]


def apply_transaction(record: TransactionRecord, txn: Transaction) -> TransactionRecord:
    """
    Copy every field of a transaction onto an ORM record.

    Args:
        record: New or existing record
        txn: Source transaction

    Returns:
        The same record, updated
    """
    record.transaction_id = txn.transaction_id
    record.type = txn.type.value
    record.status = txn.status.value
    record.actions = serialize_actions(txn.actions)
    record.summary = txn.summary.model_dump(mode="json")
    record.target_path = str(txn.target_path)
    record.dry_run = txn.dry_run
    record.strategy = txn.strategy
    record.scan_id = txn.scan_id
    record.created_at = txn.created_at
    record.completed_at = txn.completed_at
    record.rolled_back_at = txn.rolled_back_at
    record.rollback_transaction_id = txn.rollback_transaction_id
    return record


def deserialize_transaction(record: TransactionRecord) -> Transaction:
    """
    Rebuild a Transaction from its ORM record.

    Args:
        record: Stored transaction

    Returns:
        Transaction model
    """
    return Transaction(
        transaction_id=record.transaction_id,
        type=record.type,
        status=record.status,
        actions=[TransactionAction.model_validate(a) for a in record.actions or []],
        summary=TransactionSummary.model_validate(record.summary or {}),
        target_path=record.target_path,
        dry_run=record.dry_run,
        strategy=record.strategy,
        scan_id=record.scan_id,
        created_at=record.created_at,
        completed_at=record.completed_at,
        rolled_back_at=record.rolled_back_at,
        rollback_transaction_id=record.rollback_transaction_id,
    )
