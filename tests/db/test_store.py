"""Tests for the SQLAlchemy store."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from deskpilot.config import Settings
from deskpilot.core.types import (
    ActionKind,
    CategoryStats,
    FileSnapshot,
    ScanReport,
    Transaction,
    TransactionAction,
    TransactionStatus,
    TransactionType,
)
from deskpilot.db import SQLStore, create_db_engine, create_store
from deskpilot.errors import TransactionNotFoundError
from deskpilot.shared import FileCategory


def make_snapshot(name: str, content_hash: str, duplicate: bool = False) -> FileSnapshot:
    return FileSnapshot(
        path=Path("/desk") / name,
        name=name,
        extension=Path(name).suffix,
        size=10,
        content_hash=content_hash,
        created_at=datetime(2024, 1, 1),
        modified_at=datetime(2024, 1, 2),
        category=FileCategory.DOCUMENTS,
        is_duplicate=duplicate,
        duplicate_of=Path("/desk/original.txt") if duplicate else None,
    )


def make_scan(scan_id: str = "scan-1", created_at: datetime = None) -> ScanReport:
    return ScanReport(
        scan_id=scan_id,
        scanned_path=Path("/desk"),
        total_files=3,
        total_size=30,
        duplicates_count=1,
        duplicates_size=10,
        categories={"Documents": CategoryStats(count=3, size=30)},
        created_at=created_at or datetime.now(),
    )


def make_transaction(
    transaction_id: str,
    type: TransactionType = TransactionType.ORGANIZE,
    status: TransactionStatus = TransactionStatus.COMPLETED,
    dry_run: bool = False,
    created_at: datetime = None,
) -> Transaction:
    return Transaction(
        transaction_id=transaction_id,
        type=type,
        status=status,
        dry_run=dry_run,
        target_path=Path("/desk"),
        created_at=created_at or datetime.now(),
        actions=[
            TransactionAction(
                action_id="a1",
                kind=ActionKind.MOVE,
                source=Path("/desk/a.txt"),
                destination=Path("/desk/Documents/a.txt"),
            )
        ],
    )


class TestEngine:
    """Tests for engine creation."""

    def test_file_database_creates_parent(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "dir" / "state.db"
        store = SQLStore(create_db_engine(f"sqlite:///{db_path}"))

        store.save_scan(make_scan())

        assert db_path.exists()

    def test_create_store_from_settings(self, tmp_path: Path) -> None:
        settings = Settings(database_url=f"sqlite:///{tmp_path / 'db.sqlite'}")
        store = create_store(settings)

        assert store.count_scans() == 0


class TestScans:
    """Tests for scan persistence."""

    def test_save_and_list(self, store: SQLStore) -> None:
        store.save_scan(make_scan("old", datetime.now() - timedelta(hours=1)))
        store.save_scan(make_scan("new"))

        scans = store.list_scans(limit=10)

        assert [s.scan_id for s in scans] == ["new", "old"]
        assert scans[0].categories == {"Documents": {"count": 3, "size": 30}}
        assert store.latest_scan().scan_id == "new"
        assert store.count_scans() == 2

    def test_file_records_batched(self, store: SQLStore) -> None:
        store.save_scan(make_scan())
        files = [make_snapshot(f"f{i}.txt", f"h{i}") for i in range(250)]

        store.save_file_records(files, "scan-1", batch_size=100)

        assert store.count_file_records() == 250

    def test_duplicate_aggregates(self, store: SQLStore) -> None:
        store.save_scan(make_scan())
        store.save_file_records(
            [
                make_snapshot("original.txt", "h1"),
                make_snapshot("copy1.txt", "h1", duplicate=True),
                make_snapshot("copy2.txt", "h1", duplicate=True),
                make_snapshot("image.png", "h2"),
            ],
            "scan-1",
        )

        assert store.count_file_records(duplicates_only=True) == 2
        assert store.duplicate_group_count("scan-1") == 1
        dups = store.get_file_records("scan-1", duplicates_only=True)
        assert {r.file_name for r in dups} == {"copy1.txt", "copy2.txt"}
        assert dups[0].duplicate_of == "/desk/original.txt"

    def test_extension_stats(self, store: SQLStore) -> None:
        store.save_scan(make_scan())
        store.save_file_records(
            [
                make_snapshot("a.txt", "h1"),
                make_snapshot("b.txt", "h2"),
                make_snapshot("c.pdf", "h3"),
            ],
            "scan-1",
        )

        assert store.extension_stats(limit=5) == [(".txt", 2, 20), (".pdf", 1, 10)]
        assert store.extension_stats(limit=1) == [(".txt", 2, 20)]


class TestTransactions:
    """Tests for transaction persistence."""

    def test_round_trip(self, store: SQLStore) -> None:
        txn = make_transaction("t1")
        store.create_transaction(txn)

        loaded = store.find_transaction("t1")

        assert loaded == txn

    def test_find_missing(self, store: SQLStore) -> None:
        assert store.find_transaction("nope") is None

    def test_update(self, store: SQLStore) -> None:
        txn = make_transaction("t1", status=TransactionStatus.PENDING)
        store.create_transaction(txn)

        txn.status = TransactionStatus.PARTIALLY_COMPLETED
        txn.actions[0].error = "boom"
        store.update_transaction(txn)

        loaded = store.find_transaction("t1")
        assert loaded.status == TransactionStatus.PARTIALLY_COMPLETED
        assert loaded.actions[0].error == "boom"

    def test_update_missing(self, store: SQLStore) -> None:
        with pytest.raises(TransactionNotFoundError):
            store.update_transaction(make_transaction("never-created"))

    def test_list_rollbackable(self, store: SQLStore) -> None:
        now = datetime.now()
        store.create_transaction(make_transaction("old", created_at=now - timedelta(hours=2)))
        store.create_transaction(
            make_transaction(
                "partial",
                status=TransactionStatus.PARTIALLY_COMPLETED,
                type=TransactionType.DEDUPE,
                created_at=now - timedelta(hours=1),
            )
        )
        store.create_transaction(make_transaction("dry", dry_run=True, created_at=now))
        store.create_transaction(
            make_transaction("failed", status=TransactionStatus.FAILED, created_at=now)
        )
        store.create_transaction(
            make_transaction("rb", type=TransactionType.ROLLBACK, created_at=now)
        )
        store.create_transaction(
            make_transaction("undone", status=TransactionStatus.ROLLED_BACK, created_at=now)
        )

        assert [t.transaction_id for t in store.list_rollbackable()] == ["partial", "old"]

    def test_list_transactions_filters(self, store: SQLStore) -> None:
        now = datetime.now()
        for i in range(5):
            store.create_transaction(
                make_transaction(f"o{i}", created_at=now - timedelta(minutes=i))
            )
        store.create_transaction(
            make_transaction(
                "d0", type=TransactionType.DEDUPE, created_at=now + timedelta(seconds=1)
            )
        )

        assert [t.transaction_id for t in store.list_transactions(limit=2)] == ["d0", "o0"]
        organize = store.list_transactions(limit=10, type=TransactionType.ORGANIZE)
        assert [t.transaction_id for t in organize] == ["o0", "o1", "o2", "o3", "o4"]
        assert store.count_transactions() == 6
