"""Tests for the rollback engine."""

from pathlib import Path

import pytest

from deskpilot.core.types import (
    ActionKind,
    ActionStatus,
    RollbackOutcome,
    TransactionAction,
    TransactionStatus,
    TransactionType,
)
from deskpilot.db import SQLStore
from deskpilot.errors import (
    AlreadyRolledBackError,
    CannotRollbackDryRunError,
    NotRollbackableError,
    TransactionNotFoundError,
)
from deskpilot.organization import Deduper, Organizer, RollbackEngine, TransactionLedger
from deskpilot.shared import SafeFileOperations, compute_content_hash


@pytest.fixture
def engine(store: SQLStore, file_ops: SafeFileOperations) -> RollbackEngine:
    return RollbackEngine(store, file_ops)


def snapshot_tree(root: Path) -> dict:
    """Map relative path -> content hash for every file under root."""
    return {
        str(p.relative_to(root)): compute_content_hash(p)
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


class TestRollbackOrganize:
    """Rolling back organize transactions."""

    def test_round_trip(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        """Test organize then rollback restores every file byte for byte."""
        write_file(desk / "report.pdf", "pdf bytes")
        write_file(desk / "photo.jpg", b"\xff\xd8\xff")
        write_file(desk / "notes", "no extension")
        before = snapshot_tree(desk)

        organized = Organizer(store, file_ops).organize(desk)
        assert snapshot_tree(desk) != before

        report = engine.rollback(organized.transaction_id)

        assert report.restored_count == 3
        assert report.failed_count == 0
        assert report.skipped_count == 0
        assert snapshot_tree(desk) == before

    def test_original_marked_rolled_back(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        write_file(desk / "a.pdf", "a")
        organized = Organizer(store, file_ops).organize(desk)

        report = engine.rollback(organized.transaction_id)

        ledger = TransactionLedger(store)
        original = ledger.get(organized.transaction_id)
        assert original.status == TransactionStatus.ROLLED_BACK
        assert original.rolled_back_at is not None
        assert original.rollback_transaction_id == report.rollback_transaction_id

        rollback_txn = ledger.get(report.rollback_transaction_id)
        assert rollback_txn.type == TransactionType.ROLLBACK
        assert rollback_txn.status == TransactionStatus.COMPLETED
        assert [a.kind for a in rollback_txn.actions] == [ActionKind.RESTORE]
        assert rollback_txn.actions[0].destination == desk / "a.pdf"

    def test_reverse_order(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        write_file(desk / "a.pdf", "a")
        write_file(desk / "b.pdf", "b")
        organized = Organizer(store, file_ops).organize(desk)

        report = engine.rollback(organized.transaction_id)

        assert [d.destination.name for d in report.details] == ["b.pdf", "a.pdf"]

    def test_collision_suffixed_file_goes_back(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        write_file(desk / "Documents" / "x.txt", "existing")
        write_file(desk / "x.txt", "incoming")
        organized = Organizer(store, file_ops).organize(desk)

        engine.rollback(organized.transaction_id)

        assert (desk / "x.txt").read_text() == "incoming"
        assert (desk / "Documents" / "x.txt").read_text() == "existing"
        assert not (desk / "Documents" / "x_1.txt").exists()

    def test_skip_when_original_occupied(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        write_file(desk / "a.pdf", "organized")
        organized = Organizer(store, file_ops).organize(desk)
        write_file(desk / "a.pdf", "newcomer")

        report = engine.rollback(organized.transaction_id)

        assert report.skipped_count == 1
        assert report.details[0].outcome == RollbackOutcome.SKIPPED
        assert "occupied" in report.details[0].note
        assert (desk / "a.pdf").read_text() == "newcomer"
        assert (desk / "Documents" / "a.pdf").read_text() == "organized"

        rollback_txn = TransactionLedger(store).get(report.rollback_transaction_id)
        assert rollback_txn.actions[0].status == ActionStatus.COMPLETED
        assert rollback_txn.actions[0].note is not None

    def test_skip_when_moved_file_gone(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        write_file(desk / "a.pdf", "a")
        organized = Organizer(store, file_ops).organize(desk)
        (desk / "Documents" / "a.pdf").unlink()

        report = engine.rollback(organized.transaction_id)

        assert report.skipped_count == 1
        assert not (desk / "a.pdf").exists()

    def test_failed_actions_not_reversed(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path
    ) -> None:
        """Test only completed actions of a partial transaction are replayed."""
        ledger = TransactionLedger(store)

        moved = desk / "Documents" / "a.pdf"
        moved.parent.mkdir(parents=True)
        moved.write_text("a")
        txn = ledger.begin(
            TransactionType.ORGANIZE,
            desk,
            actions=[
                TransactionAction(
                    action_id="ok", kind=ActionKind.MOVE, source=desk / "a.pdf", destination=moved
                ),
                TransactionAction(
                    action_id="bad",
                    kind=ActionKind.MOVE,
                    source=desk / "b.pdf",
                    destination=desk / "Documents" / "b.pdf",
                ),
            ],
        )
        ledger.record_success(txn, txn.actions[0], moved)
        ledger.record_failure(txn, txn.actions[1], "Permission denied")
        ledger.finalize(txn)
        assert txn.status == TransactionStatus.PARTIALLY_COMPLETED

        report = engine.rollback(txn.transaction_id)

        assert report.total_actions == 1
        assert report.restored_count == 1
        assert (desk / "a.pdf").read_text() == "a"


class TestRollbackDedupe:
    """Rolling back dedupe transactions."""

    def test_restores_from_trash(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        write_file(desk / "a.txt", "dup")
        write_file(desk / "b.txt", "dup")
        before = snapshot_tree(desk)

        deduped = Deduper(store, file_ops).dedupe(desk)
        assert deduped.deleted_count == 1

        report = engine.rollback(deduped.transaction_id)

        assert report.restored_count == 1
        assert snapshot_tree(desk) == before

    def test_permanent_delete_skipped(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        write_file(desk / "a.txt", "dup")
        write_file(desk / "b.txt", "dup")
        deduped = Deduper(store, file_ops).dedupe(desk, move_to_trash=False)

        report = engine.rollback(deduped.transaction_id)

        assert report.restored_count == 0
        assert report.skipped_count == 1
        assert report.failed_count == 0
        assert "permanently deleted" in report.details[0].note

        rollback_txn = TransactionLedger(store).get(report.rollback_transaction_id)
        assert rollback_txn.status == TransactionStatus.COMPLETED

    def test_restore_collision(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        """Test a file recreated at the original path gets a suffixed sibling."""
        write_file(desk / "a.txt", "dup")
        write_file(desk / "b.txt", "dup")
        deduped = Deduper(store, file_ops).dedupe(desk)
        removed = TransactionLedger(store).get(deduped.transaction_id).actions[0].source
        write_file(removed, "replacement")

        report = engine.rollback(deduped.transaction_id)

        assert report.restored_count == 1
        assert removed.read_text() == "replacement"
        restored = report.details[0].destination
        assert restored == removed.with_name(f"{removed.stem}_1{removed.suffix}")
        assert restored.read_text() == "dup"


class TestRollbackRefusals:
    """Rollback preconditions raise before any mutation."""

    def test_not_found(self, engine: RollbackEngine) -> None:
        with pytest.raises(TransactionNotFoundError):
            engine.rollback("does-not-exist")

    def test_dry_run(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        write_file(desk / "a.pdf", "a")
        dry = Organizer(store, file_ops).organize(desk, dry_run=True)

        with pytest.raises(CannotRollbackDryRunError):
            engine.rollback(dry.transaction_id)

    def test_double_rollback(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        """Test the second rollback fails and changes nothing."""
        write_file(desk / "a.pdf", "a")
        organized = Organizer(store, file_ops).organize(desk)
        first = engine.rollback(organized.transaction_id)
        after_first = snapshot_tree(desk)
        transactions_before = len(TransactionLedger(store).list_recent(limit=100))

        with pytest.raises(AlreadyRolledBackError):
            engine.rollback(organized.transaction_id)

        assert snapshot_tree(desk) == after_first
        assert len(TransactionLedger(store).list_recent(limit=100)) == transactions_before
        assert first.restored_count == 1

    def test_rollback_of_rollback(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        write_file(desk / "a.pdf", "a")
        organized = Organizer(store, file_ops).organize(desk)
        report = engine.rollback(organized.transaction_id)

        with pytest.raises(NotRollbackableError):
            engine.rollback(report.rollback_transaction_id)

    def test_failed_transaction(self, store: SQLStore, engine: RollbackEngine) -> None:
        ledger = TransactionLedger(store)

        txn = ledger.begin(
            TransactionType.ORGANIZE,
            "/desk",
            actions=[
                TransactionAction(action_id="x", kind=ActionKind.MOVE, source=Path("/desk/x"))
            ],
        )
        ledger.record_failure(txn, txn.actions[0], "boom")
        ledger.finalize(txn)

        with pytest.raises(NotRollbackableError):
            engine.rollback(txn.transaction_id)


class TestQueries:
    """Tests for rollbackable listing and history."""

    def test_list_and_history(
        self, store: SQLStore, file_ops, engine: RollbackEngine, desk: Path, write_file
    ) -> None:
        write_file(desk / "a.pdf", "a")
        organized = Organizer(store, file_ops).organize(desk)

        assert [t.transaction_id for t in engine.list_rollbackable()] == [
            organized.transaction_id
        ]
        assert engine.rollback_history() == []

        report = engine.rollback(organized.transaction_id)

        assert engine.list_rollbackable() == []
        assert [t.transaction_id for t in engine.rollback_history()] == [
            report.rollback_transaction_id
        ]
