"""
Rollback of organize and dedupe transactions.

Completed actions are reversed newest first. Moves are moved back only when
the original location is free; trashed files are restored from the trash.
The reversal is itself recorded as a rollback transaction.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ..core.types import (
    ROLLBACKABLE_STATUSES,
    ActionKind,
    ProgressCallback,
    RollbackDetail,
    RollbackOutcome,
    RollbackReport,
    Transaction,
    TransactionAction,
    TransactionStatus,
    TransactionType,
)
from ..db.store import TransactionStore
from ..errors import (
    AlreadyRolledBackError,
    CannotRollbackDryRunError,
    FilesystemOperationError,
    NotRollbackableError,
    TransactionNotFoundError,
)
from ..shared.hashing import new_short_id
from ..shared.safe_fs import SafeFileOperations
from .transaction import TransactionLedger

logger = logging.getLogger(__name__)

# (outcome, where the file ended up or None, note/error)
_Result = Tuple[RollbackOutcome, Optional[Path], Optional[str]]


class RollbackEngine:
    """Reverse previously executed transactions."""

    def __init__(
        self,
        store: TransactionStore,
        file_ops: SafeFileOperations,
        on_progress: Optional[ProgressCallback] = None,
        flush_interval: int = 1,
    ):
        self.store = store
        self.file_ops = file_ops
        self.ledger = TransactionLedger(store, flush_interval=flush_interval)
        self.on_progress = on_progress

    def rollback(self, transaction_id: str) -> RollbackReport:
        """
        Reverse a transaction.

        Args:
            transaction_id: Organize or dedupe transaction to reverse

        Returns:
            Rollback report

        Raises:
            TransactionNotFoundError: If no such transaction exists
            AlreadyRolledBackError: If it was rolled back before
            CannotRollbackDryRunError: If it was a dry run
            NotRollbackableError: If it is a rollback itself or never completed
        """
        original = self._load(transaction_id)

        to_reverse = list(reversed(original.completed_actions()))
        logger.info(
            f"Rolling back {original.type.value} transaction {transaction_id} "
            f"({len(to_reverse)} actions)"
        )

        rollback_txn = self.ledger.begin(
            TransactionType.ROLLBACK, original.target_path, dry_run=False
        )
        report = RollbackReport(
            transaction_id=transaction_id,
            rollback_transaction_id=rollback_txn.transaction_id,
            original_type=original.type,
            total_actions=len(to_reverse),
        )

        total = len(to_reverse)
        for index, action in enumerate(to_reverse):
            outcome, location, message = self._reverse(action)

            restore = self.ledger.add_action(
                rollback_txn,
                TransactionAction(
                    action_id=new_short_id(),
                    kind=ActionKind.RESTORE,
                    source=action.destination or action.source,
                    destination=action.source,
                    file_hash=action.file_hash,
                    file_size=action.file_size,
                ),
            )
            if outcome == RollbackOutcome.RESTORED:
                self.ledger.record_success(rollback_txn, restore, location)
                report.restored_count += 1
            elif outcome == RollbackOutcome.FAILED:
                self.ledger.record_failure(rollback_txn, restore, message)
                report.failed_count += 1
            else:
                self.ledger.record_skipped(rollback_txn, restore, message)
                report.skipped_count += 1
                logger.warning(f"Skipped restoring {action.source}: {message}")

            report.details.append(
                RollbackDetail(
                    source=action.destination or action.source,
                    destination=location or action.source,
                    outcome=outcome,
                    note=message,
                )
            )

            if self.on_progress:
                self.on_progress(index + 1, total, action.source.name)

        self.ledger.finalize(rollback_txn)
        self.ledger.mark_rolled_back(original, rollback_txn.transaction_id)

        logger.info(
            f"Rollback {rollback_txn.transaction_id} complete: "
            f"{report.restored_count} restored, {report.skipped_count} skipped, "
            f"{report.failed_count} failed"
        )
        return report

    def list_rollbackable(self) -> List[Transaction]:
        """Transactions that can currently be rolled back, newest first."""
        return self.ledger.list_rollbackable()

    def rollback_history(self, limit: int = 10) -> List[Transaction]:
        """Past rollback transactions, newest first."""
        return self.ledger.list_recent(limit=limit, type=TransactionType.ROLLBACK)

    def _load(self, transaction_id: str) -> Transaction:
        txn = self.ledger.get(transaction_id)
        if txn is None:
            raise TransactionNotFoundError(transaction_id)
        if txn.status == TransactionStatus.ROLLED_BACK:
            raise AlreadyRolledBackError(transaction_id)
        if txn.dry_run:
            raise CannotRollbackDryRunError(transaction_id)
        if txn.type == TransactionType.ROLLBACK:
            raise NotRollbackableError(
                transaction_id, "rollback transactions cannot be reversed"
            )
        if txn.status not in ROLLBACKABLE_STATUSES:
            raise NotRollbackableError(transaction_id, f"status is {txn.status.value}")
        return txn

    def _reverse(self, action: TransactionAction) -> _Result:
        if action.kind == ActionKind.MOVE:
            return self._reverse_move(action)
        if action.kind == ActionKind.DELETE:
            return self._reverse_delete(action)
        return RollbackOutcome.SKIPPED, None, f"Unsupported action kind: {action.kind.value}"

    def _reverse_move(self, action: TransactionAction) -> _Result:
        moved_to = action.destination
        if moved_to is None or not moved_to.exists():
            return RollbackOutcome.SKIPPED, None, f"File no longer exists at {moved_to}"
        if action.source.exists():
            return (
                RollbackOutcome.SKIPPED,
                None,
                f"Original location is occupied: {action.source}",
            )

        try:
            restored = self.file_ops.move(moved_to, action.source, resolve_collisions=False)
        except FilesystemOperationError as e:
            logger.error(f"Failed to move back {moved_to}: {e}")
            return RollbackOutcome.FAILED, None, str(e)
        return RollbackOutcome.RESTORED, restored, None

    def _reverse_delete(self, action: TransactionAction) -> _Result:
        trash_path = action.destination
        if trash_path is None or not trash_path.exists():
            return (
                RollbackOutcome.SKIPPED,
                None,
                "File was permanently deleted or trash copy not found",
            )

        try:
            restored = self.file_ops.restore(trash_path, action.source)
        except FilesystemOperationError as e:
            logger.error(f"Failed to restore {trash_path}: {e}")
            return RollbackOutcome.FAILED, None, str(e)
        return RollbackOutcome.RESTORED, restored, None
