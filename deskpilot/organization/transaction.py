"""
Transaction ledger for filesystem mutations.

Every organize, dedupe and rollback run is recorded as a Transaction whose
actions hold enough information to reverse the mutation later. By default the
ledger persists after each state change so an interrupted run still leaves a
valid partial transaction behind. Each write stores the whole action list,
so large runs can trade that guarantee for fewer writes with flush_interval.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..core.types import (
    ActionKind,
    ActionStatus,
    Transaction,
    TransactionAction,
    TransactionStatus,
    TransactionSummary,
    TransactionType,
)
from ..db.store import TransactionStore
from ..errors import LedgerError
from ..shared.hashing import new_id

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def summarize(actions: Iterable[TransactionAction]) -> TransactionSummary:
    """
    Compute summary counters from action outcomes.

    Saved bytes count only completed deletes, so they never exceed the
    planned total.
    """
    summary = TransactionSummary()
    for action in actions:
        summary.total_processed += 1
        if action.status == ActionStatus.FAILED:
            summary.failed_count += 1
            continue
        if action.status != ActionStatus.COMPLETED:
            continue

        if action.kind == ActionKind.MOVE:
            summary.moved_count += 1
        elif action.kind == ActionKind.DELETE:
            summary.deleted_count += 1
            summary.saved_bytes += action.file_size or 0
        elif action.kind == ActionKind.RESTORE and action.note is None:
            summary.restored_count += 1
    return summary


class TransactionLedger:
    """Create, update and query transactions through a store."""

    def __init__(self, store: TransactionStore, flush_interval: int = 1):
        """
        Initialize ledger.

        Args:
            store: Durable transaction store
            flush_interval: Action state changes buffered before a write;
                finalize and mark_rolled_back always write
        """
        self.store = store
        self.flush_interval = max(1, flush_interval)
        self._unflushed = 0

    def begin(
        self,
        type: TransactionType,
        target_path: PathLike,
        dry_run: bool = False,
        strategy: Optional[str] = None,
        actions: Iterable[TransactionAction] = (),
        scan_id: Optional[str] = None,
    ) -> Transaction:
        """
        Open a new pending transaction and persist it.

        Args:
            type: Operation producing the transaction
            target_path: Directory the operation works on
            dry_run: Whether actions will only be planned
            strategy: Keep strategy (dedupe only)
            actions: Planned actions, all pending
            scan_id: Scan the plan was derived from

        Returns:
            The persisted transaction
        """
        txn = Transaction(
            transaction_id=new_id(),
            type=type,
            target_path=Path(target_path),
            dry_run=dry_run,
            strategy=strategy,
            actions=list(actions),
            scan_id=scan_id,
        )
        txn.summary = summarize(txn.actions)
        self.store.create_transaction(txn)
        self._unflushed = 0

        logger.info(
            f"Started {type.value} transaction {txn.transaction_id} "
            f"({len(txn.actions)} actions{', dry run' if dry_run else ''})"
        )
        return txn

    def add_action(self, txn: Transaction, action: TransactionAction) -> TransactionAction:
        """Append a pending action to an open transaction."""
        self._check_open(txn)
        txn.actions.append(action)
        return action

    def record_success(
        self,
        txn: Transaction,
        action: TransactionAction,
        destination: Optional[PathLike] = None,
    ) -> None:
        """
        Mark an action completed with the destination actually used.

        Raises:
            LedgerError: On dry-run or closed transactions
        """
        action = self._resolve(txn, action)
        action.status = ActionStatus.COMPLETED
        action.destination = Path(destination) if destination is not None else None
        action.error = None
        self._persist(txn)

    def record_failure(
        self, txn: Transaction, action: TransactionAction, error: Union[str, Exception]
    ) -> None:
        """
        Mark an action failed with the error text.

        Raises:
            LedgerError: On dry-run or closed transactions
        """
        action = self._resolve(txn, action)
        action.status = ActionStatus.FAILED
        action.error = str(error)
        self._persist(txn)
        logger.error(f"Action {action.action_id} failed: {action.source}: {error}")

    def record_skipped(
        self, txn: Transaction, action: TransactionAction, note: str
    ) -> None:
        """Mark an action completed without a filesystem change."""
        action = self._resolve(txn, action)
        action.status = ActionStatus.COMPLETED
        action.note = note
        self._persist(txn)

    def finalize(self, txn: Transaction) -> Transaction:
        """
        Close a transaction: set its status, completion time and summary.

        Dry runs stay pending. Otherwise a run with no failures is completed,
        one where every action failed is failed, and anything in between is
        partially completed.

        Raises:
            LedgerError: If the transaction was rolled back
        """
        self._check_open(txn)

        txn.summary = summarize(txn.actions)
        if txn.dry_run:
            txn.status = TransactionStatus.PENDING
        else:
            failed = txn.summary.failed_count
            if failed == 0:
                txn.status = TransactionStatus.COMPLETED
            elif failed == len(txn.actions):
                txn.status = TransactionStatus.FAILED
            else:
                txn.status = TransactionStatus.PARTIALLY_COMPLETED
            txn.completed_at = datetime.now()

        self.store.update_transaction(txn)
        self._unflushed = 0
        logger.info(
            f"Transaction {txn.transaction_id} {txn.status.value}: "
            f"{txn.summary.total_processed} actions, {txn.summary.failed_count} failed"
        )
        return txn

    def mark_rolled_back(self, txn: Transaction, rollback_id: str) -> Transaction:
        """Mark a transaction reversed by the given rollback transaction."""
        self._check_open(txn)
        txn.status = TransactionStatus.ROLLED_BACK
        txn.rolled_back_at = datetime.now()
        txn.rollback_transaction_id = rollback_id
        self.store.update_transaction(txn)
        self._unflushed = 0
        logger.info(f"Transaction {txn.transaction_id} rolled back by {rollback_id}")
        return txn

    def get(self, transaction_id: str) -> Optional[Transaction]:
        return self.store.find_transaction(transaction_id)

    def list_rollbackable(self) -> List[Transaction]:
        return self.store.list_rollbackable()

    def list_recent(
        self, limit: int = 10, type: Optional[TransactionType] = None
    ) -> List[Transaction]:
        """Newest transactions first, optionally of one type."""
        return self.store.list_transactions(limit=limit, type=type)

    def _persist(self, txn: Transaction) -> None:
        txn.summary = summarize(txn.actions)
        self._unflushed += 1
        if self._unflushed >= self.flush_interval:
            self.store.update_transaction(txn)
            self._unflushed = 0

    @staticmethod
    def _check_open(txn: Transaction) -> None:
        if txn.status == TransactionStatus.ROLLED_BACK:
            raise LedgerError(f"Transaction {txn.transaction_id} is already rolled back")

    def _resolve(self, txn: Transaction, action: TransactionAction) -> TransactionAction:
        """Validate a state change and return the transaction's own copy of action."""
        self._check_open(txn)
        if txn.dry_run:
            raise LedgerError(
                f"Cannot complete actions of dry-run transaction {txn.transaction_id}"
            )
        owned = txn.get_action(action.action_id)
        if owned is None:
            raise LedgerError(
                f"Action {action.action_id} does not belong to {txn.transaction_id}"
            )
        return owned
