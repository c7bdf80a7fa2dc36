"""
Duplicate remover.

Finds byte-identical files under a directory, keeps one per group according
to a KeepStrategy and deletes the rest (into the trash by default). Deletes
are recorded in a transaction so trashed files can be restored.
"""

import logging
from collections import defaultdict
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from ..analysis.scanner import collect_snapshots, group_by_hash
from ..core.types import (
    ActionKind,
    DedupeReport,
    DuplicateGroup,
    FileSnapshot,
    KeepStrategy,
    ProgressCallback,
    TransactionAction,
    TransactionType,
)
from ..db.store import TransactionStore
from ..errors import (
    ContentHashError,
    DirectoryNotFoundError,
    FilesystemOperationError,
    InvalidStrategyError,
)
from ..shared.hashing import compute_partial_hash, new_short_id
from ..shared.safe_fs import SafeFileOperations, directory_exists, get_file_info, list_files
from .transaction import TransactionLedger

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Sorts are stable, so ties keep listing order and the first listed file wins
_KEEP_ORDER: Dict[KeepStrategy, Callable[[List[FileSnapshot]], List[FileSnapshot]]] = {
    KeepStrategy.KEEP_LATEST: lambda files: sorted(
        files, key=lambda f: f.modified_at, reverse=True
    ),
    KeepStrategy.KEEP_OLDEST: lambda files: sorted(files, key=lambda f: f.created_at),
    KeepStrategy.KEEP_LARGEST: lambda files: sorted(
        files, key=lambda f: f.size, reverse=True
    ),
}


def parse_strategy(strategy: Union[KeepStrategy, str]) -> KeepStrategy:
    """
    Coerce a strategy name into a KeepStrategy.

    Raises:
        InvalidStrategyError: If the name is not a known strategy
    """
    if isinstance(strategy, KeepStrategy):
        return strategy
    try:
        return KeepStrategy(strategy)
    except ValueError:
        raise InvalidStrategyError(strategy, [s.value for s in KeepStrategy]) from None


def find_duplicate_groups(
    files: List[FileSnapshot], strategy: KeepStrategy
) -> List[DuplicateGroup]:
    """
    Group identical files and order each group so the keeper comes first.

    Args:
        files: Snapshots in listing order
        strategy: Which member to keep

    Returns:
        Groups with at least two members
    """
    order = _KEEP_ORDER[strategy]
    return [
        DuplicateGroup.from_ordered(content_hash, order(members))
        for content_hash, members in group_by_hash(files).items()
        if len(members) >= 2
    ]


def duplicate_candidates(paths: Sequence[Path]) -> List[Path]:
    """
    Narrow a listing to files that could have an identical twin.

    Files are bucketed by size, then by partial hash. Only members of a
    bucket with two or more files need a full content hash. Files that
    cannot be stat'ed or read are dropped with a warning.

    Args:
        paths: Files in listing order

    Returns:
        Candidate files, still in listing order
    """
    by_size: Dict[int, List[Path]] = defaultdict(list)
    for path in paths:
        info = get_file_info(path)
        if info is None:
            logger.warning(f"Skipping unreadable file: {path}")
            continue
        by_size[info.size].append(path)

    candidates = set()
    for same_size in by_size.values():
        if len(same_size) < 2:
            continue
        by_partial: Dict[str, List[Path]] = defaultdict(list)
        for path in same_size:
            try:
                by_partial[compute_partial_hash(path)].append(path)
            except ContentHashError as e:
                logger.warning(f"Skipping unreadable file: {e}")
        for bucket in by_partial.values():
            if len(bucket) >= 2:
                candidates.update(bucket)

    return [path for path in paths if path in candidates]


class Deduper:
    """Remove duplicate files from a directory tree."""

    def __init__(
        self,
        store: TransactionStore,
        file_ops: SafeFileOperations,
        on_progress: Optional[ProgressCallback] = None,
        workers: int = 1,
        flush_interval: int = 1,
    ):
        self.store = store
        self.file_ops = file_ops
        self.ledger = TransactionLedger(store, flush_interval=flush_interval)
        self.on_progress = on_progress
        self.workers = max(1, workers)

    def dedupe(
        self,
        path: PathLike,
        dry_run: bool = False,
        strategy: Union[KeepStrategy, str] = KeepStrategy.KEEP_LATEST,
        move_to_trash: bool = True,
    ) -> DedupeReport:
        """
        Remove duplicates under a directory.

        Args:
            path: Directory to deduplicate (searched recursively)
            dry_run: Record the plan without deleting anything
            strategy: Which member of each group to keep
            move_to_trash: Soft delete into the trash; False deletes permanently

        Returns:
            Dedupe report

        Raises:
            InvalidStrategyError: If strategy is unknown
            DirectoryNotFoundError: If path is not an existing directory
        """
        keep = parse_strategy(strategy)
        root = Path(path).expanduser()
        if not directory_exists(root):
            raise DirectoryNotFoundError(root)

        logger.info(
            f"Deduplicating {root} with {keep.value} "
            f"({'DRY RUN' if dry_run else 'LIVE'}, "
            f"{'trash' if move_to_trash else 'permanent'})"
        )

        paths = list_files(root, recursive=True, exclude=[self.file_ops.trash_dir])
        candidates = duplicate_candidates(paths)
        logger.debug(f"{len(candidates)} of {len(paths)} files need a full hash")

        files, skipped = collect_snapshots(
            candidates, workers=self.workers, on_progress=self.on_progress
        )
        if skipped:
            logger.warning(f"Skipped {skipped} unreadable files")

        groups = find_duplicate_groups(files, keep)

        actions = []
        for group in groups:
            for duplicate in group.removable:
                actions.append(
                    TransactionAction(
                        action_id=new_short_id(),
                        kind=ActionKind.DELETE,
                        source=duplicate.path,
                        destination=(
                            self.file_ops.trash_dir / duplicate.name
                            if move_to_trash
                            else None
                        ),
                        file_hash=duplicate.content_hash,
                        file_size=duplicate.size,
                    )
                )

        txn = self.ledger.begin(
            TransactionType.DEDUPE,
            root,
            dry_run=dry_run,
            strategy=keep.value,
            actions=actions,
        )

        report = DedupeReport(
            transaction_id=txn.transaction_id,
            target_path=root,
            dry_run=dry_run,
            strategy=keep,
            move_to_trash=move_to_trash,
            duplicates=groups,
            total_duplicate_groups=len(groups),
            total_duplicate_files=len(actions),
            would_save=sum(g.wasted_size for g in groups),
        )

        if dry_run:
            self.ledger.finalize(txn)
            report.status = txn.status
            return report

        total = len(txn.actions)
        for index, action in enumerate(txn.actions):
            try:
                outcome = self.file_ops.delete(action.source, move_to_trash=move_to_trash)
                self.ledger.record_success(txn, action, outcome.trash_path)
                report.deleted_count += 1
            except FilesystemOperationError as e:
                self.ledger.record_failure(txn, action, e)
                report.failed_count += 1
                report.errors.append(f"{action.source}: {e}")

            if self.on_progress:
                self.on_progress(index + 1, total, action.source.name)

        self.ledger.finalize(txn)
        report.status = txn.status
        report.saved_bytes = txn.summary.saved_bytes

        logger.info(
            f"Deleted {report.deleted_count}/{report.total_duplicate_files} duplicates "
            f"in {report.total_duplicate_groups} groups ({report.failed_count} failed)"
        )
        return report
