"""
Category organizer.

Moves files into per-category folders (Documents/, Images/, ...) under the
target directory. Every move is planned up front and recorded in a
transaction so the whole run can be rolled back.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import List, Optional, Union

from ..core.types import (
    ActionKind,
    OrganizePlanItem,
    OrganizeReport,
    ProgressCallback,
    TransactionAction,
    TransactionType,
)
from ..db.store import TransactionStore
from ..errors import DirectoryNotFoundError, FilesystemOperationError
from ..shared.categories import all_categories, categorize, category_names
from ..shared.hashing import new_short_id
from ..shared.safe_fs import (
    SafeFileOperations,
    directory_exists,
    ensure_directory,
    get_file_info,
    list_files,
)
from .transaction import TransactionLedger

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class Organizer:
    """Sort the files of a directory into category folders."""

    def __init__(
        self,
        store: TransactionStore,
        file_ops: SafeFileOperations,
        on_progress: Optional[ProgressCallback] = None,
        flush_interval: int = 1,
    ):
        """
        Initialize organizer.

        Args:
            store: Where the transaction is recorded
            file_ops: Filesystem primitives (moves resolve collisions)
            on_progress: Progress callback
            flush_interval: Ledger writes are batched per this many actions
        """
        self.store = store
        self.file_ops = file_ops
        self.ledger = TransactionLedger(store, flush_interval=flush_interval)
        self.on_progress = on_progress

    def plan(self, path: PathLike, recursive: bool = False) -> List[OrganizePlanItem]:
        """
        Work out where each eligible file should go.

        Files already sitting in a subfolder named after a category are left
        alone, so organizing twice plans nothing the second time. The root
        itself may carry a category name (e.g. ~/Documents).

        Args:
            path: Directory to organize
            recursive: Include files in subdirectories

        Returns:
            One plan item per file to move, in listing order
        """
        root = Path(path)
        category_dirs = set(category_names())

        plan = []
        for file_path in list_files(
            root, recursive=recursive, exclude=[self.file_ops.trash_dir]
        ):
            if file_path.parent != root and file_path.parent.name in category_dirs:
                continue

            category = categorize(file_path)
            info = get_file_info(file_path)
            plan.append(
                OrganizePlanItem(
                    source=file_path,
                    destination=root / category.value / file_path.name,
                    category=category,
                    file_name=file_path.name,
                    size=info.size if info else 0,
                )
            )
        return plan

    def organize(
        self, path: PathLike, dry_run: bool = False, recursive: bool = False
    ) -> OrganizeReport:
        """
        Organize a directory into category folders.

        Args:
            path: Directory to organize
            dry_run: Record the plan without moving anything
            recursive: Include files in subdirectories

        Returns:
            Organize report

        Raises:
            DirectoryNotFoundError: If path is not an existing directory
        """
        root = Path(path).expanduser()
        if not directory_exists(root):
            raise DirectoryNotFoundError(root)

        logger.info(f"Organizing {root} ({'DRY RUN' if dry_run else 'LIVE'})")

        plan = self.plan(root, recursive=recursive)
        actions = [
            TransactionAction(
                action_id=new_short_id(),
                kind=ActionKind.MOVE,
                source=item.source,
                destination=item.destination,
                file_size=item.size,
            )
            for item in plan
        ]
        txn = self.ledger.begin(
            TransactionType.ORGANIZE, root, dry_run=dry_run, actions=actions
        )

        report = OrganizeReport(
            transaction_id=txn.transaction_id,
            target_path=root,
            dry_run=dry_run,
            plan=plan,
            planned_count=len(plan),
            by_category=dict(Counter(item.category.value for item in plan)),
        )

        if dry_run:
            self.ledger.finalize(txn)
            report.status = txn.status
            return report

        for category in all_categories():
            try:
                ensure_directory(root / category.value)
            except FilesystemOperationError as e:
                # Moves into this folder retry the mkdir and fail per action
                logger.warning(f"Could not create category folder {category.value}: {e}")

        total = len(txn.actions)
        for index, action in enumerate(txn.actions):
            try:
                moved_to = self.file_ops.move(
                    action.source, action.destination, resolve_collisions=True
                )
                self.ledger.record_success(txn, action, moved_to)
                report.moved_count += 1
                logger.debug(f"Moved {action.source} → {moved_to}")
            except FilesystemOperationError as e:
                self.ledger.record_failure(txn, action, e)
                report.failed_count += 1
                report.errors.append(f"{action.source}: {e}")

            if self.on_progress:
                self.on_progress(index + 1, total, action.source.name)

        self.ledger.finalize(txn)
        report.status = txn.status

        logger.info(
            f"Organized {report.moved_count}/{report.planned_count} files "
            f"({report.failed_count} failed)"
        )
        return report
