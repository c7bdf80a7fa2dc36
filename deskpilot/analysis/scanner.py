"""
Directory scanner.

Inventories a directory tree: hashes and categorizes every readable file,
groups byte-identical files and persists the result as a scan.
"""

import logging
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..core.types import (
    CategoryStats,
    DuplicateGroup,
    FileSnapshot,
    ProgressCallback,
    ScanReport,
)
from ..db.store import TransactionStore
from ..errors import ContentHashError, DirectoryNotFoundError
from ..shared.categories import all_categories, categorize, get_extension
from ..shared.hashing import QUICK_HASH_THRESHOLD, compute_quick_hash, new_id
from ..shared.safe_fs import directory_exists, get_file_info, is_readable, list_files

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def snapshot_file(
    file_path: Path, quick_hash_threshold: int = QUICK_HASH_THRESHOLD
) -> Optional[FileSnapshot]:
    """
    Stat, hash and categorize a single file.

    Args:
        file_path: File to inspect
        quick_hash_threshold: Files up to this size are hashed in one read

    Returns:
        FileSnapshot, or None if the file vanished or could not be read
    """
    info = get_file_info(file_path)
    if info is None or not info.is_file:
        return None

    try:
        content_hash = compute_quick_hash(file_path, quick_hash_threshold)
    except ContentHashError as e:
        logger.warning(f"Skipping {file_path}: {e}")
        return None

    return FileSnapshot(
        path=file_path,
        name=info.name,
        extension=get_extension(file_path),
        size=info.size,
        content_hash=content_hash,
        created_at=info.created_at,
        modified_at=info.modified_at,
        category=categorize(file_path),
    )


def collect_snapshots(
    paths: Sequence[Path],
    workers: int = 1,
    on_progress: Optional[ProgressCallback] = None,
    quick_hash_threshold: int = QUICK_HASH_THRESHOLD,
) -> Tuple[List[FileSnapshot], int]:
    """
    Snapshot many files, optionally on a thread pool.

    Results come back in the order of ``paths`` regardless of which worker
    finished first. Progress is reported from the calling thread.

    Args:
        paths: Files to inspect
        workers: Thread count; 1 hashes inline
        on_progress: Called as (done, total, file name) after each file
        quick_hash_threshold: Passed through to snapshot_file

    Returns:
        Tuple of (snapshots, number of skipped files)
    """
    total = len(paths)
    results: List[Optional[FileSnapshot]] = [None] * total

    if workers <= 1 or total <= 1:
        for index, path in enumerate(paths):
            results[index] = snapshot_file(path, quick_hash_threshold)
            if on_progress:
                on_progress(index + 1, total, path.name)
    else:
        done = 0
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_index = {
                executor.submit(snapshot_file, path, quick_hash_threshold): index
                for index, path in enumerate(paths)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                results[index] = future.result()
                done += 1
                if on_progress:
                    on_progress(done, total, paths[index].name)

    snapshots = [s for s in results if s is not None]
    return snapshots, total - len(snapshots)


def group_by_hash(files: Iterable[FileSnapshot]) -> Dict[str, List[FileSnapshot]]:
    """Bucket snapshots by content hash, preserving input order in each bucket."""
    groups: Dict[str, List[FileSnapshot]] = OrderedDict()
    for snapshot in files:
        groups.setdefault(snapshot.content_hash, []).append(snapshot)
    return groups


def category_breakdown(files: Iterable[FileSnapshot]) -> Dict[str, CategoryStats]:
    """Per-category count and bytes, in category order, omitting empty ones."""
    stats = {category.value: CategoryStats() for category in all_categories()}
    for snapshot in files:
        entry = stats[snapshot.category.value]
        entry.count += 1
        entry.size += snapshot.size
    return {name: entry for name, entry in stats.items() if entry.count}


class Scanner:
    """Scan a directory and persist what was found."""

    def __init__(
        self,
        store: TransactionStore,
        workers: int = 1,
        on_progress: Optional[ProgressCallback] = None,
        exclude: Iterable[PathLike] = (),
        quick_hash_threshold: int = QUICK_HASH_THRESHOLD,
    ):
        """
        Initialize scanner.

        Args:
            store: Where scans and file records are saved
            workers: Hashing threads
            on_progress: Progress callback
            exclude: Directories never descended into (e.g. the trash)
            quick_hash_threshold: Whole-file read limit for hashing
        """
        self.store = store
        self.workers = max(1, workers)
        self.on_progress = on_progress
        self.exclude = [Path(p).expanduser() for p in exclude]
        self.quick_hash_threshold = quick_hash_threshold

    def scan(self, path: PathLike, recursive: bool = True) -> ScanReport:
        """
        Scan a directory.

        Args:
            path: Directory to scan
            recursive: Descend into subdirectories

        Returns:
            ScanReport (already persisted)

        Raises:
            DirectoryNotFoundError: If path is not an existing directory
        """
        root = Path(path).expanduser()
        if not directory_exists(root):
            raise DirectoryNotFoundError(root)

        logger.info(f"Scanning {root} ({'recursive' if recursive else 'top level'})")

        candidates = list_files(root, recursive=recursive, exclude=self.exclude)
        readable = []
        for file_path in candidates:
            if is_readable(file_path):
                readable.append(file_path)
            else:
                logger.warning(f"Skipping unreadable file: {file_path}")

        files, skipped = collect_snapshots(
            readable,
            workers=self.workers,
            on_progress=self.on_progress,
            quick_hash_threshold=self.quick_hash_threshold,
        )
        skipped += len(candidates) - len(readable)

        duplicate_groups = []
        for content_hash, members in group_by_hash(files).items():
            if len(members) < 2:
                continue
            # Earliest created is the original; sort is stable for ties
            ordered = sorted(members, key=lambda f: f.created_at)
            duplicate_groups.append(DuplicateGroup.from_ordered(content_hash, ordered))

        report = ScanReport(
            scan_id=new_id(),
            scanned_path=root,
            recursive=recursive,
            total_files=len(files),
            total_size=sum(f.size for f in files),
            duplicates_count=sum(len(g.removable) for g in duplicate_groups),
            duplicates_size=sum(g.wasted_size for g in duplicate_groups),
            categories=category_breakdown(files),
            files=files,
            duplicate_groups=duplicate_groups,
            skipped_files=skipped,
        )

        self.store.save_scan(report)
        self.store.save_file_records(files, report.scan_id)

        logger.info(
            f"Scan {report.scan_id} complete: {report.total_files} files, "
            f"{report.duplicates_count} duplicates, {skipped} skipped"
        )
        return report
