"""
Collision-safe filesystem mutations.

Every mutation the organizer, deduper and rollback engine perform goes
through SafeFileOperations. Moves never overwrite, deletes go to a trash
directory by default, and raw OSErrors are translated into the small
FilesystemOperationError taxonomy so callers can record and move on.
"""

import errno
import logging
import os
import shutil
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from ..errors import (
    BusyError,
    CollisionUnresolvedError,
    DestinationExistsError,
    FileNotFoundInTreeError,
    FilesystemOperationError,
    PermissionDeniedError,
    SourceMissingError,
    UnknownFilesystemError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_COLLISION_ATTEMPTS = 1000

# Directories never descended into while listing
EXCLUDED_DIRECTORIES = frozenset({"node_modules", "__pycache__", "@eaDir"})

PathLike = Union[str, Path]


@dataclass
class FileInfo:
    """Stat snapshot of a single file."""

    path: Path
    name: str
    size: int
    created_at: datetime
    modified_at: datetime
    is_file: bool
    is_directory: bool


@dataclass
class DeleteOutcome:
    """Result of a successful delete."""

    path: Path
    moved_to_trash: bool
    trash_path: Optional[Path] = None


def classify_os_error(
    error: OSError, path: Optional[PathLike] = None
) -> FilesystemOperationError:
    """
    Map an OSError onto the filesystem error taxonomy.

    Args:
        error: Raw error raised by the OS call
        path: Path the call was operating on (for the message)

    Returns:
        PermissionDeniedError, BusyError, FileNotFoundInTreeError or
        UnknownFilesystemError
    """
    if isinstance(error, FilesystemOperationError):
        return error

    target = path if path is not None else error.filename
    if error.errno in (errno.EACCES, errno.EPERM):
        return PermissionDeniedError(f"Permission denied: {target}")
    if error.errno in (errno.EBUSY, errno.ETXTBSY):
        return BusyError(f"File is locked/busy: {target}")
    if error.errno == errno.ENOENT:
        return FileNotFoundInTreeError(f"File not found: {target}")
    return UnknownFilesystemError(f"{error.strerror or error}: {target}")


def directory_exists(path: PathLike) -> bool:
    """True if path exists and is a directory."""
    return Path(path).is_dir()


def is_readable(path: PathLike) -> bool:
    """True if the current user can read the file."""
    return os.access(path, os.R_OK)


def ensure_directory(path: PathLike) -> Path:
    """
    Create a directory (and parents) if missing.

    Raises:
        FilesystemOperationError: If the directory cannot be created
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise classify_os_error(e, path) from e
    return path


def get_file_info(path: PathLike) -> Optional[FileInfo]:
    """
    Stat a file without raising.

    Creation time uses st_birthtime where the platform records it and falls
    back to st_ctime elsewhere.

    Returns:
        FileInfo, or None if the path cannot be stat'ed
    """
    path = Path(path)
    try:
        stats = path.stat()
    except OSError as e:
        logger.debug(f"Failed to get file info: {path}: {e}")
        return None

    created = getattr(stats, "st_birthtime", None) or stats.st_ctime
    return FileInfo(
        path=path,
        name=path.name,
        size=stats.st_size,
        created_at=datetime.fromtimestamp(created),
        modified_at=datetime.fromtimestamp(stats.st_mtime),
        is_file=path.is_file(),
        is_directory=path.is_dir(),
    )


def list_files(
    root: PathLike,
    recursive: bool = True,
    file_filter: Optional[Callable[[Path], bool]] = None,
    exclude: Iterable[PathLike] = (),
) -> List[Path]:
    """
    List files under a directory in a stable order.

    Hidden directories, EXCLUDED_DIRECTORIES and any directory listed in
    ``exclude`` are not descended into.

    Args:
        root: Directory to list
        recursive: Descend into subdirectories
        file_filter: Optional predicate; files failing it are dropped
        exclude: Extra directories to skip (e.g. the trash directory)

    Returns:
        Sorted list of file paths
    """
    root = Path(root)
    excluded = {Path(p).resolve() for p in exclude}
    files: List[Path] = []

    def _on_error(error: OSError) -> None:
        if error.errno not in (errno.EACCES, errno.EPERM):
            logger.warning(f"Error reading directory: {error.filename}: {error}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        current = Path(dirpath)

        dirnames[:] = sorted(
            d
            for d in dirnames
            if not d.startswith(".")
            and d not in EXCLUDED_DIRECTORIES
            and (current / d).resolve() not in excluded
        )

        for name in sorted(filenames):
            file_path = current / name
            if not file_path.is_file():
                continue
            if file_filter is None or file_filter(file_path):
                files.append(file_path)

        if not recursive:
            break

    return files


class SafeFileOperations:
    """Move, delete and restore primitives with collision handling and trash."""

    def __init__(
        self,
        trash_dir: PathLike,
        max_collision_attempts: int = DEFAULT_MAX_COLLISION_ATTEMPTS,
    ):
        """
        Initialize filesystem operations.

        Args:
            trash_dir: Directory receiving soft-deleted files
            max_collision_attempts: Numeric suffixes tried before giving up
        """
        self.trash_dir = Path(trash_dir).expanduser()
        self.max_collision_attempts = max_collision_attempts

    def unique_destination(self, target: PathLike) -> Path:
        """
        Find a free path for target by appending _1, _2, ... to the stem.

        Args:
            target: Desired destination

        Returns:
            target itself if free, otherwise the first free suffixed name

        Raises:
            CollisionUnresolvedError: If every suffix up to the limit is taken
        """
        target = Path(target)
        if not target.exists():
            return target

        for counter in range(1, self.max_collision_attempts + 1):
            candidate = target.with_name(f"{target.stem}_{counter}{target.suffix}")
            if not candidate.exists():
                return candidate

        raise CollisionUnresolvedError(target, self.max_collision_attempts)

    def move(
        self, source: PathLike, destination: PathLike, resolve_collisions: bool = True
    ) -> Path:
        """
        Move a file, creating parent directories as needed.

        Tries a rename first and falls back to copy-then-delete when the
        destination is on another filesystem.

        Args:
            source: File to move
            destination: Requested destination path
            resolve_collisions: Pick a suffixed name when destination exists

        Returns:
            The destination actually used

        Raises:
            SourceMissingError: If source does not exist
            DestinationExistsError: If destination exists and resolution is off
            CollisionUnresolvedError: If no free name could be found
            FilesystemOperationError: For classified OS failures
        """
        source = Path(source)
        destination = Path(destination)

        if not source.exists():
            raise SourceMissingError(source)

        ensure_directory(destination.parent)

        if destination.exists():
            if not resolve_collisions:
                raise DestinationExistsError(destination)
            destination = self.unique_destination(destination)
            logger.debug(f"Collision detected, renamed to: {destination}")

        try:
            try:
                os.rename(source, destination)
            except OSError as e:
                if e.errno != errno.EXDEV:
                    raise
                # Cross-device: copy then remove the source
                shutil.copy2(source, destination)
                os.unlink(source)
        except OSError as e:
            error = classify_os_error(e, source)
            logger.error(f"Failed to move file: {source} -> {destination}: {error}")
            raise error from e

        logger.debug(f"Moved {source} → {destination}")
        return destination

    def delete(self, path: PathLike, move_to_trash: bool = True) -> DeleteOutcome:
        """
        Delete a file, moving it into the trash directory by default.

        Trashed files are named ``<epoch-millis>_<name>`` and never
        overwrite an existing trash entry.

        Args:
            path: File to delete
            move_to_trash: Soft delete into trash; False removes permanently

        Returns:
            DeleteOutcome with the trash path when soft-deleted

        Raises:
            FileNotFoundInTreeError: If path does not exist
            FilesystemOperationError: For classified OS failures
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundInTreeError(f"File does not exist: {path}")

        if move_to_trash:
            ensure_directory(self.trash_dir)
            timestamp = int(time.time() * 1000)
            trash_target = self.trash_dir / f"{timestamp}_{path.name}"
            trash_path = self.move(path, trash_target, resolve_collisions=True)
            logger.debug(f"Moved to trash: {path} → {trash_path}")
            return DeleteOutcome(path=path, moved_to_trash=True, trash_path=trash_path)

        try:
            os.unlink(path)
        except OSError as e:
            error = classify_os_error(e, path)
            logger.error(f"Failed to delete file: {path}: {error}")
            raise error from e

        logger.debug(f"Permanently deleted: {path}")
        return DeleteOutcome(path=path, moved_to_trash=False)

    def restore(self, trash_path: PathLike, original_path: PathLike) -> Path:
        """
        Move a trashed file back to its original location.

        Returns:
            Path the file was restored to (suffixed if the original was taken)
        """
        return self.move(trash_path, original_path, resolve_collisions=True)
