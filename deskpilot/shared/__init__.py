"""
Shared utilities for deskpilot.

Hashing, categorization and safe filesystem primitives used by the scanner,
organizer, deduper and rollback engine.
"""

from .categories import (
    EXTENSION_CATEGORIES,
    FileCategory,
    all_categories,
    categorize,
    category_names,
    extensions_for_category,
    get_extension,
)
from .hashing import (
    compute_content_hash,
    compute_partial_hash,
    compute_quick_hash,
    new_id,
    new_short_id,
    verify_content_hash,
)
from .safe_fs import (
    DeleteOutcome,
    FileInfo,
    SafeFileOperations,
    classify_os_error,
    directory_exists,
    ensure_directory,
    get_file_info,
    is_readable,
    list_files,
)
from .utils import format_bytes, setup_logging

__all__ = [
    # Categories
    "EXTENSION_CATEGORIES",
    "FileCategory",
    "all_categories",
    "categorize",
    "category_names",
    "extensions_for_category",
    "get_extension",
    # Hashing
    "compute_content_hash",
    "compute_partial_hash",
    "compute_quick_hash",
    "new_id",
    "new_short_id",
    "verify_content_hash",
    # Filesystem
    "DeleteOutcome",
    "FileInfo",
    "SafeFileOperations",
    "classify_os_error",
    "directory_exists",
    "ensure_directory",
    "get_file_info",
    "is_readable",
    "list_files",
    # Formatting / logging
    "format_bytes",
    "setup_logging",
]
