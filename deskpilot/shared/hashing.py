"""
Content addressing for files.

The content hash (SHA-256 over the full byte stream) is the identity used
for duplicate detection and for verifying that a moved file is unchanged.
"""

import hashlib
import logging
import os
import uuid
from pathlib import Path
from typing import Union

from ..errors import ContentHashError

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "sha256"
CHUNK_SIZE = 64 * 1024
QUICK_HASH_THRESHOLD = 1024 * 1024
PARTIAL_CHUNK_SIZE = 64 * 1024

PathLike = Union[str, Path]


def compute_content_hash(file_path: PathLike, chunk_size: int = CHUNK_SIZE) -> str:
    """
    Compute the SHA-256 digest of a file.

    Reads in fixed-size chunks so memory use does not grow with file size.

    Args:
        file_path: Path to the file
        chunk_size: Bytes read per iteration

    Returns:
        Hexadecimal digest

    Raises:
        ContentHashError: If the file cannot be opened or a read fails
    """
    hash_obj = hashlib.new(HASH_ALGORITHM)
    try:
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                hash_obj.update(chunk)
    except OSError as e:
        logger.debug(f"Error reading {file_path} for hashing: {e}")
        raise ContentHashError(file_path, e.strerror or str(e)) from e

    return hash_obj.hexdigest()


def compute_quick_hash(
    file_path: PathLike, size_threshold: int = QUICK_HASH_THRESHOLD
) -> str:
    """
    Hash a file, reading it whole when it is small.

    Produces exactly the same digest as compute_content_hash.

    Args:
        file_path: Path to the file
        size_threshold: Files up to this many bytes are read in one call

    Returns:
        Hexadecimal digest

    Raises:
        ContentHashError: If the file cannot be read
    """
    try:
        size = os.stat(file_path).st_size
        if size <= size_threshold:
            with open(file_path, "rb") as f:
                return hashlib.new(HASH_ALGORITHM, f.read()).hexdigest()
    except OSError as e:
        raise ContentHashError(file_path, e.strerror or str(e)) from e

    return compute_content_hash(file_path)


def compute_partial_hash(file_path: PathLike) -> str:
    """
    Hash the first and last chunk of a file plus its size.

    Cheap prefilter for candidate duplicates. Two files with the same
    partial hash still need a full content hash comparison.
    """
    try:
        size = os.stat(file_path).st_size
        if size == 0:
            return hashlib.new(HASH_ALGORITHM, b"empty").hexdigest()

        chunk_size = min(PARTIAL_CHUNK_SIZE, max(size // 2, 1))
        hash_obj = hashlib.new(HASH_ALGORITHM)
        with open(file_path, "rb") as f:
            hash_obj.update(f.read(chunk_size))
            if size > chunk_size * 2:
                f.seek(size - chunk_size)
                hash_obj.update(f.read(chunk_size))
    except OSError as e:
        raise ContentHashError(file_path, e.strerror or str(e)) from e

    hash_obj.update(str(size).encode())
    return hash_obj.hexdigest()


def verify_content_hash(file_path: PathLike, expected: str) -> bool:
    """
    Check a file against an expected digest.

    Returns:
        True if the digests match, False on mismatch or read error
    """
    try:
        actual = compute_content_hash(file_path)
    except ContentHashError:
        return False
    return actual.lower() == expected.lower()


def new_id() -> str:
    """Generate a transaction/scan identifier."""
    return str(uuid.uuid4())


def new_short_id() -> str:
    """Generate an 8 character action identifier."""
    return uuid.uuid4().hex[:8]
