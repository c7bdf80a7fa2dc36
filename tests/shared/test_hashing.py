"""Tests for content hashing."""

import hashlib
from pathlib import Path

import pytest

from deskpilot.errors import ContentHashError
from deskpilot.shared.hashing import (
    compute_content_hash,
    compute_partial_hash,
    compute_quick_hash,
    new_id,
    new_short_id,
    verify_content_hash,
)


class TestComputeContentHash:
    """Tests for compute_content_hash."""

    def test_matches_sha256(self, tmp_path: Path) -> None:
        """Test digest equals hashlib's SHA-256 of the bytes."""
        path = tmp_path / "file.txt"
        path.write_bytes(b"hello world")

        assert compute_content_hash(path) == hashlib.sha256(b"hello world").hexdigest()

    def test_deterministic(self, tmp_path: Path) -> None:
        """Test the same bytes hash the same under different names."""
        a = tmp_path / "a.bin"
        b = tmp_path / "sub" / "b.dat"
        b.parent.mkdir()
        a.write_bytes(b"same content")
        b.write_bytes(b"same content")

        assert compute_content_hash(a) == compute_content_hash(b)

    def test_single_byte_change(self, tmp_path: Path) -> None:
        """Test changing one byte changes the digest."""
        a = tmp_path / "a.bin"
        b = tmp_path / "b.bin"
        a.write_bytes(b"abcdef")
        b.write_bytes(b"abcdeg")

        assert compute_content_hash(a) != compute_content_hash(b)

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty"
        path.write_bytes(b"")

        assert compute_content_hash(path) == hashlib.sha256(b"").hexdigest()

    def test_small_chunks(self, tmp_path: Path) -> None:
        """Test chunk size does not affect the digest."""
        path = tmp_path / "file.bin"
        data = bytes(range(256)) * 100
        path.write_bytes(data)

        assert compute_content_hash(path, chunk_size=7) == hashlib.sha256(data).hexdigest()

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test unreadable file raises ContentHashError."""
        with pytest.raises(ContentHashError):
            compute_content_hash(tmp_path / "missing.txt")


class TestQuickHash:
    """Tests for compute_quick_hash."""

    def test_small_file_same_as_full(self, tmp_path: Path) -> None:
        path = tmp_path / "small.txt"
        path.write_bytes(b"x" * 100)

        assert compute_quick_hash(path) == compute_content_hash(path)

    def test_large_file_same_as_full(self, tmp_path: Path) -> None:
        """Test files above the threshold still get the full digest."""
        path = tmp_path / "large.bin"
        path.write_bytes(b"y" * 5000)

        assert compute_quick_hash(path, size_threshold=1024) == compute_content_hash(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ContentHashError):
            compute_quick_hash(tmp_path / "missing.txt")


class TestPartialHash:
    """Tests for compute_partial_hash."""

    def test_same_content_same_partial(self, tmp_path: Path) -> None:
        a = tmp_path / "a"
        b = tmp_path / "b"
        a.write_bytes(b"z" * 300000)
        b.write_bytes(b"z" * 300000)

        assert compute_partial_hash(a) == compute_partial_hash(b)

    def test_size_matters(self, tmp_path: Path) -> None:
        a = tmp_path / "a"
        b = tmp_path / "b"
        a.write_bytes(b"z" * 10)
        b.write_bytes(b"z" * 11)

        assert compute_partial_hash(a) != compute_partial_hash(b)

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty"
        path.write_bytes(b"")

        assert len(compute_partial_hash(path)) == 64


class TestVerifyContentHash:
    """Tests for verify_content_hash."""

    def test_match_case_insensitive(self, tmp_path: Path) -> None:
        path = tmp_path / "file.txt"
        path.write_bytes(b"data")
        digest = compute_content_hash(path)

        assert verify_content_hash(path, digest.upper()) is True

    def test_mismatch(self, tmp_path: Path) -> None:
        path = tmp_path / "file.txt"
        path.write_bytes(b"data")

        assert verify_content_hash(path, "0" * 64) is False

    def test_missing_file(self, tmp_path: Path) -> None:
        assert verify_content_hash(tmp_path / "missing", "0" * 64) is False


class TestIds:
    """Tests for identifier helpers."""

    def test_new_id_unique(self) -> None:
        ids = {new_id() for _ in range(100)}
        assert len(ids) == 100

    def test_new_short_id(self) -> None:
        short = new_short_id()
        assert len(short) == 8
        assert all(c in "0123456789abcdef" for c in short)
