"""
Pytest configuration and fixtures for deskpilot tests.

Every test gets its own in-memory SQLite store and a trash directory under
tmp_path, so nothing touches the real home directory.
"""

import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

import pytest

from deskpilot.db import SQLStore, create_db_engine
from deskpilot.shared import SafeFileOperations


@pytest.fixture
def store() -> SQLStore:
    """Fresh in-memory store."""
    return SQLStore(create_db_engine("sqlite://"))


@pytest.fixture
def trash_dir(tmp_path: Path) -> Path:
    """Trash directory outside the scanned tree."""
    return tmp_path / "trash"


@pytest.fixture
def file_ops(trash_dir: Path) -> SafeFileOperations:
    return SafeFileOperations(trash_dir)


@pytest.fixture
def desk(tmp_path: Path) -> Path:
    """Empty directory to organize/dedupe."""
    path = tmp_path / "desk"
    path.mkdir()
    return path


WriteFile = Callable[..., Path]


@pytest.fixture
def write_file() -> WriteFile:
    """
    Factory creating a file with content and optional modification time.

    Usage:
        write_file(desk / "a.txt", "hello", mtime=datetime(2024, 1, 1))
    """

    def _write(
        path: Path,
        content: Union[str, bytes] = "",
        mtime: Optional[datetime] = None,
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode() if isinstance(content, str) else content
        path.write_bytes(data)
        if mtime is not None:
            ts = mtime.timestamp()
            os.utime(path, (ts, ts))
        return path

    return _write


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict:
    """Point the CLI settings at a temp database and trash directory."""
    env = {
        "DESKPILOT_DATABASE_URL": f"sqlite:///{tmp_path / 'state' / 'deskpilot.db'}",
        "DESKPILOT_TRASH_PATH": str(tmp_path / "trash"),
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env
