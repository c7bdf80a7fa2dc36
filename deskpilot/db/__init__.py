"""Durable storage for deskpilot scans and transactions."""

from .connection import create_db_engine, init_db, session_scope
from .models import Base, FileRecord, ScanRecord, TransactionRecord
from .store import SQLStore, TransactionStore, create_store

__all__ = [
    "create_db_engine",
    "init_db",
    "session_scope",
    "Base",
    "FileRecord",
    "ScanRecord",
    "TransactionRecord",
    "SQLStore",
    "TransactionStore",
    "create_store",
]
