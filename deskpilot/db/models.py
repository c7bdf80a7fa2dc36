"""SQLAlchemy ORM models for scans and transactions."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


class ScanRecord(Base):
    """Summary of one scan."""

    __tablename__ = "scans"

    scan_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    scanned_path: Mapped[str] = mapped_column(Text, nullable=False)
    total_files: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_size: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    duplicates_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duplicates_size: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    categories: Mapped[Dict[str, Any]] = mapped_column(
        JSON, default=dict, nullable=False
    )  # {category: {"count": n, "size": bytes}}
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<ScanRecord(id={self.scan_id}, path={self.scanned_path}, files={self.total_files})>"


class FileRecord(Base):
    """One file seen by a scan."""

    __tablename__ = "file_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scan_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("scans.scan_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    extension: Mapped[str] = mapped_column(String(32), default="", index=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    size: Mapped[int] = mapped_column(BigInteger, default=0)
    is_duplicate: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    duplicate_of: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_created_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    file_modified_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    def __repr__(self) -> str:
        return f"<FileRecord(path={self.file_path}, hash={self.content_hash[:8]})>"


class TransactionRecord(Base):
    """Persisted transaction; actions and summary stored as JSON."""

    __tablename__ = "transactions"

    transaction_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )  # organize, dedupe, rollback
    status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    actions: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON, default=list, nullable=False
    )
    summary: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    target_path: Mapped[str] = mapped_column(Text, nullable=False)
    dry_run: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    strategy: Mapped[Optional[str]] = mapped_column(String(32))
    scan_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False, index=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    rolled_back_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    rollback_transaction_id: Mapped[Optional[str]] = mapped_column(String(64))

    def __repr__(self) -> str:
        return f"<TransactionRecord(id={self.transaction_id}, type={self.type}, status={self.status})>"
