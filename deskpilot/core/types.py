"""
Type definitions for scans, plans and the transaction ledger.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..shared.categories import FileCategory

# (current, total, label); called between file-level steps on the caller's thread
ProgressCallback = Callable[[int, int, str], None]


class ActionKind(str, Enum):
    """Kind of filesystem mutation recorded in a transaction."""

    MOVE = "move"
    DELETE = "delete"
    RESTORE = "restore"


class ActionStatus(str, Enum):
    """Outcome of a single action."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TransactionType(str, Enum):
    """Operation that produced a transaction."""

    ORGANIZE = "organize"
    DEDUPE = "dedupe"
    ROLLBACK = "rollback"


class TransactionStatus(str, Enum):
    """Lifecycle status of a transaction."""

    PENDING = "pending"
    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially_completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


ROLLBACKABLE_STATUSES = (
    TransactionStatus.COMPLETED,
    TransactionStatus.PARTIALLY_COMPLETED,
)


class KeepStrategy(str, Enum):
    """Which member of a duplicate group survives deduplication."""

    KEEP_LATEST = "keep-latest"  # latest modification time
    KEEP_OLDEST = "keep-oldest"  # earliest creation time
    KEEP_LARGEST = "keep-largest"  # greatest size


class RollbackOutcome(str, Enum):
    """Result of reversing one action."""

    RESTORED = "restored"
    FAILED = "failed"
    SKIPPED = "skipped"


class FileSnapshot(BaseModel):
    """One file as seen by a scan."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: Path
    name: str
    extension: str = ""
    size: int = 0
    content_hash: str
    created_at: datetime
    modified_at: datetime
    category: FileCategory = FileCategory.OTHERS
    is_duplicate: bool = False
    duplicate_of: Optional[Path] = None


class DuplicateGroup(BaseModel):
    """Files sharing one content hash; the first member is the one kept."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    content_hash: str
    files: List[FileSnapshot] = Field(description="Members, kept member first")
    total_size: int = 0
    wasted_size: int = Field(
        default=0, description="Sum of sizes of the non-kept members"
    )

    @classmethod
    def from_ordered(cls, content_hash: str, files: List[FileSnapshot]) -> "DuplicateGroup":
        """
        Build a group from members already ordered by keep preference.

        Args:
            content_hash: Shared digest
            files: Members, the one to keep first (at least two)

        Returns:
            Group with duplicate flags set on the non-kept members
        """
        if len(files) < 2:
            raise ValueError("A duplicate group needs at least two members")

        kept = files[0]
        kept.is_duplicate = False
        kept.duplicate_of = None
        for dup in files[1:]:
            dup.is_duplicate = True
            dup.duplicate_of = kept.path

        return cls(
            content_hash=content_hash,
            files=files,
            total_size=sum(f.size for f in files),
            wasted_size=sum(f.size for f in files[1:]),
        )

    @property
    def kept(self) -> FileSnapshot:
        return self.files[0]

    @property
    def removable(self) -> List[FileSnapshot]:
        return self.files[1:]


class CategoryStats(BaseModel):
    """File count and bytes for one category."""

    count: int = 0
    size: int = 0


class ScanReport(BaseModel):
    """Result of scanning a directory."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    scan_id: str
    scanned_path: Path
    recursive: bool = True
    total_files: int = 0
    total_size: int = 0
    duplicates_count: int = 0
    duplicates_size: int = 0
    categories: Dict[str, CategoryStats] = Field(default_factory=dict)
    files: List[FileSnapshot] = Field(default_factory=list)
    duplicate_groups: List[DuplicateGroup] = Field(default_factory=list)
    skipped_files: int = 0
    created_at: datetime = Field(default_factory=datetime.now)


class TransactionAction(BaseModel):
    """A single file mutation within a transaction."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    action_id: str = Field(description="Unique action ID")
    kind: ActionKind = Field(description="move, delete or restore")
    source: Path = Field(description="File the action operates on")
    destination: Optional[Path] = Field(
        default=None,
        description="Planned destination; the actual one once completed",
    )
    status: ActionStatus = Field(default=ActionStatus.PENDING)
    error: Optional[str] = Field(default=None, description="Error message if failed")
    note: Optional[str] = Field(
        default=None, description="Why a completed action changed nothing"
    )
    file_hash: Optional[str] = None
    file_size: Optional[int] = None


class TransactionSummary(BaseModel):
    """Aggregate counters for a transaction."""

    moved_count: int = 0
    deleted_count: int = 0
    restored_count: int = 0
    failed_count: int = 0
    saved_bytes: int = 0
    total_processed: int = 0


class Transaction(BaseModel):
    """Recorded, reversible unit of filesystem mutation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    transaction_id: str = Field(description="Unique transaction ID")
    type: TransactionType
    status: TransactionStatus = TransactionStatus.PENDING
    actions: List[TransactionAction] = Field(default_factory=list)
    summary: TransactionSummary = Field(default_factory=TransactionSummary)
    target_path: Path
    dry_run: bool = Field(default=False, description="Whether this was a dry run")
    strategy: Optional[str] = None
    scan_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    rolled_back_at: Optional[datetime] = None
    rollback_transaction_id: Optional[str] = None

    def get_action(self, action_id: str) -> Optional[TransactionAction]:
        for action in self.actions:
            if action.action_id == action_id:
                return action
        return None

    def completed_actions(self) -> List[TransactionAction]:
        """Actions that actually changed the filesystem, in execution order."""
        return [a for a in self.actions if a.status == ActionStatus.COMPLETED]

    @property
    def is_rollbackable(self) -> bool:
        return (
            not self.dry_run
            and self.type != TransactionType.ROLLBACK
            and self.status in ROLLBACKABLE_STATUSES
        )


class OrganizePlanItem(BaseModel):
    """One planned move into a category folder."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    source: Path
    destination: Path
    category: FileCategory
    file_name: str
    size: int = 0


class OrganizeReport(BaseModel):
    """Result of an organize run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    transaction_id: str
    target_path: Path
    dry_run: bool = False
    status: TransactionStatus = TransactionStatus.PENDING
    plan: List[OrganizePlanItem] = Field(default_factory=list)
    planned_count: int = 0
    moved_count: int = 0
    failed_count: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)


class DedupeReport(BaseModel):
    """Result of a dedupe run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    transaction_id: str
    target_path: Path
    dry_run: bool = False
    strategy: KeepStrategy = KeepStrategy.KEEP_LATEST
    move_to_trash: bool = True
    status: TransactionStatus = TransactionStatus.PENDING
    duplicates: List[DuplicateGroup] = Field(default_factory=list)
    total_duplicate_groups: int = 0
    total_duplicate_files: int = 0
    deleted_count: int = 0
    failed_count: int = 0
    would_save: int = Field(default=0, description="Bytes freed if every delete succeeds")
    saved_bytes: int = Field(default=0, description="Bytes actually freed")
    errors: List[str] = Field(default_factory=list)


class RollbackDetail(BaseModel):
    """Outcome of reversing one action."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    source: Path = Field(description="Where the file was found (moved-to or trash path)")
    destination: Path = Field(description="Original location")
    outcome: RollbackOutcome
    note: Optional[str] = None


class RollbackReport(BaseModel):
    """Result of a rollback run."""

    transaction_id: str
    rollback_transaction_id: str
    original_type: TransactionType
    total_actions: int = 0
    restored_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    details: List[RollbackDetail] = Field(default_factory=list)
