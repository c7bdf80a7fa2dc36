"""
Transactional file mutation: organize, dedupe and rollback.
"""

from .deduper import Deduper, duplicate_candidates, find_duplicate_groups, parse_strategy
from .organizer import Organizer
from .rollback import RollbackEngine
from .transaction import TransactionLedger, summarize

__all__ = [
    "Deduper",
    "duplicate_candidates",
    "find_duplicate_groups",
    "parse_strategy",
    "Organizer",
    "RollbackEngine",
    "TransactionLedger",
    "summarize",
]
